from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router


def create_app():
    app = FastAPI(title="Well Hydraulics Core")

    # 1. Allow cross-origin requests from the operator UI
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 2. Calculator routes
    app.include_router(router)

    return app

app = create_app()
