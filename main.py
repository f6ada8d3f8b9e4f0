import logging

import uvicorn

from wellcore.logging_config import setup_logging
from wellcore.settings import SETTINGS

if __name__ == "__main__":
    setup_logging(getattr(logging, SETTINGS.logging.level.upper(), logging.INFO), SETTINGS.logging.file)

    host = SETTINGS.service.host
    port = SETTINGS.service.port
    logging.getLogger("wellcore").info("Starting server on %s:%s...", host, port)
    uvicorn.run("api.app:app", host=host, port=port, reload=True)
