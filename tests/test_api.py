import pytest
from fastapi.testclient import TestClient

from api import routes
from api.app import app

client = TestClient(app)

ANNULUS = [{"top_md": 0, "bottom_md": 3000, "inner_diameter": 0.2}]
STRING = [{"top_md": 0, "bottom_md": 3000, "outer_diameter": 0.12, "inner_diameter": 0.1}]
LAYERS = [{"density": 1200, "top_md": 0, "bottom_md": 3000}]
RHEOLOGY = {"dial600": 60, "dial300": 35}


def test_list_correlations():
    resp = client.get("/correlations")
    assert resp.status_code == 200
    ids = {m["id"] for m in resp.json()}
    assert {"EmpiricalAPL", "BinghamPlastic", "PowerLawRheology"} <= ids


def test_rheology_endpoint():
    resp = client.post("/calc/rheology", json={"dial600": 90, "dial300": 50})
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "success"
    assert body["data"]["n"] == pytest.approx(0.848, abs=1e-3)


def test_rheology_endpoint_rejects_bad_dials():
    resp = client.post("/calc/rheology", json={"dial600": 0, "dial300": 50})
    assert resp.status_code == 400


def test_apl_endpoint_reference_case():
    resp = client.post("/calc/apl", json={
        "density": 1330, "length": 3420, "flow_rate": 1.13,
        "hole_diameter": 0.2159, "pipe_diameter": 0.157,
    })
    assert resp.status_code == 200
    assert resp.json()["data"]["apl_kpa"] == pytest.approx(4930.5, rel=1e-3)


def test_apl_endpoint_unknown_correlation():
    resp = client.post("/calc/apl", json={
        "correlation": "Nope", "density": 1330, "length": 100, "flow_rate": 1.0,
        "hole_diameter": 0.2, "pipe_diameter": 0.1,
    })
    assert resp.status_code == 400


def test_apl_depth_endpoint():
    resp = client.post("/calc/apl/depth", json={
        "to_depth": 2000, "density": 1200, "flow_rate": 1.0,
        "annulus": ANNULUS, "string": STRING, "surface_friction": 10,
    })
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["apl_kpa"] > 10
    assert data["ecd"] > 1200


def test_ecd_endpoint():
    resp = client.post("/calc/ecd", json={"static_density": 1200, "pressure_kpa": 981, "tvd": 1000, "kind": "esd"})
    assert resp.json()["data"]["esd"] == pytest.approx(1300.0)
    assert client.post("/calc/ecd", json={"static_density": 1200, "pressure_kpa": 0, "tvd": 1,
                                          "kind": "xyz"}).status_code == 400


def test_swab_estimate_endpoint():
    resp = client.post("/swab/estimate", json={
        "layers": LAYERS, "annulus": ANNULUS, "string": STRING,
        "rheology": RHEOLOGY, "hoist_speed": 20, "step": 100,
    })
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert len(data["segments"]) == 30
    assert data["recommended_sabp_kpa"] == pytest.approx(data["total_kpa"] * 1.15)


def test_swab_estimate_missing_rheology():
    resp = client.post("/swab/estimate", json={
        "layers": LAYERS, "annulus": ANNULUS, "string": STRING, "hoist_speed": 20,
    })
    assert resp.status_code == 400
    assert "0.0-3000.0" in resp.json()["detail"]


def test_swab_estimate_rejects_apl_only_correlation():
    resp = client.post("/swab/estimate", json={
        "layers": LAYERS, "annulus": ANNULUS, "string": STRING, "rheology": RHEOLOGY,
        "hoist_speed": 20, "correlation": "EmpiricalAPL",
    })
    assert resp.status_code == 400


def test_trip_run_endpoint():
    resp = client.post("/trip/run", json={
        "direction": "pull_out", "start_md": 3000, "end_md": 0, "step": 1000,
        "layers": LAYERS, "annulus": ANNULUS, "string": STRING,
        "hoist_speed": 20, "rheology": RHEOLOGY, "target_esd": 1250,
    })
    assert resp.status_code == 200
    steps = resp.json()["data"]
    assert [s["bit_md"] for s in steps] == [3000, 2000, 1000, 0]
    assert "annulus_layers" not in steps[0]


def test_trip_run_bad_direction():
    resp = client.post("/trip/run", json={
        "direction": "sideways", "start_md": 3000, "end_md": 0, "step": 1000,
        "layers": LAYERS, "annulus": ANNULUS, "string": STRING, "hoist_speed": 20,
    })
    assert resp.status_code == 400


def test_trip_in_endpoint():
    resp = client.post("/trip/in", json={
        "start_md": 0, "end_md": 500, "control_md": 500, "step": 250,
        "pipe_od": 0.127, "pipe_id": 0.1086, "active_density": 1000, "base_density": 1200,
        "target_esd": 1300, "pocket_layers": [{"density": 1200, "top_md": 0, "bottom_md": 3000}],
        "annulus": [{"top_md": 0, "bottom_md": 3000, "inner_diameter": 0.2159}],
    })
    assert resp.status_code == 200
    steps = resp.json()["data"]
    assert len(steps) == 3
    assert steps[-1]["float_state"] == "Full"
    assert steps[-1]["pocket_layers"][0]["density"] == 1200


def test_trip_in_endpoint_validation():
    resp = client.post("/trip/in", json={
        "start_md": 0, "end_md": 500, "control_md": 500, "step": 250,
        "pipe_od": 0.127, "pipe_id": 0.1086, "active_density": 1000, "base_density": 1200,
        "target_esd": 1300, "pocket_layers": [], "annulus": [],
        "floated": True, "crack_pressure_kpa": 0,
    })
    assert resp.status_code == 400


def test_ballooning_endpoint():
    resp = client.post("/ballooning", json={
        "simulated_sabp": 1500, "simulated_kill_volume": 10, "actual_kill_volume": 12,
        "kill_density": 1500, "original_density": 1200, "annulus": ANNULUS,
    })
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["adjusted_sabp_kpa"] == 1500
    assert data["delta_sabp_kpa"] == 0


def test_request_shape_errors_are_422():
    assert client.post("/calc/rheology", json={"dial600": 90}).status_code == 422


def test_bhp_endpoint_with_target_and_window():
    resp = client.post("/calc/bhp", json={
        "layers": [{"density": 1200, "top_md": 0, "bottom_md": 2000},
                   {"density": 1800, "top_md": 0, "bottom_md": 2000, "placement": "string"}],
        "depth_md": 2000, "surface_pressure_kpa": 500, "target_bhp_kpa": 25000,
        "window": [{"tvd": 1000, "pore_kpa": 10000, "frac_kpa": 20000},
                   {"tvd": 3000, "pore_kpa": 30000, "frac_kpa": 40000}],
    })
    assert resp.status_code == 200
    data = resp.json()["data"]
    hydrostatic = 1200 * 0.00981 * 2000
    assert data["bhp_kpa"] == pytest.approx(500 + hydrostatic)
    assert data["required_sbp_kpa"] == pytest.approx(25000 - hydrostatic)
    assert data["window"] == {"within": True, "pore_kpa": pytest.approx(20000.0), "frac_kpa": pytest.approx(30000.0)}


def test_density_endpoint():
    resp = client.post("/calc/density", json={"target_bhp_kpa": 1300 * 9.81 * 2, "tvd": 2000})
    assert resp.json()["data"]["density"] == pytest.approx(1300.0)


def test_route_logger_is_configured_with_core():
    assert routes.logger.name.startswith("wellcore.")
