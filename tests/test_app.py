import pytest

import app as app_module


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(app_module, "BASE_DIR", str(tmp_path))
    app_module.app.config["TESTING"] = True
    with app_module.app.test_client() as c:
        yield c


def test_fmt_elapsed():
    assert app_module._fmt_elapsed(0.4) == "0s"
    assert app_module._fmt_elapsed(59) == "59s"
    assert app_module._fmt_elapsed(61) == "1m 1s"
    assert app_module._fmt_elapsed(3725) == "1h 2m 5s"


def test_optimize_returns_selected_design(client, tmp_path):
    resp = client.post("/optimize", json={
        "slab_thickness": 200, "cavity_width": 100, "support_level": -300, "characteristic_load": 4,
    })
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["ok"] is True
    selected = body["result"]["selected"]
    assert selected["is_valid"] is True
    assert selected["candidate"]["bracket_type"] == "Standard"
    assert body["meta"]["stats"]["evaluated"] > 0
    assert (tmp_path / "outputs" / "result.json").exists()

    latest = client.get("/result/latest").get_json()
    assert latest["ok"] is True
    assert latest["result"]["selected"]["weight"] == selected["weight"]


def test_optimize_accepts_form_fields(client):
    resp = client.post("/optimize", data={
        "slabThickness": "200", "cavity": "100", "bracket_drop": "-300", "load": "4",
    })
    assert resp.status_code == 200
    assert resp.get_json()["ok"] is True


def test_optimize_bad_input_is_400(client):
    resp = client.post("/optimize", json={"slab_thickness": 200, "cavity_width": 100})
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["ok"] is False
    assert body["error"].startswith("Bad input")


def test_optimize_infeasible_is_422(client, monkeypatch):
    monkeypatch.setattr(
        app_module, "solve_orchestrator",
        lambda payload: (False, None, "No valid design found", {"reason": "No valid design found"}),
    )
    resp = client.post("/optimize", json={})
    assert resp.status_code == 422
    assert resp.get_json()["error"] == "No valid design found"
    progress = client.get("/progress").get_json()
    assert progress["done"] is True
    assert progress["ok"] is False


def test_run_layout_endpoint(client):
    resp = client.post("/run-layout", json={"run_length": 1000, "bracket_centres": 500})
    assert resp.status_code == 200
    layout = resp.get_json()["layout"]
    assert [p["length"] for p in layout["pieces"]] == [980]

    bad = client.post("/run-layout", json={"run_length": 5, "centres": 500})
    assert bad.status_code == 400


def test_progress_is_never_cached(client):
    resp = client.get("/progress")
    assert resp.status_code == 200
    assert resp.headers["Cache-Control"] == "no-store, max-age=0"
    assert resp.headers["Pragma"] == "no-cache"
    assert "percent" in resp.get_json()
