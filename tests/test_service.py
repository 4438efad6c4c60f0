from __future__ import annotations

from fastapi.testclient import TestClient

from facepulse.service import make_app
from facepulse.session import SessionConfig


def _rows(samples) -> list[list[float]]:
    return [[s.r, s.g, s.b] for s in samples]


def test_ingest_produces_reading(pulse) -> None:
    client = TestClient(make_app(SessionConfig(capacity=300, min_fill=300, analysis_every=30)))
    samples = pulse(n=300)
    r = client.post("/sessions/a/ingest", json={"t0": 0.0, "dt": 1 / 30, "mean_rgb": _rows(samples[:150])})
    assert r.status_code == 200
    body = r.json()
    assert body["state"] == "buffering"
    assert body["reading"] is None
    assert body["buffer_progress"] == 0.5

    r = client.post("/sessions/a/ingest", json={"t0": 5.0, "dt": 1 / 30, "mean_rgb": _rows(samples[150:])})
    body = r.json()
    assert body["count"] == 150
    assert body["has_minimum_data"] is True
    assert 66 <= body["reading"]["bpm"] <= 78
    assert body["reading"]["quality"] in ("fair", "good", "excellent")

    # sessions are independent
    r = client.post("/sessions/b/ingest", json={"mean_rgb": _rows(samples[:10])})
    assert r.json()["samples"] == 10
    assert client.get("/sessions/a/metrics").json()["samples"] == 300


def test_reset_delete_and_unknown_session(pulse) -> None:
    client = TestClient(make_app(SessionConfig(capacity=100, min_fill=50)))
    assert client.get("/sessions/missing/metrics").status_code == 404
    client.post("/sessions/x/ingest", json={"mean_rgb": _rows(pulse(n=20))})
    r = client.post("/sessions/x/reset")
    assert r.json()["state"] == "idle"
    assert client.delete("/sessions/x").status_code == 200
    assert client.delete("/sessions/x").status_code == 404


def test_bad_rows_rejected() -> None:
    client = TestClient(make_app())
    r = client.post("/sessions/x/ingest", json={"mean_rgb": [[1.0, 2.0]]})
    assert r.status_code == 422


def test_control_updates_calibration() -> None:
    client = TestClient(make_app())
    r = client.post("/control", json={"confidence_snr_scale": 20.0, "analysis_every": 5})
    assert r.status_code == 200
    params = r.json()["params"]
    assert params["confidence_snr_scale"] == 20.0
    assert params["analysis_every"] == 5
    bad = client.post("/control", json={"excellent": 0.3})
    assert bad.status_code == 422


def test_sample_rate_follows_client_dt(pulse) -> None:
    client = TestClient(make_app(SessionConfig(capacity=300, min_fill=300, analysis_every=30)))
    fs = 15.0
    rows = _rows(pulse(n=300, fs=fs, f=1.2))
    client.post("/sessions/slow/ingest", json={"t0": 0.0, "dt": 1 / fs, "mean_rgb": rows[:150]})
    # second batch without t0 continues the session clock
    body = client.post("/sessions/slow/ingest", json={"dt": 1 / fs, "mean_rgb": rows[150:]}).json()
    assert body["has_minimum_data"] is True
    assert 66 <= body["reading"]["bpm"] <= 78


def test_snr_scale_applies_to_confidence_and_quality(pulse) -> None:
    client = TestClient(make_app(SessionConfig(capacity=100, min_fill=50)))
    client.post("/sessions/s/ingest", json={"mean_rgb": _rows(pulse(n=5))})
    params = client.post("/control", json={"confidence_snr_scale": 25.0}).json()["params"]
    assert params["confidence_snr_scale"] == 25.0
    assert params["quality_snr_scale"] == 25.0
    r = client.post("/sessions/t/ingest", json={"mean_rgb": _rows(pulse(n=5))})
    assert r.status_code == 200
