"""FastAPI service exposing rPPG sessions to a Web UI.

Browser "meanRGB ingestion": the client averages its own ROI per frame and
POSTs batches of (R, G, B) samples to `/sessions/{sid}/ingest`. Each
session id gets its own controller and buffer.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .frame import RGBSample
from .quality import QualityThresholds
from .session import RPPGReading, SessionConfig, SessionController

logger = logging.getLogger(__name__)


@dataclass
class SessionEntry:
    controller: SessionController
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class ControlModel(BaseModel):
    confidence_snr_scale: Optional[float] = Field(None, gt=0.0, le=100.0)
    excellent: Optional[float] = Field(None, ge=0.0, le=5.0)
    good: Optional[float] = Field(None, ge=0.0, le=5.0)
    fair: Optional[float] = Field(None, ge=0.0, le=5.0)
    analysis_every: Optional[int] = Field(None, ge=1, le=300)


class IngestModel(BaseModel):
    t0: Optional[float] = None
    dt: float = Field(1.0 / 30.0, gt=0.0)
    mean_rgb: list[list[float]]


def _metrics(sid: str, ctl: SessionController) -> dict:
    reading: Optional[RPPGReading] = ctl.last_reading
    return {
        "session": sid,
        "state": ctl.state.value,
        "samples": len(ctl),
        "buffer_progress": ctl.buffer_progress(),
        "analysis_progress": ctl.analysis_progress(),
        "has_minimum_data": ctl.has_minimum_data(),
        "lighting": ctl.lighting.value,
        "movement": ctl.movement_detected,
        "reading": reading.to_dict() if reading is not None else None,
    }


def make_app(config: Optional[SessionConfig] = None) -> FastAPI:
    app = FastAPI(title="facepulse", version="0.1.0")

    # sample rate always comes from the client timestamps (t0 + i*dt)
    base = {"config": replace(config or SessionConfig(), estimate_sample_rate=True)}
    sessions: dict[str, SessionEntry] = {}

    def get_entry(sid: str, create: bool = False) -> SessionEntry:
        entry = sessions.get(sid)
        if entry is None:
            if not create:
                raise HTTPException(status_code=404, detail=f"unknown session: {sid}")
            entry = SessionEntry(SessionController(replace(base["config"])))
            sessions[sid] = entry
            logger.info("session %s created", sid)
        return entry

    @app.get("/health")
    async def health() -> dict[str, str]:  # pragma: no cover - trivial
        return {"status": "ok"}

    @app.post("/sessions/{sid}/ingest")
    async def post_ingest(sid: str, payload: IngestModel) -> dict:
        entry = get_entry(sid, create=True)
        if not payload.mean_rgb:
            return {"status": "empty", **_metrics(sid, entry.controller)}
        for row in payload.mean_rgb:
            if len(row) != 3:
                raise HTTPException(status_code=422, detail="mean_rgb rows must be [r, g, b]")
        accepted = 0
        async with entry.lock:
            ctl = entry.controller
            t = payload.t0
            if t is None:
                last = ctl.last_timestamp()
                t = last + payload.dt if last is not None else 0.0
            for r, g, b in payload.mean_rgb:
                rgb = RGBSample(float(r), float(g), float(b))
                if rgb.is_finite():
                    accepted += 1
                ctl.add_sample(rgb, t)
                t += payload.dt
            return {"status": "ok", "count": accepted, **_metrics(sid, ctl)}

    @app.get("/sessions/{sid}/metrics")
    async def get_metrics(sid: str) -> dict:
        entry = get_entry(sid)
        async with entry.lock:
            return _metrics(sid, entry.controller)

    @app.post("/sessions/{sid}/reset")
    async def post_reset(sid: str) -> dict:
        entry = get_entry(sid)
        async with entry.lock:
            entry.controller.reset()
            return {"status": "ok", **_metrics(sid, entry.controller)}

    @app.delete("/sessions/{sid}")
    async def delete_session(sid: str) -> dict:
        entry = sessions.pop(sid, None)
        if entry is None:
            raise HTTPException(status_code=404, detail=f"unknown session: {sid}")
        entry.controller.stop()
        logger.info("session %s stopped", sid)
        return {"status": "ok"}

    @app.post("/control")
    async def post_control(ctrl: ControlModel) -> dict:
        cfg: SessionConfig = base["config"]
        data = ctrl.model_dump(exclude_none=True)
        spectral = cfg.spectral
        tiers = {k: data[k] for k in ("excellent", "good", "fair") if k in data}
        if "confidence_snr_scale" in data:
            # confidence and quality score must divide SNR by the same scale
            spectral = replace(spectral, confidence_snr_scale=data["confidence_snr_scale"])
            tiers["snr_scale"] = data["confidence_snr_scale"]
        try:
            thresholds = replace(cfg.thresholds, **tiers)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        every = data.get("analysis_every", cfg.analysis_every)
        base["config"] = replace(cfg, spectral=spectral, thresholds=thresholds, analysis_every=every)
        for entry in sessions.values():
            async with entry.lock:
                entry.controller.update_calibration(spectral, thresholds, every)
        return {
            "status": "ok",
            "params": {
                "confidence_snr_scale": spectral.confidence_snr_scale,
                "quality_snr_scale": thresholds.snr_scale,
                "excellent": thresholds.excellent,
                "good": thresholds.good,
                "fair": thresholds.fair,
                "analysis_every": every,
            },
        }

    return app


def main() -> None:  # pragma: no cover - manual run helper
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    uvicorn.run(make_app(), host="127.0.0.1", port=8000)


if __name__ == "__main__":  # pragma: no cover
    main()
