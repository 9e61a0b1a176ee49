"""
FastAPI server for the FlowPlan scheduler.

Endpoints:
  GET  /calibration          — Current calibration profile
  GET  /calibration/summary  — Profile as a short text report
  POST /plan                 — Generate today's plan (calibrated, persisted)
  GET  /plan                 — Preview a plan from query params (no persistence)
  GET  /config               — Current FlowConfig
  PUT  /config               — Update FlowConfig parameters
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from models import PlanRequest, PlanResponse, ScheduleConfig, CalibrationProfile
from config import (
    FlowConfig,
    LOG_LEVEL,
    DEFAULT_START_TIME,
    DEFAULT_HOURS,
    DEFAULT_BREAK_MINUTES,
    DEFAULT_BLOCK_MINUTES,
)
from calibration import compute_calibration_profile, format_calibration_summary
from scheduler import (
    InvalidConfiguration,
    generate_daily_schedule,
    hours_between,
    pick_block_duration_mode,
    resolve_block_duration,
)
import supabase_client as supa

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


# ── Global config (single implicit user) ──

_config = FlowConfig()


# ── Lifespan ──────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown hooks."""
    logger.info("FlowPlan scheduler starting…")
    yield
    logger.info("Shutting down.")


# ── App ───────────────────────────────────────────────────────

app = FastAPI(
    title="FlowPlan Scheduler",
    description="Daily block scheduler with challenge-skill calibration",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Helpers ───────────────────────────────────────────────────

def _load_profile() -> CalibrationProfile:
    feedback = supa.get_task_feedback_with_difficulty()
    plans = supa.get_daily_plan_summaries()
    return compute_calibration_profile(feedback, plans, _config)


def _plan_response(blocks, **fields) -> PlanResponse:
    return PlanResponse(
        blocks=blocks,
        total_tasks=sum(len(b.tasks) for b in blocks),
        total_blocks=len(blocks),
        **fields,
    )


# ──────────────────────────────────────────────────────────────
# Calibration
# ──────────────────────────────────────────────────────────────

@app.get("/calibration", response_model=CalibrationProfile)
async def get_calibration():
    """Skill level, ideal difficulty, confidence, energy patterns, streak."""
    try:
        return _load_profile()
    except Exception as e:
        logger.exception("Calibration error")
        raise HTTPException(500, "Failed to compute calibration profile") from e


@app.get("/calibration/summary")
async def get_calibration_summary():
    try:
        profile = _load_profile()
    except Exception as e:
        logger.exception("Calibration error")
        raise HTTPException(500, "Failed to compute calibration profile") from e
    return {"summary": format_calibration_summary(profile, _config)}


# ──────────────────────────────────────────────────────────────
# POST /plan — calibrated, persisted
# ──────────────────────────────────────────────────────────────

@app.post("/plan", response_model=PlanResponse)
async def create_plan(req: PlanRequest):
    """
    Generate today's plan. Hours come from ``wrap_up_by`` when given;
    block duration from the request or the projects' most common mode.
    """
    start_time = req.start_time or DEFAULT_START_TIME
    break_duration = (
        req.break_duration if req.break_duration is not None else DEFAULT_BREAK_MINUTES
    )

    try:
        if req.wrap_up_by:
            hours_requested = hours_between(start_time, req.wrap_up_by)
        else:
            hours_requested = req.hours or DEFAULT_HOURS
    except InvalidConfiguration as e:
        raise HTTPException(400, str(e)) from e

    pending_tasks = supa.get_pending_tasks()
    if not pending_tasks:
        raise HTTPException(400, "No pending tasks. Add some tasks to your projects first.")

    project_ids = list(dict.fromkeys(t.project_id for t in pending_tasks if t.project_id))
    mode, custom_duration = pick_block_duration_mode(
        supa.get_project_block_settings(project_ids)
    )

    calibration = None
    try:
        profile = _load_profile()
        if profile.confidence > 0:
            calibration = profile
    except Exception as e:
        logger.warning(f"Calibration unavailable, planning without it: {e}")

    block_duration = req.block_duration or resolve_block_duration(
        mode, custom_duration, calibration, pending_tasks, cfg=_config
    )

    try:
        blocks = generate_daily_schedule(
            pending_tasks,
            ScheduleConfig(
                start_time=start_time,
                hours_requested=hours_requested,
                block_duration_minutes=block_duration,
                break_duration_minutes=break_duration,
                calibration=calibration,
            ),
            _config,
        )
    except InvalidConfiguration as e:
        raise HTTPException(400, str(e)) from e

    today = date.today().isoformat()
    supa.mark_plan_started(today, hours_requested)

    return _plan_response(
        blocks,
        date=today,
        hours_requested=round(hours_requested, 1),
        start_time=start_time,
        wrap_up_by=req.wrap_up_by,
        block_duration=block_duration,
        break_duration=break_duration,
    )


# ──────────────────────────────────────────────────────────────
# GET /plan — preview, no calibration, no persistence
# ──────────────────────────────────────────────────────────────

@app.get("/plan", response_model=PlanResponse)
async def preview_plan(
    hours: float = Query(DEFAULT_HOURS, gt=0),
    start_time: str = DEFAULT_START_TIME,
    block_duration: int = Query(DEFAULT_BLOCK_MINUTES, gt=0),
    break_duration: int = Query(DEFAULT_BREAK_MINUTES, ge=0),
):
    today = date.today().isoformat()
    pending_tasks = supa.get_pending_tasks()

    try:
        blocks = generate_daily_schedule(
            pending_tasks,
            ScheduleConfig(
                start_time=start_time,
                hours_requested=hours,
                block_duration_minutes=block_duration,
                break_duration_minutes=break_duration,
            ),
            _config,
        )
    except InvalidConfiguration as e:
        raise HTTPException(400, str(e)) from e

    return _plan_response(blocks, date=today, hours_requested=hours)


# ──────────────────────────────────────────────────────────────
# GET / PUT /config
# ──────────────────────────────────────────────────────────────

@app.get("/config")
async def get_config():
    """Return the current scheduler configuration."""
    return _config.to_dict()


@app.put("/config")
async def update_config(updates: dict):
    """Update specific configuration parameters."""
    for key in updates:
        if not hasattr(_config, key):
            raise HTTPException(400, f"Unknown config key: {key}")
    for key, value in updates.items():
        setattr(_config, key, value)
    return _config.to_dict()


# ──────────────────────────────────────────────────────────────
# Health check
# ──────────────────────────────────────────────────────────────

@app.get("/health")
async def health():
    return {"status": "healthy", "service": "flowplan-scheduler"}
