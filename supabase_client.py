"""
Supabase client for task, feedback and daily-plan persistence.

Tables expected in Supabase:
  - projects: id (uuid, PK), title, status, block_duration_mode, block_duration
  - tasks: id (uuid, PK), project_id (FK), milestone_id, title, description,
           estimated_minutes, difficulty, priority, status, sort_order, created_at
  - task_feedback: id, task_id (FK→tasks.id), difficulty_rating, flow_rating,
                   completed_at
  - daily_plans: id, date (unique), hours_requested, started_at,
                 eod_review_completed, energy_rating
  - user_settings: id, default_block_duration, break_duration, timezone

Every reader returns [] / None when Supabase is not configured or a query
fails, so the planner degrades to local-only mode.
"""

from __future__ import annotations

import logging
from datetime import datetime

from pydantic import ValidationError

from config import SUPABASE_URL, SUPABASE_KEY
from models import (
    DailyPlanSummary,
    FeedbackEntry,
    ProjectBlockSetting,
    Task,
)

logger = logging.getLogger(__name__)

_client = None


def get_supabase():
    """Lazy-init Supabase client. Returns None if not configured."""
    global _client
    if _client is not None:
        return _client
    if not SUPABASE_URL or not SUPABASE_KEY:
        logger.warning("Supabase not configured — running in local-only mode")
        return None
    try:
        from supabase import create_client
        _client = create_client(SUPABASE_URL, SUPABASE_KEY)
        logger.info("Supabase client initialised")
        return _client
    except Exception as e:
        logger.error(f"Failed to init Supabase: {e}")
        return None


def _parse_rows(model, rows: list[dict], what: str) -> list:
    parsed = []
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as e:
            logger.warning(f"Skipping malformed {what} row {row.get('id')}: {e}")
    return parsed


# ──────────────────────────────────────────────────────────────
# Tasks
# ──────────────────────────────────────────────────────────────

def get_pending_tasks() -> list[Task]:
    """All pending / scheduled tasks in creation order."""
    sb = get_supabase()
    if not sb:
        return []
    try:
        result = (
            sb.table("tasks")
            .select("*")
            .in_("status", ["pending", "scheduled"])
            .order("sort_order")
            .order("created_at")
            .execute()
        )
        return _parse_rows(Task, result.data or [], "task")
    except Exception as e:
        logger.error(f"get_pending_tasks failed: {e}")
        return []


# ──────────────────────────────────────────────────────────────
# Feedback
# ──────────────────────────────────────────────────────────────

def get_task_feedback_with_difficulty() -> list[FeedbackEntry]:
    """Feedback rows joined with the rated task's difficulty."""
    sb = get_supabase()
    if not sb:
        return []
    try:
        result = (
            sb.table("task_feedback")
            .select("difficulty_rating, flow_rating, completed_at, tasks(difficulty)")
            .execute()
        )
    except Exception as e:
        logger.error(f"get_task_feedback_with_difficulty failed: {e}")
        return []

    rows = []
    for row in result.data or []:
        task = row.get("tasks") or {}
        rows.append({
            "difficulty_rating": row.get("difficulty_rating"),
            "task_difficulty": task.get("difficulty", 5),
            "flow_rating": row.get("flow_rating"),
            "completed_at": row.get("completed_at"),
        })
    return _parse_rows(FeedbackEntry, rows, "feedback")


# ──────────────────────────────────────────────────────────────
# Daily plans
# ──────────────────────────────────────────────────────────────

def get_daily_plan_summaries() -> list[DailyPlanSummary]:
    sb = get_supabase()
    if not sb:
        return []
    try:
        result = (
            sb.table("daily_plans")
            .select("date, hours_requested, energy_rating, eod_review_completed")
            .order("date", desc=True)
            .execute()
        )
        return _parse_rows(DailyPlanSummary, result.data or [], "daily plan")
    except Exception as e:
        logger.error(f"get_daily_plan_summaries failed: {e}")
        return []


def upsert_daily_plan(date_str: str, data: dict) -> dict | None:
    sb = get_supabase()
    if not sb:
        return None
    try:
        payload = {"date": date_str, **data}
        result = sb.table("daily_plans").upsert(payload, on_conflict="date").execute()
        return result.data[0] if result.data else None
    except Exception as e:
        logger.error(f"upsert_daily_plan failed: {e}")
        return None


# ──────────────────────────────────────────────────────────────
# Projects
# ──────────────────────────────────────────────────────────────

def get_project_block_settings(project_ids: list[str]) -> list[ProjectBlockSetting]:
    """Block-duration preferences of the given projects, in the order asked."""
    sb = get_supabase()
    if not sb or not project_ids:
        return []
    try:
        result = (
            sb.table("projects")
            .select("id, block_duration_mode, block_duration")
            .in_("id", project_ids)
            .execute()
        )
    except Exception as e:
        logger.error(f"get_project_block_settings failed: {e}")
        return []

    by_id = {row["id"]: row for row in result.data or []}
    settings = []
    for pid in project_ids:
        row = by_id.get(pid)
        if row:
            settings.append(ProjectBlockSetting(
                mode=row.get("block_duration_mode") or "120",
                duration=row.get("block_duration") or 120,
            ))
    return settings


def mark_plan_started(date_str: str, hours_requested: float) -> dict | None:
    return upsert_daily_plan(date_str, {
        "hours_requested": int(hours_requested + 0.5),
        "started_at": datetime.utcnow().isoformat(),
    })
