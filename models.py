"""
Pydantic schemas for the FlowPlan scheduler.

Three groups:
  A. Stored entities read by the core (Task, FeedbackEntry, DailyPlanSummary)
  B. Core outputs (CalibrationProfile, ScheduledTask, ScheduledBlock)
  C. API I/O (ScheduleConfig, PlanRequest, PlanResponse, ProjectBlockSetting)
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


SCHEDULABLE_STATUSES = frozenset({TaskStatus.PENDING, TaskStatus.SCHEDULED})


class DifficultyRating(str, Enum):
    TOO_EASY = "too_easy"
    JUST_RIGHT = "just_right"
    TOO_HARD = "too_hard"


class BlockType(str, Enum):
    DEEP_WORK = "deep_work"
    SHALLOW_WORK = "shallow_work"
    # Stored block types; the generator never emits these
    BREAK = "break"
    BUFFER = "buffer"
    WARMUP = "warmup"


# ──────────────────────────────────────────────────────────────
# A. Stored entities
# ──────────────────────────────────────────────────────────────


class Task(BaseModel):
    """A unit of work belonging to a project (and optionally a milestone)."""

    id: str
    title: str
    description: str = ""
    project_id: Optional[str] = None
    milestone_id: Optional[str] = None
    estimated_minutes: int = Field(default=30, gt=0)
    difficulty: int = Field(default=5, ge=1, le=10)
    priority: int = Field(default=3, ge=1, le=5)
    status: TaskStatus = TaskStatus.PENDING
    sort_order: int = 0

    @property
    def is_schedulable(self) -> bool:
        return self.status in SCHEDULABLE_STATUSES


class FeedbackEntry(BaseModel):
    """Post-completion rating joined with the task's difficulty at the time."""

    difficulty_rating: Optional[DifficultyRating] = None
    task_difficulty: float
    flow_rating: Optional[int] = None
    completed_at: Optional[datetime] = None


class DailyPlanSummary(BaseModel):
    date: date
    hours_requested: Optional[float] = None
    energy_rating: Optional[int] = None  # 1-5; 0 or None means unrated
    eod_review_completed: bool = False


# ──────────────────────────────────────────────────────────────
# B. Core outputs
# ──────────────────────────────────────────────────────────────


class CalibrationProfile(BaseModel):
    """Skill and work-pattern summary recomputed from history on each request."""

    skill_level: float = Field(default=5.0, ge=1, le=10)
    ideal_difficulty: float = Field(default=5.2, ge=1, le=10)
    confidence: float = Field(default=0.0, ge=0, le=1)
    data_points: int = 0
    energy_by_day: dict[int, float] = Field(default_factory=dict)  # 0=Sun … 6=Sat
    avg_tasks_per_day: float = 0.0
    avg_hours_per_day: float = 0.0
    current_streak: int = 0


class ScheduledTask(BaseModel):
    task: Task
    sort_order: int  # position inside the block, 0 = easiest


class ScheduledBlock(BaseModel):
    block_number: int
    start_time: str
    end_time: str
    block_type: BlockType
    tasks: list[ScheduledTask] = Field(default_factory=list)
    total_minutes: int = 0


# ──────────────────────────────────────────────────────────────
# C. API I/O
# ──────────────────────────────────────────────────────────────


class ScheduleConfig(BaseModel):
    start_time: str = "09:00"
    hours_requested: float = Field(default=6, gt=0)
    block_duration_minutes: int = 120
    break_duration_minutes: int = Field(default=15, ge=0)
    calibration: Optional[CalibrationProfile] = None


class ProjectBlockSetting(BaseModel):
    """Per-project block duration preference ("60", "90", "120", "custom", "auto")."""

    mode: str = "120"
    duration: int = 120


class PlanRequest(BaseModel):
    start_time: Optional[str] = None
    hours: Optional[float] = Field(default=None, gt=0)
    wrap_up_by: Optional[str] = None
    block_duration: Optional[int] = Field(default=None, gt=0)
    break_duration: Optional[int] = Field(default=None, ge=0)


class PlanResponse(BaseModel):
    date: str
    hours_requested: float
    start_time: Optional[str] = None
    wrap_up_by: Optional[str] = None
    block_duration: Optional[int] = None
    break_duration: Optional[int] = None
    blocks: list[ScheduledBlock] = Field(default_factory=list)
    total_tasks: int = 0
    total_blocks: int = 0
