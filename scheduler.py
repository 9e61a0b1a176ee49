"""
Block Scheduler — distributes pending tasks into contiguous work blocks.

Algorithm:
  1. Keep only pending / scheduled tasks
  2. Reserve a 10% buffer of the day and count how many block+break pairs fit
  3. Score every task (priority, urgency, challenge-skill fit, recency), sort DESC
  4. Fill each block greedily in score order, stopping once it is 80% full;
     the last block is shallow work and takes the easiest tasks first
  5. Within a block, order tasks easiest first (lower the hurdle)
  6. Advance a wall-clock cursor by block + break for each emitted block
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from datetime import date

from config import FlowConfig, DEFAULT_BLOCK_MINUTES
from calibration import calculate_challenge_skill_score, default_challenge_score
from models import (
    BlockType,
    CalibrationProfile,
    ProjectBlockSetting,
    ScheduleConfig,
    ScheduledBlock,
    ScheduledTask,
    Task,
)

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
PRESET_DURATIONS = {"60": 60, "90": 90, "120": 120}

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


class InvalidConfiguration(ValueError):
    """Raised when a schedule request cannot produce meaningful block times."""


# ──────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────

def parse_time(t: str) -> int:
    """'HH:MM' → minutes from midnight."""
    match = _TIME_RE.match(t or "")
    if not match:
        raise InvalidConfiguration(f"Expected HH:MM time, got {t!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidConfiguration(f"Time out of range: {t!r}")
    return hours * 60 + minutes


def format_time(m: int) -> str:
    """minutes from midnight → 'HH:MM', wrapping past midnight."""
    m %= MINUTES_PER_DAY
    return f"{m // 60:02d}:{m % 60:02d}"


def hours_between(start_time: str, wrap_up_by: str) -> float:
    """Hours from start until the wrap-up time (next day if earlier), at least 1."""
    start = parse_time(start_time)
    end = parse_time(wrap_up_by)
    if end > start:
        total = end - start
    else:
        total = MINUTES_PER_DAY - start + end
    return max(1.0, total / 60)


def calculate_task_score(
    task: Task,
    calibration: CalibrationProfile | None,
    cfg: FlowConfig | None = None,
) -> float:
    """
    Higher score = scheduled into an earlier block.

    priority 30%, deadline urgency 40% (fixed mid value), challenge-skill fit
    20%, creation order 10%.
    """
    if cfg is None:
        cfg = FlowConfig()

    priority_score = task.priority / 5
    urgency_score = cfg.default_urgency

    if calibration is not None and calibration.confidence > 0:
        challenge_score = calculate_challenge_skill_score(task.difficulty, calibration, cfg)
    else:
        challenge_score = default_challenge_score(task.difficulty, cfg)

    # Not clamped; large sort_order values go negative
    recency_score = 1 - task.sort_order * cfg.recency_step

    return (
        priority_score * cfg.priority_weight
        + urgency_score * cfg.urgency_weight
        + challenge_score * cfg.challenge_weight
        + recency_score * cfg.recency_weight
    )


def _effective_blocks(config: ScheduleConfig, cfg: FlowConfig) -> int:
    total_minutes = config.hours_requested * 60
    block_with_break = config.block_duration_minutes + config.break_duration_minutes
    buffer_minutes = math.floor(total_minutes * cfg.buffer_fraction)
    effective_minutes = total_minutes - buffer_minutes
    blocks = max(1, math.floor(effective_minutes / block_with_break))
    logger.debug(
        "capacity: total=%s buffer=%s block+break=%s → %s blocks",
        total_minutes, buffer_minutes, block_with_break, blocks,
    )
    return blocks


def _fill_block(
    candidates: list[tuple[Task, float]],
    capacity: int,
    fill_threshold: float,
) -> tuple[list[tuple[Task, float]], int]:
    """Greedy first-fit; stops once the block is ``fill_threshold`` full."""
    selected: list[tuple[Task, float]] = []
    filled = 0
    for candidate in candidates:
        minutes = candidate[0].estimated_minutes
        if filled + minutes <= capacity:
            selected.append(candidate)
            filled += minutes
            if filled >= capacity * fill_threshold:
                break
    return selected, filled


# ──────────────────────────────────────────────────────────────
# Main scheduler
# ──────────────────────────────────────────────────────────────

def generate_daily_schedule(
    pending_tasks: list[Task],
    config: ScheduleConfig,
    cfg: FlowConfig | None = None,
) -> list[ScheduledBlock]:
    """
    Build today's blocks from the task pool.

    Pure function of its inputs: no I/O and no clock reads. Tasks are never
    mutated. Raises InvalidConfiguration for a malformed start time or a
    non-positive block duration.
    """
    if cfg is None:
        cfg = FlowConfig()

    if not pending_tasks:
        return []

    cursor = parse_time(config.start_time)
    block_minutes = config.block_duration_minutes
    if block_minutes <= 0:
        raise InvalidConfiguration(f"Block duration must be positive, got {block_minutes}")

    n_blocks = _effective_blocks(config, cfg)

    scored = [
        (task, calculate_task_score(task, config.calibration, cfg))
        for task in pending_tasks
        if task.is_schedulable
    ]
    scored.sort(key=lambda s: s[1], reverse=True)

    blocks: list[ScheduledBlock] = []
    remaining = scored

    for i in range(n_blocks):
        if not remaining:
            break

        is_last = i == n_blocks - 1
        block_type = BlockType.SHALLOW_WORK if is_last else BlockType.DEEP_WORK

        # Wind-down block prefers the easiest remaining tasks
        if is_last:
            candidates = sorted(remaining, key=lambda s: s[0].difficulty)
        else:
            candidates = remaining

        selected, filled = _fill_block(candidates, block_minutes, cfg.block_fill_threshold)

        taken = {id(s) for s in selected}
        remaining = [s for s in remaining if id(s) not in taken]

        if not selected:
            continue

        # Lower the hurdle: easiest task first
        selected.sort(key=lambda s: s[0].difficulty)

        start = cursor
        cursor += block_minutes
        blocks.append(ScheduledBlock(
            block_number=i + 1,
            start_time=format_time(start),
            end_time=format_time(cursor),
            block_type=block_type,
            tasks=[
                ScheduledTask(task=task, sort_order=idx)
                for idx, (task, _score) in enumerate(selected)
            ],
            total_minutes=filled,
        ))

        cursor += config.break_duration_minutes

    if cfg.renumber_blocks:
        for number, block in enumerate(blocks, start=1):
            block.block_number = number

    logger.info(
        "Scheduled %d tasks into %d blocks (%d left unscheduled)",
        sum(len(b.tasks) for b in blocks), len(blocks), len(remaining),
    )
    return blocks


# ──────────────────────────────────────────────────────────────
# Block duration
# ──────────────────────────────────────────────────────────────

def auto_decide_block_duration(
    calibration: CalibrationProfile | None,
    pending_tasks: list[Task],
    today: date | None = None,
    cfg: FlowConfig | None = None,
) -> int:
    """
    Pick 60 / 90 / 120 minutes from the calibration profile.

    The ladder leans short whenever the profile is uncertain; branch order
    matters because later checks only run when earlier ones fall through.
    """
    if cfg is None:
        cfg = FlowConfig()

    if calibration is None or calibration.confidence == 0:
        return 120

    if calibration.confidence < cfg.low_confidence:
        return 90

    avg_hours = calibration.avg_hours_per_day

    if calibration.confidence < cfg.high_confidence:
        if 0 < avg_hours < 3:
            return 60
        if 3 <= avg_hours <= 5:
            return 90
        return 120

    active = [t for t in pending_tasks if t.is_schedulable]
    if active:
        avg_estimate = sum(t.estimated_minutes for t in active) / len(active)
        if avg_estimate < cfg.short_task_avg_min:
            return 60
        if avg_estimate < cfg.medium_task_avg_min:
            return 90

    if today is None:
        today = date.today()
    today_energy = calibration.energy_by_day.get(today.isoweekday() % 7)
    if today_energy and today_energy <= cfg.low_energy:
        return 60
    if today_energy and today_energy <= cfg.medium_energy:
        return 90

    if 0 < avg_hours < 4:
        return 90
    return 120


def resolve_block_duration(
    mode: str,
    custom_duration: int,
    calibration: CalibrationProfile | None,
    pending_tasks: list[Task],
    today: date | None = None,
    cfg: FlowConfig | None = None,
) -> int:
    """mode: "60" | "90" | "120" | "custom" | "auto"."""
    if mode in PRESET_DURATIONS:
        return PRESET_DURATIONS[mode]
    if mode == "custom":
        return custom_duration
    if mode == "auto":
        return auto_decide_block_duration(calibration, pending_tasks, today, cfg)
    return custom_duration or DEFAULT_BLOCK_MINUTES


def pick_block_duration_mode(settings: list[ProjectBlockSetting]) -> tuple[str, int]:
    """Most common mode across projects; ties go to the first seen."""
    if not settings:
        return "120", DEFAULT_BLOCK_MINUTES

    top_mode = Counter(s.mode for s in settings).most_common(1)[0][0]
    match = next(s for s in settings if s.mode == top_mode)
    return top_mode, match.duration or DEFAULT_BLOCK_MINUTES
