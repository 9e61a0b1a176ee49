"""
Challenge-skill calibration — pure math, no I/O.

After each task the user rates it too_easy / just_right / too_hard. "Just
right" ratings cluster around the user's current skill; the ideal difficulty
for flow sits slightly above it (skill × 1.04, the 4% sweet spot). The profile
is rebuilt from the full history on every request, never updated in place.
"""

from __future__ import annotations

import math
import statistics
from collections import defaultdict

from config import FlowConfig
from models import (
    CalibrationProfile,
    DailyPlanSummary,
    DifficultyRating,
    FeedbackEntry,
)

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def _round(value: float, places: int) -> float:
    """Round half up (not banker's rounding)."""
    factor = 10 ** places
    return math.floor(value * factor + 0.5) / factor


def _weekday(d) -> int:
    """Sunday=0 … Saturday=6."""
    return d.isoweekday() % 7


def _mean(values: list[float], default: float) -> float:
    return sum(values) / len(values) if values else default


# ──────────────────────────────────────────────────────────────
# 1. Skill level
# ──────────────────────────────────────────────────────────────

def _estimate_skill(entries: list[FeedbackEntry], cfg: FlowConfig) -> float:
    by_rating: dict[DifficultyRating, list[float]] = defaultdict(list)
    for entry in entries:
        if entry.difficulty_rating is not None:
            by_rating[entry.difficulty_rating].append(entry.task_difficulty)

    just_right = by_rating[DifficultyRating.JUST_RIGHT]
    if just_right:
        skill = statistics.median(just_right)
    else:
        easy_avg = _mean(by_rating[DifficultyRating.TOO_EASY], cfg.fallback_easy_difficulty)
        hard_avg = _mean(by_rating[DifficultyRating.TOO_HARD], cfg.fallback_hard_difficulty)
        skill = (easy_avg + hard_avg) / 2

    return max(1.0, min(10.0, float(skill)))


# ──────────────────────────────────────────────────────────────
# 2. Work patterns
# ──────────────────────────────────────────────────────────────

def _energy_by_day(summaries: list[DailyPlanSummary]) -> dict[int, float]:
    buckets: dict[int, list[int]] = defaultdict(list)
    for plan in summaries:
        if plan.energy_rating:
            buckets[_weekday(plan.date)].append(plan.energy_rating)
    return {
        day: _round(sum(ratings) / len(ratings), 1)
        for day, ratings in sorted(buckets.items())
    }


def _avg_hours_per_day(summaries: list[DailyPlanSummary]) -> float:
    hours = [p.hours_requested for p in summaries if p.hours_requested]
    return _round(_mean(hours, 0.0), 1)


def _current_streak(summaries: list[DailyPlanSummary], tolerance_days: float) -> int:
    """Consecutive days (newest first) with a completed end-of-day review."""
    reviewed = sorted(
        (p.date for p in summaries if p.eod_review_completed),
        reverse=True,
    )
    if not reviewed:
        return 0

    streak = 1
    for prev, curr in zip(reviewed, reviewed[1:]):
        if (prev - curr).days > tolerance_days:
            break
        streak += 1
    return streak


# ──────────────────────────────────────────────────────────────
# 3. Profile
# ──────────────────────────────────────────────────────────────

def compute_calibration_profile(
    feedback_entries: list[FeedbackEntry],
    daily_plan_summaries: list[DailyPlanSummary],
    cfg: FlowConfig | None = None,
) -> CalibrationProfile:
    """
    Build a CalibrationProfile from historical feedback and daily plans.

    With fewer than ``cfg.min_feedback_entries`` entries the profile is neutral
    (skill 5, confidence 0) so scheduling behaves as if unpersonalized.
    """
    if cfg is None:
        cfg = FlowConfig()

    data_points = len(feedback_entries)
    if data_points < cfg.min_feedback_entries:
        skill = cfg.default_skill_level
        return CalibrationProfile(
            skill_level=skill,
            ideal_difficulty=_round(skill * cfg.sweet_spot_multiplier, 1),
            confidence=0.0,
            data_points=data_points,
        )

    skill = _estimate_skill(feedback_entries, cfg)
    ideal = min(10.0, skill * cfg.sweet_spot_multiplier)
    confidence = min(1.0, data_points / cfg.confidence_saturation)

    return CalibrationProfile(
        skill_level=_round(skill, 1),
        ideal_difficulty=_round(ideal, 1),
        confidence=_round(confidence, 2),
        data_points=data_points,
        energy_by_day=_energy_by_day(daily_plan_summaries),
        avg_tasks_per_day=0.0,
        avg_hours_per_day=_avg_hours_per_day(daily_plan_summaries),
        current_streak=_current_streak(daily_plan_summaries, cfg.streak_tolerance_days),
    )


# ──────────────────────────────────────────────────────────────
# 4. Challenge-skill score
# ──────────────────────────────────────────────────────────────

def default_challenge_score(task_difficulty: float, cfg: FlowConfig | None = None) -> float:
    """max(0, 1 - |d - 5| × 0.15) — the unpersonalized heuristic."""
    if cfg is None:
        cfg = FlowConfig()
    delta = abs(task_difficulty - cfg.neutral_difficulty)
    return max(0.0, 1 - delta * cfg.difficulty_falloff)


def calculate_challenge_skill_score(
    task_difficulty: float,
    profile: CalibrationProfile,
    cfg: FlowConfig | None = None,
) -> float:
    """
    Score = exp(-Δ² / 2σ²) around the ideal difficulty, blended with the
    default heuristic by ``profile.confidence``.

    Returns a value in [0, 1] where 1 is a perfect flow-zone match.
    """
    if cfg is None:
        cfg = FlowConfig()

    delta = task_difficulty - profile.ideal_difficulty
    sigma = cfg.challenge_sigma
    gaussian = math.exp(-(delta * delta) / (2 * sigma * sigma))

    fallback = default_challenge_score(task_difficulty, cfg)
    c = profile.confidence
    return gaussian * c + fallback * (1 - c)


# ──────────────────────────────────────────────────────────────
# 5. Text summary
# ──────────────────────────────────────────────────────────────

def confidence_label(confidence: float, cfg: FlowConfig | None = None) -> str:
    if cfg is None:
        cfg = FlowConfig()
    if confidence < cfg.low_confidence:
        return "Low"
    if confidence < cfg.high_confidence:
        return "Medium"
    return "High"


def format_calibration_summary(
    profile: CalibrationProfile,
    cfg: FlowConfig | None = None,
) -> str:
    """Plain-text status report of a profile, for chat or dashboard rendering."""
    if cfg is None:
        cfg = FlowConfig()

    if profile.data_points < cfg.min_feedback_entries:
        return (
            "📊 Not enough data yet. Complete a few tasks with difficulty "
            "ratings to calibrate!"
        )

    lines = [
        "📊 Your Flow Profile",
        "",
        f"🎯 Skill Level: {profile.skill_level:g}/10",
        f"⚡ Ideal Difficulty: {profile.ideal_difficulty:g}/10 (4% sweet spot)",
        f"📈 Confidence: {confidence_label(profile.confidence, cfg)} "
        f"({profile.data_points} data points)",
    ]

    if profile.avg_hours_per_day > 0:
        lines.append(f"⏱️ Avg. Hours/Day: {profile.avg_hours_per_day:g}")

    if profile.current_streak > 0:
        plural = "s" if profile.current_streak > 1 else ""
        lines.append(f"🔥 Current Streak: {profile.current_streak} day{plural}")

    # Ties keep the earliest weekday
    energy = list(profile.energy_by_day.items())
    if len(energy) >= 3:
        best = energy[0]
        worst = energy[0]
        for day, value in energy[1:]:
            if value > best[1]:
                best = (day, value)
            if value < worst[1]:
                worst = (day, value)
        lines.append("")
        lines.append(f"💡 Best energy: {DAY_NAMES[best[0]]}s ({best[1]:g}/5)")
        lines.append(f"😴 Lowest energy: {DAY_NAMES[worst[0]]}s ({worst[1]:g}/5)")

    return "\n".join(lines)
