"""
FlowConfig — every tunable coefficient for calibration and scheduling.

The defaults encode domain tuning (4% challenge-skill sweet spot, 33-entry
confidence saturation, 80% block fill, 10% day buffer). Change them only as a
product decision; ``PUT /config`` updates them at runtime.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, asdict

from dotenv import load_dotenv

load_dotenv()


# ── Environment ──────────────────────────────────────────────

SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_KEY = os.getenv("SUPABASE_KEY", "")  # anon or service-role key
LOG_LEVEL = os.getenv("FLOWPLAN_LOG_LEVEL", "INFO")
DEFAULT_START_TIME = os.getenv("FLOWPLAN_DEFAULT_START", "09:00")
DEFAULT_HOURS = float(os.getenv("FLOWPLAN_DEFAULT_HOURS", "6"))
DEFAULT_BREAK_MINUTES = 15
DEFAULT_BLOCK_MINUTES = 120


@dataclass
class FlowConfig:
    # ── Calibration ────────────────────────────────────────
    min_feedback_entries: int = 3       # below this the profile stays neutral
    default_skill_level: float = 5.0
    sweet_spot_multiplier: float = 1.04  # ideal = skill × 1.04
    confidence_saturation: int = 33     # entries needed for confidence 1.0
    fallback_easy_difficulty: float = 3.0
    fallback_hard_difficulty: float = 7.0
    streak_tolerance_days: float = 1.5

    # ── Challenge-skill curve ──────────────────────────────
    challenge_sigma: float = 2.0
    neutral_difficulty: float = 5.0
    difficulty_falloff: float = 0.15

    # ── Capacity ───────────────────────────────────────────
    buffer_fraction: float = 0.1
    block_fill_threshold: float = 0.8

    # ── Task score weights ─────────────────────────────────
    priority_weight: float = 0.3
    urgency_weight: float = 0.4
    challenge_weight: float = 0.2
    recency_weight: float = 0.1
    default_urgency: float = 0.5        # deadline urgency not wired in yet
    recency_step: float = 0.01

    # ── Auto block duration ────────────────────────────────
    low_confidence: float = 0.3
    high_confidence: float = 0.7
    short_task_avg_min: float = 25
    medium_task_avg_min: float = 50
    low_energy: float = 2
    medium_energy: float = 3

    # ── Output ─────────────────────────────────────────────
    renumber_blocks: bool = False       # False keeps gaps left by empty blocks

    def to_dict(self) -> dict:
        return asdict(self)
