"""Shared test fixtures for FlowPlan tests.

- Task factory with sensible defaults
- Feedback / daily-plan builders
"""

from datetime import date

import pytest

from models import DailyPlanSummary, FeedbackEntry, Task


@pytest.fixture
def make_task():
    """Build a Task; ids are generated when not given."""
    counter = {"n": 0}

    def _make(**overrides) -> Task:
        counter["n"] += 1
        fields = {
            "id": f"task-{counter['n']}",
            "title": f"Task {counter['n']}",
            "estimated_minutes": 30,
            "difficulty": 5,
            "priority": 3,
            "status": "pending",
            "sort_order": 0,
        }
        fields.update(overrides)
        return Task(**fields)

    return _make


@pytest.fixture
def make_feedback():
    def _make(rating, difficulties) -> list[FeedbackEntry]:
        return [
            FeedbackEntry(difficulty_rating=rating, task_difficulty=d)
            for d in difficulties
        ]

    return _make


@pytest.fixture
def make_summary():
    def _make(day: str, **fields) -> DailyPlanSummary:
        return DailyPlanSummary(date=date.fromisoformat(day), **fields)

    return _make
