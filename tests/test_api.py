"""Tests for the FastAPI endpoints in main.py

The Supabase adapter is patched out; every endpoint runs against in-memory data.
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient

import main
import supabase_client as supa
from config import FlowConfig
from models import DailyPlanSummary, FeedbackEntry, ProjectBlockSetting


@pytest.fixture
def store(monkeypatch):
    """In-memory replacement for the Supabase adapter."""
    data = {
        "tasks": [],
        "feedback": [],
        "plans": [],
        "settings": [],
        "started": [],
    }
    monkeypatch.setattr(supa, "get_pending_tasks", lambda: list(data["tasks"]))
    monkeypatch.setattr(supa, "get_task_feedback_with_difficulty", lambda: list(data["feedback"]))
    monkeypatch.setattr(supa, "get_daily_plan_summaries", lambda: list(data["plans"]))
    monkeypatch.setattr(supa, "get_project_block_settings", lambda ids: list(data["settings"]))
    monkeypatch.setattr(
        supa,
        "mark_plan_started",
        lambda day, hours: data["started"].append((day, hours)),
    )
    monkeypatch.setattr(main, "_config", FlowConfig())
    return data


@pytest.fixture
def client(store):
    return TestClient(main.app)


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestCalibrationEndpoints:
    def test_neutral_profile(self, client):
        response = client.get("/calibration")

        assert response.status_code == 200
        body = response.json()
        assert body["skill_level"] == 5
        assert body["ideal_difficulty"] == 5.2
        assert body["confidence"] == 0

    def test_profile_from_history(self, client, store):
        store["feedback"] = [
            FeedbackEntry(difficulty_rating="just_right", task_difficulty=d)
            for d in [6, 6, 7]
        ]
        store["plans"] = [
            DailyPlanSummary(date=date(2024, 1, 8), energy_rating=4, eod_review_completed=True),
        ]

        body = client.get("/calibration").json()

        assert body["skill_level"] == 6
        assert body["confidence"] == 0.09
        assert body["energy_by_day"] == {"1": 4.0}
        assert body["current_streak"] == 1

    def test_summary(self, client):
        body = client.get("/calibration/summary").json()

        assert "Not enough data" in body["summary"]


class TestCreatePlan:
    def test_no_pending_tasks(self, client):
        response = client.post("/plan", json={})

        assert response.status_code == 400
        assert "No pending tasks" in response.json()["detail"]

    def test_plan_uses_project_mode_and_wrap_up(self, client, store, make_task):
        store["tasks"] = [
            make_task(title=f"t{i}", project_id="p1", estimated_minutes=45, sort_order=i)
            for i in range(4)
        ]
        store["settings"] = [ProjectBlockSetting(mode="90", duration=90)]

        response = client.post(
            "/plan", json={"start_time": "10:00", "wrap_up_by": "14:00"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["hours_requested"] == 4.0
        assert body["block_duration"] == 90
        assert body["break_duration"] == 15
        assert body["wrap_up_by"] == "14:00"
        # 240 min - 24 buffer = 216 → two 105-minute slots
        assert body["total_blocks"] == 2
        assert body["total_tasks"] == 4
        assert body["blocks"][0]["start_time"] == "10:00"
        assert body["blocks"][1]["block_type"] == "shallow_work"
        assert store["started"] == [(body["date"], 4.0)]

    def test_explicit_block_duration_wins(self, client, store, make_task):
        store["tasks"] = [make_task(project_id="p1")]
        store["settings"] = [ProjectBlockSetting(mode="90", duration=90)]

        body = client.post("/plan", json={"hours": 3, "block_duration": 60}).json()

        assert body["block_duration"] == 60
        assert body["hours_requested"] == 3

    def test_auto_mode_uses_calibration(self, client, store, make_task):
        store["tasks"] = [make_task(project_id="p1")]
        store["settings"] = [ProjectBlockSetting(mode="auto", duration=120)]
        store["feedback"] = [
            FeedbackEntry(difficulty_rating="just_right", task_difficulty=5)
            for _ in range(5)
        ]

        body = client.post("/plan", json={"hours": 4}).json()

        # 5 entries → confidence 0.15 → low-confidence ladder step
        assert body["block_duration"] == 90

    def test_bad_start_time(self, client, store, make_task):
        store["tasks"] = [make_task()]

        response = client.post("/plan", json={"start_time": "noon"})

        assert response.status_code == 400

    def test_bad_wrap_up_time(self, client, store, make_task):
        store["tasks"] = [make_task()]

        response = client.post("/plan", json={"wrap_up_by": "late"})

        assert response.status_code == 400


class TestPreviewPlan:
    def test_empty_pool(self, client, store):
        body = client.get("/plan").json()

        assert body["blocks"] == []
        assert body["total_blocks"] == 0
        assert store["started"] == []

    def test_preview_does_not_persist(self, client, store, make_task):
        store["tasks"] = [make_task(estimated_minutes=30) for _ in range(3)]

        body = client.get(
            "/plan", params={"hours": 2, "start_time": "08:00", "block_duration": 120}
        ).json()

        assert body["total_blocks"] == 1
        assert body["total_tasks"] == 3
        assert body["blocks"][0]["end_time"] == "10:00"
        assert store["started"] == []

    def test_rejects_non_positive_hours(self, client):
        assert client.get("/plan", params={"hours": 0}).status_code == 422


class TestConfigEndpoints:
    def test_get_config(self, client):
        body = client.get("/config").json()

        assert body["sweet_spot_multiplier"] == 1.04
        assert body["confidence_saturation"] == 33

    def test_update_config(self, client):
        body = client.put("/config", json={"renumber_blocks": True}).json()

        assert body["renumber_blocks"] is True

    def test_unknown_key_rejected_without_partial_update(self, client):
        response = client.put("/config", json={"buffer_fraction": 0.2, "bogus": 1})

        assert response.status_code == 400
        assert client.get("/config").json()["buffer_fraction"] == 0.1

    def test_updated_threshold_reaches_auto_duration(self, client, store, make_task):
        store["tasks"] = [make_task(project_id="p1")]
        store["settings"] = [ProjectBlockSetting(mode="auto", duration=120)]
        store["feedback"] = [
            FeedbackEntry(difficulty_rating="just_right", task_difficulty=5)
            for _ in range(5)
        ]

        client.put("/config", json={"low_confidence": 0.1})
        body = client.post("/plan", json={"hours": 4}).json()

        # confidence 0.15 now sits in the medium band; no hours history → 120
        assert body["block_duration"] == 120

    def test_updated_minimum_reaches_summary(self, client, store):
        store["feedback"] = [
            FeedbackEntry(difficulty_rating="just_right", task_difficulty=6)
            for _ in range(2)
        ]

        client.put("/config", json={"min_feedback_entries": 2})
        summary = client.get("/calibration/summary").json()["summary"]

        assert "Not enough data" not in summary
        assert "Skill Level: 6/10" in summary
