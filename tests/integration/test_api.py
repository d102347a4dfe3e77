"""HTTP tests for the rewards API."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from tests.conftest import TRUE_FALSE_PERFECT, add_exercise, auth_headers

STUDENT = auth_headers("u1")
TEACHER = auth_headers("teacher-1", role="teacher")


def _submit_body(session_id: str = "s-1", seconds_ago: float = 60, **kwargs) -> dict:
    body = {
        "sessionId": session_id,
        "answers": TRUE_FALSE_PERFECT,
        "startedAt": (datetime.now(timezone.utc) - timedelta(seconds=seconds_ago)).isoformat(),
    }
    body.update(kwargs)
    return body


@pytest_asyncio.fixture
async def exercise(db_session):
    return await add_exercise(db_session)


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_ready(self, client):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.get("/health", headers={"X-Request-Id": "abc-123"})
        assert response.headers["X-Request-Id"] == "abc-123"


class TestAuth:
    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/api/v1/coins/u1")
        assert response.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        response = await client.get("/api/v1/coins/u1", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_students_cannot_read_others(self, client):
        response = await client.get("/api/v1/coins/u2", headers=STUDENT)
        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_teachers_can_read_students(self, client):
        response = await client.get("/api/v1/coins/u1", headers=TEACHER)
        assert response.status_code == 200
        assert response.json()["balance"] == 0


class TestSubmit:
    @pytest.mark.asyncio
    async def test_submit_scores_and_credits(self, client, exercise):
        response = await client.post("/api/v1/exercises/ex-1/submit", json=_submit_body(), headers=STUDENT)
        assert response.status_code == 200
        data = response.json()
        assert data["score"] == 100
        assert data["isPerfect"] is True
        assert data["isPassing"] is True
        assert data["attemptNumber"] == 1
        assert data["rewards"]["coins"] == 20
        assert data["rewards"]["xp"] == 40
        assert data["rewards"]["bonuses"]["perfect"] == 10
        assert [a["id"] for a in data["achievements"]] == ["first_steps", "first_module"]
        assert data["rankUp"] is None
        assert data["streak"] == 1

        balance = (await client.get("/api/v1/coins/u1", headers=STUDENT)).json()
        assert balance["balance"] == 70
        assert balance["totalXp"] == 100

    @pytest.mark.asyncio
    async def test_second_submission_rate_limited(self, client, exercise):
        first = await client.post("/api/v1/exercises/ex-1/submit", json=_submit_body("s-1"), headers=STUDENT)
        assert first.status_code == 200

        second = await client.post("/api/v1/exercises/ex-1/submit", json=_submit_body("s-2"), headers=STUDENT)
        assert second.status_code == 429
        data = second.json()
        assert data["code"] == "RATE_LIMITED"
        assert 1 <= data["retryAfter"] <= 5
        assert second.headers["Retry-After"] == str(data["retryAfter"])

    @pytest.mark.asyncio
    async def test_too_fast(self, client, exercise):
        response = await client.post(
            "/api/v1/exercises/ex-1/submit", json=_submit_body(seconds_ago=0), headers=STUDENT
        )
        assert response.status_code == 400
        assert response.json()["code"] == "SUBMISSION_TOO_FAST"

    @pytest.mark.asyncio
    async def test_session_expired(self, client, exercise):
        response = await client.post(
            "/api/v1/exercises/ex-1/submit", json=_submit_body(seconds_ago=25 * 3600), headers=STUDENT
        )
        assert response.status_code == 400
        assert response.json()["code"] == "SESSION_EXPIRED"

    @pytest.mark.asyncio
    async def test_malformed_body(self, client, exercise):
        body = _submit_body()
        del body["answers"]
        response = await client.post("/api/v1/exercises/ex-1/submit", json=body, headers=STUDENT)
        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "VALIDATION_ERROR"
        assert data["errors"]

    @pytest.mark.asyncio
    async def test_unknown_powerup_rejected(self, client, exercise):
        response = await client.post(
            "/api/v1/exercises/ex-1/submit", json=_submit_body(powerupsUsed=["teleport"]), headers=STUDENT
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_malformed_word_search_answers(self, client, db_session):
        await add_exercise(db_session, "ws-1", exercise_type="sopa_letras", content={"words": ["maya", "cacao"]})
        response = await client.post(
            "/api/v1/exercises/ws-1/submit", json=_submit_body(answers={"foundWords": 5}), headers=STUDENT
        )
        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "VALIDATION_ERROR"
        assert data["field"] == "answers.foundWords"

    @pytest.mark.asyncio
    async def test_malformed_concept_map_answers(self, client, db_session):
        await add_exercise(
            db_session, "cm-1", exercise_type="mapa_conceptual", content={"relationships": [{"from": "a", "to": "b"}]}
        )
        response = await client.post(
            "/api/v1/exercises/cm-1/submit", json=_submit_body(answers={"relationships": ["a->b"]}), headers=STUDENT
        )
        assert response.status_code == 400
        assert response.json()["field"] == "answers.relationships.0"

        balance = (await client.get("/api/v1/coins/u1", headers=STUDENT)).json()
        assert balance["balance"] == 0

    @pytest.mark.asyncio
    async def test_unowned_powerup_rejected(self, client, exercise):
        response = await client.post(
            "/api/v1/exercises/ex-1/submit", json=_submit_body(powerupsUsed=["pistas"]), headers=STUDENT
        )
        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "POWERUP_NOT_AVAILABLE"
        assert data["powerupType"] == "pistas"

    @pytest.mark.asyncio
    async def test_unknown_exercise(self, client):
        response = await client.post("/api/v1/exercises/nope/submit", json=_submit_body(), headers=STUDENT)
        assert response.status_code == 404
        assert response.json()["code"] == "EXERCISE_NOT_FOUND"


class TestCoins:
    @pytest.mark.asyncio
    async def test_earn_requires_staff(self, client):
        response = await client.post(
            "/api/v1/coins/earn", json={"userId": "u1", "amount": 40, "reason": "bonus"}, headers=STUDENT
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_overdraft_rejected(self, client):
        earned = await client.post(
            "/api/v1/coins/earn", json={"userId": "u1", "amount": 40, "reason": "bonus"}, headers=TEACHER
        )
        assert earned.status_code == 201
        assert earned.json()["balanceAfter"] == 40

        response = await client.post("/api/v1/coins/spend", json={"amount": 100, "item": "pistas"}, headers=STUDENT)
        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "INSUFFICIENT_FUNDS"
        assert (data["balance"], data["requested"]) == (40, 100)

        balance = (await client.get("/api/v1/coins/u1", headers=STUDENT)).json()
        assert balance["balance"] == 40
        page = (await client.get("/api/v1/coins/u1/transactions", headers=STUDENT)).json()
        assert page["total"] == 1

    @pytest.mark.asyncio
    async def test_spend_and_list(self, client):
        await client.post(
            "/api/v1/coins/earn", json={"userId": "u1", "amount": 40, "reason": "bonus"}, headers=TEACHER
        )
        spent = await client.post("/api/v1/coins/spend", json={"amount": 15, "item": "pistas"}, headers=STUDENT)
        assert spent.status_code == 201
        assert spent.json()["amount"] == -15

        page = (await client.get("/api/v1/coins/u1/transactions?limit=1", headers=STUDENT)).json()
        assert page["total"] == 2
        assert [t["amount"] for t in page["transactions"]] == [-15]

        stats = (await client.get("/api/v1/coins/u1/stats", headers=STUDENT)).json()
        assert stats["balance"] == 25
        assert stats["byType"] == {"earned_bonus": 40}

    @pytest.mark.asyncio
    async def test_students_cannot_spend_for_others(self, client):
        response = await client.post(
            "/api/v1/coins/spend", json={"amount": 1, "item": "pistas", "userId": "u2"}, headers=STUDENT
        )
        assert response.status_code == 403


class TestRanks:
    @pytest.mark.asyncio
    async def test_catalog(self, client):
        ranks = (await client.get("/api/v1/ranks")).json()["ranks"]
        assert [r["rank"] for r in ranks] == ["nacom", "batab", "holcatte", "guerrero", "mercenario"]

    @pytest.mark.asyncio
    async def test_new_user_is_nacom(self, client):
        data = (await client.get("/api/v1/ranks/user/u1", headers=STUDENT)).json()
        assert data["rank"] == "nacom"
        assert data["nextRank"] == "batab"
        assert data["multiplier"] == 1.0

    @pytest.mark.asyncio
    async def test_promotion_blocked(self, client):
        response = await client.post("/api/v1/ranks/promote/u1", headers=STUDENT)
        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "PROMOTION_REQUIREMENTS_NOT_MET"
        assert data["missingRequirements"][0].startswith("XP: 0/500")

        check = (await client.get("/api/v1/ranks/user/u1/check", headers=STUDENT)).json()
        assert check["canPromote"] is False
        assert check["nextRank"] == "batab"


class TestAchievements:
    @pytest.mark.asyncio
    async def test_catalog(self, client):
        achievements = (await client.get("/api/v1/achievements")).json()["achievements"]
        assert len(achievements) == 18
        assert achievements[0]["id"] == "first_steps"

    @pytest.mark.asyncio
    async def test_manual_unlock_conflict(self, client):
        body = {"userId": "u1", "achievementId": "perfectionist"}
        first = await client.post("/api/v1/achievements/unlock", json=body, headers=TEACHER)
        assert first.status_code == 201
        assert first.json()["mlCoins"] == 50

        second = await client.post("/api/v1/achievements/unlock", json=body, headers=TEACHER)
        assert second.status_code == 409
        assert second.json()["code"] == "ACHIEVEMENT_ALREADY_UNLOCKED"

        mine = (await client.get("/api/v1/achievements/u1", headers=STUDENT)).json()
        assert mine["totalUnlocked"] == 1
        assert mine["unlocked"][0]["achievementId"] == "perfectionist"

    @pytest.mark.asyncio
    async def test_students_cannot_unlock(self, client):
        body = {"userId": "u1", "achievementId": "perfectionist"}
        response = await client.post("/api/v1/achievements/unlock", json=body, headers=STUDENT)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_achievement(self, client):
        body = {"userId": "u1", "achievementId": "nope"}
        response = await client.post("/api/v1/achievements/unlock", json=body, headers=TEACHER)
        assert response.status_code == 404


class TestMissions:
    @pytest.mark.asyncio
    async def test_daily_missions_generated_once(self, client):
        first = (await client.get("/api/v1/missions/daily", headers=STUDENT)).json()
        second = (await client.get("/api/v1/missions/daily", headers=STUDENT)).json()
        assert first["total"] == 3
        assert [m["id"] for m in first["missions"]] == [m["id"] for m in second["missions"]]
        assert all(m["status"] == "active" for m in first["missions"])

    @pytest.mark.asyncio
    async def test_special_mission_lifecycle(self, client):
        started = await client.post("/api/v1/missions/special/special_science_day", headers=STUDENT)
        assert started.status_code == 201
        mission_id = started.json()["id"]

        early = await client.post(f"/api/v1/missions/{mission_id}/claim", headers=STUDENT)
        assert early.status_code == 400
        assert early.json()["code"] == "MISSION_NOT_COMPLETED"

        progressed = await client.post(
            "/api/v1/missions/check/u1", json={"actionType": "exercises_completed", "amount": 10}, headers=STUDENT
        )
        assert progressed.status_code == 200
        completed = progressed.json()["completedMissions"]
        assert [m["id"] for m in completed] == [mission_id]
        assert completed[0]["progress"] == 100.0

        claimed = await client.post(f"/api/v1/missions/{mission_id}/claim", headers=STUDENT)
        assert claimed.status_code == 200
        assert claimed.json()["coins"] == 400

        again = await client.post(f"/api/v1/missions/{mission_id}/claim", headers=STUDENT)
        assert again.status_code == 409
        assert again.json()["code"] == "MISSION_ALREADY_CLAIMED"

        balance = (await client.get("/api/v1/coins/u1", headers=STUDENT)).json()
        assert balance["balance"] == 400

        stats = (await client.get("/api/v1/missions/stats", headers=STUDENT)).json()
        assert stats["claimed"] == 1

    @pytest.mark.asyncio
    async def test_claim_unknown_mission(self, client):
        response = await client.post(
            "/api/v1/missions/00000000-0000-0000-0000-000000000000/claim", headers=STUDENT
        )
        assert response.status_code == 404
        assert response.json()["code"] == "MISSION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_unknown_special_template(self, client):
        response = await client.post("/api/v1/missions/special/nope", headers=STUDENT)
        assert response.status_code == 404


class TestStreaks:
    @pytest.mark.asyncio
    async def test_new_user(self, client):
        data = (await client.get("/api/v1/streaks/u1", headers=STUDENT)).json()
        assert data["currentStreak"] == 0
        assert data["isActive"] is False


class TestPowerUps:
    async def _fund(self, client, amount: int) -> None:
        earned = await client.post(
            "/api/v1/coins/earn", json={"userId": "u1", "amount": amount, "reason": "bonus"}, headers=TEACHER
        )
        assert earned.status_code == 201

    @pytest.mark.asyncio
    async def test_catalog(self, client):
        data = (await client.get("/api/v1/powerups", headers=STUDENT)).json()
        assert [(p["type"], p["cost"]) for p in data["powerups"]] == [
            ("pistas", 15), ("vision_lectora", 25), ("segunda_oportunidad", 40),
        ]
        assert data["powerups"][0]["perExerciseLimit"] == 3

    @pytest.mark.asyncio
    async def test_purchase_then_use(self, client):
        await self._fund(client, 40)

        bought = await client.post(
            "/api/v1/powerups/purchase", json={"powerupType": "pistas", "quantity": 2}, headers=STUDENT
        )
        assert bought.status_code == 201
        data = bought.json()
        assert (data["totalCost"], data["balance"]) == (30, 10)
        assert data["inventory"][0] == {
            "powerupType": "pistas", "available": 2, "purchased": 2, "earned": 0, "used": 0, "cost": 15,
        }

        used = await client.post(
            "/api/v1/powerups/use", json={"powerupType": "pistas", "exerciseId": "ex-1"}, headers=STUDENT
        )
        assert used.status_code == 200
        assert used.json()["inventory"][0]["available"] == 1

        page = (await client.get("/api/v1/coins/u1/transactions", headers=STUDENT)).json()
        assert [t["transactionType"] for t in page["transactions"]] == ["spent_powerup", "earned_bonus"]

    @pytest.mark.asyncio
    async def test_purchase_without_funds(self, client):
        await self._fund(client, 20)
        response = await client.post(
            "/api/v1/powerups/purchase", json={"powerupType": "segunda_oportunidad"}, headers=STUDENT
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INSUFFICIENT_FUNDS"

        inventory = (await client.get("/api/v1/powerups/u1/inventory", headers=STUDENT)).json()["inventory"]
        assert all(e["available"] == 0 for e in inventory)
        assert (await client.get("/api/v1/coins/u1", headers=STUDENT)).json()["balance"] == 20

    @pytest.mark.asyncio
    async def test_use_without_inventory(self, client):
        response = await client.post("/api/v1/powerups/use", json={"powerupType": "vision_lectora"}, headers=STUDENT)
        assert response.status_code == 400
        assert response.json()["code"] == "POWERUP_NOT_AVAILABLE"

    @pytest.mark.asyncio
    async def test_students_cannot_buy_for_others(self, client):
        response = await client.post(
            "/api/v1/powerups/purchase", json={"powerupType": "pistas", "userId": "u2"}, headers=STUDENT
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_inventory_visibility(self, client):
        assert (await client.get("/api/v1/powerups/u2/inventory", headers=STUDENT)).status_code == 403
        assert (await client.get("/api/v1/powerups/u1/inventory", headers=TEACHER)).status_code == 200
