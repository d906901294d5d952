"""
Tests for FastAPI route endpoints.

Runs the real app against a temporary SQLite database. Google token
verification is patched so the bearer token is the caller's email.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi.testclient import TestClient

from weekly_feedback.ai.analysis import BLOCKER_QUESTION
from weekly_feedback.database import Database, set_database
from weekly_feedback.integrations.google_identity import VerifiedUser
from weekly_feedback.main import create_app
from weekly_feedback.runtime import get_runtime_config
from weekly_feedback.utils.datetime_utils import current_period


def fake_verify(token, config):
    return VerifiedUser(email=token.lower(), name=token.split("@")[0].title())


def auth(email):
    return {"Authorization": f"Bearer {email}"}


@pytest.fixture
def client(database_url, runtime_config):
    """Test client over a fresh database; no lifespan so the scheduler stays off."""
    database = Database(database_url)
    set_database(database)

    app = create_app()
    app.dependency_overrides[get_runtime_config] = lambda: runtime_config

    verify = AsyncMock(side_effect=fake_verify)
    with patch("weekly_feedback.web.auth.verify_google_token", verify), \
         patch("weekly_feedback.web.routes.verify_google_token", verify):
        yield TestClient(app)

    set_database(None)


@pytest.fixture
def workspace_id(client):
    """Workspace created by the manager's first sign-in."""
    response = client.post("/api/auth/verify", json={"token": "boss@kubapay.com"})
    return response.json()["data"]["workspaces"][0]["id"]


class TestHealth:

    def test_degraded_without_email_credentials(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["status"] == "degraded"
        assert body["data"]["services"]["database"] == "healthy"
        assert body["data"]["services"]["email"]["valid"] is False

    def test_healthy_with_oauth_credentials(self, client, runtime_config):
        configured = runtime_config.with_overrides(
            google_oauth_client_id="client-id",
            google_oauth_client_secret="client-secret",
            google_oauth_refresh_token="refresh-token",
        )
        client.app.dependency_overrides[get_runtime_config] = lambda: configured

        response = client.get("/health")

        data = response.json()["data"]
        assert data["status"] == "healthy"
        assert data["services"]["email"] == {"valid": True, "auth_method": "oauth2", "errors": []}

    def test_database_failure_is_unhealthy(self, client):
        database = MagicMock()
        database.health_check = AsyncMock(return_value={"status": "unhealthy", "error": "connection refused"})

        with patch("weekly_feedback.main.get_database", return_value=database):
            response = client.get("/health")

        assert response.status_code == 503
        error = response.json()["error"]
        assert error["code"] == "SERVICE_UNHEALTHY"
        assert error["details"]["status"] == "unhealthy"
        assert error["details"]["services"]["database"] == "unhealthy"

    def test_stats_require_super_admin(self, client, workspace_id):
        response = client.get("/api/health/stats", headers=auth("boss@kubapay.com"))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "NOT_SUPER_ADMIN"

    def test_stats_counts(self, client, workspace_id, sample_answers):
        client.post(f"/api/workspaces/{workspace_id}/submissions", json=sample_answers, headers=auth("ana@kubapay.com"))
        created = client.post(
            f"/api/workspaces/{workspace_id}/team",
            json={"email": "ben@kubapay.com", "name": "Ben Ng"},
            headers=auth("boss@kubapay.com"),
        ).json()["data"]["member"]
        client.delete(f"/api/workspaces/{workspace_id}/team/{created['id']}", headers=auth("boss@kubapay.com"))
        client.post(f"/api/workspaces/{workspace_id}/report", headers=auth("boss@kubapay.com"))

        response = client.get(f"/api/health/stats?workspaceId={workspace_id}", headers=auth("root@kubapay.com"))

        data = response.json()["data"]
        assert data["workspace_id"] == workspace_id
        assert data["members"] == {"total": 2, "active": 1, "inactive": 1}
        assert data["submissions"] == {"total": 1, "this_week": 1}
        assert data["reports"] == {"total": 1}
        assert data["email_logs"] == {"total": 0, "last_24h": 0}

    def test_stats_unknown_workspace(self, client):
        response = client.get("/api/health/stats?workspaceId=nope", headers=auth("root@kubapay.com"))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "WORKSPACE_NOT_FOUND"


class TestAuth:

    def test_missing_header(self, client):
        response = client.get("/api/workspaces")

        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "error": {"code": "MISSING_AUTH_HEADER", "message": "Missing Authorization header"},
        }

    def test_wrong_scheme(self, client):
        response = client.get("/api/workspaces", headers={"Authorization": "Basic abc"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_AUTH_FORMAT"

    def test_first_sign_in_creates_workspace(self, client):
        response = client.post("/api/auth/verify", json={"token": "boss@kubapay.com"})

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["user"]["email"] == "boss@kubapay.com"
        assert data["is_super_admin"] is False
        assert [w["manager_email"] for w in data["workspaces"]] == ["boss@kubapay.com"]

    def test_outside_domain_gets_no_workspace(self, client):
        response = client.post("/api/auth/verify", json={"token": "someone@gmail.com"})

        assert response.json()["data"]["workspaces"] == []

    def test_empty_token(self, client):
        response = client.post("/api/auth/verify", json={"token": ""})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"


class TestWorkspaces:

    def test_get_workspace_includes_settings(self, client, workspace_id):
        response = client.get(f"/api/workspaces/{workspace_id}", headers=auth("boss@kubapay.com"))

        data = response.json()["data"]
        assert data["is_manager"] is True
        assert data["settings"]["prompt_day"] == "wednesday"

    def test_unknown_workspace(self, client):
        response = client.get("/api/workspaces/nope", headers=auth("boss@kubapay.com"))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "WORKSPACE_NOT_FOUND"

    def test_stranger_is_rejected(self, client, workspace_id):
        response = client.get(f"/api/workspaces/{workspace_id}", headers=auth("eve@gmail.com"))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "NOT_AUTHORIZED"

    def test_update_settings_validation(self, client, workspace_id):
        response = client.put(
            f"/api/workspaces/{workspace_id}/settings",
            json={"promptDay": "someday"},
            headers=auth("boss@kubapay.com"),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_DAY"


class TestSubmissions:

    def test_submit_creates_member(self, client, workspace_id, sample_answers):
        response = client.post(
            f"/api/workspaces/{workspace_id}/submissions", json=sample_answers, headers=auth("ana@kubapay.com"),
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["submission"]["priorities"] == "Ship X"
        assert data["ai_question"] == BLOCKER_QUESTION

        team = client.get(f"/api/workspaces/{workspace_id}/team", headers=auth("boss@kubapay.com"))
        assert [m["email"] for m in team.json()["data"]["members"]] == ["ana@kubapay.com"]

    def test_missing_fields(self, client, workspace_id):
        response = client.post(
            f"/api/workspaces/{workspace_id}/submissions",
            json={"accomplishments": "Did things"},
            headers=auth("ana@kubapay.com"),
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "MISSING_FIELDS"
        assert error["details"]["fields"] == ["blockers", "priorities"]

    def test_status_after_submit(self, client, workspace_id, sample_answers):
        client.post(f"/api/workspaces/{workspace_id}/submissions", json=sample_answers, headers=auth("ana@kubapay.com"))

        response = client.get(f"/api/workspaces/{workspace_id}/status", headers=auth("boss@kubapay.com"))

        data = response.json()["data"]
        assert (data["total"], data["submitted"], data["pending"]) == (1, 1, 0)

    def test_previous_for_new_member(self, client, workspace_id):
        response = client.get(
            f"/api/workspaces/{workspace_id}/submissions/previous", headers=auth("new@kubapay.com"),
        )

        assert response.json()["data"] == {"found": False}

    def test_invalid_period_query(self, client, workspace_id):
        response = client.get(
            f"/api/workspaces/{workspace_id}/submissions?week=60&year=2026", headers=auth("boss@kubapay.com"),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PERIOD"

    @pytest.mark.parametrize("query", ["week=0&year=2026", "week=7&year=0", "week=0"])
    def test_zero_is_not_treated_as_missing(self, client, workspace_id, query):
        response = client.get(
            f"/api/workspaces/{workspace_id}/submissions?{query}", headers=auth("boss@kubapay.com"),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PERIOD"

    def test_missing_year_uses_current_year(self, client, workspace_id):
        response = client.get(f"/api/workspaces/{workspace_id}/submissions?week=7", headers=auth("boss@kubapay.com"))

        data = response.json()["data"]
        assert data["week_number"] == 7
        assert data["year"] == current_period(tz_name="Europe/London").year


class TestTeam:

    def test_manager_adds_member(self, client, workspace_id):
        response = client.post(
            f"/api/workspaces/{workspace_id}/team",
            json={"email": "ben@kubapay.com", "name": "Ben Ng", "firstName": "Ben"},
            headers=auth("boss@kubapay.com"),
        )

        assert response.status_code == 201
        assert response.json()["data"]["member"]["first_name"] == "Ben"

        again = client.post(
            f"/api/workspaces/{workspace_id}/team",
            json={"email": "ben@kubapay.com", "name": "Ben Ng"},
            headers=auth("boss@kubapay.com"),
        )
        assert again.status_code == 409
        assert again.json()["error"]["code"] == "MEMBER_EXISTS"

    def test_member_cannot_manage_team(self, client, workspace_id, sample_answers):
        client.post(f"/api/workspaces/{workspace_id}/submissions", json=sample_answers, headers=auth("ana@kubapay.com"))

        response = client.post(
            f"/api/workspaces/{workspace_id}/team",
            json={"email": "ben@kubapay.com", "name": "Ben Ng"},
            headers=auth("ana@kubapay.com"),
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "NOT_MANAGER"

    def test_invalid_email(self, client, workspace_id):
        response = client.post(
            f"/api/workspaces/{workspace_id}/team",
            json={"email": "not-an-email", "name": "Ben"},
            headers=auth("boss@kubapay.com"),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_EMAIL"

    def test_missing_name(self, client, workspace_id):
        response = client.post(
            f"/api/workspaces/{workspace_id}/team",
            json={"email": "ben@kubapay.com"},
            headers=auth("boss@kubapay.com"),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "MISSING_FIELDS"

    def test_remove_member_is_soft(self, client, workspace_id):
        created = client.post(
            f"/api/workspaces/{workspace_id}/team",
            json={"email": "ben@kubapay.com", "name": "Ben Ng"},
            headers=auth("boss@kubapay.com"),
        ).json()["data"]["member"]

        response = client.delete(
            f"/api/workspaces/{workspace_id}/team/{created['id']}", headers=auth("boss@kubapay.com"),
        )

        assert response.json()["data"]["member"]["is_active"] is False
        listed = client.get(
            f"/api/workspaces/{workspace_id}/team?includeInactive=true", headers=auth("boss@kubapay.com"),
        )
        assert len(listed.json()["data"]["members"]) == 1


class TestReports:

    def test_no_submissions(self, client, workspace_id):
        response = client.post(f"/api/workspaces/{workspace_id}/report", headers=auth("boss@kubapay.com"))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "NO_SUBMISSIONS"

    def test_generate_and_fetch(self, client, workspace_id, sample_answers):
        client.post(f"/api/workspaces/{workspace_id}/submissions", json=sample_answers, headers=auth("ana@kubapay.com"))

        response = client.post(f"/api/workspaces/{workspace_id}/report", headers=auth("boss@kubapay.com"))

        assert response.status_code == 200
        report = response.json()["data"]["report"]
        assert report["used_fallback"] is True
        assert report["analysis"]["teamOverview"]["submittedCount"] == 1

        fetched = client.get(
            f"/api/workspaces/{workspace_id}/reports/{report['week_number']}/{report['year']}",
            headers=auth("ana@kubapay.com"),
        )
        assert fetched.json()["data"]["report"]["id"] == report["id"]

    def test_week_zero_does_not_regenerate_current_week(self, client, workspace_id, sample_answers):
        client.post(f"/api/workspaces/{workspace_id}/submissions", json=sample_answers, headers=auth("ana@kubapay.com"))

        response = client.post(
            f"/api/workspaces/{workspace_id}/report", json={"week": 0, "year": 2026}, headers=auth("boss@kubapay.com"),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PERIOD"
        listed = client.get(f"/api/workspaces/{workspace_id}/reports", headers=auth("boss@kubapay.com"))
        assert listed.json()["data"]["reports"] == []

    def test_missing_report(self, client, workspace_id):
        response = client.get(f"/api/workspaces/{workspace_id}/reports/3/2026", headers=auth("boss@kubapay.com"))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "REPORT_NOT_FOUND"


class TestEmail:

    def test_send_without_credentials(self, client, workspace_id):
        response = client.post(
            f"/api/workspaces/{workspace_id}/email/send",
            json={"email": "ana@kubapay.com"},
            headers=auth("boss@kubapay.com"),
        )

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "EMAIL_NOT_CONFIGURED"

    def test_unknown_cycle(self, client, workspace_id):
        response = client.post(f"/api/workspaces/{workspace_id}/email/digest", headers=auth("boss@kubapay.com"))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_logs_empty(self, client, workspace_id):
        response = client.get(f"/api/workspaces/{workspace_id}/email/logs", headers=auth("boss@kubapay.com"))

        assert response.json()["data"] == {"logs": [], "counts": {}}


class TestSuperAdmin:

    def test_requires_super_admin(self, client, workspace_id):
        response = client.get("/api/super/workspaces", headers=auth("boss@kubapay.com"))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "NOT_SUPER_ADMIN"

    def test_lists_all_workspaces_with_counts(self, client, workspace_id):
        response = client.get("/api/super/workspaces", headers=auth("root@kubapay.com"))

        workspaces = response.json()["data"]["workspaces"]
        assert [(w["id"], w["member_count"]) for w in workspaces] == [(workspace_id, 0)]

    def test_submissions_across_workspaces(self, client, workspace_id, sample_answers):
        other = client.post("/api/auth/verify", json={"token": "lead@voqa.com"}).json()["data"]["workspaces"][0]
        client.post(f"/api/workspaces/{workspace_id}/submissions", json=sample_answers, headers=auth("ana@kubapay.com"))
        client.post(f"/api/workspaces/{other['id']}/submissions", json=sample_answers, headers=auth("vic@voqa.com"))

        response = client.get("/api/super/submissions", headers=auth("root@kubapay.com"))

        data = response.json()["data"]
        period = current_period(tz_name="Europe/London")
        assert (data["week_number"], data["year"]) == (period.week, period.year)
        by_email = {s["member_email"]: s for s in data["submissions"]}
        assert set(by_email) == {"ana@kubapay.com", "vic@voqa.com"}
        assert by_email["ana@kubapay.com"]["workspace_id"] == workspace_id
        assert by_email["vic@voqa.com"]["workspace_id"] == other["id"]
        assert by_email["vic@voqa.com"]["workspace_name"] == other["name"]

    def test_submissions_require_super_admin(self, client, workspace_id):
        response = client.get("/api/super/submissions", headers=auth("boss@kubapay.com"))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "NOT_SUPER_ADMIN"

    def test_submissions_week_zero(self, client, workspace_id):
        response = client.get("/api/super/submissions?week=0&year=2026", headers=auth("root@kubapay.com"))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PERIOD"

    def test_backfill(self, client, workspace_id):
        response = client.post(f"/api/workspaces/{workspace_id}/backfill", headers=auth("root@kubapay.com"))

        assert response.json()["data"] == {"workspace_id": workspace_id, "inserted": 0}

    def test_trigger_job_without_scheduler(self, client):
        response = client.post("/api/super/jobs/weekly_prompt", headers=auth("root@kubapay.com"))

        assert response.status_code == 404


class TestAuditLog:

    def test_manager_sees_registry_changes(self, client, workspace_id):
        client.post(
            f"/api/workspaces/{workspace_id}/team",
            json={"email": "ben@kubapay.com", "name": "Ben Ng"},
            headers=auth("boss@kubapay.com"),
        )

        response = client.get(f"/api/workspaces/{workspace_id}/audit", headers=auth("boss@kubapay.com"))

        entries = response.json()["data"]["entries"]
        actions = [e["action"] for e in entries]
        assert "workspace_create" in actions
        assert "member_create" in actions
        assert all(e["timestamp"] for e in entries)

    def test_member_cannot_read(self, client, workspace_id, sample_answers):
        client.post(f"/api/workspaces/{workspace_id}/submissions", json=sample_answers, headers=auth("ana@kubapay.com"))

        response = client.get(f"/api/workspaces/{workspace_id}/audit", headers=auth("ana@kubapay.com"))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "NOT_MANAGER"
