"""
API tests: the HTTP surface end to end against mock infrastructure.

These check what the repository tests can't: status codes, the error
translation in the exception handlers, and which endpoints need which
headers.
"""

import pytest
import snowflake.connector
from fastapi.testclient import TestClient


def create_client(http, headers, name="Sam", **extra):
    response = http.post(
        "/api/v1/clients",
        json={"name": name, "email": f"{name.lower()}@example.com", **extra},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


def create_form(http, headers, **extra):
    body = {
        "title": "Intake",
        "fields": [
            {"id": "name", "type": "text", "label": "Name", "required": True},
            {
                "id": "goal",
                "type": "select",
                "label": "Goal",
                "options": ["strength", "fat loss"],
            },
        ],
        **extra,
    }
    response = http.post("/api/v1/forms", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["id"]


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class TestAuthentication:

    def test_missing_api_key_is_forbidden(self, client):
        response = client.get("/api/v1/clients", headers={"X-User-Id": "coach-a"})
        assert response.status_code == 403

    def test_wrong_api_key_is_forbidden(self, client):
        response = client.get(
            "/api/v1/clients",
            headers={"X-API-Key": "nope", "X-User-Id": "coach-a"},
        )
        assert response.status_code == 403

    def test_missing_coach_identity_is_unauthenticated(self, client, public):
        response = client.get("/api/v1/clients", headers=public)
        assert response.status_code == 401

    @pytest.mark.parametrize("path", ["/health", "/health/ready"])
    def test_health_needs_no_credentials(self, client, path):
        response = client.get(path)

        assert response.status_code == 200
        assert response.json()["status"] in ("ok", "ready")


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------

class TestClientRoutes:

    def test_create_and_list(self, client, coach_a, coach_b):
        create_client(client, coach_a, "Alice")
        create_client(client, coach_b, "Bob")

        response = client.get("/api/v1/clients", headers=coach_a)

        assert response.status_code == 200
        clients = response.json()
        assert [c["name"] for c in clients] == ["Alice"]
        assert clients[0]["status"] == "active"
        assert clients[0]["payment_status"] == "pending"

    def test_other_coaches_client_is_not_found(self, client, coach_a, coach_b):
        client_id = create_client(client, coach_b, "Bob")

        assert client.get(f"/api/v1/clients/{client_id}", headers=coach_a).status_code == 404
        assert client.get(f"/api/v1/clients/{client_id}", headers=coach_b).status_code == 200

    def test_patch_other_coaches_client_is_not_found(self, client, coach_a, coach_b):
        client_id = create_client(client, coach_b, "Bob")

        response = client.patch(
            f"/api/v1/clients/{client_id}",
            json={"payment_status": "paid"},
            headers=coach_a,
        )

        assert response.status_code == 404

    def test_patch_changes_only_named_fields(self, client, coach_a):
        client_id = create_client(client, coach_a, notes="likes mornings", monthly_rate=120)

        response = client.patch(
            f"/api/v1/clients/{client_id}",
            json={"payment_status": "paid"},
            headers=coach_a,
        )

        assert response.status_code == 204
        body = client.get(f"/api/v1/clients/{client_id}", headers=coach_a).json()
        assert body["payment_status"] == "paid"
        assert body["notes"] == "likes mornings"
        assert body["monthly_rate"] == 120

    def test_empty_patch_is_a_no_op(self, client, coach_a):
        client_id = create_client(client, coach_a)
        before = client.get(f"/api/v1/clients/{client_id}", headers=coach_a).json()

        response = client.patch(f"/api/v1/clients/{client_id}", json={}, headers=coach_a)

        assert response.status_code == 204
        assert client.get(f"/api/v1/clients/{client_id}", headers=coach_a).json() == before

    def test_cannot_assign_another_coaches_pricing_plan(self, client, coach_a, coach_b):
        plan = client.post(
            "/api/v1/pricing-plans",
            json={"name": "Gold", "price": 200},
            headers=coach_b,
        ).json()["id"]
        client_id = create_client(client, coach_a)

        response = client.patch(
            f"/api/v1/clients/{client_id}",
            json={"current_pricing_plan": plan},
            headers=coach_a,
        )

        assert response.status_code == 404

    def test_progress_newest_first_and_on_detail(self, client, coach_a):
        client_id = create_client(client, coach_a)
        url = f"/api/v1/clients/{client_id}/progress"

        client.post(url, json={"weight": 82.0}, headers=coach_a)
        latest = client.post(
            url,
            json={"weight": 81.0, "measurements": {"waist": 84}, "mood": 8},
            headers=coach_a,
        ).json()["id"]

        entries = client.get(url, headers=coach_a).json()
        assert [e["weight"] for e in entries] == [81.0, 82.0]

        detail = client.get(f"/api/v1/clients/{client_id}", headers=coach_a).json()
        assert detail["latest_progress"]["id"] == latest
        assert detail["latest_progress"]["measurements"]["waist"] == 84

    def test_progress_for_other_coaches_client(self, client, coach_a, coach_b):
        client_id = create_client(client, coach_b, "Bob")
        url = f"/api/v1/clients/{client_id}/progress"

        assert client.post(url, json={"weight": 70}, headers=coach_a).status_code == 404
        assert client.get(url, headers=coach_a).json() == []

    def test_mood_out_of_range_is_rejected(self, client, coach_a):
        client_id = create_client(client, coach_a)

        response = client.post(
            f"/api/v1/clients/{client_id}/progress",
            json={"mood": 11},
            headers=coach_a,
        )

        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Training and Nutrition
# ---------------------------------------------------------------------------

class TestCatalogueRoutes:

    def test_build_workout_and_split(self, client, coach_a):
        squat = client.post(
            "/api/v1/exercises",
            json={"name": "Squat", "muscle_groups": ["legs"], "difficulty": "intermediate"},
            headers=coach_a,
        ).json()["id"]
        workout = client.post(
            "/api/v1/workouts",
            json={"name": "Leg day", "exercises": [{"exercise_id": squat, "sets": 5, "reps": "5"}]},
            headers=coach_a,
        ).json()["id"]

        response = client.post(
            "/api/v1/workout-splits",
            json={
                "name": "Twice a week",
                "schedule": [
                    {"day": 1, "workout_id": workout},
                    {"day": 4, "workout_id": workout},
                ],
            },
            headers=coach_a,
        )

        assert response.status_code == 201
        splits = client.get("/api/v1/workout-splits", headers=coach_a).json()
        assert [d["day"] for d in splits[0]["schedule"]] == [1, 4]

    def test_workout_with_foreign_exercise(self, client, coach_a, coach_b):
        foreign = client.post(
            "/api/v1/exercises", json={"name": "Deadlift"}, headers=coach_b
        ).json()["id"]

        response = client.post(
            "/api/v1/workouts",
            json={"name": "Pull", "exercises": [{"exercise_id": foreign, "sets": 3}]},
            headers=coach_a,
        )

        assert response.status_code == 404

    def test_meal_plan_totals_computed_on_server(self, client, coach_a):
        oats = client.post(
            "/api/v1/meals",
            json={"name": "Oats", "macros": {"calories": 300, "protein": 10, "carbs": 50, "fat": 6}},
            headers=coach_a,
        ).json()["id"]
        planned = [{"meal_id": oats, "meal_type": "breakfast", "servings": 1.5}]

        preview = client.post(
            "/api/v1/meal-plans/preview", json={"meals": planned}, headers=coach_a
        ).json()
        created = client.post(
            "/api/v1/meal-plans",
            json={"name": "Lean", "meals": planned, "total_macros": {"calories": 1}},
            headers=coach_a,
        )

        assert preview["total_macros"]["calories"] == 450
        assert preview["rounded"]["fat"] == 9
        assert created.status_code == 201
        plans = client.get("/api/v1/meal-plans", headers=coach_a).json()
        assert plans[0]["total_macros"] == {"calories": 450, "protein": 15, "carbs": 75, "fat": 9}

    def test_pricing_plan_update(self, client, coach_a, coach_b):
        plan_id = client.post(
            "/api/v1/pricing-plans",
            json={"name": "Silver", "price": 99, "features": ["weekly check-in"]},
            headers=coach_a,
        ).json()["id"]

        assert client.patch(
            f"/api/v1/pricing-plans/{plan_id}", json={"price": 129}, headers=coach_b
        ).status_code == 404
        assert client.patch(
            f"/api/v1/pricing-plans/{plan_id}", json={"price": 129}, headers=coach_a
        ).status_code == 204

        plan = client.get("/api/v1/pricing-plans", headers=coach_a).json()[0]
        assert plan["price"] == 129
        assert plan["features"] == ["weekly check-in"]

    def test_single_workout_split_and_plan(self, client, coach_a, coach_b):
        squat = client.post("/api/v1/exercises", json={"name": "Squat"}, headers=coach_a).json()["id"]
        workout = client.post(
            "/api/v1/workouts",
            json={"name": "Legs", "exercises": [{"exercise_id": squat, "sets": 3}]},
            headers=coach_a,
        ).json()["id"]
        split = client.post(
            "/api/v1/workout-splits",
            json={"name": "Split", "schedule": [{"day": 2, "workout_id": workout}]},
            headers=coach_a,
        ).json()["id"]
        oats = client.post("/api/v1/meals", json={"name": "Oats"}, headers=coach_a).json()["id"]
        plan = client.post(
            "/api/v1/meal-plans",
            json={"name": "Lean", "meals": [{"meal_id": oats, "meal_type": "breakfast"}]},
            headers=coach_a,
        ).json()["id"]

        assert client.get(f"/api/v1/workouts/{workout}", headers=coach_a).json()["name"] == "Legs"
        assert client.get(f"/api/v1/workout-splits/{split}", headers=coach_a).json()["name"] == "Split"
        assert client.get(f"/api/v1/meal-plans/{plan}", headers=coach_a).json()["name"] == "Lean"
        for path in (f"workouts/{workout}", f"workout-splits/{split}", f"meal-plans/{plan}"):
            assert client.get(f"/api/v1/{path}", headers=coach_b).status_code == 404


# ---------------------------------------------------------------------------
# Catalogue Media
# ---------------------------------------------------------------------------

class TestCatalogueMedia:
    """Images are uploaded after the record exists and attached with a PATCH."""

    def upload_key(self, client, headers, purpose):
        response = client.post(
            "/api/v1/uploads",
            json={"purpose": purpose, "content_type": "image/png", "size_bytes": 100},
            headers=headers,
        )
        assert response.status_code == 201, response.text
        return response.json()["storage_key"]

    def test_attach_images_to_exercise(self, client, coach_a):
        exercise = client.post(
            "/api/v1/exercises", json={"name": "Squat", "cues": ["brace"]}, headers=coach_a
        ).json()["id"]
        key = self.upload_key(client, coach_a, "exercise-images")

        response = client.patch(
            f"/api/v1/exercises/{exercise}", json={"images": [key]}, headers=coach_a
        )

        assert response.status_code == 204
        stored = client.get(f"/api/v1/exercises/{exercise}", headers=coach_a).json()
        assert stored["images"] == [key]
        assert stored["cues"] == ["brace"]

    def test_exercise_video_can_be_removed(self, client, coach_a):
        video = self.upload_key(client, coach_a, "exercise-videos")
        exercise = client.post(
            "/api/v1/exercises", json={"name": "Squat", "video": video}, headers=coach_a
        ).json()["id"]

        client.patch(f"/api/v1/exercises/{exercise}", json={"video": None}, headers=coach_a)

        assert client.get(f"/api/v1/exercises/{exercise}", headers=coach_a).json()["video"] is None

    def test_another_coaches_upload_cannot_be_attached(self, client, coach_a, coach_b):
        exercise = client.post("/api/v1/exercises", json={"name": "Squat"}, headers=coach_a).json()["id"]
        theirs = self.upload_key(client, coach_b, "exercise-images")

        response = client.patch(
            f"/api/v1/exercises/{exercise}", json={"images": [theirs]}, headers=coach_a
        )

        assert response.status_code == 422
        assert client.get(f"/api/v1/exercises/{exercise}", headers=coach_a).json()["images"] == []

    def test_other_coaches_exercise_is_not_found(self, client, coach_a, coach_b):
        exercise = client.post("/api/v1/exercises", json={"name": "Squat"}, headers=coach_a).json()["id"]

        assert client.get(f"/api/v1/exercises/{exercise}", headers=coach_b).status_code == 404
        assert client.patch(
            f"/api/v1/exercises/{exercise}", json={"name": "Mine now"}, headers=coach_b
        ).status_code == 404

    def test_update_meal_keeps_plan_snapshot(self, client, coach_a):
        """Editing a meal's macros leaves existing plan totals alone."""
        oats = client.post(
            "/api/v1/meals",
            json={"name": "Oats", "macros": {"calories": 300, "protein": 10, "carbs": 50, "fat": 6}},
            headers=coach_a,
        ).json()["id"]
        plan = client.post(
            "/api/v1/meal-plans",
            json={"name": "Lean", "meals": [{"meal_id": oats, "meal_type": "breakfast"}]},
            headers=coach_a,
        ).json()["id"]
        key = self.upload_key(client, coach_a, "meal-images")

        response = client.patch(
            f"/api/v1/meals/{oats}",
            json={
                "images": [key],
                "macros": {"calories": 400, "protein": 12, "carbs": 60, "fat": 8},
            },
            headers=coach_a,
        )

        assert response.status_code == 204
        meal = client.get(f"/api/v1/meals/{oats}", headers=coach_a).json()
        assert meal["images"] == [key]
        assert meal["macros"]["calories"] == 400
        stored_plan = client.get(f"/api/v1/meal-plans/{plan}", headers=coach_a).json()
        assert stored_plan["total_macros"]["calories"] == 300

    def test_meal_of_another_coach_is_not_found(self, client, coach_a, coach_b):
        oats = client.post("/api/v1/meals", json={"name": "Oats"}, headers=coach_a).json()["id"]

        assert client.get(f"/api/v1/meals/{oats}", headers=coach_b).status_code == 404
        assert client.patch(
            f"/api/v1/meals/{oats}", json={"servings": 2}, headers=coach_b
        ).status_code == 404


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------

class TestFormRoutes:

    def test_public_submission_flow(self, client, coach_a, public):
        form_id = create_form(client, coach_a)

        form = client.get(f"/api/v1/forms/{form_id}/public", headers=public)
        assert form.status_code == 200
        assert "coach_id" not in form.json()

        submitted = client.post(
            f"/api/v1/forms/{form_id}/submissions",
            json={"responses": {"name": "Pat", "goal": "strength"}, "submitter_name": "Pat"},
            headers=public,
        )
        assert submitted.status_code == 201

        listed = client.get(f"/api/v1/forms/{form_id}/submissions", headers=coach_a).json()
        assert listed[0]["status"] == "new"
        assert listed[0]["responses"] == {"name": "Pat", "goal": "strength"}

    def test_invalid_responses_report_every_problem(self, client, coach_a, public):
        form_id = create_form(client, coach_a)

        response = client.post(
            f"/api/v1/forms/{form_id}/submissions",
            json={"responses": {"goal": "get rich"}},
            headers=public,
        )

        assert response.status_code == 422
        assert len(response.json()["problems"]) == 2

    def test_inactive_form_rejects_submissions(self, client, coach_a, public, connection):
        form_id = create_form(client, coach_a)
        client.patch(f"/api/v1/forms/{form_id}", json={"is_active": False}, headers=coach_a)

        response = client.post(
            f"/api/v1/forms/{form_id}/submissions",
            json={"responses": {"name": "Pat"}},
            headers=public,
        )

        assert response.status_code == 400
        assert connection._rows("form_submissions") == []
        assert client.get(f"/api/v1/forms/{form_id}/public", headers=public).status_code == 404

    def test_choice_field_without_options_is_rejected(self, client, coach_a):
        response = client.post(
            "/api/v1/forms",
            json={"title": "Broken", "fields": [{"id": "pick", "type": "radio", "label": "Pick"}]},
            headers=coach_a,
        )
        assert response.status_code == 422

    def test_checkbox_option_with_comma_is_rejected(self, client, coach_a):
        field = {
            "id": "goals",
            "type": "checkbox",
            "label": "Goals",
            "options": ["Lose weight, fast", "Build muscle"],
        }

        response = client.post(
            "/api/v1/forms", json={"title": "Intake", "fields": [field]}, headers=coach_a
        )

        assert response.status_code == 422
        assert "cannot contain commas" in response.json()["detail"]

    def test_submission_status_update(self, client, coach_a, coach_b, public):
        form_id = create_form(client, coach_a)
        submission_id = client.post(
            f"/api/v1/forms/{form_id}/submissions",
            json={"responses": {"name": "Pat"}},
            headers=public,
        ).json()["id"]

        denied = client.patch(
            f"/api/v1/submissions/{submission_id}",
            json={"status": "contacted"},
            headers=coach_b,
        )
        accepted = client.patch(
            f"/api/v1/submissions/{submission_id}",
            json={"status": "converted", "notes": "signed up for Gold"},
            headers=coach_a,
        )

        assert denied.status_code == 404
        assert accepted.status_code == 204
        listed = client.get(f"/api/v1/forms/{form_id}/submissions", headers=coach_a).json()
        assert listed[0]["status"] == "converted"
        assert listed[0]["notes"] == "signed up for Gold"


# ---------------------------------------------------------------------------
# Public Pages
# ---------------------------------------------------------------------------

class TestPublicPageRoutes:

    def page(self, slug, **extra):
        return {"slug": slug, "title": "Coaching", "contact_email": "c@example.com", **extra}

    def test_upsert_keeps_one_page(self, client, coach_a, public, connection):
        first = client.put("/api/v1/public-page", json=self.page("jane-fit"), headers=coach_a)
        second = client.put("/api/v1/public-page", json=self.page("Jane Strong"), headers=coach_a)

        assert first.json()["id"] == second.json()["id"]
        assert len(connection._rows("public_pages")) == 1
        assert client.get("/api/v1/pages/jane-strong", headers=public).status_code == 200
        assert client.get("/api/v1/pages/jane-fit", headers=public).status_code == 404

    def test_slug_taken_is_a_conflict(self, client, coach_a, coach_b):
        client.put("/api/v1/public-page", json=self.page("jane-fit"), headers=coach_a)

        response = client.put("/api/v1/public-page", json=self.page("jane-fit"), headers=coach_b)

        assert response.status_code == 409
        assert client.get("/api/v1/public-page", headers=coach_b).status_code == 404

    def test_slug_without_letters_is_rejected(self, client, coach_a):
        response = client.put("/api/v1/public-page", json=self.page("!!!"), headers=coach_a)
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Dashboard and Uploads
# ---------------------------------------------------------------------------

class TestDashboard:

    def test_summary(self, client, coach_a, coach_b):
        paid = create_client(client, coach_a, "Alice", monthly_rate=150)
        create_client(client, coach_a, "Ben", monthly_rate=80)
        create_client(client, coach_a, "Cara")
        create_client(client, coach_b, "Dan", monthly_rate=999)
        client.patch(f"/api/v1/clients/{paid}", json={"payment_status": "paid"}, headers=coach_a)
        create_form(client, coach_a)

        summary = client.get("/api/v1/dashboard", headers=coach_a).json()

        assert summary["total_clients"] == 3
        assert summary["active_clients"] == 3
        assert summary["monthly_revenue"] == 150
        assert summary["forms_created"] == 1
        assert len(summary["recent_clients"]) == 2  # recent_clients_limit in test settings


class TestUploads:

    def upload(self, client, headers, **overrides):
        body = {"purpose": "progress-photos", "content_type": "image/jpeg", "size_bytes": 500}
        body.update(overrides)
        return client.post("/api/v1/uploads", json=body, headers=headers)

    def test_issue_upload_url(self, client, coach_a):
        response = self.upload(client, coach_a)

        assert response.status_code == 201
        ticket = response.json()
        assert ticket["storage_key"].startswith("progress-photos/coach-a/")
        assert ticket["storage_key"].endswith(".jpg")
        assert ticket["upload_url"].startswith("mock://")

    def test_file_too_large(self, client, coach_a):
        assert self.upload(client, coach_a, size_bytes=4096).status_code == 413

    def test_unsupported_type(self, client, coach_a):
        assert self.upload(client, coach_a, content_type="text/html").status_code == 415

    def test_download_url_only_for_own_files(self, client, coach_a, coach_b):
        key = self.upload(client, coach_a).json()["storage_key"]

        mine = client.get("/api/v1/uploads/download-url", params={"key": key}, headers=coach_a)
        theirs = client.get("/api/v1/uploads/download-url", params={"key": key}, headers=coach_b)

        assert mine.status_code == 200
        assert mine.json()["url"] == f"mock://storage/{key}"
        assert theirs.status_code == 404


# ---------------------------------------------------------------------------
# Readiness and Unexpected Errors
# ---------------------------------------------------------------------------

class TestReadinessAndErrors:

    def database_check(self, response):
        return next(c for c in response.json()["checks"] if c["name"] == "database")

    def test_missing_database_credentials_are_not_ready(self, client, settings):
        settings.snowflake_mock_mode = False

        response = client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"
        assert self.database_check(response)["status"] == "error"

    def test_unreachable_database_is_not_ready(self, client, settings, monkeypatch):
        """A failed connect is reported as a failed check, not a server error."""
        settings.snowflake_mock_mode = False
        settings.snowflake_account = "xy12345"
        settings.snowflake_user = "coachdesk"
        settings.snowflake_password = "secret"

        def refuse(**params):
            raise snowflake.connector.errors.DatabaseError("connection refused")

        monkeypatch.setattr(snowflake.connector, "connect", refuse)

        response = client.get("/health/ready")

        assert response.status_code == 503
        check = self.database_check(response)
        assert check["status"] == "error"
        assert "connection refused" in check["error"]

    def test_unexpected_value_error_is_a_server_error(self, client):
        """Only domain validation errors become 422; anything else is a 500."""

        @client.app.get("/explode")
        async def explode():
            raise ValueError("internal detail")

        response = TestClient(client.app, raise_server_exceptions=False).get("/explode")

        assert response.status_code == 500
        assert "internal detail" not in response.text
