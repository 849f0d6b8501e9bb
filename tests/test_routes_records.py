from app.services import persistence_service as store
from models import BlacklistedToken, Crop, CropRecommendation, FarmTask

SOIL_TEST = {
    "location": "North field",
    "ph_level": 6.5,
    "nitrogen_level": 50,
    "phosphorus_level": 30,
    "potassium_level": 200,
    "organic_matter_percentage": 3,
    "soil_type": "Loamy",
    "soil_texture": "Fine",
    "drainage_quality": "Good",
    "test_date": "2026-10-01",
}

CROP = {
    "name": "Wheat",
    "variety": "HD-2967",
    "planting_date": "2026-11-01",
    "growth_stage": "planted",
}


def test_index(client):
    assert client.get("/").get_json() == {"message": "API is working!"}


def test_unknown_route_uses_error_body(client):
    response = client.get("/no-such-page")

    assert response.status_code == 404
    assert response.get_json()["error_class"] == "NotFound"


class TestAuthentication:
    def test_register_then_login(self, client):
        registered = client.post("/authentication/register", json={
            "email": "Asha@Farm.test", "password": "secret123", "full_name": "Asha", "location": "Nashik"})

        assert registered.status_code == 201

        login = client.post("/authentication/login", json={"email": "asha@farm.test", "password": "secret123"})
        assert login.status_code == 200
        body = login.get_json()
        assert body["user"]["email"] == "asha@farm.test"

        profile = client.get("/profile", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert profile.get_json()["location"] == "Nashik"

    def test_duplicate_email(self, client, user):
        response = client.post("/authentication/register", json={"email": "farmer@test.com", "password": "secret123"})

        assert response.status_code == 409

    def test_wrong_password(self, client, user):
        response = client.post("/authentication/login", json={"email": "farmer@test.com", "password": "nope"})

        assert response.status_code == 401

    def test_register_validation(self, client):
        response = client.post("/authentication/register", json={"email": "not-an-email", "password": "123"})

        assert response.status_code == 400
        fields = {d["field"] for d in response.get_json()["details"]}
        assert fields == {"email", "password"}

    def test_logout_revokes_token(self, client, user, auth_headers):
        assert client.post("/authentication/logout", headers=auth_headers).status_code == 200

        response = client.get("/profile", headers=auth_headers)
        assert response.status_code == 401
        assert response.get_json()["error"] == "Token has been revoked"

        revoked = BlacklistedToken.query.one()
        assert revoked.token_type == "access"
        assert revoked.user_id == user.id
        assert revoked.expires_at is not None

    def test_refresh(self, client, user):
        tokens = client.post("/authentication/login",
                             json={"email": "farmer@test.com", "password": "secret123"}).get_json()

        response = client.post("/authentication/refresh",
                               headers={"Authorization": f"Bearer {tokens['refresh_token']}"})

        assert response.status_code == 200
        assert response.get_json()["access_token"]

    def test_garbage_token(self, client):
        response = client.get("/profile", headers={"Authorization": "Bearer not.a.token"})

        assert response.status_code == 401
        assert response.get_json()["error_class"] == "AuthenticationError"


class TestProfile:
    def test_get(self, client, auth_headers):
        assert client.get("/profile", headers=auth_headers).get_json()["location"] == "Chennai"

    def test_update(self, client, auth_headers):
        response = client.put("/profile", json={
            "full_name": "Ravi", "location": "Coimbatore", "soil_type": "Red", "farm_size": 2.5},
            headers=auth_headers)

        assert response.status_code == 200
        assert response.get_json()["location"] == "Coimbatore"
        assert client.get("/profile", headers=auth_headers).get_json()["farm_size"] == 2.5

    def test_update_requires_fields(self, client, auth_headers):
        response = client.put("/profile", json={"full_name": "Ravi"}, headers=auth_headers)

        assert response.status_code == 400


class TestSoilTests:
    def test_round_trip(self, client, auth_headers):
        created = client.post("/soil-tests", json=SOIL_TEST, headers=auth_headers)

        assert created.status_code == 201
        soil_test_id = created.get_json()["id"]

        fetched = client.get(f"/soil-tests/{soil_test_id}", headers=auth_headers).get_json()
        assert fetched["ph_level"] == 6.5
        assert fetched["test_date"] == "2026-10-01"
        assert client.get("/soil-tests/latest", headers=auth_headers).get_json()["id"] == soil_test_id

    def test_latest_by_test_date(self, client, auth_headers):
        client.post("/soil-tests", json=dict(SOIL_TEST, test_date="2026-09-01", notes="newer row, older test"),
                    headers=auth_headers)
        client.post("/soil-tests", json=SOIL_TEST, headers=auth_headers)
        client.post("/soil-tests", json=dict(SOIL_TEST, test_date="2026-08-01"), headers=auth_headers)

        assert client.get("/soil-tests/latest", headers=auth_headers).get_json()["test_date"] == "2026-10-01"
        assert len(client.get("/soil-tests", headers=auth_headers).get_json()) == 3

    def test_none_yet(self, client, auth_headers):
        assert client.get("/soil-tests/latest", headers=auth_headers).status_code == 404

    def test_ph_range(self, client, auth_headers):
        response = client.post("/soil-tests", json=dict(SOIL_TEST, ph_level=15), headers=auth_headers)

        assert response.status_code == 400
        assert response.get_json()["details"][0]["field"] == "ph_level"

    def test_other_users_row_is_not_found(self, client, auth_headers, other_headers):
        soil_test_id = client.post("/soil-tests", json=SOIL_TEST, headers=other_headers).get_json()["id"]

        assert client.get(f"/soil-tests/{soil_test_id}", headers=auth_headers).status_code == 404
        assert client.get("/soil-tests/not-a-uuid", headers=auth_headers).status_code == 404


class TestCrops:
    def test_duplicate_crops_are_separate_rows(self, client, user, auth_headers):
        first = client.post("/crops", json=CROP, headers=auth_headers)
        second = client.post("/crops", json=CROP, headers=auth_headers)

        assert first.status_code == second.status_code == 201
        assert first.get_json()["id"] != second.get_json()["id"]
        assert Crop.query.filter_by(user_id=user.id).count() == 2

    def test_update_and_filter(self, client, auth_headers):
        crop_id = client.post("/crops", json=CROP, headers=auth_headers).get_json()["id"]

        updated = client.patch(f"/crops/{crop_id}", json={"status": "harvested", "growth_stage": "harvested"},
                               headers=auth_headers)

        assert updated.get_json()["status"] == "harvested"
        assert client.get("/crops?status=active", headers=auth_headers).get_json() == []
        assert len(client.get("/crops?status=harvested", headers=auth_headers).get_json()) == 1

    def test_invalid_growth_stage(self, client, auth_headers):
        response = client.post("/crops", json=dict(CROP, growth_stage="sprouting"), headers=auth_headers)

        assert response.status_code == 400

    def test_delete(self, client, auth_headers, other_headers):
        crop_id = client.post("/crops", json=CROP, headers=auth_headers).get_json()["id"]

        assert client.delete(f"/crops/{crop_id}", headers=other_headers).status_code == 404
        assert client.delete(f"/crops/{crop_id}", headers=auth_headers).status_code == 204
        assert client.get("/crops", headers=auth_headers).get_json() == []


class TestTasks:
    def _activity(self, day_number, resources=("Urea", "Sprayer")):
        return {
            "day_number": day_number,
            "activity": "Top dressing",
            "description": "Apply nitrogen",
            "required_resources": list(resources),
            "estimated_duration": "3 hours",
        }

    def test_plan_activity_is_scheduled_from_planting_date(self, client, auth_headers):
        crop_id = client.post("/crops", json=CROP, headers=auth_headers).get_json()["id"]

        early = client.post("/tasks/from-plan", json={"crop_id": crop_id, "activity": self._activity(30)},
                            headers=auth_headers).get_json()
        late = client.post("/tasks/from-plan", json={"crop_id": crop_id, "activity": self._activity(31)},
                           headers=auth_headers).get_json()

        assert early["scheduled_date"] == "2026-11-30"
        assert early["priority"] == "high"
        assert early["notes"] == "Resources: Urea, Sprayer"
        assert early["crop_name"] == "Wheat"
        assert early["task_type"] == "Top dressing"
        assert late["scheduled_date"] == "2026-12-01"
        assert late["priority"] == "medium"

    def test_day_one_is_planting_day(self, client, auth_headers):
        crop_id = client.post("/crops", json=CROP, headers=auth_headers).get_json()["id"]

        task = client.post("/tasks/from-plan", json={"crop_id": crop_id, "activity": self._activity(1, [])},
                           headers=auth_headers).get_json()

        assert task["scheduled_date"] == "2026-11-01"
        assert task["notes"] == "Resources: "

    def test_crop_without_planting_date(self, client, auth_headers):
        crop_id = client.post("/crops", json={"name": "Maize"}, headers=auth_headers).get_json()["id"]

        response = client.post("/tasks/from-plan", json={"crop_id": crop_id, "activity": self._activity(5)},
                               headers=auth_headers)

        assert response.status_code == 400

    def test_other_users_crop(self, client, auth_headers, other_headers):
        crop_id = client.post("/crops", json=CROP, headers=other_headers).get_json()["id"]

        response = client.post("/tasks/from-plan", json={"crop_id": crop_id, "activity": self._activity(5)},
                               headers=auth_headers)

        assert response.status_code == 404
        assert FarmTask.query.count() == 0

    def test_create_toggle_and_delete(self, client, auth_headers):
        task = client.post("/tasks", json={
            "task_type": "Irrigation",
            "task_description": "Water the north field",
            "scheduled_date": "2026-10-25",
            "priority": "Low",
        }, headers=auth_headers).get_json()
        assert task["status"] == "pending"
        assert task["priority"] == "low"

        done = client.post(f"/tasks/{task['id']}/toggle", headers=auth_headers).get_json()
        assert done["status"] == "completed"
        assert done["completed_at"] is not None

        undone = client.post(f"/tasks/{task['id']}/toggle", headers=auth_headers).get_json()
        assert undone["status"] == "pending"
        assert undone["completed_at"] is None

        assert client.delete(f"/tasks/{task['id']}", headers=auth_headers).status_code == 204
        assert client.get("/tasks", headers=auth_headers).get_json() == []

    def test_listed_by_date(self, client, auth_headers):
        for day in ("2026-12-01", "2026-10-21", "2026-11-11"):
            client.post("/tasks", json={"task_type": "Scouting", "task_description": "Walk the field",
                                        "scheduled_date": day}, headers=auth_headers)

        dates = [t["scheduled_date"] for t in client.get("/tasks", headers=auth_headers).get_json()]
        assert dates == ["2026-10-21", "2026-11-11", "2026-12-01"]


class TestRecommendations:
    def test_without_soil_test(self, client, auth_headers):
        response = client.post("/recommendations", headers=auth_headers)

        assert response.status_code == 200
        assert response.get_json()["recommendations"] == []

    def test_latest_soil_test_is_used_and_stored(self, client, user, auth_headers):
        client.post("/soil-tests", json=SOIL_TEST, headers=auth_headers)

        response = client.post("/recommendations", json={}, headers=auth_headers)

        assert response.status_code == 201
        recommendations = response.get_json()["recommendations"]
        assert [r["recommended_crop"] for r in recommendations] == ["Wheat", "Tomato", "Maize"]
        assert recommendations[0]["cultivation_plan"]
        assert CropRecommendation.query.filter_by(user_id=user.id).count() == 3

        stored = client.get("/recommendations", headers=auth_headers).get_json()
        assert [r["recommended_crop"] for r in stored] == ["Wheat", "Tomato", "Maize"]
        assert len({r["recommendation_date"] for r in stored}) == 1
        assert stored[0]["recommended_crop"] == "Wheat"
        assert stored[0]["suitability_score"] == 90

    def test_specific_soil_test_with_no_match(self, client, auth_headers):
        soil_test_id = client.post("/soil-tests", json=dict(SOIL_TEST, ph_level=9.0),
                                   headers=auth_headers).get_json()["id"]

        response = client.post("/recommendations", json={"soil_test_id": soil_test_id}, headers=auth_headers)

        assert response.status_code == 200
        assert response.get_json()["recommendations"] == []
        assert CropRecommendation.query.count() == 0


class TestNotifications:
    def _seed(self, user_id):
        return store.create_notifications(user_id, [
            {"type": "weather_alert", "title": "Heavy Rain Alert", "message": "Rain", "severity": "high",
             "data": {"humidity": 90}},
            {"type": "task_reminder", "title": "Irrigation due", "message": "Tomorrow", "severity": "low",
             "data": None},
        ])

    def test_mark_one_read(self, client, user, auth_headers):
        rain, _ = self._seed(user.id)

        response = client.post(f"/notifications/{rain.id}/read", headers=auth_headers)

        assert response.get_json()["is_read"] is True
        unread = client.get("/notifications?unread=true", headers=auth_headers).get_json()
        assert [n["title"] for n in unread] == ["Irrigation due"]

    def test_mark_all_read(self, client, user, auth_headers):
        self._seed(user.id)

        assert client.post("/notifications/read-all", headers=auth_headers).get_json() == {"updated": 2}
        assert client.get("/notifications?unread=1", headers=auth_headers).get_json() == []
        assert len(client.get("/notifications", headers=auth_headers).get_json()) == 2

    def test_delete(self, client, user, other_user, auth_headers, other_headers):
        rain, _ = self._seed(user.id)

        assert client.delete(f"/notifications/{rain.id}", headers=other_headers).status_code == 404
        assert client.delete(f"/notifications/{rain.id}", headers=auth_headers).status_code == 204
        assert len(client.get("/notifications", headers=auth_headers).get_json()) == 1


def test_unexpected_failure_is_not_leaked(client, auth_headers, monkeypatch):
    def broken(user_id):
        raise RuntimeError("database password is hunter2")

    monkeypatch.setattr(store, "list_crops", lambda user_id, status=None: broken(user_id))

    response = client.get("/crops", headers=auth_headers)

    assert response.status_code == 500
    assert response.get_json() == {
        "error": "An error occurred while processing your request",
        "error_class": "InternalError",
    }
