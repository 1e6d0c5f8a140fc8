import base64
import uuid

from jose import jwt

from main import app
from auth.deps import get_current_user
from models.user import User, utcnow
from services import quota_service
from conftest import make_plant


def test_ping(client):
    assert client.get("/ping").json()["ok"] is True


def test_create_and_list_plants(client):
    resp = client.post("/plants/", json={"name": "Calathea", "watering_frequency_days": 5})
    assert resp.status_code == 201
    plant_id = resp.json()["id"]

    plants = client.get("/plants/").json()
    assert [p["id"] for p in plants] == [plant_id]
    assert plants[0]["next_watering_date"] is None
    assert plants[0]["is_overdue"] is False


def test_invalid_frequency_is_rejected(client):
    resp = client.post("/plants/", json={"name": "Calathea", "watering_frequency_days": 0})
    assert resp.status_code == 422


def test_blank_name_reports_field(client):
    resp = client.post("/plants/", json={"name": "   ", "watering_frequency_days": 5})

    assert resp.status_code == 422
    assert resp.json()["fields"] == {"name": "Plant name is required"}


def test_water_plant_and_read_notifications(client, db, user):
    now = utcnow()
    overdue = make_plant(db, user, "Overdue fern", 3, watered_days_ago=5, now=now)
    make_plant(db, user, "Happy cactus", 30, watered_days_ago=1, now=now)

    body = client.get("/notifications").json()
    assert body["count"] == 1
    assert body["notifications"][0]["plant_name"] == "Overdue fern"
    assert body["notifications"][0]["days_overdue"] == 2

    resp = client.post(f"/water/{overdue.id}")
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    assert client.get("/notifications").json() == {"notifications": [], "count": 0}

    history = client.get(f"/plants/{overdue.id}/history").json()
    assert len(history) == 2


def test_watering_someone_elses_plant_is_404(client, db, other_user):
    plant = make_plant(db, other_user)

    resp = client.post(f"/water/{plant.id}")

    assert resp.status_code == 404
    assert resp.json()["detail"] == "Plant not found or unauthorized"


def test_plant_detail_update_and_delete(client, db, user):
    plant = make_plant(db, user, "Basil", 2, watered_days_ago=1, now=utcnow())

    detail = client.get(f"/plants/{plant.id}").json()
    assert detail["days_until_watering"] == 1
    assert len(detail["watering_history"]) == 1

    resp = client.put(f"/plants/{plant.id}", json={"name": "Sweet basil"})
    assert resp.json()["name"] == "Sweet basil"

    assert client.delete(f"/plants/{plant.id}").status_code == 200
    assert client.get(f"/plants/{plant.id}").status_code == 404


def test_rooms_crud(client):
    room = client.post("/rooms/", json={"name": "Kitchen"}).json()
    client.post("/plants/", json={"name": "Mint", "watering_frequency_days": 2, "room_id": room["id"]})

    rooms = client.get("/rooms/").json()
    assert rooms[0]["plant_count"] == 1

    assert client.put(f"/rooms/{room['id']}", json={"name": "Galley"}).json()["name"] == "Galley"

    resp = client.delete(f"/rooms/{room['id']}")
    assert resp.json()["plants_unassigned"] == 1
    assert client.get("/plants/").json()[0]["room_id"] is None


def test_usage_endpoint(client):
    body = client.get("/usage/").json()

    assert body["ai"]["display"] == "0/5"
    assert body["plants"]["limit"] == 1000


def test_ai_wizard_flow(client, db, user):
    assert client.get("/ai/status").json()["ai_remaining"] == 5

    image = base64.b64encode(b"\xff\xd8fake-jpeg").decode()
    identified = client.post("/ai/identify", json={"image_base64": f"data:image/jpeg;base64,{image}"})
    assert identified.status_code == 200
    name = identified.json()["scientific_name"]

    care = client.post("/ai/care", json={"plant_name": name}).json()

    saved = client.post("/ai/plants", json={
        "name": name,
        "watering_frequency_days": care["watering_frequency_days"],
        "light_requirements": care["light_requirements"],
        "fertilizing_tips": care["fertilizing_tips"],
        "pruning_tips": care["pruning_tips"],
        "troubleshooting": care["troubleshooting"],
    })
    assert saved.status_code == 201
    assert saved.json()["ai_remaining"] == 4

    feedback = client.post("/ai/feedback", json={
        "plant_id": saved.json()["plant_id"],
        "feedback_type": "thumbs_up",
    })
    assert feedback.json()["success"] is True
    assert quota_service.check_ai_generation_limit(db, user.user_id).used == 1


def test_ai_wizard_at_limit_returns_429(client, db, user):
    for _ in range(5):
        quota_service.increment_ai_usage(db, user.user_id)

    resp = client.post("/ai/plants", json={"name": "Pilea", "watering_frequency_days": 5})

    assert resp.status_code == 429
    assert resp.json()["limit"] == 5
    assert resp.json()["used"] == 5
    assert client.get("/plants/").json() == []


def test_bad_base64_is_400(client):
    assert client.post("/ai/identify", json={"image_base64": "***"}).status_code == 400


def test_jwt_login_creates_user(client, db):
    app.dependency_overrides.pop(get_current_user)
    sub = uuid.uuid4()
    token = jwt.encode({"sub": str(sub), "role": "authenticated", "email": "new@example.com"},
                       "test-secret", algorithm="HS256")

    resp = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 200
    assert resp.json()["user_id"] == str(sub)
    assert db.query(User).filter(User.user_id == sub).one().email == "new@example.com"


def test_invalid_jwt_is_401(client):
    app.dependency_overrides.pop(get_current_user)

    resp = client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})

    assert resp.status_code == 401


def test_me_reports_counts(client, db, user):
    make_plant(db, user, "Fern", 3)
    make_plant(db, user, "Cactus", 14)
    client.post("/rooms/", json={"name": "Kitchen"})

    body = client.get("/auth/me").json()

    assert body["user_id"] == str(user.user_id)
    assert body["plant_count"] == 2
    assert body["room_count"] == 1


def test_history_limit_must_be_positive(client, db, user):
    plant = make_plant(db, user, "Fern", 3, watered_days_ago=1)

    assert client.get(f"/plants/{plant.id}/history", params={"limit": 0}).status_code == 422
    assert client.get(f"/plants/{plant.id}/history", params={"limit": -1}).status_code == 422
    assert client.get(f"/plants/{plant.id}/history", params={"limit": 101}).status_code == 422
    assert len(client.get(f"/plants/{plant.id}/history", params={"limit": 1}).json()) == 1
