"""
Shared pytest fixtures: an application on in-memory SQLite, two users with
bearer tokens, a scripted anthropic client and a scripted OpenWeather.
"""
import pytest
from flask_jwt_extended import create_access_token
from werkzeug.security import generate_password_hash

from app import create_app
from app.extensions import db
from app.services.claude_service import ClaudeService
from config import TestingConfig
from models import Profile, User
from tests.helpers import FakeAnthropic, FakeOpenWeather


@pytest.fixture
def app(tmp_path):
    app = create_app(TestingConfig)
    app.config["UPLOAD_FOLDER"] = str(tmp_path / "uploads")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _make_user(email, location="Chennai"):
    user = User(email=email, full_name="Test Farmer", password_hash=generate_password_hash("secret123"))
    db.session.add(user)
    db.session.flush()
    db.session.add(Profile(user_id=user.id, full_name="Test Farmer", location=location, soil_type="Loamy"))
    db.session.commit()
    return user


@pytest.fixture
def user(app):
    return _make_user("farmer@test.com")


@pytest.fixture
def other_user(app):
    return _make_user("neighbour@test.com", location="Pune")


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(identity=str(user.id))}"}


@pytest.fixture
def other_headers(other_user):
    return {"Authorization": f"Bearer {create_access_token(identity=str(other_user.id))}"}


@pytest.fixture
def fake_claude(app):
    fake = FakeAnthropic()
    app.extensions["claude_service"] = ClaudeService(client=fake)
    return fake


@pytest.fixture
def openweather(monkeypatch):
    fake = FakeOpenWeather()
    fake.serve()
    monkeypatch.setattr("app.services.weather_service.requests.get", fake.get)
    return fake
