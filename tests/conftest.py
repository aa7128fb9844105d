"""
Pytest configuration and fixtures

Each test gets a fresh app on an in-memory SQLite database.
"""
import pytest

from config import Config
from fittrack import create_app, db


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "testing-secret-key"
    JWT_SECRET_KEY = "testing-jwt-secret-key-that-is-long-enough-for-hs256"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SMTP_USERNAME = None
    SMTP_PASSWORD = None
    EMAIL_VERIFICATION_ENABLED = False
    ALLOW_UNAUTHENTICATED_OWNER = True
    MAX_FAILED_LOGINS = 3
    LOCKOUT_MINUTES = 15


class MailTestingConfig(TestingConfig):
    SMTP_USERNAME = "mailer@example.com"
    SMTP_PASSWORD = "app-password"
    EMAIL_VERIFICATION_ENABLED = True


def _make_app(config_class):
    app = create_app(config_class)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app():
    yield from _make_app(TestingConfig)


@pytest.fixture
def mail_app():
    yield from _make_app(MailTestingConfig)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sent_emails(monkeypatch):
    """Capture outgoing mail instead of talking to SMTP."""
    from fittrack.email_service import EmailService

    outbox = []

    def fake_send(self, to_email, subject, text_content):
        outbox.append({"to": to_email, "subject": subject, "body": text_content})

    monkeypatch.setattr(EmailService, "send_email", fake_send)
    return outbox


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def signup(client, email="alice@example.com", password="secret123", name="Alice"):
    resp = client.post(
        "/api/auth/signup",
        json={"email": email, "password": password, "name": name},
    )
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    return {
        "id": body["user"]["id"],
        "email": body["user"]["email"],
        "token": body["token"],
        "headers": bearer(body["token"]),
    }


@pytest.fixture
def alice(client):
    return signup(client)


@pytest.fixture
def bob(client):
    return signup(client, email="bob@example.com", name="Bob")


def bench_press(**overrides):
    data = {
        "name": "Bench Press",
        "type": "free_weights",
        "duration": 20,
        "weight": 60,
        "sets": 3,
        "reps": 10,
        "intensity": "vigorous",
        "equipment": "barbell",
    }
    data.update(overrides)
    return data


def easy_run(**overrides):
    data = {
        "name": "Easy Run",
        "type": "low_intensity_cardio",
        "duration": 30,
        "distance": 5,
        "calories_burned": 300,
        "intensity": "light",
    }
    data.update(overrides)
    return data


def create_workout(client, headers, **payload):
    resp = client.post("/api/workouts", json=payload, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["workout"]
