from datetime import datetime, timedelta

from fittrack import db
from fittrack.models.user import User

from conftest import bearer, signup


def test_signup_returns_token_and_user(client):
    resp = client.post(
        "/api/auth/signup",
        json={"email": "  Alice@Example.com ", "password": "secret123", "name": " Alice "},
    )
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["token"]
    assert body["user"]["email"] == "alice@example.com"
    assert body["user"]["name"] == "Alice"
    assert body["user"]["is_verified"] is True
    assert body["requires_verification"] is False
    assert "password_hash" not in body["user"]


def test_signup_validation(client):
    resp = client.post("/api/auth/signup", json={"email": "a@example.com", "password": "secret123"})
    assert resp.status_code == 400

    resp = client.post(
        "/api/auth/signup", json={"email": "a@example.com", "password": "123", "name": "A"}
    )
    assert resp.status_code == 400

    resp = client.post(
        "/api/auth/signup", json={"email": "not-an-email", "password": "secret123", "name": "A"}
    )
    assert resp.status_code == 400


def test_signup_duplicate_email(client, alice):
    resp = client.post(
        "/api/auth/signup",
        json={"email": "ALICE@example.com", "password": "secret123", "name": "Other"},
    )
    assert resp.status_code == 409
    assert resp.get_json()["should_redirect_to_login"] is True


def test_check_email(client, alice):
    resp = client.post("/api/auth/check-email", json={"email": "alice@example.com"})
    assert resp.get_json()["exists"] is True

    resp = client.post("/api/auth/check-email", json={"email": "nobody@example.com"})
    assert resp.get_json()["exists"] is False


def test_login_and_me(client, alice):
    resp = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    assert resp.status_code == 200
    token = resp.get_json()["token"]

    resp = client.get("/api/auth/me", headers=bearer(token))
    assert resp.status_code == 200
    assert resp.get_json()["user"]["id"] == alice["id"]


def test_login_unknown_account(client):
    resp = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "secret123"})
    assert resp.status_code == 401
    assert resp.get_json()["should_redirect_to_signup"] is True


def test_login_locks_after_repeated_failures(app, client, alice):
    # MAX_FAILED_LOGINS is 3 in the testing config
    for expected_remaining in (2, 1):
        resp = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "wrong"})
        assert resp.status_code == 401
        assert resp.get_json()["attempts_remaining"] == expected_remaining

    resp = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "wrong"})
    assert resp.status_code == 423
    assert resp.get_json()["locked_until"]

    # even the right password is refused while locked
    resp = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    assert resp.status_code == 423

    with app.app_context():
        user = db.session.get(User, alice["id"])
        user.locked_until = datetime.utcnow() - timedelta(minutes=1)
        db.session.commit()

    resp = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    assert resp.status_code == 200


def test_successful_login_resets_failure_counter(app, client, alice):
    client.post("/api/auth/login", json={"email": "alice@example.com", "password": "wrong"})
    client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})

    with app.app_context():
        assert db.session.get(User, alice["id"]).failed_login_attempts == 0


def test_google_signup_then_set_password(client):
    resp = client.post(
        "/api/auth/google",
        json={"google_id": "g-123", "email": "gina@example.com", "name": "Gina", "picture": "http://pic"},
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["is_new_user"] is True
    assert body["requires_password"] is True
    assert body["user"]["is_google_user"] is True
    assert body["user"]["is_verified"] is True

    # password login is refused until a password is set
    resp = client.post("/api/auth/login", json={"email": "gina@example.com", "password": "secret123"})
    assert resp.status_code == 400
    assert resp.get_json()["requires_password_setup"] is True

    resp = client.post("/api/auth/set-password", json={"password": "secret123"}, headers=bearer(body["token"]))
    assert resp.status_code == 200

    resp = client.post("/api/auth/login", json={"email": "gina@example.com", "password": "secret123"})
    assert resp.status_code == 200

    # second Google sign-in finds the same account
    resp = client.post(
        "/api/auth/google", json={"google_id": "g-123", "email": "gina@example.com", "name": "Gina"}
    )
    assert resp.get_json()["is_new_user"] is False
    assert resp.get_json()["action"] == "login_complete"


def test_google_conflicts(client, alice):
    resp = client.post(
        "/api/auth/google", json={"google_id": "g-1", "email": "alice@example.com", "name": "Alice"}
    )
    assert resp.status_code == 409
    assert resp.get_json()["account_type"] == "email"

    client.post("/api/auth/google", json={"google_id": "g-2", "email": "gus@example.com", "name": "Gus"})
    resp = client.post(
        "/api/auth/google", json={"google_id": "g-3", "email": "gus@example.com", "name": "Gus"}
    )
    assert resp.status_code == 409
    assert resp.get_json()["account_type"] == "google"


def test_signup_adds_password_to_google_account(client):
    client.post("/api/auth/google", json={"google_id": "g-9", "email": "gil@example.com", "name": "Gil"})

    resp = client.post(
        "/api/auth/signup", json={"email": "gil@example.com", "password": "secret123", "name": "Gil"}
    )
    assert resp.status_code == 200
    assert resp.get_json()["is_google_account_update"] is True

    resp = client.post("/api/auth/login", json={"email": "gil@example.com", "password": "secret123"})
    assert resp.status_code == 200


def test_email_verification_flow(mail_app, sent_emails):
    client = mail_app.test_client()

    resp = client.post(
        "/api/auth/signup", json={"email": "vera@example.com", "password": "secret123", "name": "Vera"}
    )
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["requires_verification"] is True
    user_id = body["user"]["id"]
    assert len(sent_emails) == 1
    assert sent_emails[0]["to"] == "vera@example.com"

    resp = client.post("/api/auth/login", json={"email": "vera@example.com", "password": "secret123"})
    assert resp.status_code == 401
    assert resp.get_json()["requires_verification"] is True

    resp = client.post("/api/auth/verify-email", json={"user_id": user_id, "verification_code": "000000x"})
    assert resp.status_code == 400

    with mail_app.app_context():
        code = db.session.get(User, user_id).verification_code

    resp = client.post("/api/auth/verify-email", json={"user_id": user_id, "verification_code": code})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["is_verified"] is True

    resp = client.post("/api/auth/login", json={"email": "vera@example.com", "password": "secret123"})
    assert resp.status_code == 200


def test_expired_verification_code(mail_app, sent_emails):
    client = mail_app.test_client()
    body = client.post(
        "/api/auth/signup", json={"email": "ed@example.com", "password": "secret123", "name": "Ed"}
    ).get_json()
    user_id = body["user"]["id"]

    with mail_app.app_context():
        user = db.session.get(User, user_id)
        code = user.verification_code
        user.verification_expires = datetime.utcnow() - timedelta(seconds=1)
        db.session.commit()

    resp = client.post("/api/auth/verify-email", json={"user_id": user_id, "verification_code": code})
    assert resp.status_code == 400
    assert resp.get_json()["expired"] is True

    resp = client.post("/api/auth/resend-verification", json={"user_id": user_id})
    assert resp.status_code == 200
    assert resp.get_json()["requires_verification"] is True
    assert len(sent_emails) == 2


def test_failed_verification_email_auto_verifies(mail_app, monkeypatch):
    from fittrack.email_service import EmailDeliveryError, EmailService

    def broken_send(self, to_email, subject, text_content):
        raise EmailDeliveryError("smtp down")

    monkeypatch.setattr(EmailService, "send_email", broken_send)
    client = mail_app.test_client()

    resp = client.post(
        "/api/auth/signup", json={"email": "fay@example.com", "password": "secret123", "name": "Fay"}
    )
    assert resp.status_code == 201
    assert resp.get_json()["requires_verification"] is False
    assert resp.get_json()["user"]["is_verified"] is True


def test_password_reset_flow(app, client, alice, sent_emails):
    resp = client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})
    assert resp.status_code == 200

    with app.app_context():
        token = db.session.get(User, alice["id"]).reset_password_token
    assert token

    resp = client.get(f"/api/auth/verify-reset-token?token={token}")
    assert resp.status_code == 200
    assert resp.get_json()["email"] == "alice@example.com"

    resp = client.post("/api/auth/reset-password", json={"token": token, "new_password": "newpass99"})
    assert resp.status_code == 200

    # token is single use
    resp = client.post("/api/auth/reset-password", json={"token": token, "new_password": "another1"})
    assert resp.status_code == 400

    resp = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "newpass99"})
    assert resp.status_code == 200


def test_forgot_password_does_not_reveal_accounts(client):
    resp = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
    assert resp.status_code == 200


def test_get_user_only_for_self(client, alice, bob):
    resp = client.get(f"/api/auth/user/{alice['id']}", headers=alice["headers"])
    assert resp.status_code == 200

    resp = client.get(f"/api/auth/user/{bob['id']}", headers=alice["headers"])
    assert resp.status_code == 403


def test_me_requires_token(client):
    resp = client.get("/api/auth/me")
    assert resp.status_code == 401


def test_user_stats(client, alice):
    client.post("/api/auth/google", json={"google_id": "g-5", "email": "gail@example.com", "name": "Gail"})
    signup(client, email="carl@example.com", name="Carl")

    stats = client.get("/api/auth/stats").get_json()
    assert stats["total_users"] == 3
    assert stats["google_users"] == 1
    assert stats["email_users"] == 2
    assert stats["verified_users"] == 3


def test_expired_reset_token_is_rejected(app, client, alice):
    with app.app_context():
        user = db.session.get(User, alice["id"])
        token = user.issue_reset_token(60)
        user.reset_password_expires = datetime.utcnow() - timedelta(minutes=1)
        db.session.commit()

        assert User.find_by_reset_token(token) is None

    resp = client.get(f"/api/auth/verify-reset-token?token={token}")
    assert resp.status_code == 400
    assert resp.get_json()["valid"] is False

    resp = client.post("/api/auth/reset-password", json={"token": token, "new_password": "newpass99"})
    assert resp.status_code == 400


def test_google_profile_links_existing_account(app):
    with app.app_context():
        carol = User(email="carol@example.com", name="Carol")
        db.session.add(carol)
        db.session.commit()

        linked = User.create_google_user(
            {"id": "g-123", "email": "Carol@Example.com", "name": "Carol G", "picture": "https://pics/c.png"}
        )
        db.session.commit()

        assert linked.id == carol.id
        assert linked.google_id == "g-123"
        assert linked.is_google_user is True
        assert linked.is_verified is True
        assert linked.picture == "https://pics/c.png"
        assert linked.name == "Carol"
        assert User.query.count() == 1

        # an account already linked keeps its Google id
        again = User.create_google_user({"id": "g-999", "email": "carol@example.com", "name": "Carol"})
        assert again.id == carol.id
        assert again.google_id == "g-123"


def test_non_string_fields_are_rejected(client, alice):
    resp = client.post("/api/auth/login", json={"email": 5, "password": "secret123"})
    assert resp.status_code == 400

    resp = client.post("/api/auth/login", json={"email": "alice@example.com", "password": 123456})
    assert resp.status_code == 400

    resp = client.post("/api/auth/signup", json=["alice@example.com", "secret123"])
    assert resp.status_code == 400

    resp = client.post("/api/auth/google", json={"google_id": 42, "email": "x@example.com", "name": "X"})
    assert resp.status_code == 400

    resp = client.post("/api/auth/check-email", json={"email": ["alice@example.com"]})
    assert resp.status_code == 400

    resp = client.post("/api/auth/forgot-password", json="alice@example.com")
    assert resp.status_code == 400


def test_malformed_and_huge_user_ids(client, alice):
    huge = "99999999999999999999"
    resp = client.post("/api/auth/verify-email", json={"user_id": huge, "verification_code": "123456"})
    assert resp.status_code == 404

    resp = client.post("/api/auth/resend-verification", json={"user_id": "²"})
    assert resp.status_code == 404

    resp = client.get(f"/api/auth/user/{huge}", headers=alice["headers"])
    assert resp.status_code == 403
