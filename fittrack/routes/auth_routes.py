# fittrack/routes/auth_routes.py

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import create_access_token, get_jwt_identity, jwt_required
from sqlalchemy.exc import IntegrityError

from .. import db
from ..email_service import EmailDeliveryError, EmailService, verification_enabled
from ..models.user import User, get_by_id

auth_bp = Blueprint("auth", __name__)

MIN_PASSWORD_LENGTH = 6


# -----------------------------
# Helpers
# -----------------------------
def _auth_payload(user: User, **extra):
    payload = {
        "token": create_access_token(identity=str(user.id)),
        "user": user.to_dict(),
    }
    payload.update(extra)
    return payload


def _password_problem(password):
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        return f"password must be at least {MIN_PASSWORD_LENGTH} characters"
    return None


def _send_code_or_autoverify(user: User) -> bool:
    """
    Issue and mail a verification code. If the mail cannot be sent the account
    is verified straight away. Returns True when the user still has to verify.
    The caller commits.
    """
    code = user.issue_verification_code(current_app.config["VERIFICATION_CODE_TTL_MINUTES"])
    try:
        EmailService().send_verification_code(user.email, code, user.name)
    except EmailDeliveryError as e:
        current_app.logger.warning(f"[auth] verification email to {user.email} failed, auto-verifying: {e}")
        user.clear_verification(verified=True)
        return False
    return True


def _get_user(user_id):
    return get_by_id(User, user_id)


def _body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _text(data, key, strip=True):
    """String field from a JSON body; anything that is not a string reads as ""."""
    value = data.get(key)
    if not isinstance(value, str):
        return ""
    return value.strip() if strip else value


# -----------------------------
# Routes
# -----------------------------
@auth_bp.route("/check-email", methods=["POST"])
def check_email():
    data = _body()
    email = _text(data, "email").lower()
    if not email:
        return jsonify({"message": "email is required"}), 400

    exists = User.find_by_email(email) is not None
    return jsonify({
        "exists": exists,
        "email": email,
        "message": "Email is already registered" if exists else "Email is available",
    }), 200


@auth_bp.route("/signup", methods=["POST"])
def signup():
    data = _body()

    email = _text(data, "email").lower()
    name = _text(data, "name")
    password = _text(data, "password", strip=False)  # do NOT strip passwords

    if not email or not name or not password:
        return jsonify({"message": "email, password and name are required"}), 400

    problem = _password_problem(password)
    if problem:
        return jsonify({"message": problem}), 400

    existing = User.find_by_email(email)
    if existing:
        if existing.is_google_user and not existing.has_password:
            # Google-only account adding a password; Google already verified the email
            existing.set_password(password)
            db.session.commit()
            return jsonify({
                "message": "Password added to your Google account",
                "user": existing.to_dict(),
                "requires_verification": False,
                "is_google_account_update": True,
            }), 200

        return jsonify({
            "message": "email already registered",
            "should_redirect_to_login": True,
        }), 409

    try:
        user = User(email=email, name=name, login_method="email")
    except ValueError as e:
        return jsonify({"message": str(e)}), 400

    user.set_password(password)
    user.is_verified = not verification_enabled()

    try:
        db.session.add(user)
        db.session.flush()

        requires_verification = False
        if not user.is_verified:
            requires_verification = _send_code_or_autoverify(user)

        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"message": "email already registered", "should_redirect_to_login": True}), 409
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception(f"Signup Error: {e}")
        return jsonify({"message": "Internal server error"}), 500

    current_app.logger.info(f"[auth/signup] created user_id={user.id} verification={requires_verification}")
    return jsonify(_auth_payload(
        user,
        message="Account created successfully",
        requires_verification=requires_verification,
    )), 201


@auth_bp.route("/verify-email", methods=["POST"])
def verify_email():
    data = _body()
    user_id = data.get("user_id")
    code = str(data.get("verification_code") or "").strip()

    if not user_id or not code:
        return jsonify({"message": "user_id and verification_code are required"}), 400

    user = _get_user(user_id)
    if not user:
        return jsonify({"message": "user not found"}), 404

    if user.is_verified:
        return jsonify({"message": "account is already verified"}), 400

    if not user.verification_pending():
        return jsonify({"message": "no verification code found, request a new one"}), 400

    if user.verification_expired():
        return jsonify({"message": "verification code has expired", "expired": True}), 400

    if user.verification_code != code:
        return jsonify({"message": "invalid verification code"}), 400

    user.clear_verification(verified=True)
    db.session.commit()

    return jsonify(_auth_payload(user, message="Email verified successfully", verified=True)), 200


@auth_bp.route("/resend-verification", methods=["POST"])
def resend_verification():
    data = _body()
    user_id = data.get("user_id")
    if not user_id:
        return jsonify({"message": "user_id is required"}), 400

    user = _get_user(user_id)
    if not user:
        return jsonify({"message": "user not found"}), 404

    if user.is_verified:
        return jsonify({"message": "account is already verified"}), 400

    requires_verification = _send_code_or_autoverify(user)
    db.session.commit()

    if not requires_verification:
        return jsonify({"message": "Account verified", "requires_verification": False}), 200
    return jsonify({"message": "Verification code resent", "requires_verification": True}), 200


@auth_bp.route("/login", methods=["POST"])
def login():
    data = _body()

    email = _text(data, "email").lower()
    password = _text(data, "password", strip=False)  # do NOT strip passwords

    current_app.logger.info(f"[auth/login] email='{email}' keys={list(data.keys())}")

    if not email or not password:
        return jsonify({"message": "email and password are required"}), 400

    user = User.find_by_email(email)
    if not user:
        current_app.logger.info(f"[auth/login] user NOT found for '{email}'")
        return jsonify({"message": "account not found", "should_redirect_to_signup": True}), 401

    if user.is_locked():
        current_app.logger.info(f"[auth/login] locked user_id={user.id}")
        return jsonify({
            "message": "account temporarily locked after too many failed attempts",
            "locked_until": user.locked_until.isoformat(),
        }), 423

    if not user.is_verified and verification_enabled():
        if user.verification_pending() and not user.verification_expired():
            return jsonify({
                "message": "email not verified",
                "requires_verification": True,
                "user_id": user.id,
            }), 401
        # stale or missing code: let the user in
        user.clear_verification(verified=True)

    if user.is_google_user and not user.has_password:
        db.session.commit()
        return jsonify({
            "message": "Google account requires password setup",
            "requires_password_setup": True,
            "user_id": user.id,
        }), 400

    if not user.check_password(password):
        locked_now = user.register_failed_login(
            current_app.config["MAX_FAILED_LOGINS"],
            current_app.config["LOCKOUT_MINUTES"],
        )
        db.session.commit()
        current_app.logger.info(f"[auth/login] bad password for user_id={user.id} locked={locked_now}")
        if locked_now:
            return jsonify({
                "message": "account temporarily locked after too many failed attempts",
                "locked_until": user.locked_until.isoformat(),
            }), 423
        return jsonify({
            "message": "invalid credentials",
            "attempts_remaining": current_app.config["MAX_FAILED_LOGINS"] - user.failed_login_attempts,
        }), 401

    user.reset_login_failures()
    user.touch_last_login()
    db.session.commit()

    return jsonify(_auth_payload(user, message="Login successful")), 200


@auth_bp.route("/google", methods=["POST"])
def google_auth():
    """
    Accepts the profile of an already-verified Google sign-in:
      { "google_id": "...", "email": "...", "name": "...", "picture": "..." }
    """
    data = _body()
    google_id = _text(data, "google_id")
    email = _text(data, "email").lower()
    name = _text(data, "name")

    if not google_id or not email or not name:
        return jsonify({"message": "google_id, email and name are required"}), 400

    user = User.find_by_google_id(google_id)
    is_new_user = False

    if not user:
        existing = User.find_by_email(email)
        if existing and existing.google_id and existing.google_id != google_id:
            return jsonify({
                "message": "email already registered with a different Google account",
                "should_redirect_to_login": True,
                "account_type": "google",
            }), 409
        if existing and existing.has_password and not existing.google_id:
            return jsonify({
                "message": "email already registered with a password, sign in with it instead",
                "should_redirect_to_login": True,
                "account_type": "email",
            }), 409

        try:
            user = User.create_google_user({
                "id": google_id,
                "email": email,
                "name": name,
                "picture": _text(data, "picture") or None,
            })
        except ValueError as e:
            return jsonify({"message": str(e)}), 400
        is_new_user = existing is None

    user.touch_last_login()
    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception(f"Google auth Error: {e}")
        return jsonify({"message": "Internal server error"}), 500

    requires_password = user.is_google_user and not user.has_password
    return jsonify(_auth_payload(
        user,
        message="Google login successful",
        requires_password=requires_password,
        is_new_user=is_new_user,
        action="password_setup" if requires_password else "login_complete",
    )), 200


@auth_bp.route("/set-password", methods=["POST"])
@jwt_required()
def set_password():
    user = _get_user(get_jwt_identity())
    if not user:
        return jsonify({"message": "user not found"}), 404

    data = _body()
    password = _text(data, "password", strip=False)
    problem = _password_problem(password)
    if problem:
        return jsonify({"message": problem}), 400

    user.set_password(password)
    db.session.commit()

    return jsonify({"message": "Password set successfully", "requires_password": False}), 200


@auth_bp.route("/forgot-password", methods=["POST"])
def forgot_password():
    data = _body()
    email = _text(data, "email").lower()
    if not email:
        return jsonify({"message": "email is required"}), 400

    generic = {
        "message": "Password reset email sent",
        "details": "If an account with that email exists, a password reset link has been sent.",
    }

    user = User.find_by_email(email)
    if not user:
        return jsonify(generic), 200

    if user.is_google_user and not user.has_password:
        return jsonify({"message": "This account uses Google sign-in only"}), 400

    token = user.issue_reset_token(current_app.config["RESET_TOKEN_TTL_MINUTES"])
    db.session.commit()

    try:
        EmailService().send_password_reset(user.email, token)
    except EmailDeliveryError as e:
        current_app.logger.warning(f"[auth/forgot-password] reset email to {user.email} failed: {e}")

    return jsonify(generic), 200


@auth_bp.route("/reset-password", methods=["POST"])
def reset_password():
    data = _body()
    token = _text(data, "token")
    new_password = _text(data, "new_password", strip=False)

    if not token or not new_password:
        return jsonify({"message": "token and new_password are required"}), 400

    problem = _password_problem(new_password)
    if problem:
        return jsonify({"message": problem}), 400

    user = User.find_by_reset_token(token)
    if not user:
        return jsonify({"message": "reset token is invalid or has expired"}), 400

    user.set_password(new_password)
    user.clear_reset_token()
    user.reset_login_failures()
    db.session.commit()

    return jsonify({"message": "Password reset successful"}), 200


@auth_bp.route("/verify-reset-token", methods=["GET"])
def verify_reset_token():
    token = (request.args.get("token") or "").strip()
    if not token:
        return jsonify({"message": "token is required"}), 400

    user = User.find_by_reset_token(token)
    if not user:
        return jsonify({"message": "reset token is invalid or has expired", "valid": False}), 400

    return jsonify({"valid": True, "email": user.email}), 200


@auth_bp.route("/user/<user_id>", methods=["GET"])
@jwt_required()
def get_user(user_id):
    if str(user_id) != str(get_jwt_identity()):
        return jsonify({"message": "not allowed"}), 403

    user = _get_user(user_id)
    if not user:
        return jsonify({"message": "user not found"}), 404
    return jsonify({"user": user.to_dict()}), 200


@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def me():
    user = _get_user(get_jwt_identity())
    if not user:
        return jsonify({"message": "user not found"}), 404
    return jsonify({"user": user.to_dict()}), 200


@auth_bp.route("/stats", methods=["GET"])
def user_stats():
    return jsonify(User.user_stats()), 200
