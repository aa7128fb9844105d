# fittrack/ownership.py
"""
Acting-user resolution for workout and statistics endpoints.

Registered as a `before_request` hook on the owning blueprints. The acting
user comes from, in order:

  1. the JSON body       (`user_id`, then `user_email`)
  2. the query string    (`user_id`, then `user_email`)
  3. the request headers (`X-User-Id`, then `X-User-Email`)

A valid bearer token is authoritative: when one is present, any claim from
the sources above must name the same user.
"""
from flask import current_app, g, jsonify, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from .models.user import MAX_ID, User, get_by_id, parse_id
from .models.workout import Workout


class OwnershipError(Exception):
    def __init__(self, message, status=401):
        super().__init__(message)
        self.message = message
        self.status = status


def _parse_user_id(raw):
    """Return a positive int id or raise OwnershipError(400)."""
    value = parse_id(raw)
    if value is None:
        raise OwnershipError("Invalid user ID format", 400)
    return value


def _claimed_identity():
    """
    First (kind, value) pair found across body, query and headers,
    or None when the request names nobody.
    """
    body = request.get_json(silent=True) if request.is_json else None
    if not isinstance(body, dict):
        body = {}

    sources = (
        (body.get("user_id"), body.get("user_email")),
        (request.args.get("user_id"), request.args.get("user_email")),
        (request.headers.get("X-User-Id"), request.headers.get("X-User-Email")),
    )
    for user_id, user_email in sources:
        if user_id not in (None, ""):
            return "id", user_id
        if user_email not in (None, ""):
            return "email", user_email
    return None


def _lookup(kind, value):
    if kind == "id":
        return get_by_id(User, _parse_user_id(value))
    return User.find_by_email(str(value))


def resolve_acting_user():
    verify_jwt_in_request(optional=True)
    token_identity = get_jwt_identity()
    claim = _claimed_identity()

    if token_identity is not None:
        user = get_by_id(User, token_identity)
        if not user:
            raise OwnershipError("User not found", 401)
        if claim is not None:
            claimed = _lookup(*claim)
            if claimed is None or claimed.id != user.id:
                raise OwnershipError("Not allowed to act for another user", 403)
        return user

    if claim is None:
        raise OwnershipError("Authentication required", 401)

    if not current_app.config.get("ALLOW_UNAUTHENTICATED_OWNER", True):
        raise OwnershipError("Missing or invalid auth token", 401)

    user = _lookup(*claim)
    if not user:
        raise OwnershipError("User not found", 401)
    return user


def load_acting_user():
    """before_request hook: sets `g.current_user` or short-circuits with an error."""
    if request.method == "OPTIONS":
        return None
    try:
        g.current_user = resolve_acting_user()
    except OwnershipError as e:
        current_app.logger.info(f"[ownership] {request.method} {request.path} rejected: {e.message}")
        return jsonify({"message": e.message}), e.status
    return None


def current_owner() -> User:
    return g.current_user


def owned_workouts():
    """Workout query restricted to the acting user."""
    return Workout.query.filter(Workout.user_id == current_owner().id)


def get_owned_workout(workout_id):
    if workout_id > MAX_ID:
        return None
    return owned_workouts().filter(Workout.id == workout_id).first()
