# fittrack/routes/workout_routes.py

from datetime import datetime, timezone
from typing import Any, Optional

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.orm import selectinload

from .. import db
from ..exercise_types import (
    clean_exercise_data,
    validate_exercise_data,
    validate_workout_data,
)
from ..models.user import parse_id
from ..models.workout import Exercise, Workout
from ..ownership import current_owner, get_owned_workout, load_acting_user, owned_workouts

workouts_bp = Blueprint("workouts", __name__)
workouts_bp.before_request(load_acting_user)

# Columns a client may set directly
WORKOUT_FIELDS = (
    "title",
    "description",
    "location",
    "workout_type",
    "difficulty",
    "overall_rating",
    "mood",
    "notes",
    "goals",
    "achievements",
    "personal_records",
)

WORKOUT_DEFAULTS = {
    "location": "gym",
    "workout_type": "mixed",
    "difficulty": "intermediate",
}

MAX_LIST_LIMIT = 1000


# ------------------------------
# Helpers
# ------------------------------
def _safe_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def _json_object():
    """JSON body as a dict ({} when absent), or None when it is not an object."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data if isinstance(data, dict) else None


def _parse_datetime(value) -> Optional[datetime]:
    """ISO date or datetime -> naive UTC datetime. Raises ValueError."""
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is not None:
        try:
            dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
        except OverflowError as e:
            raise ValueError(str(e)) from e
    return dt


def _invalid_id_response():
    return jsonify({"message": "Invalid workout ID format", "details": "Workout ID must be a positive integer"}), 400


def _not_found_response(workout_id):
    return jsonify({"message": "Workout not found", "details": f"No workout found with ID: {workout_id}"}), 404


def _validation_response(message, errors):
    return jsonify({"message": message, "errors": errors}), 400


def _not_an_object_response():
    return jsonify({"message": "Request body must be a JSON object"}), 400


def _apply_fields(workout: Workout, data: dict) -> None:
    for field in WORKOUT_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if isinstance(value, str):
            value = value.strip() or None
        if value is None and field in WORKOUT_DEFAULTS:
            value = WORKOUT_DEFAULTS[field]
        if field == "overall_rating" and value is not None:
            value = int(float(value))
        setattr(workout, field, value)


# ------------------------------
# GET /api/workouts
# ------------------------------
@workouts_bp.route("", methods=["GET"])
def list_workouts():
    """
    Query params: category, type, start_date, end_date, limit
    Newest first.
    """
    q = owned_workouts().options(selectinload(Workout.exercises))

    category = request.args.get("category")
    ex_type = request.args.get("type")
    if category:
        q = q.filter(Workout.exercises.any(Exercise.category == category))
    if ex_type:
        q = q.filter(Workout.exercises.any(Exercise.type == ex_type))

    try:
        start = request.args.get("start_date")
        end = request.args.get("end_date")
        if start:
            q = q.filter(Workout.day >= _parse_datetime(start))
        if end:
            q = q.filter(Workout.day <= _parse_datetime(end))
    except ValueError:
        return jsonify({"message": "start_date and end_date must be ISO dates"}), 400

    q = q.order_by(Workout.day.desc(), Workout.id.desc())

    limit = _safe_int(request.args.get("limit"), 0)
    if limit > 0:
        q = q.limit(min(limit, MAX_LIST_LIMIT))

    workouts = q.all()
    current_app.logger.info(f"[workouts] user_id={current_owner().id} found {len(workouts)} workouts")
    return jsonify({"workouts": [w.to_dict() for w in workouts]}), 200


# ------------------------------
# GET /api/workouts/recent?limit=5
# ------------------------------
@workouts_bp.route("/recent", methods=["GET"])
def recent_workouts():
    limit = _safe_int(request.args.get("limit"), 5)
    limit = max(1, min(limit, 50))

    rows = (
        owned_workouts()
        .options(selectinload(Workout.exercises))
        .order_by(Workout.day.desc(), Workout.id.desc())
        .limit(limit)
        .all()
    )
    return jsonify({"workouts": [w.to_summary_dict() for w in rows]}), 200


# ------------------------------
# POST /api/workouts
# ------------------------------
@workouts_bp.route("", methods=["POST"])
def create_workout():
    data = _json_object()
    if data is None:
        return _not_an_object_response()

    errors = validate_workout_data(data)
    if errors:
        current_app.logger.info(f"[workouts] create rejected: {errors}")
        return _validation_response("Workout validation failed", errors)

    try:
        day = _parse_datetime(data["day"]) if data.get("day") else datetime.utcnow()
    except ValueError:
        return _validation_response("Workout validation failed", ["day must be an ISO date"])

    workout = Workout(user_id=current_owner().id, day=day, **WORKOUT_DEFAULTS)
    _apply_fields(workout, data)
    workout.replace_exercises([clean_exercise_data(e) for e in data.get("exercises") or []])
    workout.refresh_derived_fields()

    try:
        db.session.add(workout)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception(f"Create workout Error: {e}")
        return jsonify({"message": "Failed to create workout", "error": str(e)}), 500

    current_app.logger.info(f"[workouts] created workout_id={workout.id} for user_id={workout.user_id}")
    return jsonify({"workout": workout.to_dict()}), 201


# ------------------------------
# GET /api/workouts/<id>
# ------------------------------
@workouts_bp.route("/<workout_id>", methods=["GET"])
def get_workout(workout_id):
    wid = parse_id(workout_id)
    if wid is None:
        return _invalid_id_response()

    workout = get_owned_workout(wid)
    if not workout:
        return _not_found_response(workout_id)

    return jsonify({"workout": workout.to_dict()}), 200


# ------------------------------
# PUT /api/workouts/<id>
# ------------------------------
@workouts_bp.route("/<workout_id>", methods=["PUT"])
def update_workout(workout_id):
    wid = parse_id(workout_id)
    if wid is None:
        return _invalid_id_response()

    data = _json_object()
    if data is None:
        return _not_an_object_response()
    errors = validate_workout_data(data)
    if errors:
        return _validation_response("Workout validation failed", errors)

    workout = get_owned_workout(wid)
    if not workout:
        return _not_found_response(workout_id)

    try:
        if data.get("day"):
            workout.day = _parse_datetime(data["day"])
    except ValueError:
        return _validation_response("Workout validation failed", ["day must be an ISO date"])

    _apply_fields(workout, data)
    if "exercises" in data and data["exercises"] is not None:
        workout.replace_exercises([clean_exercise_data(e) for e in data["exercises"]])
    workout.refresh_derived_fields()
    workout.touch()

    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception(f"Update workout Error: {e}")
        return jsonify({"message": "Failed to update workout", "error": str(e)}), 500

    return jsonify({"workout": workout.to_dict()}), 200


# ------------------------------
# DELETE /api/workouts/<id>
# ------------------------------
@workouts_bp.route("/<workout_id>", methods=["DELETE"])
def delete_workout(workout_id):
    wid = parse_id(workout_id)
    if wid is None:
        return _invalid_id_response()

    workout = get_owned_workout(wid)
    if not workout:
        return _not_found_response(workout_id)

    summary = {
        "id": workout.id,
        "day": workout.day.isoformat() if workout.day else None,
        "exercise_count": workout.exercise_count,
    }

    try:
        db.session.delete(workout)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception(f"Delete workout Error: {e}")
        return jsonify({"message": "Failed to delete workout", "error": str(e)}), 500

    current_app.logger.info(f"[workouts] deleted workout_id={wid}")
    return jsonify({"message": "Workout deleted successfully", "deleted_workout": summary}), 200


# ------------------------------
# POST /api/workouts/<id>/exercises
# ------------------------------
@workouts_bp.route("/<workout_id>/exercises", methods=["POST"])
def add_exercise(workout_id):
    wid = parse_id(workout_id)
    if wid is None:
        return _invalid_id_response()

    workout = get_owned_workout(wid)
    if not workout:
        return _not_found_response(workout_id)

    data = _json_object()
    if data is None:
        return _not_an_object_response()
    data = dict(data)
    data.pop("user_id", None)
    data.pop("user_email", None)

    errors = validate_exercise_data(data)
    if errors:
        current_app.logger.info(f"[workouts] exercise rejected for workout_id={wid}: {errors}")
        return _validation_response("Exercise validation failed", errors)

    exercise = workout.add_exercise(clean_exercise_data(data))
    workout.refresh_derived_fields()

    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception(f"Add exercise Error: {e}")
        return jsonify({"message": "Failed to add exercise", "error": str(e)}), 500

    current_app.logger.info(
        f"[workouts] exercise_id={exercise.id} added to workout_id={wid} "
        f"(total exercises: {workout.exercise_count}, total duration: {workout.total_duration})"
    )
    return jsonify({"workout": workout.to_dict()}), 200


# ------------------------------
# DELETE /api/workouts/<id>/exercises/<exercise_id>
# ------------------------------
@workouts_bp.route("/<workout_id>/exercises/<exercise_id>", methods=["DELETE"])
def remove_exercise(workout_id, exercise_id):
    wid = parse_id(workout_id)
    eid = parse_id(exercise_id)
    if wid is None or eid is None:
        return jsonify({"message": "Invalid ID format"}), 400

    workout = get_owned_workout(wid)
    if not workout:
        return _not_found_response(workout_id)

    if not workout.remove_exercise(eid):
        return jsonify({"message": "Exercise not found"}), 404
    workout.refresh_derived_fields()

    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception(f"Remove exercise Error: {e}")
        return jsonify({"message": "Failed to remove exercise", "error": str(e)}), 500

    current_app.logger.info(f"[workouts] exercise_id={eid} removed from workout_id={wid}")
    return jsonify({"workout": workout.to_dict()}), 200
