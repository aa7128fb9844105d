# fittrack/routes/stats_routes.py
from flask import Blueprint, current_app, jsonify, request

from ..exercise_types import VALID_CATEGORIES, VALID_TYPES
from ..ownership import current_owner, load_acting_user
from .. import stats

stats_bp = Blueprint("stats", __name__)
stats_bp.before_request(load_acting_user)


# -------------------------
# SUMMARY
# -------------------------
@stats_bp.route("/summary", methods=["GET"])
def summary():
    """
    Totals, averages, per-category / intensity / equipment breakdowns,
    weekly and monthly workout counts and streaks for the acting user.
    """
    user = current_owner()
    data = stats.workout_summary(user.id)
    current_app.logger.info(
        f"[stats/summary] user_id={user.id} workouts={data['total_workouts']}"
    )
    return jsonify(data), 200


# -------------------------
# POPULAR EXERCISES
# -------------------------
@stats_bp.route("/popular-exercises", methods=["GET"])
def popular_exercises():
    try:
        limit = int(request.args.get("limit", 20))
        if limit <= 0:
            limit = 20
    except ValueError:
        limit = 20
    limit = min(limit, 100)

    category = request.args.get("category") or None
    ex_type = request.args.get("type") or None
    if category and category not in VALID_CATEGORIES:
        return jsonify({"message": f'Invalid category "{category}"'}), 400
    if ex_type and ex_type not in VALID_TYPES:
        return jsonify({"message": f'Invalid exercise type "{ex_type}"'}), 400

    rows = stats.popular_exercises(
        current_owner().id, limit=limit, category=category, exercise_type=ex_type
    )
    return jsonify({"exercises": rows}), 200


# -------------------------
# CATEGORY BREAKDOWN
# -------------------------
@stats_bp.route("/categories", methods=["GET"])
def categories():
    return jsonify({"categories": stats.category_statistics(current_owner().id)}), 200
