# fittrack/routes/exercise_routes.py
from flask import Blueprint, jsonify

from ..exercise_types import TYPE_TO_CATEGORY, exercise_types_payload

exercises_bp = Blueprint("exercises", __name__)


@exercises_bp.route("", methods=["GET"])
def list_exercise_types():
    """
    Public: categories, types, intensities, equipment and the
    type -> category map the workout forms are built from.

    GET /api/exercise-types
    """
    return jsonify(exercise_types_payload()), 200


@exercises_bp.route("/<exercise_type>", methods=["GET"])
def get_exercise_type(exercise_type):
    """
    Public: the category a single exercise type belongs to.

    GET /api/exercise-types/<exercise_type>
    """
    exercise_type = (exercise_type or "").lower()
    category = TYPE_TO_CATEGORY.get(exercise_type)
    if not category:
        return jsonify({"message": "Exercise type not found"}), 404

    return jsonify({"type": exercise_type, "category": category}), 200
