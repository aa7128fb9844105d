# fittrack/exercise_types.py
"""
Exercise catalogue and payload validation.

Every exercise has a `type` (what the user picked in the form) and a broader
`category` used for statistics. When the client omits the category it is
derived from the type.
"""
import math
from typing import Any, Dict, List, Optional

VALID_CATEGORIES = [
    "cardio",
    "resistance",
    "flexibility",
    "balance",
    "sports_specific",
    "recovery",
]

TYPE_TO_CATEGORY = {
    # Cardio
    "cardio": "cardio",
    "low_intensity_cardio": "cardio",
    "moderate_intensity_cardio": "cardio",
    "high_intensity_cardio": "cardio",
    "hiit": "cardio",
    # Resistance
    "resistance": "resistance",
    "bodyweight": "resistance",
    "free_weights": "resistance",
    "machines": "resistance",
    "resistance_bands": "resistance",
    "powerlifting": "resistance",
    "olympic_lifting": "resistance",
    # Flexibility
    "flexibility": "flexibility",
    "static_stretching": "flexibility",
    "dynamic_stretching": "flexibility",
    "yoga": "flexibility",
    "pilates": "flexibility",
    # Balance
    "balance": "balance",
    "balance_training": "balance",
    "functional_movement": "balance",
    "tai_chi": "balance",
    # Sports specific
    "sports_specific": "sports_specific",
    "plyometrics": "sports_specific",
    "agility": "sports_specific",
    "endurance": "sports_specific",
    "crossfit": "sports_specific",
    # Recovery
    "recovery": "recovery",
    "active_recovery": "recovery",
    "mobility_work": "recovery",
    "meditation": "recovery",
}

VALID_TYPES = list(TYPE_TO_CATEGORY.keys())

VALID_INTENSITIES = ["light", "moderate", "vigorous", "maximum"]
INTENSITY_SCORES = {"light": 1, "moderate": 2, "vigorous": 3, "maximum": 4}

VALID_EQUIPMENT = [
    "none",
    "dumbbells",
    "barbell",
    "kettlebell",
    "resistance_bands",
    "machines",
    "cardio_equipment",
    "suspension",
    "medicine_ball",
    "stability_ball",
]

VALID_MUSCLE_GROUPS = [
    "chest", "back", "shoulders", "biceps", "triceps", "core",
    "quadriceps", "hamstrings", "glutes", "calves", "full_body",
]

VALID_RANGE_OF_MOTION = ["poor", "fair", "good", "excellent"]

# Whole-number exercise fields and their labels; stored in INT columns
COUNT_FIELDS = (
    ("calories_burned", "Calories burned"),
    ("reps", "Reps"),
    ("sets", "Sets"),
    ("rest_between_sets", "Rest between sets"),
    ("stretch_hold_time", "Stretch hold time"),
)
MAX_COUNT = 2**31 - 1

# Types that must carry sets and reps
TRADITIONAL_RESISTANCE_TYPES = {"resistance", "free_weights", "machines", "powerlifting"}

# Workout-level enums
VALID_LOCATIONS = ["home", "gym", "outdoor", "studio", "other"]
VALID_WORKOUT_TYPES = ["strength", "cardio", "mixed", "flexibility", "recovery", "sports"]
VALID_DIFFICULTIES = ["beginner", "intermediate", "advanced"]
VALID_MOODS = ["excellent", "good", "okay", "poor", "terrible"]

CATEGORY_TO_WORKOUT_TYPE = {
    "resistance": "strength",
    "cardio": "cardio",
    "flexibility": "flexibility",
    "recovery": "recovery",
    "sports_specific": "sports",
}


def category_for_type(exercise_type: Optional[str]) -> str:
    if not isinstance(exercise_type, str):
        return "resistance"
    return TYPE_TO_CATEGORY.get(exercise_type, "resistance")


def intensity_label(score: Optional[float]) -> str:
    """Map a mean intensity score (1..4) back to its label."""
    if score is None:
        return "moderate"
    if score <= 1.5:
        return "light"
    if score <= 2.5:
        return "moderate"
    if score <= 3.5:
        return "vigorous"
    return "maximum"


def _num(v: Any) -> Optional[float]:
    if v is None or v == "":
        return None
    try:
        n = float(v)
    except (TypeError, ValueError):
        return None
    # nan, inf and 1e400 are not measurements
    return n if math.isfinite(n) else None


def _int(v: Any) -> Optional[int]:
    n = _num(v)
    return int(n) if n is not None else None


def validate_exercise_data(data: Dict[str, Any]) -> List[str]:
    """
    Returns the list of problems with an exercise payload (empty when valid).
    Fills in `category` from `type` when it is missing.
    """
    errors = []

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append("Exercise name is required")
    elif len(name.strip()) > 100:
        errors.append("Exercise name cannot exceed 100 characters")

    ex_type = data.get("type")
    if not isinstance(ex_type, str) or ex_type not in TYPE_TO_CATEGORY:
        errors.append(f'Valid exercise type is required. Received: "{ex_type}"')
        ex_type = None

    duration = _num(data.get("duration"))
    if duration is None or duration <= 0:
        errors.append("Duration must be greater than 0")

    if not data.get("category"):
        data["category"] = category_for_type(ex_type)

    category = data["category"]
    if category not in VALID_CATEGORIES:
        errors.append(f'Valid exercise category is required. Received: "{category}"')

    intensity = data.get("intensity")
    if intensity and intensity not in VALID_INTENSITIES:
        errors.append(f'Invalid intensity level. Received: "{intensity}"')

    equipment = data.get("equipment")
    if equipment and equipment not in VALID_EQUIPMENT:
        errors.append(f'Invalid equipment type. Received: "{equipment}"')

    muscle_groups = data.get("muscle_groups")
    if muscle_groups is not None:
        if not isinstance(muscle_groups, list) or any(
            m not in VALID_MUSCLE_GROUPS for m in muscle_groups
        ):
            errors.append("Invalid muscle groups")

    if category == "resistance":
        if ex_type in TRADITIONAL_RESISTANCE_TYPES:
            reps = _num(data.get("reps"))
            sets = _num(data.get("sets"))
            if reps is None or reps <= 0:
                errors.append("Traditional resistance exercises must have positive reps")
            if sets is None or sets <= 0:
                errors.append("Traditional resistance exercises must have positive sets")

        weight = _num(data.get("weight"))
        if weight is not None and weight < 0:
            errors.append("Weight cannot be negative")

    if category == "cardio":
        distance = _num(data.get("distance"))
        if distance is not None and distance < 0:
            errors.append("Distance cannot be negative")

        for key, label in (("average_heart_rate", "Average"), ("max_heart_rate", "Max")):
            hr = _num(data.get(key))
            if hr and (hr < 50 or hr > 220):
                errors.append(f"{label} heart rate seems unrealistic (50-220 bpm)")

    for key, label in COUNT_FIELDS:
        raw = data.get(key)
        if raw in (None, ""):
            continue
        n = _num(raw)
        if n is None or n < 0 or n > MAX_COUNT:
            errors.append(f"{label} must be a number between 0 and {MAX_COUNT}")

    rpe = _num(data.get("perceived_exertion"))
    if rpe and (rpe < 1 or rpe > 10):
        errors.append("Perceived exertion must be between 1 and 10")

    rating = _num(data.get("performance_rating"))
    if rating and (rating < 1 or rating > 5):
        errors.append("Performance rating must be between 1 and 5")

    notes = data.get("notes")
    if isinstance(notes, str) and len(notes.strip()) > 500:
        errors.append("Notes cannot exceed 500 characters")

    return errors


def clean_exercise_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalise a validated payload into Exercise column values, keeping only
    the fields that belong to its category.
    """
    category = data.get("category") or category_for_type(data.get("type"))
    notes = data.get("notes")

    clean = {
        "name": data["name"].strip(),
        "type": data["type"],
        "category": category,
        "duration": _num(data.get("duration")),
        "intensity": data.get("intensity") or "moderate",
        "equipment": data.get("equipment") or "none",
        "muscle_groups": list(data.get("muscle_groups") or []),
        "notes": notes.strip() if isinstance(notes, str) and notes.strip() else None,
        "perceived_exertion": _int(data.get("perceived_exertion")) or None,
        "performance_rating": _int(data.get("performance_rating")) or None,
    }

    if category == "cardio":
        clean["distance"] = _num(data.get("distance")) or 0
        clean["calories_burned"] = _int(data.get("calories_burned"))
        clean["average_heart_rate"] = _int(data.get("average_heart_rate")) or None
        clean["max_heart_rate"] = _int(data.get("max_heart_rate")) or None
    elif category == "resistance":
        clean["weight"] = _num(data.get("weight")) or 0
        clean["sets"] = _int(data.get("sets")) or 0
        clean["reps"] = _int(data.get("reps")) or 0
        clean["rest_between_sets"] = _int(data.get("rest_between_sets")) or 60
    elif category == "flexibility":
        clean["stretch_hold_time"] = _int(data.get("stretch_hold_time"))
        rom = data.get("range_of_motion_improvement")
        clean["range_of_motion_improvement"] = rom if rom in VALID_RANGE_OF_MOTION else None

    # Calories are tracked for every category
    if "calories_burned" not in clean:
        clean["calories_burned"] = _int(data.get("calories_burned"))

    return clean


def validate_workout_data(data: Dict[str, Any]) -> List[str]:
    """Checks the workout-level fields present in `data`, then each exercise."""
    errors = []

    def _check_enum(key, allowed, label):
        value = data.get(key)
        if value not in (None, "") and value not in allowed:
            errors.append(f'Invalid {label}. Received: "{value}"')

    _check_enum("location", VALID_LOCATIONS, "location")
    _check_enum("workout_type", VALID_WORKOUT_TYPES, "workout type")
    _check_enum("difficulty", VALID_DIFFICULTIES, "difficulty")
    _check_enum("mood", VALID_MOODS, "mood")

    for key, limit, label in (
        ("title", 100, "Workout title"),
        ("description", 500, "Workout description"),
        ("notes", 1000, "Workout notes"),
    ):
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            errors.append(f"{label} must be a string")
        elif isinstance(value, str) and len(value.strip()) > limit:
            errors.append(f"{label} cannot exceed {limit} characters")

    rating = data.get("overall_rating")
    if rating not in (None, ""):
        r = _num(rating)
        if r is None or r < 1 or r > 5:
            errors.append("Overall rating must be between 1 and 5")

    for key in ("goals", "achievements", "personal_records"):
        value = data.get(key)
        if value is not None and not isinstance(value, list):
            errors.append(f"{key} must be a list")

    exercises = data.get("exercises")
    if exercises is not None:
        if not isinstance(exercises, list):
            errors.append("Exercises must be an array")
        else:
            for index, exercise in enumerate(exercises, start=1):
                if not isinstance(exercise, dict):
                    errors.append(f"Exercise {index}: must be an object")
                    continue
                problems = validate_exercise_data(exercise)
                if problems:
                    errors.append(f"Exercise {index}: {', '.join(problems)}")

    return errors


def exercise_types_payload() -> Dict[str, Any]:
    return {
        "categories": VALID_CATEGORIES,
        "types": VALID_TYPES,
        "intensities": VALID_INTENSITIES,
        "equipment": VALID_EQUIPMENT,
        "muscle_groups": VALID_MUSCLE_GROUPS,
        "type_to_category": TYPE_TO_CATEGORY,
    }
