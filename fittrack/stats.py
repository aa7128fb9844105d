# fittrack/stats.py
"""
Cross-workout statistics computed with SQL aggregation.

Every function takes the owner's id and only ever reads that user's rows.
"""
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import case, func

from . import db
from .exercise_types import INTENSITY_SCORES, intensity_label
from .models.workout import Exercise, Workout


def _volume_expr(default_sets=0):
    return case(
        (
            Exercise.category == "resistance",
            func.coalesce(Exercise.weight, 0)
            * func.coalesce(Exercise.reps, 0)
            * func.coalesce(Exercise.sets, default_sets),
        ),
        else_=0,
    )


def _intensity_score_expr():
    return case(
        *[(Exercise.intensity == label, score) for label, score in INTENSITY_SCORES.items()],
        else_=2,
    )


def _owned_exercises(user_id):
    return (
        db.session.query(Exercise)
        .join(Workout, Exercise.workout_id == Workout.id)
        .filter(Workout.user_id == user_id)
    )


def _number(v):
    if v is None:
        return 0
    f = float(v)
    return int(f) if f.is_integer() else f


# -----------------------------
# Streaks
# -----------------------------
def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        return datetime.fromisoformat(value[:10]).date()
    return value


def current_streak(days: Iterable, today: Optional[date] = None) -> int:
    """
    Consecutive workout days ending today, or yesterday if today has no
    workout yet.
    """
    today = today or datetime.utcnow().date()
    unique = sorted({_as_date(d) for d in days}, reverse=True)
    if not unique or (today - unique[0]).days > 1:
        return 0

    streak = 1
    for prev, cur in zip(unique, unique[1:]):
        if (prev - cur).days == 1:
            streak += 1
        else:
            break
    return streak


def longest_streak(days: Iterable) -> int:
    unique = sorted({_as_date(d) for d in days})
    if not unique:
        return 0

    longest = run = 1
    for prev, cur in zip(unique, unique[1:]):
        if (cur - prev).days == 1:
            run += 1
            longest = max(longest, run)
        else:
            run = 1
    return longest


def _workout_days(user_id) -> List[date]:
    rows = db.session.query(Workout.day).filter(Workout.user_id == user_id).all()
    return [_as_date(r[0]) for r in rows if r[0] is not None]


# -----------------------------
# Breakdowns
# -----------------------------
def _grouped_counts(user_id, column, fallback) -> Dict[str, Dict[str, Any]]:
    rows = (
        _owned_exercises(user_id)
        .with_entities(
            column,
            func.count(Exercise.id),
            func.coalesce(func.sum(Exercise.duration), 0),
        )
        .group_by(column)
        .all()
    )
    return {
        (key or fallback): {"count": int(count), "duration": _number(duration)}
        for key, count, duration in rows
    }


def category_statistics(user_id) -> Dict[str, Dict[str, Any]]:
    rows = (
        _owned_exercises(user_id)
        .with_entities(
            Exercise.category,
            func.count(Exercise.id),
            func.coalesce(func.sum(Exercise.duration), 0),
            func.avg(Exercise.duration),
            func.coalesce(func.sum(Exercise.calories_burned), 0),
        )
        .group_by(Exercise.category)
        .order_by(func.count(Exercise.id).desc())
        .all()
    )

    names = (
        _owned_exercises(user_id)
        .with_entities(Exercise.category, Exercise.name)
        .distinct()
        .order_by(Exercise.category, Exercise.name)
        .all()
    )
    names_by_category: Dict[str, List[str]] = {}
    for category, name in names:
        names_by_category.setdefault(category, []).append(name)

    stats = {}
    for category, count, total_duration, avg_duration, total_calories in rows:
        stats[category] = {
            "count": int(count),
            "total_duration": _number(total_duration),
            "average_duration": round(float(avg_duration or 0), 2),
            "total_calories": _number(total_calories),
            "popular_exercises": names_by_category.get(category, [])[:5],
        }
    return stats


# -----------------------------
# Summary
# -----------------------------
def empty_summary() -> Dict[str, Any]:
    return {
        "total_workouts": 0,
        "total_exercises": 0,
        "total_duration": 0,
        "average_duration": 0,
        "total_calories": 0,
        "total_volume": 0,
        "total_distance": 0,
        "category_stats": {},
        "intensity_stats": {},
        "equipment_stats": {},
        "weekly_workouts": 0,
        "monthly_workouts": 0,
        "last_workout_date": None,
        "current_streak": 0,
        "longest_streak": 0,
    }


def workout_summary(user_id, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.utcnow()

    total_workouts, last_day = (
        db.session.query(func.count(Workout.id), func.max(Workout.day))
        .filter(Workout.user_id == user_id)
        .one()
    )
    if not total_workouts:
        return empty_summary()

    totals = (
        _owned_exercises(user_id)
        .with_entities(
            func.count(Exercise.id),
            func.coalesce(func.sum(Exercise.duration), 0),
            func.coalesce(func.sum(Exercise.calories_burned), 0),
            func.coalesce(func.sum(Exercise.distance), 0),
            func.coalesce(func.sum(_volume_expr()), 0),
        )
        .one()
    )
    total_exercises, total_duration, total_calories, total_distance, total_volume = totals

    def _since(delta):
        return (
            db.session.query(func.count(Workout.id))
            .filter(Workout.user_id == user_id, Workout.day >= now - delta)
            .scalar()
        )

    days = _workout_days(user_id)

    return {
        "total_workouts": int(total_workouts),
        "total_exercises": int(total_exercises),
        "total_duration": _number(total_duration),
        "average_duration": round(float(total_duration) / total_workouts),
        "total_calories": _number(total_calories),
        "total_volume": _number(total_volume),
        "total_distance": _number(total_distance),
        "category_stats": category_statistics(user_id),
        "intensity_stats": _grouped_counts(user_id, Exercise.intensity, "moderate"),
        "equipment_stats": _grouped_counts(user_id, Exercise.equipment, "none"),
        "weekly_workouts": int(_since(timedelta(days=7)) or 0),
        "monthly_workouts": int(_since(timedelta(days=30)) or 0),
        "last_workout_date": last_day.isoformat() if last_day else None,
        "current_streak": current_streak(days, today=now.date()),
        "longest_streak": longest_streak(days),
    }


# -----------------------------
# Popular exercises
# -----------------------------
def popular_exercises(user_id, limit=20, category=None, exercise_type=None) -> List[Dict[str, Any]]:
    q = _owned_exercises(user_id)
    if category:
        q = q.filter(Exercise.category == category)
    if exercise_type:
        q = q.filter(Exercise.type == exercise_type)

    count_col = func.count(Exercise.id)
    rows = (
        q.with_entities(
            Exercise.name,
            Exercise.type,
            Exercise.category,
            count_col,
            func.coalesce(func.sum(Exercise.duration), 0),
            func.avg(Exercise.duration),
            func.coalesce(func.sum(_volume_expr(default_sets=1)), 0),
            func.coalesce(func.sum(Exercise.distance), 0),
            func.coalesce(func.sum(Exercise.calories_burned), 0),
            func.max(Workout.day),
            func.avg(_intensity_score_expr()),
        )
        .group_by(Exercise.name, Exercise.type, Exercise.category)
        .order_by(count_col.desc(), Exercise.name)
        .limit(limit)
        .all()
    )

    result = []
    for (
        name, ex_type, ex_category, count, total_duration, avg_duration,
        total_volume, total_distance, total_calories, last_performed, avg_score,
    ) in rows:
        result.append(
            {
                "name": name,
                "type": ex_type,
                "category": ex_category,
                "count": int(count),
                "total_duration": _number(total_duration),
                "average_duration": round(float(avg_duration or 0), 2),
                "total_volume": _number(total_volume),
                "total_distance": _number(total_distance),
                "total_calories": _number(total_calories),
                "last_performed": last_performed.isoformat() if last_performed else None,
                "average_intensity": intensity_label(float(avg_score) if avg_score is not None else None),
            }
        )
    return result
