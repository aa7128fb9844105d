# fittrack/models/workout.py
from datetime import datetime

from .. import db
from ..exercise_types import (
    CATEGORY_TO_WORKOUT_TYPE,
    INTENSITY_SCORES,
    intensity_label,
)
from .user import BigId


class Exercise(db.Model):
    """A single exercise entry. Exercises only exist inside a workout."""

    __tablename__ = "exercises"

    id = db.Column(BigId, primary_key=True)
    workout_id = db.Column(
        BigId, db.ForeignKey("workouts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = db.Column(db.Integer, nullable=False, default=0)

    type = db.Column(db.String(50), nullable=False, index=True)
    category = db.Column(db.String(30), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    duration = db.Column(db.Float, nullable=False, default=0)  # minutes

    intensity = db.Column(db.String(20), nullable=False, default="moderate")
    perceived_exertion = db.Column(db.Integer)
    equipment = db.Column(db.String(30), nullable=False, default="none")
    muscle_groups = db.Column(db.JSON, default=list)

    # cardio
    distance = db.Column(db.Float, default=0)  # km
    average_heart_rate = db.Column(db.Integer)
    max_heart_rate = db.Column(db.Integer)
    calories_burned = db.Column(db.Integer)

    # resistance
    weight = db.Column(db.Float, default=0)
    reps = db.Column(db.Integer, default=0)
    sets = db.Column(db.Integer, default=0)
    rest_between_sets = db.Column(db.Integer, default=60)  # seconds

    # flexibility
    stretch_hold_time = db.Column(db.Integer)
    range_of_motion_improvement = db.Column(db.String(20))

    notes = db.Column(db.String(500))
    performance_rating = db.Column(db.Integer)

    workout = db.relationship("Workout", back_populates="exercises")

    @property
    def total_volume(self) -> float:
        if self.category == "resistance" and self.weight and self.reps and self.sets:
            return self.weight * self.reps * self.sets
        return 0

    @property
    def calories_per_minute(self) -> float:
        if self.calories_burned and self.duration:
            return round(self.calories_burned / self.duration, 2)
        return 0

    @property
    def pace(self):
        """Minutes per km, formatted `m:ss min/km`, for cardio with a distance."""
        if self.category == "cardio" and self.distance and self.duration:
            per_km = self.duration / self.distance
            minutes = int(per_km)
            # halves round up
            seconds = int((per_km - minutes) * 60 + 0.5)
            if seconds == 60:
                minutes, seconds = minutes + 1, 0
            return f"{minutes}:{seconds:02d} min/km"
        return None

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "category": self.category,
            "name": self.name,
            "duration": self.duration,
            "intensity": self.intensity,
            "perceived_exertion": self.perceived_exertion,
            "equipment": self.equipment,
            "muscle_groups": self.muscle_groups or [],
            "distance": self.distance,
            "average_heart_rate": self.average_heart_rate,
            "max_heart_rate": self.max_heart_rate,
            "calories_burned": self.calories_burned,
            "weight": self.weight,
            "reps": self.reps,
            "sets": self.sets,
            "rest_between_sets": self.rest_between_sets,
            "stretch_hold_time": self.stretch_hold_time,
            "range_of_motion_improvement": self.range_of_motion_improvement,
            "notes": self.notes,
            "performance_rating": self.performance_rating,
            # derived
            "total_volume": self.total_volume,
            "calories_per_minute": self.calories_per_minute,
            "pace": self.pace,
        }


class Workout(db.Model):
    __tablename__ = "workouts"

    id = db.Column(BigId, primary_key=True)
    # NULL only for rows created before workouts had owners
    user_id = db.Column(BigId, db.ForeignKey("users.id"), nullable=True, index=True)
    day = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    title = db.Column(db.String(100))
    description = db.Column(db.String(500))
    location = db.Column(db.String(20), nullable=False, default="gym")
    workout_type = db.Column(db.String(20), nullable=False, default="mixed")
    difficulty = db.Column(db.String(20), nullable=False, default="intermediate")
    overall_rating = db.Column(db.Integer)
    mood = db.Column(db.String(20))
    notes = db.Column(db.String(1000))

    goals = db.Column(db.JSON, default=list)
    achievements = db.Column(db.JSON, default=list)
    personal_records = db.Column(db.JSON, default=list)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    user = db.relationship("User", back_populates="workouts")
    exercises = db.relationship(
        "Exercise",
        back_populates="workout",
        cascade="all, delete-orphan",
        order_by="Exercise.position",
    )

    # -----------------------------
    # Exercise management
    # -----------------------------
    def add_exercise(self, values) -> Exercise:
        exercise = Exercise(position=len(self.exercises), **values)
        self.exercises.append(exercise)
        self.touch()
        return exercise

    def replace_exercises(self, values_list) -> None:
        self.exercises = [
            Exercise(position=i, **values) for i, values in enumerate(values_list)
        ]
        self.touch()

    def remove_exercise(self, exercise_id) -> bool:
        for exercise in self.exercises:
            if exercise.id == exercise_id:
                self.exercises.remove(exercise)
                for i, remaining in enumerate(self.exercises):
                    remaining.position = i
                self.touch()
                return True
        return False

    def exercises_by_category(self, category):
        return [e for e in self.exercises if e.category == category]

    def exercises_by_type(self, exercise_type):
        return [e for e in self.exercises if e.type == exercise_type]

    def touch(self) -> None:
        # exercise-only changes do not dirty the workout row
        self.updated_at = datetime.utcnow()

    def refresh_derived_fields(self) -> None:
        """Infer the workout type and a default title from the exercises."""
        if not self.workout_type or self.workout_type == "mixed":
            categories = {e.category for e in self.exercises}
            if len(categories) == 1:
                self.workout_type = CATEGORY_TO_WORKOUT_TYPE.get(categories.pop(), "mixed")
            else:
                self.workout_type = "mixed"

        if not self.title:
            day = self.day or datetime.utcnow()
            primary = self.exercises[0].category if self.exercises else "workout"
            label = primary[:1].upper() + primary[1:]
            self.title = f"{label} - {day.month}/{day.day}/{day.year}"

    # -----------------------------
    # Derived statistics
    # -----------------------------
    @property
    def total_duration(self) -> float:
        return sum(e.duration or 0 for e in self.exercises)

    @property
    def exercise_count(self) -> int:
        return len(self.exercises)

    @property
    def total_calories(self) -> int:
        return sum(e.calories_burned or 0 for e in self.exercises)

    @property
    def total_volume(self) -> float:
        return sum(e.total_volume for e in self.exercises)

    @property
    def total_distance(self) -> float:
        return sum(e.distance or 0 for e in self.exercises)

    @property
    def category_breakdown(self):
        breakdown = {}
        for e in self.exercises:
            entry = breakdown.setdefault(
                e.category or "other", {"count": 0, "duration": 0, "exercises": []}
            )
            entry["count"] += 1
            entry["duration"] += e.duration or 0
            entry["exercises"].append(e.name)
        return breakdown

    @property
    def intensity_breakdown(self):
        breakdown = {}
        for e in self.exercises:
            entry = breakdown.setdefault(e.intensity or "moderate", {"count": 0, "duration": 0})
            entry["count"] += 1
            entry["duration"] += e.duration or 0
        return breakdown

    @property
    def average_intensity(self) -> str:
        if not self.exercises:
            return "moderate"
        total = sum(INTENSITY_SCORES.get(e.intensity, 2) for e in self.exercises)
        return intensity_label(total / len(self.exercises))

    def calculate_workout_stats(self):
        return {
            "total_duration": self.total_duration,
            "exercise_count": self.exercise_count,
            "total_calories": self.total_calories,
            "total_volume": self.total_volume,
            "total_distance": self.total_distance,
            "category_breakdown": self.category_breakdown,
            "intensity_breakdown": self.intensity_breakdown,
            "average_intensity": self.average_intensity,
        }

    def to_summary_dict(self):
        return {
            "id": self.id,
            "day": self.day.isoformat() if self.day else None,
            "title": self.title,
            "workout_type": self.workout_type,
            "exercise_count": self.exercise_count,
            "total_duration": self.total_duration,
        }

    def to_dict(self):
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "day": self.day.isoformat() if self.day else None,
            "exercises": [e.to_dict() for e in self.exercises],
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "workout_type": self.workout_type,
            "difficulty": self.difficulty,
            "overall_rating": self.overall_rating,
            "mood": self.mood,
            "notes": self.notes,
            "goals": self.goals or [],
            "achievements": self.achievements or [],
            "personal_records": self.personal_records or [],
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        data.update(self.calculate_workout_stats())
        return data
