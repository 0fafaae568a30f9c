"""
Snowflake repositories for the training catalogue.

Exercises are the building blocks; workouts reference exercises and
workout splits reference workouts. References are checked against the
caller's own catalogue on every write.
"""

import logging
from datetime import datetime
from typing import Any

from coachdesk.core.coaching.models import (
    Difficulty,
    Exercise,
    ScheduleDay,
    Workout,
    WorkoutExercise,
    WorkoutSplit,
)

from .base import OwnedRepository, SnowflakeConnection, enum_value

logger = logging.getLogger(__name__)


class ExerciseRepository(OwnedRepository[Exercise]):
    table = "exercises"
    kind = "Exercise"
    model = Exercise
    updatable_fields = frozenset({
        "name", "description", "muscle_groups", "equipment", "instructions",
        "cues", "difficulty", "images", "video",
    })

    def _creation_defaults(self) -> dict[str, Any]:
        return {"images": []}

    def _to_document(self, record: Exercise) -> dict:
        return {
            "coach_id": record.coach_id,
            "name": record.name,
            "description": record.description,
            "muscle_groups": list(record.muscle_groups),
            "equipment": list(record.equipment),
            "instructions": list(record.instructions),
            "cues": list(record.cues),
            "difficulty": enum_value(record.difficulty),
            "images": list(record.images),
            "video": record.video,
        }

    def _from_document(self, record_id: str, created_at: datetime, document: dict) -> Exercise:
        return Exercise(
            id=record_id,
            coach_id=document["coach_id"],
            name=document["name"],
            description=document.get("description", ""),
            muscle_groups=document.get("muscle_groups") or [],
            equipment=document.get("equipment") or [],
            instructions=document.get("instructions") or [],
            cues=document.get("cues") or [],
            difficulty=Difficulty(document.get("difficulty", "beginner")),
            images=document.get("images") or [],
            video=document.get("video"),
            created_at=created_at,
        )


class WorkoutRepository(OwnedRepository[Workout]):
    table = "workouts"
    kind = "Workout"
    model = Workout

    def __init__(self, connection: SnowflakeConnection) -> None:
        super().__init__(connection)
        self._exercises = ExerciseRepository(connection)

    def _check_references(self, caller_id: str, record: Workout) -> None:
        for slot in record.exercises:
            self._require_owned(self._exercises, caller_id, slot.exercise_id)

    def _to_document(self, record: Workout) -> dict:
        return {
            "coach_id": record.coach_id,
            "name": record.name,
            "description": record.description,
            "exercises": [
                {
                    "exercise_id": slot.exercise_id,
                    "sets": slot.sets,
                    "reps": slot.reps,
                    "weight": slot.weight,
                    "rest_time": slot.rest_time,
                    "notes": slot.notes,
                }
                for slot in record.exercises
            ],
            "estimated_duration": record.estimated_duration,
            "is_template": record.is_template,
        }

    def _from_document(self, record_id: str, created_at: datetime, document: dict) -> Workout:
        return Workout(
            id=record_id,
            coach_id=document["coach_id"],
            name=document["name"],
            description=document.get("description"),
            exercises=[WorkoutExercise(**slot) for slot in document.get("exercises") or []],
            estimated_duration=document.get("estimated_duration"),
            is_template=document.get("is_template", False),
            created_at=created_at,
        )


class WorkoutSplitRepository(OwnedRepository[WorkoutSplit]):
    table = "workout_splits"
    kind = "Workout split"
    model = WorkoutSplit

    def __init__(self, connection: SnowflakeConnection) -> None:
        super().__init__(connection)
        self._workouts = WorkoutRepository(connection)

    def _check_references(self, caller_id: str, record: WorkoutSplit) -> None:
        for day in record.schedule:
            self._require_owned(self._workouts, caller_id, day.workout_id)

    def _to_document(self, record: WorkoutSplit) -> dict:
        return {
            "coach_id": record.coach_id,
            "name": record.name,
            "description": record.description,
            "schedule": [
                {
                    "day": day.day,
                    "workout_id": day.workout_id,
                    "is_rest_day": day.is_rest_day,
                    "notes": day.notes,
                }
                for day in record.schedule
            ],
            "is_template": record.is_template,
        }

    def _from_document(self, record_id: str, created_at: datetime, document: dict) -> WorkoutSplit:
        return WorkoutSplit(
            id=record_id,
            coach_id=document["coach_id"],
            name=document["name"],
            description=document.get("description"),
            schedule=[ScheduleDay(**day) for day in document.get("schedule") or []],
            is_template=document.get("is_template", False),
            created_at=created_at,
        )
