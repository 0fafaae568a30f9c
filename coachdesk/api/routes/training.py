"""
Training catalogue API endpoints: exercises, workouts and workout splits.

Workouts may only use the coach's own exercises, and splits only the
coach's own workouts.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Response, status
from pydantic import BaseModel, Field

from ...core.coaching.models import Difficulty, ScheduleDay, WorkoutExercise
from ..dependencies import (
    CurrentCoach,
    ExerciseRepositoryDep,
    WorkoutRepositoryDep,
    WorkoutSplitRepositoryDep,
)
from ..schemas import CreatedResponse, DomainResponse, require_own_media

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class ExerciseCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    muscle_groups: list[str] = Field(default_factory=list)
    equipment: list[str] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    cues: list[str] = Field(default_factory=list)
    difficulty: Difficulty = Difficulty.BEGINNER
    video: Optional[str] = Field(None, description="Storage key of a demo video")


class ExerciseUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    muscle_groups: Optional[list[str]] = None
    equipment: Optional[list[str]] = None
    instructions: Optional[list[str]] = None
    cues: Optional[list[str]] = None
    difficulty: Optional[Difficulty] = None
    images: Optional[list[str]] = Field(None, description="Storage keys from /uploads, in display order")
    video: Optional[str] = Field(None, description="Storage key from /uploads; null removes the video")


class ExerciseResponse(DomainResponse):
    id: str
    name: str
    description: str
    muscle_groups: list[str]
    equipment: list[str]
    instructions: list[str]
    cues: list[str]
    difficulty: Difficulty
    images: list[str]
    video: Optional[str] = None


class WorkoutExerciseModel(DomainResponse):
    exercise_id: str
    sets: int = Field(ge=1)
    reps: Optional[str] = Field(None, description='Free text, e.g. "8-12" or "AMRAP"')
    weight: Optional[str] = None
    rest_time: Optional[str] = None
    notes: Optional[str] = None


class WorkoutCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    exercises: list[WorkoutExerciseModel] = Field(default_factory=list)
    estimated_duration: Optional[int] = Field(None, ge=0, description="Minutes")
    is_template: bool = False


class WorkoutResponse(DomainResponse):
    id: str
    name: str
    description: Optional[str] = None
    exercises: list[WorkoutExerciseModel]
    estimated_duration: Optional[int] = None
    is_template: bool
    created_at: datetime


class ScheduleDayModel(DomainResponse):
    day: int = Field(ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    workout_id: Optional[str] = None
    is_rest_day: bool = False
    notes: Optional[str] = None


class WorkoutSplitCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    schedule: list[ScheduleDayModel] = Field(default_factory=list)
    is_template: bool = False


class WorkoutSplitResponse(DomainResponse):
    id: str
    name: str
    description: Optional[str] = None
    schedule: list[ScheduleDayModel]
    is_template: bool


# ---------------------------------------------------------------------------
# Exercises
# ---------------------------------------------------------------------------

@router.get("/exercises", response_model=list[ExerciseResponse], summary="List my exercises")
async def list_exercises(
    coach_id: CurrentCoach,
    repository: ExerciseRepositoryDep,
) -> list[ExerciseResponse]:
    return [
        ExerciseResponse.model_validate(e, from_attributes=True)
        for e in repository.list_mine(coach_id)
    ]


@router.post(
    "/exercises",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add an exercise to my library",
)
async def create_exercise(
    request: ExerciseCreateRequest,
    coach_id: CurrentCoach,
    repository: ExerciseRepositoryDep,
) -> CreatedResponse:
    return CreatedResponse(id=repository.create(coach_id, **request.model_dump()))


def _not_found(kind: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{kind} not found")


@router.get(
    "/exercises/{exercise_id}",
    response_model=ExerciseResponse,
    summary="Get an exercise",
    responses={404: {"description": "Exercise not found"}},
)
async def get_exercise(
    exercise_id: str,
    coach_id: CurrentCoach,
    repository: ExerciseRepositoryDep,
) -> ExerciseResponse:
    exercise = repository.get(coach_id, exercise_id)
    if exercise is None:
        raise _not_found("Exercise")
    return ExerciseResponse.model_validate(exercise, from_attributes=True)


@router.patch(
    "/exercises/{exercise_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Update an exercise",
    description="Attach uploaded images or a demo video, or edit the description.",
)
async def update_exercise(
    exercise_id: str,
    request: ExerciseUpdateRequest,
    coach_id: CurrentCoach,
    repository: ExerciseRepositoryDep,
) -> Response:
    changes = {
        key: value
        for key, value in request.model_dump(exclude_unset=True).items()
        if value is not None or key == "video"
    }
    require_own_media(coach_id, changes.get("images") or [])
    if changes.get("video"):
        require_own_media(coach_id, [changes["video"]])

    repository.update(coach_id, exercise_id, changes)
    logger.info(
        "Exercise updated",
        extra={"exercise_id": exercise_id, "fields": sorted(changes)}
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Workouts
# ---------------------------------------------------------------------------

@router.get("/workouts", response_model=list[WorkoutResponse], summary="List my workouts")
async def list_workouts(
    coach_id: CurrentCoach,
    repository: WorkoutRepositoryDep,
) -> list[WorkoutResponse]:
    return [
        WorkoutResponse.model_validate(w, from_attributes=True)
        for w in repository.list_mine(coach_id)
    ]


@router.post(
    "/workouts",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Build a workout",
)
async def create_workout(
    request: WorkoutCreateRequest,
    coach_id: CurrentCoach,
    repository: WorkoutRepositoryDep,
) -> CreatedResponse:
    fields = request.model_dump(exclude={"exercises"})
    fields["exercises"] = [WorkoutExercise(**slot.model_dump()) for slot in request.exercises]

    workout_id = repository.create(coach_id, **fields)
    logger.info(
        "Workout created",
        extra={"workout_id": workout_id, "exercise_count": len(request.exercises)}
    )
    return CreatedResponse(id=workout_id)


@router.get(
    "/workouts/{workout_id}",
    response_model=WorkoutResponse,
    summary="Get a workout",
    responses={404: {"description": "Workout not found"}},
)
async def get_workout(
    workout_id: str,
    coach_id: CurrentCoach,
    repository: WorkoutRepositoryDep,
) -> WorkoutResponse:
    workout = repository.get(coach_id, workout_id)
    if workout is None:
        raise _not_found("Workout")
    return WorkoutResponse.model_validate(workout, from_attributes=True)


# ---------------------------------------------------------------------------
# Workout Splits
# ---------------------------------------------------------------------------

@router.get(
    "/workout-splits",
    response_model=list[WorkoutSplitResponse],
    summary="List my workout splits",
)
async def list_workout_splits(
    coach_id: CurrentCoach,
    repository: WorkoutSplitRepositoryDep,
) -> list[WorkoutSplitResponse]:
    return [
        WorkoutSplitResponse.model_validate(s, from_attributes=True)
        for s in repository.list_mine(coach_id)
    ]


@router.post(
    "/workout-splits",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a weekly workout split",
)
async def create_workout_split(
    request: WorkoutSplitCreateRequest,
    coach_id: CurrentCoach,
    repository: WorkoutSplitRepositoryDep,
) -> CreatedResponse:
    fields = request.model_dump(exclude={"schedule"})
    fields["schedule"] = [ScheduleDay(**day.model_dump()) for day in request.schedule]

    return CreatedResponse(id=repository.create(coach_id, **fields))


@router.get(
    "/workout-splits/{split_id}",
    response_model=WorkoutSplitResponse,
    summary="Get a workout split",
    responses={404: {"description": "Workout split not found"}},
)
async def get_workout_split(
    split_id: str,
    coach_id: CurrentCoach,
    repository: WorkoutSplitRepositoryDep,
) -> WorkoutSplitResponse:
    split = repository.get(coach_id, split_id)
    if split is None:
        raise _not_found("Workout split")
    return WorkoutSplitResponse.model_validate(split, from_attributes=True)
