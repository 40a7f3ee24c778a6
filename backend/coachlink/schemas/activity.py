from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..core.enums import AssignmentStatus


class WorkoutCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)


class WorkoutRead(WorkoutCreate):
    id: int
    coach_id: int

    model_config = {"from_attributes": True}


class AssignmentCreate(BaseModel):
    client_id: int
    workout_id: int
    scheduled_date: Optional[date] = None


class AssignmentRead(AssignmentCreate):
    id: int
    status: AssignmentStatus

    model_config = {"from_attributes": True}


class CompletedWorkoutCreate(BaseModel):
    workout_id: Optional[int] = None
    workout_name: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class CompletedWorkoutRead(BaseModel):
    id: int
    client_id: int
    workout_id: Optional[int] = None
    workout_name: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class LiftCreate(BaseModel):
    exercise_id: str = Field(min_length=1, max_length=64)
    exercise_name: str = Field(min_length=1, max_length=120)
    weight: float = Field(gt=0)
    reps: Optional[int] = Field(default=None, ge=1)
    achieved_at: Optional[datetime] = None


class LiftResult(BaseModel):
    exercise_id: str
    best_weight: float
    previous_best_weight: Optional[float] = None
    is_record: bool


class NutritionLogCreate(BaseModel):
    logged_on: date
    calories: Optional[int] = Field(default=None, ge=0)
    protein_g: Optional[float] = Field(default=None, ge=0)


class NutritionLogRead(NutritionLogCreate):
    id: int
    client_id: int

    model_config = {"from_attributes": True}
