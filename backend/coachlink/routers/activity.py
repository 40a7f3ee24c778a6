from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..core.dates import utcnow
from ..core.enums import AssignmentStatus, UserRole
from ..database import get_db
from ..dependencies import ensure_client_access, require_role
from ..models.activity import NutritionLog, Workout, WorkoutAssignment, WorkoutHistory
from ..models.user import User
from ..schemas.activity import (
    AssignmentCreate,
    AssignmentRead,
    CompletedWorkoutCreate,
    CompletedWorkoutRead,
    LiftCreate,
    LiftResult,
    NutritionLogCreate,
    NutritionLogRead,
    WorkoutCreate,
    WorkoutRead,
)
from ..services.activity import record_lift

router = APIRouter(prefix="/activity", tags=["activity"])


@router.post("/workouts", response_model=WorkoutRead, status_code=status.HTTP_201_CREATED)
def create_workout(
    payload: WorkoutCreate,
    current_user: User = Depends(require_role(UserRole.COACH)),
    db: Session = Depends(get_db),
) -> Workout:
    workout = Workout(coach_id=current_user.id, name=payload.name)
    db.add(workout)
    db.commit()
    db.refresh(workout)
    return workout


@router.get("/workouts", response_model=list[WorkoutRead])
def list_workouts(
    current_user: User = Depends(require_role(UserRole.COACH)),
    db: Session = Depends(get_db),
) -> list[Workout]:
    return db.query(Workout).filter(Workout.coach_id == current_user.id).order_by(Workout.id).all()


@router.post("/assignments", response_model=AssignmentRead, status_code=status.HTTP_201_CREATED)
def assign_workout(
    payload: AssignmentCreate,
    current_user: User = Depends(require_role(UserRole.COACH)),
    db: Session = Depends(get_db),
) -> WorkoutAssignment:
    ensure_client_access(payload.client_id, current_user=current_user, db=db)
    workout = db.get(Workout, payload.workout_id)
    if not workout or workout.coach_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workout not found.")
    assignment = WorkoutAssignment(
        client_id=payload.client_id,
        workout_id=workout.id,
        scheduled_date=payload.scheduled_date,
        status=AssignmentStatus.ACTIVE,
    )
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    return assignment


@router.post("/assignments/{assignment_id}/archive", response_model=AssignmentRead)
def archive_assignment(
    assignment_id: int,
    current_user: User = Depends(require_role(UserRole.COACH)),
    db: Session = Depends(get_db),
) -> WorkoutAssignment:
    assignment = db.get(WorkoutAssignment, assignment_id)
    if not assignment or assignment.workout.coach_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment not found.")
    assignment.status = AssignmentStatus.ARCHIVED
    db.commit()
    db.refresh(assignment)
    return assignment


@router.get("/assignments/client/{client_id}", response_model=list[AssignmentRead])
def list_client_assignments(
    client_id: int,
    current_user: User = Depends(ensure_client_access),
    db: Session = Depends(get_db),
) -> list[WorkoutAssignment]:
    return (
        db.query(WorkoutAssignment)
        .filter(WorkoutAssignment.client_id == client_id)
        .order_by(WorkoutAssignment.scheduled_date.desc(), WorkoutAssignment.id.desc())
        .all()
    )


@router.post("/history", response_model=CompletedWorkoutRead, status_code=status.HTTP_201_CREATED)
def log_completed_workout(
    payload: CompletedWorkoutCreate,
    current_user: User = Depends(require_role(UserRole.CLIENT)),
    db: Session = Depends(get_db),
) -> WorkoutHistory:
    name = payload.workout_name
    if payload.workout_id is not None:
        workout = db.get(Workout, payload.workout_id)
        if not workout:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workout not found.")
        name = name or workout.name
    entry = WorkoutHistory(
        client_id=current_user.id,
        workout_id=payload.workout_id,
        workout_name=name,
        started_at=payload.started_at,
        completed_at=payload.completed_at or utcnow(),
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


@router.get("/history/client/{client_id}", response_model=list[CompletedWorkoutRead])
def list_client_history(
    client_id: int,
    current_user: User = Depends(ensure_client_access),
    db: Session = Depends(get_db),
    start_date: date | None = Query(default=None),
) -> list[WorkoutHistory]:
    query = db.query(WorkoutHistory).filter(WorkoutHistory.client_id == client_id)
    if start_date:
        query = query.filter(WorkoutHistory.completed_at >= start_date)
    return query.order_by(WorkoutHistory.completed_at.desc()).all()


@router.post("/lifts", response_model=LiftResult, status_code=status.HTTP_201_CREATED)
def log_lift(
    payload: LiftCreate,
    current_user: User = Depends(require_role(UserRole.CLIENT)),
    db: Session = Depends(get_db),
) -> LiftResult:
    best, is_record = record_lift(
        db,
        current_user.id,
        exercise_id=payload.exercise_id,
        exercise_name=payload.exercise_name,
        weight=payload.weight,
        reps=payload.reps,
        achieved_at=payload.achieved_at,
    )
    return LiftResult(
        exercise_id=best.exercise_id,
        best_weight=best.best_weight,
        previous_best_weight=best.previous_best_weight,
        is_record=is_record,
    )


@router.post("/nutrition", response_model=NutritionLogRead, status_code=status.HTTP_201_CREATED)
def log_nutrition(
    payload: NutritionLogCreate,
    current_user: User = Depends(require_role(UserRole.CLIENT)),
    db: Session = Depends(get_db),
) -> NutritionLog:
    entry = NutritionLog(client_id=current_user.id, **payload.model_dump())
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


@router.get("/nutrition/client/{client_id}", response_model=list[NutritionLogRead])
def list_client_nutrition(
    client_id: int,
    current_user: User = Depends(ensure_client_access),
    db: Session = Depends(get_db),
) -> list[NutritionLog]:
    return (
        db.query(NutritionLog)
        .filter(NutritionLog.client_id == client_id)
        .order_by(NutritionLog.logged_on.desc())
        .all()
    )
