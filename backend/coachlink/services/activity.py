"""Client activity: recording lifts and loading the per-client snapshots that
the alert and win rules evaluate.

Snapshots are plain data so rule evaluation never touches a session and can
run on any thread.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.dates import as_utc, parse_activity_date, utcnow
from ..core.enums import AssignmentStatus
from ..models.activity import NutritionLog, PersonalBest, WorkoutAssignment, WorkoutHistory

logger = logging.getLogger(__name__)

# Longest streak milestone is a year; one extra day of history is enough to see it.
HISTORY_WINDOW_DAYS = 400


@dataclass(frozen=True)
class ClientRef:
    id: int
    name: str
    avatar_url: str | None = None


@dataclass(frozen=True)
class MissedWorkout:
    assignment_id: int
    workout_id: int
    workout_name: str
    scheduled_date: date


@dataclass(frozen=True)
class PersonalBestRecord:
    exercise_id: str
    exercise_name: str
    best_weight: float
    previous_best_weight: float | None
    achieved_at: datetime | str


@dataclass
class ClientSnapshot:
    client: ClientRef
    last_workout_at: datetime | str | None = None
    last_workout_name: str | None = None
    completed_at: list[datetime | str] = field(default_factory=list)
    missed_workouts: list[MissedWorkout] = field(default_factory=list)
    personal_bests: list[PersonalBestRecord] = field(default_factory=list)
    last_nutrition_on: date | None = None
    nutrition_dates: list[date] = field(default_factory=list)


def _missed_workouts(db: Session, client_id: int, today: date) -> list[MissedWorkout]:
    assignments = (
        db.query(WorkoutAssignment)
        .filter(
            WorkoutAssignment.client_id == client_id,
            WorkoutAssignment.status == AssignmentStatus.ACTIVE,
            WorkoutAssignment.scheduled_date.is_not(None),
            WorkoutAssignment.scheduled_date < today,
        )
        .all()
    )
    if not assignments:
        return []

    workout_ids = {assignment.workout_id for assignment in assignments}
    completions: dict[int, list[date]] = {}
    for workout_id, completed_at in (
        db.query(WorkoutHistory.workout_id, WorkoutHistory.completed_at)
        .filter(
            WorkoutHistory.client_id == client_id,
            WorkoutHistory.workout_id.in_(workout_ids),
            WorkoutHistory.completed_at.is_not(None),
        )
        .all()
    ):
        completed_on = parse_activity_date(completed_at)
        if completed_on is not None:
            completions.setdefault(workout_id, []).append(completed_on)

    missed = []
    for assignment in assignments:
        # Done on the scheduled day or any day after it counts as completed.
        done = any(
            completed_on >= assignment.scheduled_date
            for completed_on in completions.get(assignment.workout_id, [])
        )
        if not done:
            missed.append(
                MissedWorkout(
                    assignment_id=assignment.id,
                    workout_id=assignment.workout_id,
                    workout_name=assignment.workout.name if assignment.workout else "Workout",
                    scheduled_date=assignment.scheduled_date,
                )
            )
    return missed


def load_client_snapshot(db: Session, client: ClientRef, now: datetime) -> ClientSnapshot:
    settings = get_settings()
    now = as_utc(now)
    today = now.date()
    history_start = now - timedelta(days=HISTORY_WINDOW_DAYS)

    last = (
        db.query(WorkoutHistory.workout_name, WorkoutHistory.completed_at)
        .filter(
            WorkoutHistory.client_id == client.id,
            WorkoutHistory.completed_at.is_not(None),
        )
        .order_by(WorkoutHistory.completed_at.desc())
        .first()
    )
    completed_at = [
        value
        for (value,) in db.query(WorkoutHistory.completed_at)
        .filter(
            WorkoutHistory.client_id == client.id,
            WorkoutHistory.completed_at >= history_start,
        )
        .order_by(WorkoutHistory.completed_at.desc())
        .all()
    ]

    record_cutoff = now - timedelta(hours=settings.personal_record_window_hours)
    personal_bests = [
        PersonalBestRecord(
            exercise_id=row.exercise_id,
            exercise_name=row.exercise_name,
            best_weight=row.best_weight,
            previous_best_weight=row.previous_best_weight,
            achieved_at=row.achieved_at,
        )
        for row in db.query(PersonalBest)
        .filter(PersonalBest.client_id == client.id, PersonalBest.achieved_at >= record_cutoff)
        .all()
    ]

    last_nutrition = (
        db.query(NutritionLog.logged_on)
        .filter(NutritionLog.client_id == client.id)
        .order_by(NutritionLog.logged_on.desc())
        .first()
    )
    nutrition_dates = [
        logged_on
        for (logged_on,) in db.query(NutritionLog.logged_on)
        .filter(
            NutritionLog.client_id == client.id,
            NutritionLog.logged_on >= history_start.date(),
        )
        .distinct()
        .all()
    ]

    return ClientSnapshot(
        client=client,
        last_workout_at=last.completed_at if last else None,
        last_workout_name=last.workout_name if last else None,
        completed_at=completed_at,
        missed_workouts=_missed_workouts(db, client.id, today),
        personal_bests=personal_bests,
        last_nutrition_on=last_nutrition.logged_on if last_nutrition else None,
        nutrition_dates=nutrition_dates,
    )


def record_lift(
    db: Session,
    client_id: int,
    exercise_id: str,
    exercise_name: str,
    weight: float,
    reps: int | None = None,
    achieved_at: datetime | None = None,
) -> tuple[PersonalBest, bool]:
    """Fold a lift into the client's personal best for that exercise.

    Returns the personal best row and whether the lift beat an earlier best.
    The first lift of an exercise only sets a baseline.
    """
    stamp = achieved_at or utcnow()
    best = (
        db.query(PersonalBest)
        .filter(PersonalBest.client_id == client_id, PersonalBest.exercise_id == exercise_id)
        .first()
    )
    if best is None:
        best = PersonalBest(
            client_id=client_id,
            exercise_id=exercise_id,
            exercise_name=exercise_name,
            best_weight=weight,
            best_reps=reps,
            achieved_at=stamp,
        )
        db.add(best)
        is_record = False
    elif weight > best.best_weight:
        best.previous_best_weight = best.best_weight
        best.best_weight = weight
        best.best_reps = reps
        best.exercise_name = exercise_name
        best.achieved_at = stamp
        is_record = True
    else:
        is_record = False
    db.commit()
    db.refresh(best)
    if is_record:
        logger.info("Client %s set a new best on %s", client_id, exercise_id)
    return best, is_record
