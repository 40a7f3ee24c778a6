from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from coachlink.core.dates import utcnow
from coachlink.core.enums import AssignmentStatus, ConnectionStatus, UserRole
from coachlink.core.security import get_password_hash
from coachlink.database import SessionLocal
from coachlink.models.activity import NutritionLog, Workout, WorkoutAssignment, WorkoutHistory
from coachlink.models.connection import Connection
from coachlink.models.user import User
from coachlink.services.activity import record_lift
from coachlink.services.invite_codes import get_or_create_code


def ensure_user(
    db: Session,
    *,
    name: str,
    email: str,
    role: UserRole,
    password: str,
) -> User:
    user = db.query(User).filter_by(email=email).first()
    if user:
        return user
    user = User(
        name=name,
        email=email,
        role=role,
        password_hash=get_password_hash(password),
    )
    db.add(user)
    db.flush()
    return user


def ensure_connection(db: Session, *, coach: User, client: User) -> Connection:
    connection = (
        db.query(Connection)
        .filter(
            Connection.coach_id == coach.id,
            Connection.client_id == client.id,
            Connection.status == ConnectionStatus.ACCEPTED,
        )
        .first()
    )
    if connection:
        return connection
    connection = Connection(
        coach_id=coach.id,
        client_id=client.id,
        status=ConnectionStatus.ACCEPTED,
        responded_at=utcnow(),
    )
    db.add(connection)
    db.flush()
    return connection


def seed_training(db: Session, *, coach: User, client: User, now: datetime) -> None:
    """A week of daily workouts, one missed assignment and a fresh bench PR."""
    if db.query(WorkoutHistory).filter(WorkoutHistory.client_id == client.id).first():
        return
    workout = Workout(coach_id=coach.id, name="Full Body A")
    conditioning = Workout(coach_id=coach.id, name="Conditioning")
    db.add_all([workout, conditioning])
    db.flush()
    for offset in range(7):
        db.add(
            WorkoutHistory(
                client_id=client.id,
                workout_id=workout.id,
                workout_name=workout.name,
                completed_at=now - timedelta(days=offset),
            )
        )
    db.add(
        WorkoutAssignment(
            client_id=client.id,
            workout_id=conditioning.id,
            scheduled_date=(now - timedelta(days=10)).date(),
            status=AssignmentStatus.ACTIVE,
        )
    )
    db.add(NutritionLog(client_id=client.id, logged_on=(now - timedelta(days=4)).date(), calories=2200))
    db.commit()
    record_lift(db, client.id, "bench", "Bench Press", 80, achieved_at=now - timedelta(days=30))
    record_lift(db, client.id, "bench", "Bench Press", 85, achieved_at=now - timedelta(hours=3))


def seed(db: Session, now: datetime | None = None) -> dict[str, User]:
    now = now or utcnow()
    coach = ensure_user(
        db,
        name="Coach Demo",
        email="coach@example.com",
        role=UserRole.COACH,
        password="secret123",
    )
    active = ensure_user(
        db,
        name="Alex Active",
        email="alex@example.com",
        role=UserRole.CLIENT,
        password="secret123",
    )
    quiet = ensure_user(
        db,
        name="Quinn Quiet",
        email="quinn@example.com",
        role=UserRole.CLIENT,
        password="secret123",
    )
    ensure_connection(db, coach=coach, client=active)
    ensure_connection(db, coach=coach, client=quiet)
    db.commit()
    get_or_create_code(db, coach)
    seed_training(db, coach=coach, client=active, now=now)
    return {"coach": coach, "active": active, "quiet": quiet}


def main() -> None:
    db = SessionLocal()
    try:
        users = seed(db)
        print(
            "✅ Seed data ready. Coach invite code: "
            f"{users['coach'].invite_code} (users coach/alex/quinn@example.com, pass: secret123)"
        )
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
