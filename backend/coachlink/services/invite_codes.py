import logging
import secrets
import time
from typing import Callable

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.enums import ErrorCode, UserRole
from ..core.errors import ConnectionFailure, rpc_operation
from ..models.user import User
from ..schemas.rpc import CoachPreview, CoachPreviewResult, CoachPreviewSuccess

logger = logging.getLogger(__name__)

# No 0/O or 1/I, they are easy to misread when a code is shared verbally.
INVITE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def timestamp_code(now_ms: int | None = None, length: int = 6) -> str:
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return _to_base36(now_ms)[-length:].upper()


def code_in_use(db: Session, code: str) -> bool:
    return db.query(User.id).filter(User.invite_code == code).first() is not None


def generate_unique_code(
    db: Session,
    choice: Callable[[str], str] = secrets.choice,
    now_ms: int | None = None,
) -> str:
    settings = get_settings()
    for attempt in range(1, settings.invite_code_max_attempts + 1):
        code = "".join(choice(INVITE_CODE_ALPHABET) for _ in range(settings.invite_code_length))
        if not code_in_use(db, code):
            return code
        logger.debug("Invite code collision on attempt %d", attempt)
    logger.warning(
        "No free invite code after %d attempts, falling back to timestamp code",
        settings.invite_code_max_attempts,
    )
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    code = timestamp_code(now_ms, settings.invite_code_length)
    while code_in_use(db, code):
        now_ms += 1
        code = timestamp_code(now_ms, settings.invite_code_length)
    return code


def get_or_create_code(
    db: Session,
    coach: User,
    choice: Callable[[str], str] = secrets.choice,
) -> str:
    if coach.invite_code:
        return coach.invite_code
    coach_id = coach.id
    coach.invite_code = generate_unique_code(db, choice=choice)
    try:
        db.commit()
    except IntegrityError:
        # Another coach took the same code between the check and the write.
        db.rollback()
        db.refresh(coach)
        if coach.invite_code:
            return coach.invite_code
        logger.info("Invite code collided on write for coach %s, drawing again", coach_id)
        coach.invite_code = generate_unique_code(db, choice=choice)
        db.commit()
    db.refresh(coach)
    logger.info("Issued invite code for coach %s", coach_id)
    return coach.invite_code


def find_coach_by_code(db: Session, code: str) -> User | None:
    normalized = code.strip().upper()
    if not normalized:
        return None
    return (
        db.query(User)
        .filter(func.upper(User.invite_code) == normalized, User.role == UserRole.COACH)
        .first()
    )


@rpc_operation
def resolve_code(db: Session, code: str) -> CoachPreviewResult:
    coach = find_coach_by_code(db, code)
    if coach is None:
        raise ConnectionFailure(ErrorCode.NOT_FOUND, "No coach found with this invite code")
    return CoachPreviewSuccess(coach=CoachPreview.model_validate(coach))
