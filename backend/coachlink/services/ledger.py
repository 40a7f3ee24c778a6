"""
Per-coach record of dismissed alerts and celebrated wins.

Entries expire lazily: anything acknowledged more than the retention window
ago is ignored at read time, so an alert whose condition still holds comes
back. `purge_expired` only reclaims space.
"""
import logging
from datetime import datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.dates import as_utc, utcnow
from ..core.enums import LedgerKind
from ..models.ledger import LedgerEntry

logger = logging.getLogger(__name__)


def _retention() -> timedelta:
    return timedelta(days=get_settings().ledger_retention_days)


def is_expired(acknowledged_at: datetime, now: datetime) -> bool:
    return as_utc(now) - as_utc(acknowledged_at) > _retention()


def _find_entry(db: Session, coach_id: int, kind: LedgerKind, item_id: str) -> LedgerEntry | None:
    return (
        db.query(LedgerEntry)
        .filter(
            LedgerEntry.coach_id == coach_id,
            LedgerEntry.kind == kind,
            LedgerEntry.item_id == item_id,
        )
        .first()
    )


def _record(
    db: Session, coach_id: int, kind: LedgerKind, item_id: str, now: datetime | None
) -> LedgerEntry:
    stamp = now or utcnow()
    entry = _find_entry(db, coach_id, kind, item_id)
    if entry is None:
        entry = LedgerEntry(coach_id=coach_id, kind=kind, item_id=item_id, acknowledged_at=stamp)
        db.add(entry)
    else:
        entry.acknowledged_at = stamp
    try:
        db.commit()
    except IntegrityError:
        # A concurrent acknowledgement inserted the row first.
        db.rollback()
        entry = _find_entry(db, coach_id, kind, item_id)
        if entry is None:
            raise
        entry.acknowledged_at = stamp
        db.commit()
    db.refresh(entry)
    return entry


def dismiss(db: Session, coach_id: int, alert_id: str, now: datetime | None = None) -> LedgerEntry:
    logger.debug("Coach %s dismissed alert %s", coach_id, alert_id)
    return _record(db, coach_id, LedgerKind.DISMISSAL, alert_id, now)


def restore(db: Session, coach_id: int, alert_id: str) -> bool:
    result = db.execute(
        delete(LedgerEntry).where(
            LedgerEntry.coach_id == coach_id,
            LedgerEntry.kind == LedgerKind.DISMISSAL,
            LedgerEntry.item_id == alert_id,
        ).execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount > 0


def celebrate(db: Session, coach_id: int, win_id: str, now: datetime | None = None) -> LedgerEntry:
    logger.debug("Coach %s celebrated win %s", coach_id, win_id)
    return _record(db, coach_id, LedgerKind.CELEBRATION, win_id, now)


def active_item_ids(
    db: Session, coach_id: int, kind: LedgerKind, now: datetime | None = None
) -> set[str]:
    now = now or utcnow()
    rows = (
        db.query(LedgerEntry.item_id, LedgerEntry.acknowledged_at)
        .filter(LedgerEntry.coach_id == coach_id, LedgerEntry.kind == kind)
        .all()
    )
    return {item_id for item_id, acknowledged_at in rows if not is_expired(acknowledged_at, now)}


def purge_expired(db: Session, now: datetime | None = None) -> int:
    cutoff = (now or utcnow()) - _retention()
    result = db.execute(
        delete(LedgerEntry)
        .where(LedgerEntry.acknowledged_at < cutoff)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    if result.rowcount:
        logger.info("Purged %d expired ledger entries", result.rowcount)
    return result.rowcount
