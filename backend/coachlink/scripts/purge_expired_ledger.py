from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from coachlink.core.config import get_settings
from coachlink.database import SessionLocal
from coachlink.services.ledger import purge_expired


def purge(db: Session, now: datetime | None = None) -> int:
    removed = purge_expired(db, now=now)
    print(
        f"🧹 Removed {removed} expired ledger entries "
        f"(older than {get_settings().ledger_retention_days} days)"
    )
    return removed


def main() -> None:
    db = SessionLocal()
    try:
        purge(db)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
