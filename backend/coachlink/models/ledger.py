from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..core.dates import utcnow
from ..core.enums import LedgerKind
from ..database import Base


class LedgerEntry(Base):
    """A coach acknowledging a derived alert (dismissal) or win (celebration)."""

    __tablename__ = "ledger_entries"
    __table_args__ = (
        UniqueConstraint("coach_id", "kind", "item_id", name="ledger_entries_unique"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    coach_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    kind: Mapped[LedgerKind] = mapped_column(
        Enum(LedgerKind, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    item_id: Mapped[str] = mapped_column(String(200), nullable=False)
    acknowledged_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
