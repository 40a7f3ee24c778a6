import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.dates import utcnow
from ..core.enums import ConnectionStatus
from ..database import Base
from .user import User


def _new_connection_id() -> str:
    return str(uuid.uuid4())


class Connection(Base):
    __tablename__ = "coach_client_connections"
    __table_args__ = (
        # At most one live (pending or accepted) connection per pair.
        Index(
            "uq_connections_live_pair",
            "coach_id",
            "client_id",
            unique=True,
            sqlite_where=text("status != 'declined'"),
            postgresql_where=text("status != 'declined'"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_connection_id)
    coach_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    client_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    status: Mapped[ConnectionStatus] = mapped_column(
        Enum(
            ConnectionStatus,
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=ConnectionStatus.PENDING,
        nullable=False,
    )
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    responded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    coach: Mapped[User] = relationship("User", foreign_keys=[coach_id], lazy="joined")
    client: Mapped[User] = relationship("User", foreign_keys=[client_id], lazy="joined")
