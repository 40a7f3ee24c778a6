"""
Coach-client connection lifecycle.

    pending --accept--> accepted --disconnect--> (deleted)
    pending --decline--> declined

A declined connection stays on record but does not block a new request for
the same pair. Transitions are single conditional statements keyed by the
connection id and its current status, so two concurrent responses cannot
both succeed.
"""
import logging

from sqlalchemy import case, delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.dates import utcnow
from ..core.enums import ConnectionStatus, ErrorCode, UserRole
from ..core.errors import ConnectionFailure, rpc_operation
from ..models.connection import Connection
from ..models.user import User
from ..schemas.rpc import (
    ConnectionEntry,
    ConnectionsResult,
    ConnectionsSuccess,
    ConnectResult,
    ConnectSuccess,
    DisconnectResult,
    DisconnectSuccess,
    RespondResult,
    RespondSuccess,
)
from .invite_codes import find_coach_by_code

logger = logging.getLogger(__name__)


def _live_connection(db: Session, coach_id: int, client_id: int) -> Connection | None:
    return (
        db.query(Connection)
        .filter(
            Connection.coach_id == coach_id,
            Connection.client_id == client_id,
            Connection.status != ConnectionStatus.DECLINED,
        )
        .first()
    )


def _reject_existing(connection: Connection) -> None:
    if connection.status == ConnectionStatus.ACCEPTED:
        raise ConnectionFailure(
            ErrorCode.ALREADY_CONNECTED, "You are already connected with this coach"
        )
    raise ConnectionFailure(
        ErrorCode.REQUEST_PENDING, "Your connection request is already pending"
    )


def _already_responded(status: ConnectionStatus) -> ConnectionFailure:
    return ConnectionFailure(
        ErrorCode.ALREADY_RESPONDED, f"This request has already been {status.value}"
    )


def is_connected(db: Session, coach_id: int, client_id: int) -> bool:
    return (
        db.query(Connection.id)
        .filter(
            Connection.coach_id == coach_id,
            Connection.client_id == client_id,
            Connection.status == ConnectionStatus.ACCEPTED,
        )
        .first()
        is not None
    )


def accepted_clients(db: Session, coach_id: int) -> list[User]:
    return (
        db.query(User)
        .join(Connection, Connection.client_id == User.id)
        .filter(
            Connection.coach_id == coach_id,
            Connection.status == ConnectionStatus.ACCEPTED,
        )
        .order_by(User.id)
        .all()
    )


@rpc_operation
def request_connection(db: Session, client_id: int, invite_code: str) -> ConnectResult:
    coach = find_coach_by_code(db, invite_code)
    if coach is None:
        raise ConnectionFailure(
            ErrorCode.INVALID_CODE, "Invalid invite code. Please check and try again."
        )
    if coach.id == client_id:
        raise ConnectionFailure(ErrorCode.SELF_CONNECTION, "You cannot connect to yourself")

    existing = _live_connection(db, coach.id, client_id)
    if existing is not None:
        _reject_existing(existing)

    coach_id, coach_name = coach.id, coach.name
    connection = Connection(
        coach_id=coach_id, client_id=client_id, status=ConnectionStatus.PENDING
    )
    db.add(connection)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent request for the same pair.
        db.rollback()
        existing = _live_connection(db, coach_id, client_id)
        if existing is None:
            raise
        _reject_existing(existing)
    logger.info("Client %s requested connection %s to coach %s", client_id, connection.id, coach_id)
    return ConnectSuccess(
        connection_id=connection.id,
        coach_name=coach_name,
        message="Connection request sent to coach",
    )


@rpc_operation
def respond_to_connection(
    db: Session, coach_id: int, connection_id: str, accept: bool
) -> RespondResult:
    connection = (
        db.query(Connection)
        .filter(Connection.id == connection_id, Connection.coach_id == coach_id)
        .first()
    )
    if connection is None:
        raise ConnectionFailure(ErrorCode.NOT_FOUND, "Connection request not found")
    if connection.status != ConnectionStatus.PENDING:
        raise _already_responded(connection.status)

    new_status = ConnectionStatus.ACCEPTED if accept else ConnectionStatus.DECLINED
    result = db.execute(
        update(Connection)
        .where(
            Connection.id == connection_id,
            Connection.coach_id == coach_id,
            Connection.status == ConnectionStatus.PENDING,
        )
        .values(status=new_status, responded_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        db.expire_all()
        current = db.get(Connection, connection_id)
        if current is None:
            raise ConnectionFailure(ErrorCode.NOT_FOUND, "Connection request not found")
        raise _already_responded(current.status)
    db.commit()
    logger.info("Coach %s set connection %s to %s", coach_id, connection_id, new_status.value)
    return RespondSuccess(
        status=new_status,
        message="Client connected successfully" if accept else "Request declined",
    )


def _entry(connection: Connection, counterpart: User | None, role: UserRole) -> ConnectionEntry:
    return ConnectionEntry(
        connection_id=connection.id,
        user_id=connection.client_id if role == UserRole.CLIENT else connection.coach_id,
        user_name=counterpart.name if counterpart else "Unknown",
        user_avatar=counterpart.avatar_url if counterpart else None,
        status=connection.status,
        requested_at=connection.requested_at,
        responded_at=connection.responded_at,
        role=role,
    )


@rpc_operation
def list_connections(db: Session, user: User) -> ConnectionsResult:
    if user.role == UserRole.COACH:
        pending_first = case((Connection.status == ConnectionStatus.PENDING, 0), else_=1)
        rows = (
            db.query(Connection)
            .filter(Connection.coach_id == user.id)
            .order_by(pending_first, Connection.requested_at.desc())
            .all()
        )
        entries = [_entry(row, row.client, UserRole.CLIENT) for row in rows]
    else:
        rows = (
            db.query(Connection)
            .filter(Connection.client_id == user.id)
            .order_by(Connection.responded_at.is_(None), Connection.responded_at.desc())
            .all()
        )
        entries = [_entry(row, row.coach, UserRole.COACH) for row in rows]
    return ConnectionsSuccess(role=user.role, connections=entries)


@rpc_operation
def disconnect(db: Session, user_id: int, connection_id: str) -> DisconnectResult:
    connection = db.get(Connection, connection_id)
    if connection is None or user_id not in (connection.coach_id, connection.client_id):
        raise ConnectionFailure(ErrorCode.NOT_FOUND, "Connection not found")
    if connection.status != ConnectionStatus.ACCEPTED:
        raise ConnectionFailure(
            ErrorCode.FORBIDDEN, "Only accepted connections can be disconnected"
        )

    result = db.execute(
        delete(Connection)
        .where(
            Connection.id == connection_id,
            Connection.status == ConnectionStatus.ACCEPTED,
        )
    )
    if result.rowcount == 0:
        db.rollback()
        raise ConnectionFailure(ErrorCode.NOT_FOUND, "Connection not found")
    db.commit()
    logger.info("User %s disconnected connection %s", user_id, connection_id)
    return DisconnectSuccess(message="Disconnected successfully")
