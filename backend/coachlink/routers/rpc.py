"""
Connection RPC surface.

Every endpoint answers HTTP 200 with a tagged envelope, including for
anonymous callers, who get a `NOT_AUTHENTICATED` failure rather than a 401.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.errors import not_authenticated
from ..database import get_db
from ..dependencies import get_optional_user
from ..models.user import User
from ..schemas.rpc import (
    CoachPreviewResult,
    ConnectionsResult,
    ConnectResult,
    DisconnectRequest,
    DisconnectResult,
    InviteCodeRequest,
    RespondRequest,
    RespondResult,
)
from ..services import connections, invite_codes

router = APIRouter(prefix="/rpc", tags=["rpc"])


@router.post("/connect_by_invite_code", response_model=ConnectResult)
def connect_by_invite_code(
    payload: InviteCodeRequest,
    current_user: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> ConnectResult:
    if current_user is None:
        return not_authenticated()
    return connections.request_connection(db, current_user.id, payload.invite_code)


@router.post("/respond_to_connection", response_model=RespondResult)
def respond_to_connection(
    payload: RespondRequest,
    current_user: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> RespondResult:
    if current_user is None:
        return not_authenticated()
    return connections.respond_to_connection(
        db, current_user.id, payload.connection_id, payload.accept
    )


@router.post("/get_my_connections", response_model=ConnectionsResult)
def get_my_connections(
    current_user: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> ConnectionsResult:
    if current_user is None:
        return not_authenticated()
    return connections.list_connections(db, current_user)


@router.post("/disconnect_connection", response_model=DisconnectResult)
def disconnect_connection(
    payload: DisconnectRequest,
    current_user: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> DisconnectResult:
    if current_user is None:
        return not_authenticated()
    return connections.disconnect(db, current_user.id, payload.connection_id)


@router.post("/get_coach_by_invite_code", response_model=CoachPreviewResult)
def get_coach_by_invite_code(
    payload: InviteCodeRequest, db: Session = Depends(get_db)
) -> CoachPreviewResult:
    return invite_codes.resolve_code(db, payload.invite_code)
