"""Payloads of the connection RPC surface.

Every response is a tagged envelope: a success model with `success: true`
or an `RpcFailure` with `success: false`.
"""
from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator

from ..core.enums import ConnectionStatus, ErrorCode, UserRole


class RpcRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")


class InviteCodeRequest(RpcRequest):
    invite_code: str

    @field_validator("invite_code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.strip().upper()


class RespondRequest(RpcRequest):
    connection_id: str
    accept: bool


class DisconnectRequest(RpcRequest):
    connection_id: str


class RpcFailure(BaseModel):
    success: Literal[False] = False
    error: ErrorCode
    message: str


class ConnectSuccess(BaseModel):
    success: Literal[True] = True
    connection_id: str
    coach_name: str
    message: str


class RespondSuccess(BaseModel):
    success: Literal[True] = True
    status: ConnectionStatus
    message: str


class ConnectionEntry(BaseModel):
    connection_id: str
    user_id: int
    user_name: str
    user_avatar: Optional[str] = None
    status: ConnectionStatus
    requested_at: datetime
    responded_at: Optional[datetime] = None
    role: UserRole


class ConnectionsSuccess(BaseModel):
    success: Literal[True] = True
    role: UserRole
    connections: list[ConnectionEntry]


class DisconnectSuccess(BaseModel):
    success: Literal[True] = True
    message: str


class CoachPreview(BaseModel):
    id: int
    name: str
    avatar_url: Optional[str] = None
    bio: Optional[str] = None

    model_config = {"from_attributes": True}


class CoachPreviewSuccess(BaseModel):
    success: Literal[True] = True
    coach: CoachPreview


ConnectResult = Union[ConnectSuccess, RpcFailure]
RespondResult = Union[RespondSuccess, RpcFailure]
ConnectionsResult = Union[ConnectionsSuccess, RpcFailure]
DisconnectResult = Union[DisconnectSuccess, RpcFailure]
CoachPreviewResult = Union[CoachPreviewSuccess, RpcFailure]
