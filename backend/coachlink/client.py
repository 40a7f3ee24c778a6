"""
Typed client for the connection RPC surface.

Responses are decoded strictly into the tagged result types: a payload that
is neither a valid success envelope nor a valid failure envelope comes back
as an ``INTERNAL_ERROR`` failure instead of raising.
"""
import logging
from typing import Any, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from .core.enums import ErrorCode
from .core.errors import INTERNAL_ERROR_MESSAGE
from .schemas.rpc import (
    CoachPreviewResult,
    ConnectionsResult,
    ConnectResult,
    DisconnectResult,
    RespondResult,
    RpcFailure,
)

logger = logging.getLogger(__name__)

_CONNECT = TypeAdapter(ConnectResult)
_RESPOND = TypeAdapter(RespondResult)
_CONNECTIONS = TypeAdapter(ConnectionsResult)
_DISCONNECT = TypeAdapter(DisconnectResult)
_COACH_PREVIEW = TypeAdapter(CoachPreviewResult)


def decode_result(adapter: TypeAdapter, payload: Any):
    try:
        return adapter.validate_python(payload)
    except ValidationError:
        logger.warning("Malformed RPC response: %r", payload)
        return RpcFailure(error=ErrorCode.INTERNAL_ERROR, message=INTERNAL_ERROR_MESSAGE)


class CoachLinkClient:
    """Calls ``/rpc/*`` endpoints with an optional bearer token.

    Pass ``http`` to reuse an existing ``httpx.Client`` (a FastAPI
    ``TestClient`` works too); otherwise one is created for ``base_url``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token: Optional[str] = None,
        http: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        self._owns_http = http is None
        self._http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self.token = token

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "CoachLinkClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _call(self, operation: str, adapter: TypeAdapter, body: Optional[dict] = None):
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            response = self._http.post(f"/rpc/{operation}", json=body or {}, headers=headers)
            payload = response.json()
        except (httpx.HTTPError, ValueError):
            logger.exception("RPC call %s failed", operation)
            return RpcFailure(error=ErrorCode.INTERNAL_ERROR, message=INTERNAL_ERROR_MESSAGE)
        return decode_result(adapter, payload)

    def connect_by_invite_code(self, invite_code: str) -> ConnectResult:
        return self._call("connect_by_invite_code", _CONNECT, {"invite_code": invite_code})

    def respond_to_connection(self, connection_id: str, accept: bool) -> RespondResult:
        return self._call(
            "respond_to_connection",
            _RESPOND,
            {"connection_id": connection_id, "accept": accept},
        )

    def get_my_connections(self) -> ConnectionsResult:
        return self._call("get_my_connections", _CONNECTIONS)

    def disconnect_connection(self, connection_id: str) -> DisconnectResult:
        return self._call("disconnect_connection", _DISCONNECT, {"connection_id": connection_id})

    def get_coach_by_invite_code(self, invite_code: str) -> CoachPreviewResult:
        return self._call("get_coach_by_invite_code", _COACH_PREVIEW, {"invite_code": invite_code})
