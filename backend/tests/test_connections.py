from fastapi.testclient import TestClient

from sqlalchemy.exc import SQLAlchemyError

from coachlink.core.enums import ConnectionStatus, UserRole
from coachlink.core.errors import INTERNAL_ERROR_MESSAGE
from coachlink.models.connection import Connection
from coachlink.services import connections

from helpers import add_user, auth_header, coach_invite_code, connect, login, register_user


def _setup_pair(client: TestClient):
    coach = register_user(client, "Coach Carter", "coach@example.com", "coach")
    athlete = register_user(client, "Jamie Client", "jamie@example.com", "client")
    coach_token = login(client, "coach@example.com")
    client_token = login(client, "jamie@example.com")
    code = coach_invite_code(client, coach_token)
    return coach, athlete, coach_token, client_token, code


def _rpc(client: TestClient, operation: str, token: str | None = None, **body):
    headers = auth_header(token) if token else {}
    response = client.post(f"/rpc/{operation}", json=body, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def test_request_accept_and_list_connections(client: TestClient):
    coach, athlete, coach_token, client_token, code = _setup_pair(client)

    requested = _rpc(client, "connect_by_invite_code", client_token, invite_code=f"  {code.lower()} ")
    assert requested["success"] is True
    assert requested["coach_name"] == "Coach Carter"
    assert requested["message"] == "Connection request sent to coach"
    connection_id = requested["connection_id"]

    coach_view = _rpc(client, "get_my_connections", coach_token)
    assert coach_view["role"] == "coach"
    assert [entry["connection_id"] for entry in coach_view["connections"]] == [connection_id]
    entry = coach_view["connections"][0]
    assert entry["status"] == "pending"
    assert entry["user_id"] == athlete["id"]
    assert entry["user_name"] == "Jamie Client"
    assert entry["role"] == "client"

    accepted = _rpc(
        client, "respond_to_connection", coach_token, connection_id=connection_id, accept=True
    )
    assert accepted == {
        "success": True,
        "status": "accepted",
        "message": "Client connected successfully",
    }

    client_view = _rpc(client, "get_my_connections", client_token)
    assert client_view["role"] == "client"
    entry = client_view["connections"][0]
    assert entry["user_id"] == coach["id"]
    assert entry["role"] == "coach"
    assert entry["status"] == "accepted"
    assert entry["responded_at"] is not None


def test_duplicate_requests_are_rejected_by_state(client: TestClient):
    _, _, coach_token, client_token, code = _setup_pair(client)
    first = _rpc(client, "connect_by_invite_code", client_token, invite_code=code)

    again = _rpc(client, "connect_by_invite_code", client_token, invite_code=code)
    assert again["success"] is False
    assert again["error"] == "REQUEST_PENDING"

    _rpc(
        client,
        "respond_to_connection",
        coach_token,
        connection_id=first["connection_id"],
        accept=True,
    )
    connected = _rpc(client, "connect_by_invite_code", client_token, invite_code=code)
    assert connected["error"] == "ALREADY_CONNECTED"
    assert connected["message"] == "You are already connected with this coach"


def test_second_response_reports_already_responded(client: TestClient):
    _, _, coach_token, client_token, code = _setup_pair(client)
    connection_id = _rpc(client, "connect_by_invite_code", client_token, invite_code=code)[
        "connection_id"
    ]

    declined = _rpc(
        client, "respond_to_connection", coach_token, connection_id=connection_id, accept=False
    )
    assert declined["status"] == "declined"
    assert declined["message"] == "Request declined"

    second = _rpc(
        client, "respond_to_connection", coach_token, connection_id=connection_id, accept=True
    )
    assert second["success"] is False
    assert second["error"] == "ALREADY_RESPONDED"
    assert second["message"] == "This request has already been declined"


def test_declined_connection_does_not_block_new_request(client: TestClient):
    _, _, coach_token, client_token, code = _setup_pair(client)
    first_id = _rpc(client, "connect_by_invite_code", client_token, invite_code=code)[
        "connection_id"
    ]
    _rpc(client, "respond_to_connection", coach_token, connection_id=first_id, accept=False)

    retry = _rpc(client, "connect_by_invite_code", client_token, invite_code=code)
    assert retry["success"] is True
    assert retry["connection_id"] != first_id

    statuses = sorted(
        entry["status"] for entry in _rpc(client, "get_my_connections", coach_token)["connections"]
    )
    assert statuses == ["declined", "pending"]


def test_coach_list_orders_pending_first(client: TestClient):
    _, _, coach_token, client_token, code = _setup_pair(client)
    register_user(client, "Riley Client", "riley@example.com", "client")
    riley_token = login(client, "riley@example.com")

    first_id = _rpc(client, "connect_by_invite_code", client_token, invite_code=code)[
        "connection_id"
    ]
    _rpc(client, "respond_to_connection", coach_token, connection_id=first_id, accept=True)
    pending_id = _rpc(client, "connect_by_invite_code", riley_token, invite_code=code)[
        "connection_id"
    ]

    listed = _rpc(client, "get_my_connections", coach_token)["connections"]
    assert [entry["connection_id"] for entry in listed] == [pending_id, first_id]


def test_invalid_code_and_self_connection(client: TestClient):
    _, _, coach_token, client_token, code = _setup_pair(client)

    invalid = _rpc(client, "connect_by_invite_code", client_token, invite_code="ZZZZZZ")
    assert invalid == {
        "success": False,
        "error": "INVALID_CODE",
        "message": "Invalid invite code. Please check and try again.",
    }

    self_request = _rpc(client, "connect_by_invite_code", coach_token, invite_code=code)
    assert self_request["error"] == "SELF_CONNECTION"


def test_respond_to_unknown_or_foreign_connection(client: TestClient):
    _, _, coach_token, client_token, code = _setup_pair(client)
    connection_id = _rpc(client, "connect_by_invite_code", client_token, invite_code=code)[
        "connection_id"
    ]

    missing = _rpc(
        client, "respond_to_connection", coach_token, connection_id="does-not-exist", accept=True
    )
    assert missing["error"] == "NOT_FOUND"

    # The client is not the coach on this connection.
    foreign = _rpc(
        client, "respond_to_connection", client_token, connection_id=connection_id, accept=True
    )
    assert foreign["error"] == "NOT_FOUND"
    assert foreign["message"] == "Connection request not found"


def test_disconnect_rules(client: TestClient):
    _, _, coach_token, client_token, code = _setup_pair(client)
    register_user(client, "Outsider", "outsider@example.com", "client")
    outsider_token = login(client, "outsider@example.com")
    connection_id = _rpc(client, "connect_by_invite_code", client_token, invite_code=code)[
        "connection_id"
    ]

    pending = _rpc(client, "disconnect_connection", client_token, connection_id=connection_id)
    assert pending["error"] == "FORBIDDEN"

    _rpc(client, "respond_to_connection", coach_token, connection_id=connection_id, accept=True)

    outsider = _rpc(client, "disconnect_connection", outsider_token, connection_id=connection_id)
    assert outsider["error"] == "NOT_FOUND"

    done = _rpc(client, "disconnect_connection", client_token, connection_id=connection_id)
    assert done == {"success": True, "message": "Disconnected successfully"}

    gone = _rpc(client, "disconnect_connection", coach_token, connection_id=connection_id)
    assert gone["error"] == "NOT_FOUND"
    assert _rpc(client, "get_my_connections", coach_token)["connections"] == []


def test_anonymous_callers_get_not_authenticated(client: TestClient):
    for operation, body in [
        ("connect_by_invite_code", {"invite_code": "ABCDEF"}),
        ("respond_to_connection", {"connection_id": "x", "accept": True}),
        ("get_my_connections", {}),
        ("disconnect_connection", {"connection_id": "x"}),
    ]:
        result = _rpc(client, operation, **body)
        assert result["success"] is False
        assert result["error"] == "NOT_AUTHENTICATED"

    bad_token = _rpc(client, "get_my_connections", "not-a-jwt")
    assert bad_token["error"] == "NOT_AUTHENTICATED"


def test_coach_preview_is_public(client: TestClient):
    coach, _, _, _, code = _setup_pair(client)

    preview = _rpc(client, "get_coach_by_invite_code", invite_code=code.lower())
    assert preview["success"] is True
    assert preview["coach"] == {
        "id": coach["id"],
        "name": "Coach Carter",
        "avatar_url": None,
        "bio": None,
    }

    unknown = _rpc(client, "get_coach_by_invite_code", invite_code="A3B7X9")
    assert unknown["error"] == "NOT_FOUND"


def test_malformed_rpc_body_is_a_validation_error(client: TestClient):
    _, _, _, client_token, _ = _setup_pair(client)
    response = client.post(
        "/rpc/respond_to_connection",
        json={"connection_id": "abc"},
        headers=auth_header(client_token),
    )
    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "VALIDATION_ERROR"


def test_is_connected_and_accepted_clients(db):
    coach = add_user(db, "Coach", UserRole.COACH)
    accepted = add_user(db, "Accepted Client", UserRole.CLIENT)
    pending = add_user(db, "Pending Client", UserRole.CLIENT)
    connect(db, coach, accepted)
    connect(db, coach, pending, status=ConnectionStatus.PENDING)

    assert connections.is_connected(db, coach.id, accepted.id)
    assert not connections.is_connected(db, coach.id, pending.id)
    assert [user.id for user in connections.accepted_clients(db, coach.id)] == [accepted.id]


def test_service_rejects_duplicate_pending_request(db):
    coach = add_user(db, "Coach", UserRole.COACH, invite_code="K7M2QP")
    athlete = add_user(db, "Client", UserRole.CLIENT)
    connect(db, coach, athlete, status=ConnectionStatus.PENDING)

    result = connections.request_connection(db, athlete.id, "k7m2qp")
    assert result.success is False
    assert result.error == "REQUEST_PENDING"


def test_stale_response_after_concurrent_accept(db, other_db):
    coach = add_user(db, "Coach", UserRole.COACH)
    athlete = add_user(db, "Client", UserRole.CLIENT)
    pending = connect(db, coach, athlete, status=ConnectionStatus.PENDING)

    # The second caller loaded the request while it was still pending.
    seen = other_db.get(Connection, pending.id)
    assert seen.status == ConnectionStatus.PENDING

    accepted = connections.respond_to_connection(db, coach.id, pending.id, True)
    assert accepted.success is True

    late = connections.respond_to_connection(other_db, coach.id, pending.id, False)
    assert late.success is False
    assert late.error == "ALREADY_RESPONDED"
    assert late.message == "This request has already been accepted"
    assert db.get(Connection, pending.id).status == ConnectionStatus.ACCEPTED


def _miss_first_lookup(monkeypatch):
    real_lookup = connections._live_connection
    calls = []

    def lookup(db, coach_id, client_id):
        calls.append(client_id)
        if len(calls) == 1:
            return None
        return real_lookup(db, coach_id, client_id)

    monkeypatch.setattr(connections, "_live_connection", lookup)
    return calls


def test_unique_index_violation_reports_pending_request(db, monkeypatch):
    coach = add_user(db, "Coach", UserRole.COACH, invite_code="K7M2QP")
    athlete = add_user(db, "Client", UserRole.CLIENT)
    connect(db, coach, athlete, status=ConnectionStatus.PENDING)
    calls = _miss_first_lookup(monkeypatch)

    result = connections.request_connection(db, athlete.id, "K7M2QP")
    assert len(calls) == 2
    assert result.success is False
    assert result.error == "REQUEST_PENDING"
    assert db.query(Connection).count() == 1


def test_unique_index_violation_reports_existing_connection(db, monkeypatch):
    coach = add_user(db, "Coach", UserRole.COACH, invite_code="K7M2QP")
    athlete = add_user(db, "Client", UserRole.CLIENT)
    connect(db, coach, athlete)
    _miss_first_lookup(monkeypatch)

    result = connections.request_connection(db, athlete.id, "K7M2QP")
    assert result.error == "ALREADY_CONNECTED"


def test_storage_failure_becomes_internal_error(db, monkeypatch):
    coach = add_user(db, "Coach", UserRole.COACH, invite_code="K7M2QP")
    athlete = add_user(db, "Client", UserRole.CLIENT)
    rollbacks = []
    real_rollback = db.rollback

    def failing_commit():
        raise SQLAlchemyError("database is locked at /var/lib/coachlink.db")

    def tracking_rollback():
        rollbacks.append(True)
        real_rollback()

    monkeypatch.setattr(db, "commit", failing_commit)
    monkeypatch.setattr(db, "rollback", tracking_rollback)

    result = connections.request_connection(db, athlete.id, "K7M2QP")
    assert result.model_dump(mode="json") == {
        "success": False,
        "error": "INTERNAL_ERROR",
        "message": INTERNAL_ERROR_MESSAGE,
    }
    assert rollbacks
    monkeypatch.undo()
    assert db.query(Connection).filter(Connection.coach_id == coach.id).count() == 0


def test_storage_failure_over_rpc_hides_details(client: TestClient, monkeypatch):
    _, _, _, client_token, _ = _setup_pair(client)

    def broken_lookup(db, code):
        raise SQLAlchemyError("connection refused by 10.0.0.5")

    monkeypatch.setattr(connections, "find_coach_by_code", broken_lookup)

    result = _rpc(client, "connect_by_invite_code", client_token, invite_code="ABCDEF")
    assert result == {
        "success": False,
        "error": "INTERNAL_ERROR",
        "message": INTERNAL_ERROR_MESSAGE,
    }
