from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from coachlink.core.enums import ConnectionStatus, UserRole
from coachlink.models.connection import Connection
from coachlink.models.user import User


def register_user(client: TestClient, name: str, email: str, role: str, password: str = "password123"):
    response = client.post(
        "/auth/register",
        json={"name": name, "email": email, "role": role, "password": password},
    )
    assert response.status_code == 201, response.text
    return response.json()


def login(client: TestClient, email: str, password: str = "password123") -> str:
    response = client.post(
        "/auth/login",
        params={"email": email, "password": password},
    )
    assert response.status_code == 200, response.text
    return response.json()["access_token"]


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def coach_invite_code(client: TestClient, coach_token: str) -> str:
    response = client.get("/coaches/me/invite-code", headers=auth_header(coach_token))
    assert response.status_code == 200, response.text
    return response.json()["invite_code"]


def add_user(db: Session, name: str, role: UserRole, email: str | None = None, **fields) -> User:
    user = User(
        name=name,
        email=email or f"{name.lower().replace(' ', '.')}@example.com",
        role=role,
        password_hash="not-a-real-hash",
        **fields,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def connect(
    db: Session, coach: User, client: User, status: ConnectionStatus = ConnectionStatus.ACCEPTED
) -> Connection:
    connection = Connection(coach_id=coach.id, client_id=client.id, status=status)
    db.add(connection)
    db.commit()
    db.refresh(connection)
    return connection
