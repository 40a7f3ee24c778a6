from fastapi import Depends, HTTPException, status
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .core.config import get_settings
from .core.enums import UserRole
from .core.security import oauth2_scheme, optional_oauth2_scheme
from .database import get_db
from .models.user import User
from .schemas.user import TokenData
from .services.connections import is_connected


def _user_from_token(token: str | None, db: Session) -> User | None:
    if not token:
        return None
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    token_data = TokenData.model_validate(payload)
    if not token_data.sub or not token_data.sub.isdigit():
        return None
    return db.get(User, int(token_data.sub))


def get_current_user(
    token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)
) -> User:
    user = _user_from_token(token, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_optional_user(
    token: str | None = Depends(optional_oauth2_scheme), db: Session = Depends(get_db)
) -> User | None:
    """Caller identity for endpoints that answer anonymous callers themselves."""
    return _user_from_token(token, db)


def require_role(expected_role: UserRole):
    def _role_dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != expected_role:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role.")
        return current_user

    return _role_dependency


def ensure_client_access(
    client_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> User:
    if current_user.role == UserRole.CLIENT and current_user.id != client_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied.")
    if current_user.role == UserRole.COACH and not is_connected(db, current_user.id, client_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied.")
    return current_user
