from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..core.enums import UserRole
from ..database import get_db
from ..dependencies import require_role
from ..models.user import User
from ..schemas.dashboard import ClientAlert, ClientWin
from ..services import dashboard, ledger

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/alerts", response_model=list[ClientAlert])
def list_alerts(
    current_user: User = Depends(require_role(UserRole.COACH)),
    db: Session = Depends(get_db),
) -> list[ClientAlert]:
    return dashboard.get_alerts(db, current_user.id)


@router.post("/alerts/{alert_id}/dismiss", status_code=status.HTTP_204_NO_CONTENT)
def dismiss_alert(
    alert_id: str,
    current_user: User = Depends(require_role(UserRole.COACH)),
    db: Session = Depends(get_db),
) -> Response:
    ledger.dismiss(db, current_user.id, alert_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/alerts/{alert_id}/dismiss", status_code=status.HTTP_204_NO_CONTENT)
def restore_alert(
    alert_id: str,
    current_user: User = Depends(require_role(UserRole.COACH)),
    db: Session = Depends(get_db),
) -> Response:
    ledger.restore(db, current_user.id, alert_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/wins", response_model=list[ClientWin])
def list_wins(
    current_user: User = Depends(require_role(UserRole.COACH)),
    db: Session = Depends(get_db),
) -> list[ClientWin]:
    return dashboard.get_wins(db, current_user.id)


@router.post("/wins/{win_id}/celebrate", status_code=status.HTTP_204_NO_CONTENT)
def celebrate_win(
    win_id: str,
    current_user: User = Depends(require_role(UserRole.COACH)),
    db: Session = Depends(get_db),
) -> Response:
    ledger.celebrate(db, current_user.id, win_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
