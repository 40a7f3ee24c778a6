from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.enums import UserRole
from ..database import get_db
from ..dependencies import require_role
from ..models.user import User
from ..schemas.user import InviteCodeRead
from ..services.invite_codes import get_or_create_code

router = APIRouter(prefix="/coaches", tags=["coaches"])


@router.get("/me/invite-code", response_model=InviteCodeRead)
def my_invite_code(
    current_user: User = Depends(require_role(UserRole.COACH)),
    db: Session = Depends(get_db),
) -> InviteCodeRead:
    return InviteCodeRead(invite_code=get_or_create_code(db, current_user))
