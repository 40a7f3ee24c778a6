from datetime import datetime

from pydantic import BaseModel

from ..core.enums import AlertPriority, AlertType, WinType


class ClientAlert(BaseModel):
    id: str
    client_id: int
    client_name: str
    client_avatar: str | None = None
    type: AlertType
    priority: AlertPriority
    title: str
    subtitle: str
    days_since: int
    action_label: str = "Message"
    suggested_message: str


class ClientWin(BaseModel):
    id: str
    client_id: int
    client_name: str
    client_avatar: str | None = None
    type: WinType
    title: str
    subtitle: str
    celebratable: bool = True
    celebrated: bool = False
    created_at: datetime
    celebration_message: str
