import enum


class UserRole(str, enum.Enum):
    COACH = "coach"
    CLIENT = "client"


class ConnectionStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class AssignmentStatus(str, enum.Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class LedgerKind(str, enum.Enum):
    DISMISSAL = "dismissal"
    CELEBRATION = "celebration"


class AlertType(str, enum.Enum):
    NO_WORKOUT = "NO_WORKOUT"
    MISSED_SCHEDULED = "MISSED_SCHEDULED"
    NUTRITION_SLIPPING = "NUTRITION_SLIPPING"
    INACTIVE = "INACTIVE"


class AlertPriority(str, enum.Enum):
    """Declaration order is urgency order."""

    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    NOTICE = "NOTICE"

    @property
    def rank(self) -> int:
        return list(AlertPriority).index(self)


class WinType(str, enum.Enum):
    STREAK_MILESTONE = "STREAK_MILESTONE"
    PERSONAL_RECORD = "PERSONAL_RECORD"
    VOLUME_RECORD = "VOLUME_RECORD"
    NUTRITION_STREAK = "NUTRITION_STREAK"
    CONSISTENCY = "CONSISTENCY"


class ErrorCode(str, enum.Enum):
    INVALID_CODE = "INVALID_CODE"
    ALREADY_CONNECTED = "ALREADY_CONNECTED"
    REQUEST_PENDING = "REQUEST_PENDING"
    SELF_CONNECTION = "SELF_CONNECTION"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    ALREADY_RESPONDED = "ALREADY_RESPONDED"
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
