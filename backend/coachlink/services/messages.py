"""Pre-written text a coach can send straight from an alert or a win."""
from ..core.enums import AlertType, WinType


def first_name(name: str | None) -> str:
    parts = (name or "").split()
    return parts[0] if parts else "there"


def suggested_message(alert_type: AlertType, client_name: str | None) -> str:
    first = first_name(client_name)
    if alert_type == AlertType.NO_WORKOUT:
        return (
            f"Hey {first}, how's it going? I noticed you've been away for a few days. "
            "Everything okay? Let me know if you need anything!"
        )
    if alert_type == AlertType.MISSED_SCHEDULED:
        return (
            "Hey, I saw today's workout didn't happen - is everything alright? "
            "Let me know if we need to reschedule."
        )
    if alert_type == AlertType.NUTRITION_SLIPPING:
        return (
            f"Hi {first}, I noticed nutrition has been a bit off lately. Want to chat about it? "
            "Sometimes life gets busy - let's figure out a sustainable approach."
        )
    return (
        f"Hey {first}, it's been a while! How are you doing? "
        "Would love to hear from you when you get a chance."
    )


def celebration_message(win_type: WinType, client_name: str | None, title: str, subtitle: str) -> str:
    first = first_name(client_name)
    if win_type == WinType.STREAK_MILESTONE:
        return f"Great job {first}! {title} Keep it up, you're on fire!"
    if win_type == WinType.PERSONAL_RECORD:
        return f"Congrats on the PR! {subtitle} - that's what consistent work looks like!"
    if win_type == WinType.VOLUME_RECORD:
        return f"Incredible volume {first}! {subtitle} - your dedication is paying off!"
    if win_type == WinType.NUTRITION_STREAK:
        return f"Amazing nutrition discipline! {subtitle} - keep fueling your gains!"
    return f"What a week {first}! {subtitle} - proud of your dedication!"
