"""
Alert rules: conditions on a client's recent activity that need the coach's
attention. Every rule is a pure function of a snapshot and the current day, and
alert ids are derived from what triggered them so a dismissal keeps matching
the same condition on every evaluation.
"""
from datetime import date

from ..core.config import Settings, get_settings
from ..core.dates import DAYS_SINCE_NEVER, days_since
from ..core.enums import AlertPriority, AlertType
from ..schemas.dashboard import ClientAlert
from .activity import ClientSnapshot, MissedWorkout
from .messages import suggested_message


def _alert(
    snapshot: ClientSnapshot,
    key: str,
    alert_type: AlertType,
    priority: AlertPriority,
    title: str,
    subtitle: str,
    days: int,
) -> ClientAlert:
    client = snapshot.client
    return ClientAlert(
        id=f"{client.id}_{key}",
        client_id=client.id,
        client_name=client.name,
        client_avatar=client.avatar_url,
        type=alert_type,
        priority=priority,
        title=title,
        subtitle=subtitle,
        days_since=days,
        suggested_message=suggested_message(alert_type, client.name),
    )


def no_workout_alert(
    snapshot: ClientSnapshot, today: date, settings: Settings | None = None
) -> ClientAlert | None:
    settings = settings or get_settings()
    days = days_since(snapshot.last_workout_at, today)
    if days < settings.no_workout_warning_days:
        return None
    priority = (
        AlertPriority.CRITICAL
        if days >= settings.no_workout_critical_days
        else AlertPriority.WARNING
    )
    never = days == DAYS_SINCE_NEVER
    return _alert(
        snapshot,
        "no_workout",
        AlertType.NO_WORKOUT,
        priority,
        title="No workout logged yet" if never else f"No workout for {days} days",
        subtitle="No workouts logged yet" if never else f"Last: {snapshot.last_workout_name or 'Workout'}",
        days=days,
    )


def _scheduled_label(day: date) -> str:
    return f"Scheduled for {day:%A}, {day:%b} {day.day}"


def missed_workout_alerts(
    snapshot: ClientSnapshot, today: date, settings: Settings | None = None
) -> list[ClientAlert]:
    settings = settings or get_settings()
    missed: list[MissedWorkout] = sorted(
        snapshot.missed_workouts, key=lambda item: item.scheduled_date, reverse=True
    )
    alerts = []
    for item in missed[: settings.missed_workout_alert_limit]:
        days = (today - item.scheduled_date).days
        if days >= settings.missed_workout_critical_days:
            priority = AlertPriority.CRITICAL
        elif days >= settings.missed_workout_warning_days:
            priority = AlertPriority.WARNING
        else:
            priority = AlertPriority.NOTICE
        alerts.append(
            _alert(
                snapshot,
                f"missed_{item.assignment_id}",
                AlertType.MISSED_SCHEDULED,
                priority,
                title=f"Missed: {item.workout_name}",
                subtitle=_scheduled_label(item.scheduled_date),
                days=days,
            )
        )
    return alerts


def nutrition_alert(
    snapshot: ClientSnapshot, today: date, settings: Settings | None = None
) -> ClientAlert | None:
    # Clients who never track nutrition are not nagged about it.
    if snapshot.last_nutrition_on is None:
        return None
    settings = settings or get_settings()
    days = days_since(snapshot.last_nutrition_on, today)
    if days < settings.nutrition_warning_days:
        return None
    return _alert(
        snapshot,
        "nutrition",
        AlertType.NUTRITION_SLIPPING,
        AlertPriority.WARNING,
        title=f"No nutrition log for {days} days",
        subtitle=f"Last logged {snapshot.last_nutrition_on:%b} {snapshot.last_nutrition_on.day}",
        days=days,
    )


def evaluate_client_alerts(
    snapshot: ClientSnapshot, today: date, settings: Settings | None = None
) -> list[ClientAlert]:
    settings = settings or get_settings()
    alerts = []
    inactive = no_workout_alert(snapshot, today, settings)
    if inactive is not None:
        alerts.append(inactive)
    alerts.extend(missed_workout_alerts(snapshot, today, settings))
    nutrition = nutrition_alert(snapshot, today, settings)
    if nutrition is not None:
        alerts.append(nutrition)
    return alerts


def sort_alerts(alerts: list[ClientAlert]) -> list[ClientAlert]:
    """Most urgent first; within a priority, the longest-running condition first."""
    return sorted(alerts, key=lambda alert: (alert.priority.rank, -alert.days_since))
