"""
Win rules: achievements worth celebrating. Like alerts, win ids are
deterministic so a celebration recorded for one stays attached to it.
"""
from collections.abc import Iterable
from datetime import date, datetime, timedelta

from ..core.config import Settings, get_settings
from ..core.dates import as_utc, parse_activity_date, week_start
from ..core.enums import WinType
from ..schemas.dashboard import ClientWin
from .activity import ClientSnapshot
from .messages import celebration_message

STREAK_MILESTONES = frozenset({7, 14, 30, 60, 90, 180, 365})


def consecutive_day_streak(dates: Iterable[date | datetime | str | None], today: date) -> int:
    """Length of the run of active days ending today or yesterday.

    Unparseable and future dates are ignored.
    """
    days = sorted(
        {parsed for parsed in map(parse_activity_date, dates) if parsed is not None},
        reverse=True,
    )
    streak = 0
    cursor = today
    for day in days:
        if day == cursor or day == cursor - timedelta(days=1):
            streak += 1
            cursor = day
        elif day < cursor - timedelta(days=1):
            break
    return streak


def _win(
    snapshot: ClientSnapshot,
    key: str,
    win_type: WinType,
    title: str,
    subtitle: str,
    created_at: datetime,
) -> ClientWin:
    client = snapshot.client
    return ClientWin(
        id=f"{client.id}_{key}",
        client_id=client.id,
        client_name=client.name,
        client_avatar=client.avatar_url,
        type=win_type,
        title=title,
        subtitle=subtitle,
        created_at=created_at,
        celebration_message=celebration_message(win_type, client.name, title, subtitle),
    )


def streak_win(snapshot: ClientSnapshot, today: date, now: datetime) -> ClientWin | None:
    streak = consecutive_day_streak(snapshot.completed_at, today)
    if streak not in STREAK_MILESTONES:
        return None
    return _win(
        snapshot,
        f"streak_{streak}",
        WinType.STREAK_MILESTONE,
        title=f"{streak} Day Streak!",
        subtitle="Consistency is paying off",
        created_at=now,
    )


def nutrition_streak_win(snapshot: ClientSnapshot, today: date, now: datetime) -> ClientWin | None:
    streak = consecutive_day_streak(snapshot.nutrition_dates, today)
    if streak not in STREAK_MILESTONES:
        return None
    return _win(
        snapshot,
        f"nutrition_streak_{streak}",
        WinType.NUTRITION_STREAK,
        title=f"{streak} Day Nutrition Streak!",
        subtitle=f"{streak} days of nutrition logged",
        created_at=now,
    )


def _weight(value: float) -> str:
    return f"{value:g}"


def personal_record_wins(
    snapshot: ClientSnapshot, now: datetime, settings: Settings | None = None
) -> list[ClientWin]:
    settings = settings or get_settings()
    cutoff = as_utc(now) - timedelta(hours=settings.personal_record_window_hours)
    wins = []
    for record in snapshot.personal_bests:
        previous = record.previous_best_weight
        if not previous or previous <= 0 or record.best_weight <= previous:
            continue
        if isinstance(record.achieved_at, str):
            try:
                achieved_at = datetime.fromisoformat(record.achieved_at.replace("Z", "+00:00"))
            except ValueError:
                continue
        else:
            achieved_at = record.achieved_at
        achieved_at = as_utc(achieved_at)
        if achieved_at < cutoff:
            continue
        wins.append(
            _win(
                snapshot,
                f"pr_{record.exercise_id}",
                WinType.PERSONAL_RECORD,
                title=f"New PR: {record.exercise_name}",
                subtitle=(
                    f"{_weight(previous)}kg → {_weight(record.best_weight)}kg "
                    f"(+{_weight(record.best_weight - previous)}kg)"
                ),
                created_at=achieved_at,
            )
        )
    return wins


def consistency_win(
    snapshot: ClientSnapshot, today: date, now: datetime, settings: Settings | None = None
) -> ClientWin | None:
    settings = settings or get_settings()
    monday = week_start(today)
    count = sum(
        1
        for value in snapshot.completed_at
        if (day := parse_activity_date(value)) is not None and monday <= day <= today
    )
    if count < settings.consistency_weekly_target:
        return None
    return _win(
        snapshot,
        f"consistency_{today.isoformat()}",
        WinType.CONSISTENCY,
        title="Crushed this week!",
        subtitle=f"{count} workouts completed",
        created_at=now,
    )


def evaluate_client_wins(
    snapshot: ClientSnapshot, today: date, now: datetime, settings: Settings | None = None
) -> list[ClientWin]:
    settings = settings or get_settings()
    now = as_utc(now)
    wins = []
    streak = streak_win(snapshot, today, now)
    if streak is not None:
        wins.append(streak)
    wins.extend(personal_record_wins(snapshot, now, settings))
    weekly = consistency_win(snapshot, today, now, settings)
    if weekly is not None:
        wins.append(weekly)
    nutrition = nutrition_streak_win(snapshot, today, now)
    if nutrition is not None:
        wins.append(nutrition)
    return wins


def sort_wins(wins: list[ClientWin]) -> list[ClientWin]:
    return sorted(wins, key=lambda win: as_utc(win.created_at), reverse=True)
