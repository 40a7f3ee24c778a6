import time
from datetime import timedelta

from fastapi.testclient import TestClient

from coachlink.core.config import get_settings
from coachlink.core.dates import utcnow
from coachlink.core.enums import ConnectionStatus, UserRole
from coachlink.models.activity import WorkoutHistory
from coachlink.models.user import User
from coachlink.scripts.seed_sample_data import seed
from coachlink.services import dashboard, ledger
from coachlink.services.activity import ClientSnapshot, load_client_snapshot

from helpers import add_user, auth_header, connect, login, register_user


def _coach_with_clients(client: TestClient, db):
    coach = register_user(client, "Coach", "coach@example.com", "coach")
    quiet = register_user(client, "Quinn Quiet", "quinn@example.com", "client")
    busy = register_user(client, "Bo Busy", "bo@example.com", "client")
    coach_user = db.get(User, coach["id"])
    connect(db, coach_user, db.get(User, quiet["id"]))
    connect(db, coach_user, db.get(User, busy["id"]))
    db.add(WorkoutHistory(client_id=busy["id"], workout_name="Run", completed_at=utcnow()))
    db.commit()
    return login(client, "coach@example.com"), quiet, busy


def test_alerts_dismiss_and_restore(client: TestClient, db):
    token, quiet, _ = _coach_with_clients(client, db)
    alert_id = f"{quiet['id']}_no_workout"

    response = client.get("/dashboard/alerts", headers=auth_header(token))
    assert response.status_code == 200
    alerts = response.json()
    assert [alert["id"] for alert in alerts] == [alert_id]
    assert alerts[0]["priority"] == "CRITICAL"
    assert alerts[0]["client_name"] == "Quinn Quiet"

    dismissed = client.post(f"/dashboard/alerts/{alert_id}/dismiss", headers=auth_header(token))
    assert dismissed.status_code == 204
    assert client.get("/dashboard/alerts", headers=auth_header(token)).json() == []

    restored = client.delete(f"/dashboard/alerts/{alert_id}/dismiss", headers=auth_header(token))
    assert restored.status_code == 204
    assert len(client.get("/dashboard/alerts", headers=auth_header(token)).json()) == 1


def test_dashboard_requires_coach_role(client: TestClient):
    register_user(client, "Client", "client@example.com", "client")
    token = login(client, "client@example.com")
    assert client.get("/dashboard/alerts", headers=auth_header(token)).status_code == 403
    assert client.get("/dashboard/wins").status_code == 401


def test_seeded_dashboard_alerts_and_wins(client: TestClient, db):
    users = seed(db)
    token = login(client, "coach@example.com", "secret123")

    alerts = client.get("/dashboard/alerts", headers=auth_header(token)).json()
    assert [alert["type"] for alert in alerts] == [
        "NO_WORKOUT",
        "MISSED_SCHEDULED",
        "NUTRITION_SLIPPING",
    ]
    assert alerts[0]["client_id"] == users["quiet"].id
    assert alerts[1]["title"] == "Missed: Conditioning"
    assert alerts[1]["days_since"] == 10

    wins = client.get("/dashboard/wins", headers=auth_header(token)).json()
    active_id = users["active"].id
    ids = [win["id"] for win in wins]
    assert f"{active_id}_streak_7" in ids
    assert ids[-1] == f"{active_id}_pr_bench"
    assert wins[-1]["subtitle"] == "80kg → 85kg (+5kg)"
    assert not any(win["celebrated"] for win in wins)

    celebrated = client.post(
        f"/dashboard/wins/{active_id}_streak_7/celebrate", headers=auth_header(token)
    )
    assert celebrated.status_code == 204
    wins = client.get("/dashboard/wins", headers=auth_header(token)).json()
    flags = {win["id"]: win["celebrated"] for win in wins}
    assert flags[f"{active_id}_streak_7"] is True
    assert flags[f"{active_id}_pr_bench"] is False


def test_only_accepted_clients_are_evaluated(db):
    coach = add_user(db, "Coach", UserRole.COACH)
    accepted = add_user(db, "Accepted", UserRole.CLIENT)
    pending = add_user(db, "Pending", UserRole.CLIENT)
    declined = add_user(db, "Declined", UserRole.CLIENT)
    connect(db, coach, accepted)
    connect(db, coach, pending, status=ConnectionStatus.PENDING)
    connect(db, coach, declined, status=ConnectionStatus.DECLINED)

    alerts = dashboard.get_alerts(db, coach.id)
    assert [alert.client_id for alert in alerts] == [accepted.id]


def test_failing_client_is_skipped(db, monkeypatch):
    coach = add_user(db, "Coach", UserRole.COACH)
    broken = add_user(db, "Broken", UserRole.CLIENT)
    healthy = add_user(db, "Healthy", UserRole.CLIENT)
    connect(db, coach, broken)
    connect(db, coach, healthy)

    def flaky_loader(session, client_ref, now):
        if client_ref.id == broken.id:
            raise RuntimeError("snapshot unavailable")
        return load_client_snapshot(session, client_ref, now)

    monkeypatch.setattr(dashboard, "load_client_snapshot", flaky_loader)

    alerts = dashboard.get_alerts(db, coach.id)
    assert [alert.client_id for alert in alerts] == [healthy.id]

    evaluations = dashboard.evaluate_clients(
        db, dashboard._client_refs(db, coach.id), lambda snapshot: [snapshot.client.id], utcnow()
    )
    outcome = {evaluation.client.id: evaluation for evaluation in evaluations}
    assert outcome[broken.id].ok is False
    assert outcome[broken.id].error == "RuntimeError"
    assert outcome[broken.id].items == []
    assert outcome[healthy.id].items == [healthy.id]


def test_slow_client_times_out(db, monkeypatch):
    coach = add_user(db, "Coach", UserRole.COACH)
    fast = add_user(db, "Fast", UserRole.CLIENT)
    slow = add_user(db, "Slow", UserRole.CLIENT)
    connect(db, coach, fast)
    connect(db, coach, slow)

    def slow_loader(session, client_ref, now):
        if client_ref.id == slow.id:
            time.sleep(0.5)
        return ClientSnapshot(client=client_ref)

    monkeypatch.setattr(dashboard, "load_client_snapshot", slow_loader)
    monkeypatch.setattr(get_settings(), "dashboard_client_timeout_seconds", 0.1)

    evaluations = dashboard.evaluate_clients(
        db, dashboard._client_refs(db, coach.id), lambda snapshot: [snapshot.client.id], utcnow()
    )
    outcome = {evaluation.client.id: evaluation for evaluation in evaluations}
    assert outcome[fast.id].items == [fast.id]
    assert outcome[slow.id].error == "timeout"


def test_no_clients_means_empty_dashboard(db):
    coach = add_user(db, "Lonely Coach", UserRole.COACH)
    assert dashboard.get_alerts(db, coach.id) == []
    assert dashboard.get_wins(db, coach.id, now=utcnow() - timedelta(days=1)) == []


def test_dismissed_alert_returns_after_fourteen_days(db):
    coach = add_user(db, "Coach", UserRole.COACH)
    c1 = add_user(db, "Never Trained", UserRole.CLIENT)
    connect(db, coach, c1)
    alert_id = f"{c1.id}_no_workout"
    dismissed_at = utcnow()

    assert [alert.id for alert in dashboard.get_alerts(db, coach.id, now=dismissed_at)] == [alert_id]
    ledger.dismiss(db, coach.id, alert_id, now=dismissed_at)

    assert dashboard.get_alerts(db, coach.id, now=dismissed_at + timedelta(days=13)) == []
    reappeared = dashboard.get_alerts(db, coach.id, now=dismissed_at + timedelta(days=15))
    assert [alert.id for alert in reappeared] == [alert_id]


def test_fast_client_queued_behind_slow_one_still_counts(db, monkeypatch):
    coach = add_user(db, "Coach", UserRole.COACH)
    slow = add_user(db, "Slow", UserRole.CLIENT)
    fast = add_user(db, "Fast", UserRole.CLIENT)
    connect(db, coach, slow)
    connect(db, coach, fast)

    def slow_loader(session, client_ref, now):
        if client_ref.id == slow.id:
            time.sleep(0.5)
        return ClientSnapshot(client=client_ref)

    monkeypatch.setattr(dashboard, "load_client_snapshot", slow_loader)
    monkeypatch.setattr(get_settings(), "dashboard_client_timeout_seconds", 0.1)
    monkeypatch.setattr(get_settings(), "dashboard_max_workers", 1)

    refs = dashboard._client_refs(db, coach.id)
    assert [ref.id for ref in refs] == [slow.id, fast.id]

    started = time.monotonic()
    evaluations = dashboard.evaluate_clients(
        db, refs, lambda snapshot: [snapshot.client.id], utcnow()
    )
    elapsed = time.monotonic() - started

    assert [evaluation.client.id for evaluation in evaluations] == [slow.id, fast.id]
    assert evaluations[0].error == "timeout"
    assert evaluations[1].ok
    assert evaluations[1].items == [fast.id]
    assert elapsed < 0.5
