"""
Coach dashboard aggregation.

Each accepted client is evaluated on a worker thread with its own session.
A client whose snapshot or rules fail (or run past the per-client timeout)
contributes nothing, and the rest of the dashboard is still returned.
"""
import logging
import time
from collections.abc import Callable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.dates import as_utc, utcnow
from ..core.enums import LedgerKind
from ..database import worker_session
from ..schemas.dashboard import ClientAlert, ClientWin
from .activity import ClientRef, ClientSnapshot, load_client_snapshot
from .alerts import evaluate_client_alerts, sort_alerts
from .connections import accepted_clients
from .ledger import active_item_ids
from .wins import evaluate_client_wins, sort_wins

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ClientEvaluation(Generic[T]):
    client: ClientRef
    items: list[T] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _client_refs(db: Session, coach_id: int) -> list[ClientRef]:
    return [
        ClientRef(id=user.id, name=user.name, avatar_url=user.avatar_url)
        for user in accepted_clients(db, coach_id)
    ]


def evaluate_clients(
    db: Session,
    clients: list[ClientRef],
    rules: Callable[[ClientSnapshot], list[T]],
    now: datetime,
) -> list[ClientEvaluation[T]]:
    """Run ``rules`` against every client's snapshot, one worker per client.

    The timeout is measured from the moment a client's task starts, so a
    client queued behind a slow one is not charged for the wait. When a task
    overruns, its thread stays busy; clients still queued on that pool move
    to a fresh pool so they do not sit behind it.
    """
    if not clients:
        return []
    settings = get_settings()
    timeout = settings.dashboard_client_timeout_seconds
    workers = max(1, min(settings.dashboard_max_workers, len(clients)))
    bind = db.get_bind()
    started: dict[int, float] = {}

    def _evaluate(client: ClientRef) -> list[T]:
        started[client.id] = time.monotonic()
        with worker_session(bind) as worker_db:
            snapshot = load_client_snapshot(worker_db, client, now)
        return rules(snapshot)

    pools: list[ThreadPoolExecutor] = []
    owners: dict[Future, ClientRef] = {}

    def _submit(batch: list[ClientRef]) -> set[Future]:
        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="dashboard")
        pools.append(pool)
        submitted = set()
        for client in batch:
            future = pool.submit(_evaluate, client)
            owners[future] = client
            submitted.add(future)
        return submitted

    def _next_wait(pending: set[Future]) -> float:
        deadlines = [
            started[owners[future].id] + timeout
            for future in pending
            if owners[future].id in started
        ]
        if not deadlines:
            return timeout
        return max(0.0, min(deadlines) - time.monotonic())

    def _overdue(future: Future) -> bool:
        start = started.get(owners[future].id)
        return start is not None and time.monotonic() - start >= timeout

    outcomes: dict[int, ClientEvaluation[T]] = {}
    try:
        pending = _submit(clients)
        while pending:
            done, pending = wait(pending, timeout=_next_wait(pending), return_when=FIRST_COMPLETED)
            for future in done:
                client = owners[future]
                try:
                    outcomes[client.id] = ClientEvaluation(client=client, items=future.result())
                except Exception as exc:
                    logger.exception("Dashboard evaluation failed for client %s", client.id)
                    outcomes[client.id] = ClientEvaluation(client=client, error=type(exc).__name__)

            expired = {future for future in pending if _overdue(future)}
            if not expired:
                continue
            for future in expired:
                client = owners[future]
                logger.warning("Dashboard evaluation timed out for client %s", client.id)
                outcomes[client.id] = ClientEvaluation(client=client, error="timeout")
            pending -= expired
            requeued = [owners[future] for future in pending if future.cancel()]
            pending = {future for future in pending if not future.cancelled()}
            if requeued:
                pending |= _submit(requeued)
    finally:
        for pool in pools:
            pool.shutdown(wait=False, cancel_futures=True)
    return [outcomes[client.id] for client in clients]



def _log_failures(kind: str, coach_id: int, evaluations: list[ClientEvaluation]) -> None:
    failed = [evaluation.client.id for evaluation in evaluations if not evaluation.ok]
    if failed:
        logger.warning(
            "Coach %s %s: %d of %d clients skipped (%s)",
            coach_id,
            kind,
            len(failed),
            len(evaluations),
            ", ".join(str(client_id) for client_id in failed),
        )


def get_alerts(db: Session, coach_id: int, now: datetime | None = None) -> list[ClientAlert]:
    now = as_utc(now or utcnow())
    today = now.date()
    clients = _client_refs(db, coach_id)
    dismissed = active_item_ids(db, coach_id, LedgerKind.DISMISSAL, now)

    evaluations = evaluate_clients(
        db, clients, lambda snapshot: evaluate_client_alerts(snapshot, today), now
    )
    _log_failures("alerts", coach_id, evaluations)
    alerts = [
        alert
        for evaluation in evaluations
        for alert in evaluation.items
        if alert.id not in dismissed
    ]
    return sort_alerts(alerts)


def get_wins(db: Session, coach_id: int, now: datetime | None = None) -> list[ClientWin]:
    now = as_utc(now or utcnow())
    today = now.date()
    clients = _client_refs(db, coach_id)
    celebrated = active_item_ids(db, coach_id, LedgerKind.CELEBRATION, now)

    evaluations = evaluate_clients(
        db, clients, lambda snapshot: evaluate_client_wins(snapshot, today, now), now
    )
    _log_failures("wins", coach_id, evaluations)
    wins = []
    for evaluation in evaluations:
        for win in evaluation.items:
            if win.id in celebrated:
                win = win.model_copy(update={"celebrated": True})
            wins.append(win)
    return sort_wins(wins)
