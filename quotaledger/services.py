"""Wiring for the ledger services over one shared store."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from quotaledger.ledger import QuotaLedger
from quotaledger.metrics import LedgerMetrics
from quotaledger.profiles import ProfileService
from quotaledger.storage import DocumentStore, InMemoryStorage, SQLiteStorage
from quotaledger.tasks import TaskCompletionService
from quotaledger.transactions import RetryConfig


@dataclass
class LedgerServices:
    """The three ledger services sharing a store and metrics collector."""
    store: DocumentStore
    metrics: LedgerMetrics
    quota: QuotaLedger
    tasks: TaskCompletionService
    profiles: ProfileService

    def close(self) -> None:
        self.store.close()


def build_services(
    store: Optional[DocumentStore] = None,
    metrics: Optional[LedgerMetrics] = None,
    retry: Optional[RetryConfig] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> LedgerServices:
    store = store or InMemoryStorage()
    metrics = metrics or LedgerMetrics()
    kwargs = {"store": store, "metrics": metrics, "retry": retry, "clock": clock}
    return LedgerServices(
        store=store,
        metrics=metrics,
        quota=QuotaLedger(**kwargs),
        tasks=TaskCompletionService(**kwargs),
        profiles=ProfileService(**kwargs),
    )


def open_sqlite(db_path: str, clock: Optional[Callable[[], datetime]] = None) -> LedgerServices:
    return build_services(store=SQLiteStorage(db_path=db_path), clock=clock)
