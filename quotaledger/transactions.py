"""
Optimistic transactions over a versioned document store.

A transaction reads a document and its version, computes the new state, and
commits with compare-and-set. A lost race or transient storage failure is
retried from a fresh read, with bounded exponential backoff.
"""

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from quotaledger.errors import Internal, TransientStorageError
from quotaledger.storage import Document, DocumentStore

logger = logging.getLogger("quotaledger.transactions")

# fn(current_document) -> (new_document or None for no write, result)
TransactionFn = Callable[[Optional[Document]], Tuple[Optional[Document], Any]]


@dataclass
class RetryConfig:
    """Retry configuration."""
    max_attempts: int = 5
    base_delay_seconds: float = 0.01
    backoff_factor: float = 2.0
    max_delay_seconds: float = 0.2
    jitter: bool = True

    def delay_for(self, attempt: int) -> float:
        delay = min(
            self.base_delay_seconds * (self.backoff_factor ** attempt),
            self.max_delay_seconds,
        )
        if self.jitter:
            delay *= 0.5 + random.random() / 2
        return delay


def run_transaction(
    store: DocumentStore,
    collection: str,
    doc_id: str,
    fn: TransactionFn,
    retry: Optional[RetryConfig] = None,
    on_retry: Optional[Callable[[int], None]] = None,
) -> Any:
    """
    Run fn as a read-modify-write transaction on one document.

    Exceptions raised by fn propagate immediately and nothing is written.

    Args:
        store: Document store.
        collection: Collection name ("profile" or "usage").
        doc_id: Document id (the user id).
        fn: Transaction body. Must be free of side effects, it may run
            more than once.
        retry: Retry configuration. Uses defaults if not provided.
        on_retry: Called with the attempt number before each retry.

    Returns:
        The result returned by fn on the committed attempt.

    Raises:
        Internal: If every attempt lost a race or hit a transient error.
    """
    config = retry or RetryConfig()
    last_error: Optional[BaseException] = None

    for attempt in range(config.max_attempts):
        if attempt > 0:
            if on_retry:
                on_retry(attempt)
            time.sleep(config.delay_for(attempt - 1))

        try:
            data, version = store.get(collection, doc_id)
            new_data, result = fn(data)
            if new_data is None:
                return result
            if store.compare_and_set(collection, doc_id, new_data, version):
                return result
            last_error = None
            logger.debug(
                "transaction_conflict collection=%s doc_id=%s attempt=%d",
                collection, doc_id, attempt + 1,
            )
        except TransientStorageError as e:
            last_error = e
            logger.warning(
                "transaction_transient_error collection=%s doc_id=%s attempt=%d error=%s",
                collection, doc_id, attempt + 1, e,
            )

    logger.error(
        "transaction_aborted collection=%s doc_id=%s attempts=%d",
        collection, doc_id, config.max_attempts,
    )
    raise Internal(
        f"Transaction on {collection}/{doc_id} failed after "
        f"{config.max_attempts} attempts",
        cause=last_error,
    )
