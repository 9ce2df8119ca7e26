# wholesale/services/stock_events.py
"""
In-process stock change notifications.

A session that writes product rows (ORM flushes or the conditional UPDATEs issued
by the reservation policy) collects the touched ids in `session.info`. After the
transaction commits, one `StockChanged` event is published on the bus. Rolled back
work publishes nothing.

Subscribers (the catalog cache) drop derived state on every event, so
the next catalog read refetches from the database (last write wins).
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Iterable

from sqlalchemy import event
from sqlalchemy.orm import Session

from wholesale.core.logging import get_logger
from wholesale.models import Product

logger = get_logger(__name__)

_INFO_KEY = "stock_changed_product_ids"


@dataclass(frozen=True)
class StockChanged:
    product_ids: frozenset[int]


Subscriber = Callable[[StockChanged], None]


class StockEventBus:
    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def publish(self, evt: StockChanged) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(evt)
            except Exception:
                # one broken subscriber must not keep the others stale
                logger.error("stock_event_subscriber_failed", callback=repr(callback), exc_info=True)

    def __len__(self) -> int:
        return len(self._subscribers)


stock_events = StockEventBus()


def mark_stock_changed(session: Session, product_ids: Iterable[int]) -> None:
    """Record product ids written outside the unit of work (bulk/conditional UPDATEs)."""
    session.info.setdefault(_INFO_KEY, set()).update(int(pid) for pid in product_ids)


# ---------------------------------------------------------------------------
# Session events
# ---------------------------------------------------------------------------
@event.listens_for(Session, "after_flush")
def _collect_product_changes(session: Session, flush_context) -> None:  # noqa: ANN001
    touched = [
        obj.id
        for obj in list(session.new) + list(session.dirty) + list(session.deleted)
        if isinstance(obj, Product) and obj.id is not None
    ]
    if touched:
        mark_stock_changed(session, touched)


@event.listens_for(Session, "after_commit")
def _publish_product_changes(session: Session) -> None:
    ids = session.info.pop(_INFO_KEY, None)
    if ids:
        stock_events.publish(StockChanged(product_ids=frozenset(ids)))


@event.listens_for(Session, "after_rollback")
def _discard_product_changes(session: Session) -> None:
    session.info.pop(_INFO_KEY, None)
