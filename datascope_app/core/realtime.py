"""
In-process change feed for models.

``subscribe_to_changes`` connects a callback to Django's ``post_save`` and
``post_delete`` signals and translates them into INSERT/UPDATE/DELETE events.
Only writes made through model instances or ``QuerySet.delete`` are seen;
``bulk_create`` and ``QuerySet.update`` do not emit signals.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from django.db.models.signals import post_delete, post_save

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"
ALL_EVENTS = (INSERT, UPDATE, DELETE)

_subscription_ids = itertools.count(1)


@dataclass(frozen=True)
class ChangeEvent:
    kind: str
    table: str
    pk: Any


class Subscription:
    """Handle returned by ``subscribe_to_changes``; call ``unsubscribe`` once done."""

    def __init__(self, model, callback: Callable[[ChangeEvent], None], events: Iterable[str]):
        self.model = model
        self.callback = callback
        self.events = frozenset(events)
        self.uid = f"realtime.{model._meta.label_lower}.{next(_subscription_ids)}"
        self.active = False

    def _on_save(self, sender, instance, created, raw=False, **kwargs):
        kind = INSERT if created else UPDATE
        if raw or kind not in self.events:
            return
        self._deliver(ChangeEvent(kind, sender._meta.db_table, instance.pk))

    def _on_delete(self, sender, instance, **kwargs):
        if DELETE in self.events:
            self._deliver(ChangeEvent(DELETE, sender._meta.db_table, instance.pk))

    def _deliver(self, event: ChangeEvent) -> None:
        logger.debug("Change event %s on %s (pk=%s)", event.kind, event.table, event.pk)
        self.callback(event)

    def connect(self) -> "Subscription":
        post_save.connect(self._on_save, sender=self.model, weak=False, dispatch_uid=self.uid)
        post_delete.connect(self._on_delete, sender=self.model, weak=False, dispatch_uid=self.uid)
        self.active = True
        return self

    def unsubscribe(self) -> None:
        if not self.active:
            return
        post_save.disconnect(sender=self.model, dispatch_uid=self.uid)
        post_delete.disconnect(sender=self.model, dispatch_uid=self.uid)
        self.active = False


def subscribe_to_changes(
    model, callback: Callable[[ChangeEvent], None], events: Iterable[str] = ALL_EVENTS
) -> Subscription:
    return Subscription(model, callback, events).connect()
