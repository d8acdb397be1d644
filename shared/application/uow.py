"""
Unit of Work

Wraps a database transaction and defers domain event publication until
the outermost transaction has committed.
"""

from abc import ABC, abstractmethod
from typing import List, Optional
import logging

from django.db import transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(ABC):

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self):
        pass

    @abstractmethod
    def rollback(self):
        pass

    @abstractmethod
    def collect_events(self, aggregate):
        pass


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Usage:
        with DjangoUnitOfWork() as uow:
            booking = Booking.objects.select_for_update().get(pk=booking_id)
            ...
            uow.add_event(BookingConfirmed(...))
        # events reach the bus after COMMIT, never on rollback

    Nested units of work open a savepoint. Their events are scheduled with
    ``transaction.on_commit`` so they still wait for the outer commit and
    are discarded if the savepoint rolls back.
    """

    def __init__(self, bus=None, using: Optional[str] = None):
        self._events: List[DomainEvent] = []
        self._transaction = None
        self._bus = bus
        self._using = using

    def __enter__(self):
        self._transaction = transaction.atomic(using=self._using)
        self._transaction.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            if self._transaction:
                self._transaction.__exit__(exc_type, exc_val, exc_tb)

    def commit(self):
        logger.debug("Committing unit of work with %d events", len(self._events))
        events = self._events.copy()
        self._events.clear()
        if events:
            transaction.on_commit(lambda: self._publish_events(events), using=self._using)

    def rollback(self):
        if self._events:
            logger.warning("Rolling back unit of work, discarding %d events", len(self._events))
        self._events.clear()

    def add_event(self, event: DomainEvent):
        self._events.append(event)

    def collect_events(self, aggregate):
        """Move pending events from an aggregate into this unit of work"""
        new_events = getattr(aggregate, 'events', None)
        if new_events:
            self._events.extend(new_events)
            aggregate.clear_events()
            logger.debug(
                "Collected %d events from %s (ID: %s)",
                len(new_events), aggregate.__class__.__name__, aggregate.id,
            )

    def _publish_events(self, events: List[DomainEvent]):
        bus = self._bus
        if bus is None:
            from shared.application.message_bus import message_bus as bus

        logger.info("Publishing %d domain events after commit", len(events))
        try:
            bus.publish_events(events)
        except Exception:
            # State is already committed; handler failures are surfaced in logs only.
            logger.exception("Error publishing events")
