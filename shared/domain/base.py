"""
Base Domain Classes

Building blocks shared by the booking engine's domain layer:
- Entity: object with identity
- ValueObject: immutable object compared by value
- Aggregate: consistency boundary that collects domain events
- DomainEvent: fact that happened inside an aggregate
"""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List
from uuid import UUID, uuid4

from django.utils import timezone


@dataclass(kw_only=True)
class Entity(ABC):
    """
    Base class for entities

    Two entities are equal if their identifiers are equal. Identifiers are
    whatever the persistence layer uses (database pk for Django-backed
    aggregates), a UUID is generated for transient ones.
    """
    id: Any = field(default_factory=uuid4)

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return False
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)


@dataclass(frozen=True)
class ValueObject(ABC):
    """Immutable object without identity, equal when all attributes are equal."""
    pass


@dataclass(kw_only=True, eq=False)
class Aggregate(Entity):
    """
    Base class for aggregate roots

    Events added here are collected by the unit of work and published
    only after the surrounding transaction commits.
    """
    _events: List['DomainEvent'] = field(default_factory=list, repr=False, init=False, compare=False)

    def add_event(self, event: 'DomainEvent'):
        self._events.append(event)

    def clear_events(self):
        self._events.clear()

    @property
    def events(self) -> List['DomainEvent']:
        """Copy of the events recorded since the last clear"""
        return self._events.copy()


@dataclass(kw_only=True)
class DomainEvent:
    """
    Base class for domain events

    Envelope fields are keyword-only so that concrete events can declare
    their own positional payload fields.
    """
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=timezone.now)
    aggregate_id: Any = None
