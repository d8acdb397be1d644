from dataclasses import dataclass

from django.test import TestCase

from shared.application.message_bus import MessageBus
from shared.application.uow import DjangoUnitOfWork
from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class SomethingHappened(DomainEvent):
    value: int


class UnitOfWorkTests(TestCase):
    def setUp(self) -> None:
        self.bus = MessageBus()
        self.received = []
        self.bus.register_event_handler(SomethingHappened, self.received.append)

    def test_events_are_published_after_commit(self) -> None:
        with self.captureOnCommitCallbacks(execute=True):
            with DjangoUnitOfWork(self.bus) as uow:
                uow.add_event(SomethingHappened(value=1))
                self.assertEqual(self.received, [])

        self.assertEqual([event.value for event in self.received], [1])

    def test_events_are_discarded_on_rollback(self) -> None:
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            try:
                with DjangoUnitOfWork(self.bus) as uow:
                    uow.add_event(SomethingHappened(value=2))
                    raise RuntimeError("boom")
            except RuntimeError:
                pass

        self.assertEqual(callbacks, [])
        self.assertEqual(self.received, [])

    def test_failing_subscriber_does_not_block_others(self) -> None:
        def broken(event):
            raise ValueError("subscriber failed")

        bus = MessageBus()
        received = []
        bus.register_event_handler(SomethingHappened, broken)
        bus.register_event_handler(SomethingHappened, received.append)

        bus.publish_events([SomethingHappened(value=3)])

        self.assertEqual(len(received), 1)
