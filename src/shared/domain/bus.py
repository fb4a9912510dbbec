"""Event bus contracts for in-process domain event handling."""

from __future__ import annotations

from typing import Protocol, Sequence, Type, TypeVar

from shared.domain.events import DomainEvent

E = TypeVar("E", bound=DomainEvent, contravariant=True)


class IEventHandler(Protocol[E]):
    def handle(self, event: E) -> None: ...


class IEventBus(Protocol):
    def publish(self, event: DomainEvent) -> None: ...

    def subscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None: ...

    def handlers_for(self, event_class: Type[DomainEvent]) -> Sequence[IEventHandler]: ...
