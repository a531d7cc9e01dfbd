"""Entity capabilities: domain events and audit stamp fields.

Each capability is a runtime-checkable protocol so that capture and stamping
can resolve it once per entity with ``isinstance``. ``HasDomainEvents`` is the
ready-made mixin for ORM classes that raise domain events.
"""

from datetime import datetime
from typing import Any, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class GeneratesDomainEvents(Protocol):
    """Entity exposing a readable, clearable, ordered queue of pending domain events."""

    @property
    def domain_events(self) -> List[Any]:
        ...


class HasDomainEvents:
    """
    Mixin giving an entity a pending domain event queue.
    The queue lives in the instance ``__dict__`` and is created on first use, so
    it also exists on instances the ORM loads without calling ``__init__``.
    """

    @property
    def domain_events(self) -> List[Any]:
        events = self.__dict__.get("_domain_events")
        if events is None:
            events = []
            self.__dict__["_domain_events"] = events
        return events

    def raise_event(self, event: Any) -> None:
        self.domain_events.append(event)


@runtime_checkable
class SoftDelete(Protocol):
    is_deleted: Optional[bool]


@runtime_checkable
class HasDeletionTime(Protocol):
    deleted_at: Optional[datetime]


@runtime_checkable
class DeletionAudited(Protocol):
    deleted_by: Optional[str]


@runtime_checkable
class HasCreationTime(Protocol):
    created_at: Optional[datetime]


@runtime_checkable
class CreationAudited(Protocol):
    created_by: Optional[str]


@runtime_checkable
class HasModificationTime(Protocol):
    updated_at: Optional[datetime]


@runtime_checkable
class ModificationAudited(Protocol):
    updated_by: Optional[str]


@runtime_checkable
class HasTenant(Protocol):
    tenant_id: Optional[str]
