"""SQLAlchemy implementation of the mutation-tracking contracts.

Wraps an ORM ``Session`` (or the sync session behind an ``AsyncSession``) and
exposes its staged inserts, updates and deletes as MutationRecords. Values are
read from attribute history without emitting SQL, so entities must have their
columns loaded when captured (the session factory keeps expire_on_commit off).

A flush empties attribute history and moves deleted objects out of the identity
map. Changes flushed before capture are therefore kept in a per-session
``FlushLog`` (filled by a ``before_flush`` listener, emptied when the outermost
transaction ends) and merged back into the change set. The log only sees
flushes that happen after ``track_flushes()`` (or ``SqlAlchemyTrackingSession``)
was first applied to the session.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from sqlalchemy import event, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import History

from change_audit.audit.tracking import TrackedProperty
from change_audit.domain.exceptions import PrimaryKeyResolutionError, TrackingContractError
from change_audit.domain.models.audit import EntityState

_FLUSH_LOG_KEY = "change_audit.flush_log"


def _original_value(history: History) -> Any:
    if history.deleted:
        return history.deleted[0]
    if history.unchanged:
        return history.unchanged[0]
    return None


def _sync_session(session: Union[Session, AsyncSession]) -> Session:
    if isinstance(session, AsyncSession):
        return session.sync_session
    return session


@dataclass
class FlushedChange:
    """Accumulated effect of the flushes seen so far on one entity."""

    entity: Any
    state: EntityState
    # Pre-transaction values of the fields the flushes overwrote.
    originals: Dict[str, Any] = field(default_factory=dict)


class FlushLog:
    """Changes already flushed in the current transaction, in first-flush order."""

    def __init__(self) -> None:
        self._changes: Dict[Any, FlushedChange] = {}

    def record(self, session: Session) -> None:
        for entity in session.new:
            self._note(entity, EntityState.ADDED)
        for entity in session.dirty:
            if session.is_modified(entity, include_collections=False):
                self._note(entity, EntityState.MODIFIED)
        for entity in session.deleted:
            self._note(entity, EntityState.DELETED)

    def _note(self, entity: Any, state: EntityState) -> None:
        instance_state = inspect(entity)
        change = self._changes.get(instance_state)

        if change is None:
            change = FlushedChange(entity=entity, state=state)
            self._changes[instance_state] = change
            if state == EntityState.ADDED:
                return
        elif change.state == EntityState.ADDED:
            # Later updates fold into the insert; a later delete cancels it.
            if state == EntityState.DELETED:
                change.state = EntityState.DETACHED
            return
        elif change.state == EntityState.DETACHED:
            return
        elif state == EntityState.DELETED:
            change.state = EntityState.DELETED

        for prop in instance_state.mapper.column_attrs:
            history = instance_state.attrs[prop.key].history
            if state == EntityState.DELETED or history.has_changes():
                change.originals.setdefault(prop.key, _original_value(history))

    def changes(self) -> List[Tuple[Any, FlushedChange]]:
        return list(self._changes.items())

    def clear(self) -> None:
        self._changes.clear()


def _on_before_flush(session: Session, flush_context: Any, instances: Any) -> None:
    session.info[_FLUSH_LOG_KEY].record(session)


def _on_after_transaction_end(session: Session, transaction: Any) -> None:
    if transaction.parent is None:
        session.info[_FLUSH_LOG_KEY].clear()


def track_flushes(session: Union[Session, AsyncSession]) -> FlushLog:
    """Install the flush log on session (once) and return it."""
    session = _sync_session(session)
    flush_log = session.info.get(_FLUSH_LOG_KEY)
    if flush_log is None:
        flush_log = FlushLog()
        session.info[_FLUSH_LOG_KEY] = flush_log
        event.listen(session, "before_flush", _on_before_flush)
        event.listen(session, "after_transaction_end", _on_after_transaction_end)
    return flush_log


def _net_state(flushed: EntityState, live: EntityState) -> EntityState:
    if flushed == EntityState.DETACHED:
        return EntityState.DETACHED
    if live == EntityState.DELETED:
        # Inserted and deleted inside one transaction: nothing reaches the table.
        return EntityState.DETACHED if flushed == EntityState.ADDED else EntityState.DELETED
    return flushed


class SqlAlchemyMutation:
    """MutationRecord over one ORM instance. Borrowed: valid while its session is."""

    def __init__(
        self,
        session: Session,
        entity: Any,
        state: EntityState,
        flushed_originals: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._session = session
        self._instance_state = inspect(entity)
        self._flushed_originals = flushed_originals or {}
        mapper = self._instance_state.mapper
        entity_cls = mapper.class_

        self.entity = entity
        self.state = state
        self.entity_name = entity_cls.__name__
        self.entity_type = f"{entity_cls.__module__}.{entity_cls.__qualname__}"
        self.primary_key_names = tuple(
            mapper.get_property_by_column(column).key for column in mapper.primary_key
        )

    def _resolve_pending(self, column: Any, current: Any) -> Tuple[bool, Any]:
        """(is_temporary, value) of a column; an unset insert value takes its default."""
        if self.state != EntityState.ADDED or current is not None:
            return False, current
        default = column.default
        if default is not None and default.is_scalar:
            return False, default.arg
        # Generated by the database or by a callable at flush time.
        temporary = bool(
            column.primary_key
            or default is not None
            or column.server_default is not None
        )
        return temporary, current

    def properties(self) -> Iterator[TrackedProperty]:
        instance_state = self._instance_state
        originals = self._flushed_originals
        for prop in instance_state.mapper.column_attrs:
            history = instance_state.attrs[prop.key].history
            is_temporary, current = self._resolve_pending(
                prop.columns[0], instance_state.dict.get(prop.key)
            )
            if prop.key in originals:
                original = originals[prop.key]
                is_modified = original != current
            else:
                original = _original_value(history)
                is_modified = history.has_changes()
            yield TrackedProperty(
                name=prop.key,
                is_temporary=is_temporary,
                is_modified=is_modified,
                original_value=original,
                current_value=current,
            )

    def _last_known_key(self) -> Optional[Dict[str, Any]]:
        values = self._instance_state.dict
        return {name: values.get(name) for name in self.primary_key_names}

    def primary_key_values(self) -> Dict[str, Any]:
        try:
            identity = self._instance_state.identity
        except SQLAlchemyError as e:
            raise PrimaryKeyResolutionError(self.entity_name, self._last_known_key(), str(e)) from e
        if identity is None:
            raise PrimaryKeyResolutionError(
                self.entity_name,
                self._last_known_key(),
                "entity has no persisted identity; finalize must run after a successful commit",
            )
        return dict(zip(self.primary_key_names, identity))

    def mark_modified(self) -> None:
        """Cancel a pending delete; the entity is flushed as an update instead."""
        if self.state != EntityState.DELETED:
            return
        if self._instance_state.was_deleted:
            raise TrackingContractError(
                f"delete of {self.entity_name} was already flushed and cannot become an update"
            )
        self._session.add(self.entity)
        self.state = EntityState.MODIFIED

    def __repr__(self) -> str:
        return f"<SqlAlchemyMutation {self.entity_name} {self.state.value}>"


class SqlAlchemyTrackingSession:
    """MutationTrackingSession over a SQLAlchemy session. Reads only, except mark_modified()."""

    def __init__(self, session: Union[Session, AsyncSession]) -> None:
        self._session = _sync_session(session)
        self._flush_log = track_flushes(self._session)
        self._entries: Optional[List[SqlAlchemyMutation]] = None

    @property
    def session(self) -> Session:
        return self._session

    def _classify(self, entity: Any, deleted: Any) -> EntityState:
        instance_state = inspect(entity)
        if instance_state.pending:
            return EntityState.ADDED
        if entity in deleted or instance_state.deleted:
            return EntityState.DELETED
        if self._session.is_modified(entity, include_collections=False):
            return EntityState.MODIFIED
        return EntityState.UNCHANGED

    def detect_changes(self) -> None:
        """
        Snapshot tracked entities: those already flushed in this transaction first,
        then persistent ones in identity-map order, then pending ones in add order.
        """
        session = self._session
        deleted = session.deleted
        entries = []
        seen = set()

        for instance_state, change in self._flush_log.changes():
            seen.add(instance_state)
            state = _net_state(change.state, self._classify(change.entity, deleted))
            entries.append(
                SqlAlchemyMutation(session, change.entity, state, change.originals)
            )

        for entity in list(session.identity_map.values()) + list(session.new):
            if inspect(entity) in seen:
                continue
            entries.append(
                SqlAlchemyMutation(session, entity, self._classify(entity, deleted))
            )

        self._entries = entries

    def entries(self) -> List[SqlAlchemyMutation]:
        if self._entries is None:
            self.detect_changes()
        return list(self._entries)
