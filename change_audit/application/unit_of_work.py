"""Audited unit of work: the commit boundary. Stamps, flushes and captures, commits, finalizes, then emits records and events."""

import logging
from typing import Any, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from change_audit.application.audit_repository import AuditRecordSink
from change_audit.application.event_dispatch import (
    DomainEventDispatcher,
    EventPublisher,
    dispatch_domain_events,
    publish_domain_events,
)
from change_audit.application.exceptions import AuditPersistenceError
from change_audit.application.stamping import (
    apply_audit_values,
    apply_soft_deletion,
    apply_tenant_values,
)
from change_audit.audit.capture import capture_pending_audit_entries
from change_audit.audit.finalizer import finalize_audit_entries
from change_audit.config.settings import AuditSettings, get_settings
from change_audit.core.context import tenant_id_ctx, user_id_ctx
from change_audit.domain.models.audit import GenericAuditRecord
from change_audit.infrastructure.database.tracking import SqlAlchemyTrackingSession


class AuditedUnitOfWork:
    """
    Commits an AsyncSession and produces its audit trail.
    The session is flushed and captured before the commit (the flush log keeps
    the pre-flush values), and finalization runs after it (keys are persisted).
    A failed flush or commit rolls back and finalizes nothing; a failed sink
    raises AuditPersistenceError but leaves the data commit in place. Build the
    unit of work before the first flush of the transaction so that every flush
    is logged. Not safe for concurrent use on one session.
    """

    def __init__(
        self,
        session: AsyncSession,
        record_sink: AuditRecordSink,
        logger: logging.Logger,
        dispatcher: Optional[DomainEventDispatcher] = None,
        publisher: Optional[EventPublisher] = None,
        settings: Optional[AuditSettings] = None,
        tracking: Optional[Any] = None,
    ) -> None:
        if dispatcher is not None and publisher is not None:
            raise ValueError("configure either a dispatcher or a publisher, not both")
        self._session = session
        self._sink = record_sink
        self._logger = logger
        self._dispatcher = dispatcher
        self._publisher = publisher
        self._settings = settings or get_settings()
        self._tracking = tracking or SqlAlchemyTrackingSession(session)

    async def commit(
        self,
        user_id: Optional[str] = None,
        tenant_id: Optional[str] = None,
    ) -> List[GenericAuditRecord]:
        """
        Stamp, flush and capture, commit, finalize, hand records to the sink, then emit domain events.
        tenant_id falls back to the ambient tenant context when not given.
        """
        if tenant_id is None:
            tenant_id = tenant_id_ctx.get()
        user_token = user_id_ctx.set(user_id)
        tenant_token = tenant_id_ctx.set(tenant_id)
        try:
            return await self._commit(user_id, tenant_id)
        finally:
            tenant_id_ctx.reset(tenant_token)
            user_id_ctx.reset(user_token)

    async def _commit(
        self,
        user_id: Optional[str],
        tenant_id: Optional[str],
    ) -> List[GenericAuditRecord]:
        strict = self._settings.strict_stamping

        # Step 1: Stamp tenant, soft-delete and audit fields
        apply_tenant_values(self._tracking, tenant_id, strict)
        apply_soft_deletion(self._tracking, user_id, strict)
        apply_audit_values(self._tracking, user_id, strict)

        # Step 2: Flush so client-generated keys and defaults are filled in,
        # capture from the flush log, then commit (failure: roll back, nothing is finalized)
        pending = []
        try:
            await self._session.flush()
            pending = capture_pending_audit_entries(self._tracking, user_id)
            await self._session.commit()
        except Exception as e:
            self._logger.error(
                "audited_commit_failed",
                extra={
                    "correlation_id": pending[0].correlation_id if pending else None,
                    "error": str(e),
                },
            )
            await self._session.rollback()
            raise

        # Step 3: Finalize now that generated keys exist
        records = finalize_audit_entries(pending)

        # Step 4: Hand the correlation group to the sink
        if records:
            try:
                await self._sink.save_many(records)
            except Exception as e:
                self._logger.error(
                    "audit_sink_failed",
                    extra={
                        "correlation_id": records[0].correlation_id,
                        "record_count": len(records),
                        "error": str(e),
                    },
                )
                raise AuditPersistenceError(f"Audit sink failed: {e}") from e

        # Step 5: Domain events (at most once, after the data is durable)
        if self._dispatcher is not None:
            await dispatch_domain_events(self._tracking, self._dispatcher)
        if self._publisher is not None:
            await publish_domain_events(self._tracking, self._publisher)

        self._logger.info(
            "audited_commit_completed",
            extra={
                "correlation_id": records[0].correlation_id if records else None,
                "record_count": len(records),
            },
        )
        return records
