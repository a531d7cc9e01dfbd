"""Audit-domain exceptions. Pure domain layer, free of infrastructure imports."""

from typing import Any, Dict, Optional


class AuditError(Exception):
    """Base for all audit-domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class TrackingContractError(AuditError):
    """Raised when a tracking session or mutation record lacks a required capability."""


class PrimaryKeyResolutionError(AuditError):
    """Raised at finalize time when a mutation record can no longer yield its primary key."""

    def __init__(
        self,
        entity_name: str,
        last_known_key: Optional[Dict[str, Any]],
        reason: str,
    ) -> None:
        self.entity_name = entity_name
        self.last_known_key = last_known_key
        super().__init__(
            f"Cannot resolve primary key for {entity_name} "
            f"(last known key: {last_known_key!r}): {reason}"
        )
