# change_audit/infrastructure/database/models.py

import uuid

from sqlalchemy import Boolean, Column, DateTime, String, Uuid

from change_audit.infrastructure.database.session import Base


class AuditableModel(Base):
    """Abstract base carrying every stamp field the stamping helpers fill in."""

    __abstract__ = True

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    tenant_id = Column(String, nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)

    is_deleted = Column(Boolean, default=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by = Column(String, nullable=True)
