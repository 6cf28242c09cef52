"""AuditRecord model."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from changetrail.audit.models.enums import AuditAction


class AuditRecord(BaseModel):
    """One durable entry describing a single row's change.

    Records are immutable. `id` and `created_at` are assigned by the store
    when the record is written.
    """

    model_config = ConfigDict(frozen=True)

    id: int | None = Field(default=None, description="Store-assigned sequence id")
    actor_id: str | None = Field(default=None, description="Acting user or service")
    ip_address: str | None = Field(default=None, description="Client IP address")
    user_agent: str | None = Field(default=None, description="Client user agent")
    action: AuditAction = Field(..., description="Mutation kind")
    table_name: str = Field(..., description="Affected table")
    record_id: str = Field(..., description="Identity of the affected row")
    old_values: dict[str, Any] | None = Field(default=None, description="Row before the change")
    new_values: dict[str, Any] | None = Field(default=None, description="Row after the change")
    changed_fields: list[str] | None = Field(default=None, description="Fields whose value changed")
    metadata: dict[str, Any] | None = Field(default=None, description="Caller-supplied context")
    transaction_id: str | None = Field(default=None, description="Statement correlation id")
    created_at: datetime | None = Field(default=None, description="Write time")
    deleted_at: datetime | None = Field(default=None, description="Soft-delete marker")
