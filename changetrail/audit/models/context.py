"""AuditContext model."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuditContext(BaseModel):
    """Who or what triggered a mutation.

    Copied onto every audit record built for one statement. All fields
    are optional; an unset context produces records without actor data.
    """

    model_config = ConfigDict(frozen=True)

    actor_id: str | None = Field(default=None, max_length=255, description="Acting user or service")
    ip_address: str | None = Field(default=None, max_length=45, description="Client IP (v4 or v6)")
    user_agent: str | None = Field(default=None, description="Client user agent")
    metadata: dict[str, Any] | None = Field(default=None, description="Caller-supplied context")
    transaction_id: str | None = Field(
        default=None,
        max_length=255,
        description="Correlation id; generated per statement when unset",
    )
