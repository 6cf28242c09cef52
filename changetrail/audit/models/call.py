"""Collaborator call descriptors."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from changetrail.audit.models.context import AuditContext
from changetrail.audit.models.enums import AuditAction


class Predicate(BaseModel):
    """Row filter of a mutating statement, used to read before-state.

    `where` is a SQL boolean expression with `$n` placeholders bound to
    `params`, e.g. `Predicate(where="id = $1", params=(42,))`.
    """

    model_config = ConfigDict(frozen=True)

    where: str = Field(..., min_length=1, description="SQL boolean expression")
    params: tuple[Any, ...] = Field(default=(), description="Placeholder values")


class MutationCall(BaseModel):
    """Affected rows of one mutating statement, reported by a data-access layer.

    `after_rows` for INSERT/UPDATE and `before_rows` for DELETE must be
    complete rows, not just affected-row counts.
    """

    action: AuditAction
    table_name: str
    before_rows: list[dict[str, Any]] | None = None
    after_rows: list[dict[str, Any]] | None = None
    context: AuditContext | None = None
