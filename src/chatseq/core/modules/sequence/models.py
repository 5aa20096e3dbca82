"""Numbering scopes and the results of drift inspection and correction."""

from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

from chatseq.utils import now


class ScopeKind(StrEnum):
    """Numbering domains. The parent of a CHATS scope is an application, of a MESSAGES scope a chat."""

    CHATS = "chats"
    MESSAGES = "messages"


class Scope(BaseModel):
    """A numbering domain: numbers are unique within a scope and never compared across scopes."""

    kind: ScopeKind
    parent_id: UUID

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> str:
        return f"{self.kind}:{self.parent_id}"

    @classmethod
    def chats(cls, application_id: UUID) -> "Scope":
        return cls(kind=ScopeKind.CHATS, parent_id=application_id)

    @classmethod
    def messages(cls, chat_id: UUID) -> "Scope":
        return cls(kind=ScopeKind.MESSAGES, parent_id=chat_id)

    def __str__(self) -> str:
        return self.key


class ReconcileResult(BaseModel):
    """Outcome of reconciling a single scope."""

    scope: str = Field(..., description="Scope key")
    before: int = Field(0, description="Counter value found in the fast store (0 if absent)")
    after: int = Field(0, description="Counter value after reconciliation")
    db_max: int = Field(0, description="Highest number persisted in the durable store")
    corrected: bool = Field(False, description="Whether the counter was raised")
    error: str | None = Field(None, description="Failure reading or writing this scope, if any")

    @property
    def ok(self) -> bool:
        return self.error is None


class ReconcileReport(BaseModel):
    """Per-scope results of a batch reconciliation, successes and failures side by side."""

    started_at: datetime = Field(default_factory=now)
    results: list[ReconcileResult] = Field(default_factory=list)

    @property
    def corrected(self) -> list[ReconcileResult]:
        return [r for r in self.results if r.corrected]

    @property
    def failed(self) -> list[ReconcileResult]:
        return [r for r in self.results if not r.ok]


class ConsistencyStatus(StrEnum):
    HEALTHY = "healthy"
    WARNING = "warning"


class ScopeCheck(BaseModel):
    scope: str
    counter_value: int
    db_max: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def consistent(self) -> bool:
        return self.counter_value >= self.db_max


class ConsistencyReport(BaseModel):
    """Read-only snapshot of counter drift for a sample of scopes."""

    status: ConsistencyStatus
    checked_at: datetime = Field(default_factory=now)
    scopes: list[ScopeCheck] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
