from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ProviderId(str, Enum):
    PERSPECTIVE = "perspective"
    CLAUDE = "claude"
    NONE = "none"


class OutcomeKind(str, Enum):
    NO_ACTIVE_ITEM = "no_active_item"
    ALREADY_RESOLVED = "already_resolved"
    ALREADY_FLAGGED = "already_flagged"
    NO_RETRIEVABLE_TEXT = "no_retrievable_text"
    PASSED = "passed"
    DRY_RUN = "dry_run"
    FLAGGED = "flagged"
    ACTION_FAILED = "action_failed"

    @property
    def is_failure(self) -> bool:
        return self is OutcomeKind.ACTION_FAILED


@dataclass(frozen=True, slots=True)
class ItemRecord:
    """Snapshot of the active item, read once per run.

    Ledger-specific fields that moderation does not look at (stake, timestamps,
    vote tallies, ...) are carried untouched in ``extra``.
    """

    id: int
    content_ref: str
    content_hash: bytes = b""
    resolved: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def digest_hex(self) -> str | None:
        if not self.content_hash or not any(self.content_hash):
            return None
        return "0x" + self.content_hash.hex()


@dataclass(frozen=True, slots=True)
class ResolvedText:
    text: str
    scheme: str
    endpoint: str | None = None

    def preview(self, limit: int = 120) -> str:
        return self.text if len(self.text) <= limit else self.text[:limit] + "…"


@dataclass(frozen=True, slots=True)
class Verdict:
    flagged: bool
    reasons: tuple[str, ...]
    provider: ProviderId


@dataclass(frozen=True, slots=True)
class TxReceipt:
    tx_hash: str
    block_number: int | None
    status: int


@dataclass(frozen=True, slots=True)
class RunOutcome:
    """Terminal result of one keeper run."""

    kind: OutcomeKind
    item_id: int | None = None
    verdict: Verdict | None = None
    receipt: TxReceipt | None = None
    error: str | None = None
    source: ResolvedText | None = None

    @property
    def exit_code(self) -> int:
        return 1 if self.kind.is_failure else 0

    def describe(self) -> str:
        if self.kind is OutcomeKind.FLAGGED and self.receipt is not None:
            return f"flagged item {self.item_id} in tx {self.receipt.tx_hash}"
        if self.kind is OutcomeKind.ACTION_FAILED:
            return f"flagging item {self.item_id} failed: {self.error}"
        if self.verdict is not None and self.verdict.reasons:
            return f"{self.kind.value} ({', '.join(self.verdict.reasons)})"
        return self.kind.value
