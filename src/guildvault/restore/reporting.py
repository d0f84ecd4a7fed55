"""
Restore outcome report

Every entity a restore touches ends up here as one EntityOutcome, so callers can
see degraded entities without reading logs.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional

if TYPE_CHECKING:
    from ..models import Document


class OutcomeStatus(Enum):
    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class EntityOutcome:
    kind: str  # role, category, channel, thread, messages, emoji, ban, setting, reset
    name: str
    status: OutcomeStatus
    detail: str = ""


@dataclass
class RestoreReport:
    document: Optional["Document"] = None
    outcomes: List[EntityOutcome] = field(default_factory=list)

    def ok(self, kind: str, name: str, detail: str = "") -> None:
        self.outcomes.append(EntityOutcome(kind, name, OutcomeStatus.OK, detail))

    def failed(self, kind: str, name: str, error: BaseException | str) -> None:
        detail = error if isinstance(error, str) else f"{type(error).__name__}: {error}"
        self.outcomes.append(EntityOutcome(kind, name, OutcomeStatus.FAILED, detail))

    def skipped(self, kind: str, name: str, reason: str) -> None:
        self.outcomes.append(EntityOutcome(kind, name, OutcomeStatus.SKIPPED, reason))

    def of_kind(self, kind: str, status: Optional[OutcomeStatus] = None) -> List[EntityOutcome]:
        return [o for o in self.outcomes if o.kind == kind and (status is None or o.status is status)]

    def names(self, kind: str, status: OutcomeStatus = OutcomeStatus.OK) -> List[str]:
        return [o.name for o in self.of_kind(kind, status)]

    @property
    def failures(self) -> List[EntityOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.FAILED]

    def counts(self) -> Dict[str, Dict[str, int]]:
        result: Dict[str, Dict[str, int]] = {}
        for (kind, status), n in Counter((o.kind, o.status.value) for o in self.outcomes).items():
            result.setdefault(kind, {})[status] = n
        return result

    def summary(self) -> str:
        lines = []
        for kind, by_status in sorted(self.counts().items()):
            parts = ", ".join(f"{n} {status}" for status, n in sorted(by_status.items()))
            lines.append(f"{kind}: {parts}")
        return "\n".join(lines) if lines else "nothing restored"
