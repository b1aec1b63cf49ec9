"""Commit result DTOs."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from accessdesk.domain.exceptions import CommitPartialFailure


class OperationKind(StrEnum):
    ASSIGN = "assign"
    UNASSIGN = "unassign"
    UPDATE = "update"


@dataclass
class OperationFailure:
    """One remote call that failed during a commit."""

    kind: OperationKind
    resource_id: str
    detail: str
    grant_id: str | None = None


@dataclass
class OperationCounts:
    succeeded: int = 0
    failed: int = 0


def _empty_counts() -> dict[OperationKind, OperationCounts]:
    return {kind: OperationCounts() for kind in OperationKind}


@dataclass
class CommitResult:
    """Per-kind outcome counts and per-resource failures of one commit."""

    owner_id: str
    counts: dict[OperationKind, OperationCounts] = field(default_factory=_empty_counts)
    failures: list[OperationFailure] = field(default_factory=list)
    refreshed: bool = False
    applied: bool = True  # False when the session was discarded mid-commit

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def issued(self) -> int:
        return sum(c.succeeded + c.failed for c in self.counts.values())

    @property
    def failed_resource_ids(self) -> list[str]:
        return [f.resource_id for f in self.failures]

    def record_success(self, kind: OperationKind) -> None:
        self.counts[kind].succeeded += 1

    def record_failure(self, failure: OperationFailure) -> None:
        self.counts[failure.kind].failed += 1
        self.failures.append(failure)

    def raise_for_failures(self) -> None:
        if self.failures:
            raise CommitPartialFailure(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner_id": self.owner_id,
            "ok": self.ok,
            "applied": self.applied,
            "refreshed": self.refreshed,
            "counts": {
                kind.value: {"succeeded": c.succeeded, "failed": c.failed}
                for kind, c in self.counts.items()
            },
            "failures": [
                {
                    "kind": f.kind.value,
                    "resource_id": f.resource_id,
                    "grant_id": f.grant_id,
                    "detail": f.detail,
                }
                for f in self.failures
            ],
        }
