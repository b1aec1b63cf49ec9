"""Domain exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from accessdesk.application.dto.commit_result import CommitResult


class AccessDeskError(Exception):
    """Base exception for accessdesk."""

    pass


class NotFound(AccessDeskError):
    """Requested resource, grant or editor was not found."""

    def __init__(self, kind: str, key: str) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class ValidationError(AccessDeskError):
    """Validation failed for input data."""

    pass


class HierarchyViolation(AccessDeskError):
    """Edit would enable a gated flag while its gate is disabled.

    The mask is left unchanged; the gate is never enabled implicitly.
    """

    def __init__(self, flag: str, gate: str) -> None:
        self.flag = flag
        self.gate = gate
        super().__init__(f"Cannot enable {flag} while {gate} is disabled")


class LockedResource(AccessDeskError):
    """Resource is inherited from a higher-level owner and cannot be changed."""

    def __init__(self, resource_id: str) -> None:
        self.resource_id = resource_id
        super().__init__(f"Resource {resource_id} is inherited and cannot be modified")


class NoActiveResource(AccessDeskError):
    """Mask edit attempted with no resource open for editing."""

    pass


class InvalidSessionState(AccessDeskError):
    """Operation is not allowed in the session's current state."""

    pass


class CommitInProgress(InvalidSessionState):
    """A commit is already running for this session."""

    pass


class LoadError(AccessDeskError):
    """Catalog or baseline fetch failed; the session is unusable until reloaded."""

    pass


class StoreError(AccessDeskError):
    """A remote store call failed."""

    def __init__(
        self,
        detail: str,
        resource_id: str | None = None,
        status: int | None = None,
    ) -> None:
        self.detail = detail
        self.resource_id = resource_id
        self.status = status
        super().__init__(detail)


class CommitPartialFailure(AccessDeskError):
    """One or more remote operations of a commit failed."""

    def __init__(self, result: CommitResult) -> None:
        self.result = result
        failed = ", ".join(f.resource_id for f in result.failures)
        super().__init__(f"{len(result.failures)} operation(s) failed: {failed}")
