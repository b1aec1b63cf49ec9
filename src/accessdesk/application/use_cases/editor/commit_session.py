"""Commit session use case - reconcile staged changes against the store.

Phases run in a fixed order: assign, unassign, update. Within a phase every
call is started before any is awaited and the phase ends when all of them
have settled; one failure never stops the others. Successful calls are folded
into the session's baseline as they are collected, so a retry only re-sends
what failed.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from accessdesk.application.dto.commit_result import (
    CommitResult,
    OperationFailure,
    OperationKind,
)
from accessdesk.application.ports import EntitlementStore
from accessdesk.domain.editor import CommitPlan, EditorSession, SessionState
from accessdesk.domain.exceptions import StoreError

logger = logging.getLogger(__name__)

# (resource_id, grant_id, call)
_Call = tuple[str, str | None, Callable[[], Awaitable[Any]]]


def _describe(error: BaseException) -> str:
    if isinstance(error, StoreError):
        return error.detail
    if isinstance(error, asyncio.CancelledError):
        return "cancelled"
    return str(error) or type(error).__name__


class CommitSessionUseCase:
    """Issue the minimal ordered set of store calls for a session's staged state."""

    def __init__(
        self,
        store: EntitlementStore,
        max_concurrency: int = 0,
        refresh_after_commit: bool = True,
    ) -> None:
        self._store = store
        self._max_concurrency = max_concurrency
        self._refresh = refresh_after_commit

    async def execute(self, session: EditorSession) -> CommitResult:
        """Commit the session. Remote failures are reported in the result, never raised.

        Raises CommitInProgress while an earlier commit of the session still has
        calls in flight, including one whose session was discarded.
        """
        plan = session.begin_commit()
        try:
            return await self._commit(session, plan)
        finally:
            session.release_commit()

    async def _commit(self, session: EditorSession, plan: CommitPlan) -> CommitResult:
        result = CommitResult(owner_id=session.owner_id)
        if plan.is_empty:
            session.finish_commit()
            return result

        logger.info(
            "Committing owner %s: %d assign, %d unassign, %d update",
            session.owner_id,
            len(plan.assigns),
            len(plan.unassigns),
            len(plan.updates),
            extra={"owner_id": session.owner_id},
        )
        generation = plan.generation
        try:
            for kind, calls in self._phases(session.owner_id, plan):
                if session.generation != generation:
                    break
                await self._run_phase(session, generation, result, kind, calls)
            if result.ok and self._refresh and session.generation == generation:
                if await self._refresh_baseline(session, generation):
                    result.refreshed = True
                    generation = session.generation
        finally:
            if session.generation == generation and session.state is SessionState.COMMITTING:
                session.finish_commit()

        if session.generation != generation:
            result.applied = False
            logger.info("Session for owner %s was discarded during commit", session.owner_id)
        logger.info(
            "Commit for owner %s finished: %d call(s), %d failed",
            session.owner_id,
            result.issued,
            len(result.failures),
            extra={"owner_id": session.owner_id},
        )
        return result

    def _phases(
        self, owner_id: str, plan: CommitPlan
    ) -> list[tuple[OperationKind, list[_Call]]]:
        store = self._store
        return [
            (
                OperationKind.ASSIGN,
                [
                    (a.resource_id, None, self._bind(store.assign_grant, owner_id, a.resource_id, a.mask))
                    for a in plan.assigns
                ],
            ),
            (
                OperationKind.UNASSIGN,
                [
                    (u.resource_id, u.grant_id, self._bind(store.unassign_grant, owner_id, u.grant_id))
                    for u in plan.unassigns
                ],
            ),
            (
                OperationKind.UPDATE,
                [
                    (u.resource_id, u.grant_id, self._bind(store.update_grant_mask, owner_id, u.grant_id, u.mask))
                    for u in plan.updates
                ],
            ),
        ]

    @staticmethod
    def _bind(fn: Callable[..., Awaitable[Any]], *args: Any) -> Callable[[], Awaitable[Any]]:
        return lambda: fn(*args)

    async def _run_phase(
        self,
        session: EditorSession,
        generation: int,
        result: CommitResult,
        kind: OperationKind,
        calls: list[_Call],
    ) -> None:
        if not calls:
            return
        limiter = asyncio.Semaphore(self._max_concurrency) if self._max_concurrency > 0 else None

        async def _guarded(call: Callable[[], Awaitable[Any]]) -> Any:
            if limiter is None:
                return await call()
            async with limiter:
                return await call()

        tasks = [asyncio.create_task(_guarded(call)) for _, _, call in calls]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        fold = session.generation == generation
        for (resource_id, grant_id, _), outcome in zip(calls, outcomes):
            if isinstance(outcome, BaseException):
                detail = _describe(outcome)
                logger.warning(
                    "%s of %s for owner %s failed: %s",
                    kind.value,
                    resource_id,
                    session.owner_id,
                    detail,
                    extra={
                        "owner_id": session.owner_id,
                        "resource_id": resource_id,
                        "operation": kind.value,
                    },
                )
                result.record_failure(
                    OperationFailure(kind=kind, resource_id=resource_id, detail=detail, grant_id=grant_id)
                )
                continue
            result.record_success(kind)
            if not fold:
                continue
            if kind is OperationKind.ASSIGN:
                session.record_assigned(outcome)
            elif kind is OperationKind.UNASSIGN:
                session.record_unassigned(grant_id)
            else:
                session.record_updated(outcome)

    async def _refresh_baseline(self, session: EditorSession, generation: int) -> bool:
        try:
            grants = await self._store.fetch_grants(session.owner_id)
        except Exception as e:
            logger.warning(
                "Baseline refresh for owner %s failed, keeping commit responses: %s",
                session.owner_id,
                e,
            )
            return False
        if session.generation != generation:
            return False
        session.load_baseline(grants)
        return True
