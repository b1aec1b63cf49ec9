"""Unit tests for EditorSession staging."""

import itertools

import pytest

from accessdesk.domain.editor import EditorSession, SessionState
from accessdesk.domain.entities import Grant
from accessdesk.domain.exceptions import (
    CommitInProgress,
    HierarchyViolation,
    InvalidSessionState,
    LockedResource,
    NoActiveResource,
    NotFound,
)
from accessdesk.domain.value_objects import (
    FieldMask,
    GrantSource,
    HierarchicalMask,
    MaskFlag,
    PermissionMask,
)

from tests.conftest import READ_ONLY, make_resources


def _ids(pool) -> list[str]:
    return [r.id for r in pool]


def test_load_partitions_catalog(session: EditorSession) -> None:
    """Granted resources come from the baseline; the rest are available."""
    assert session.state is SessionState.LOADED
    assert _ids(session.granted_pool) == ["customers", "orders"]
    assert _ids(session.available_pool) == ["invoices", "products"]
    assert session.mask_for("customers") == READ_ONLY
    assert not session.has_unsaved_changes()


def test_operations_require_loaded_session() -> None:
    s = EditorSession("ps-1", PermissionMask())
    assert s.state is SessionState.UNINITIALIZED
    with pytest.raises(InvalidSessionState):
        s.stage_assign(["orders"])


def test_stage_assign_seeds_default_mask(session: EditorSession) -> None:
    moved = session.stage_assign(["invoices"])
    assert moved == ["invoices"]
    assert session.is_pending("invoices")
    assert session.mask_for("invoices") == PermissionMask()
    assert _ids(session.available_pool) == ["products"]
    assert session.state is SessionState.EDITING
    assert session.has_unsaved_changes()


def test_stage_assign_with_caller_mask(session: EditorSession) -> None:
    session.stage_assign(["invoices"], mask=READ_ONLY)
    assert session.mask_for("invoices") == READ_ONLY


def test_stage_assign_skips_granted_resources(session: EditorSession) -> None:
    assert session.stage_assign(["orders", "invoices", "invoices"]) == ["invoices"]
    assert session.pending_assignments == {"invoices"}


def test_stage_assign_unknown_resource_stages_nothing(session: EditorSession) -> None:
    """Ids are validated before anything is staged."""
    with pytest.raises(NotFound):
        session.stage_assign(["invoices", "nope"])
    assert not session.pending_assignments
    assert session.state is SessionState.LOADED


def test_unassign_pending_is_full_undo(session: EditorSession) -> None:
    session.stage_assign(["invoices"])
    assert session.stage_unassign(["invoices"]) == ["invoices"]
    assert not session.pending_assignments
    assert "invoices" in _ids(session.available_pool)
    assert not session.has_unsaved_changes()


def test_unassign_baseline_by_grant_id(session: EditorSession) -> None:
    assert session.stage_unassign(["g-orders"]) == ["orders"]
    assert session.pending_unassignments == {"g-orders"}
    assert _ids(session.granted_pool) == ["customers"]
    assert "orders" in _ids(session.available_pool)


def test_unassign_accepts_resource_id_of_baseline_grant(session: EditorSession) -> None:
    session.stage_unassign(["customers"])
    assert session.pending_unassignments == {"g-customers"}


def test_unassign_unknown_id(session: EditorSession) -> None:
    with pytest.raises(NotFound):
        session.stage_unassign(["invoices"])


def test_reassign_cancels_unassign_and_restores_edit(session: EditorSession) -> None:
    """Re-granting after an unassign keeps the mask the resource had before."""
    session.set_active_resource("orders")
    session.edit_active_mask(MaskFlag.DELETE, False)
    edited = session.mask_for("orders")

    session.stage_unassign(["g-orders"])
    assert session.stage_assign(["orders"]) == ["orders"]

    assert "g-orders" not in session.pending_unassignments
    assert not session.is_pending("orders")
    assert session.mask_for("orders") == edited


def test_cache_survives_switching_active_resource(session: EditorSession) -> None:
    session.set_active_resource("orders")
    session.edit_active_mask("can_update", False)
    session.set_active_resource("customers")
    session.edit_active_mask("can_create", True)
    mask = session.set_active_resource("orders")
    assert mask == PermissionMask(can_update=False)
    assert session.mask_for("customers").can_create


def test_set_active_requires_granted_resource(session: EditorSession) -> None:
    with pytest.raises(NotFound):
        session.set_active_resource("invoices")


def test_edit_without_active_resource(session: EditorSession) -> None:
    with pytest.raises(NoActiveResource):
        session.edit_active_mask(MaskFlag.READ, False)


def test_rejected_edit_leaves_cache_unchanged(session: EditorSession) -> None:
    session.set_active_resource("customers")
    session.edit_active_mask(MaskFlag.READ, False)
    with pytest.raises(HierarchyViolation):
        session.edit_active_mask(MaskFlag.UPDATE, True)
    assert session.mask_for("customers") == PermissionMask(
        can_create=False, can_read=False, can_update=False, can_delete=False
    )


def test_edit_reports_cascade(session: EditorSession) -> None:
    session.set_active_resource("orders")
    change = session.edit_active_mask(MaskFlag.READ, False)
    assert change.cleared == (MaskFlag.UPDATE, MaskFlag.DELETE)
    assert session.active_mask == change.mask


def test_reverted_edit_is_not_a_change(session: EditorSession) -> None:
    session.set_active_resource("orders")
    session.edit_active_mask(MaskFlag.CREATE, False)
    assert session.has_unsaved_changes()
    session.edit_active_mask(MaskFlag.CREATE, True)
    assert not session.has_unsaved_changes()


def test_unassigning_active_resource_clears_it(session: EditorSession) -> None:
    session.set_active_resource("orders")
    session.stage_unassign(["g-orders"])
    assert session.active_resource_id is None


def test_discard_restores_baseline(session: EditorSession) -> None:
    session.stage_assign(["invoices"])
    session.stage_unassign(["g-customers"])
    session.set_active_resource("orders")
    session.edit_active_mask(MaskFlag.READ, False)
    generation = session.generation

    session.discard()

    assert session.generation == generation + 1
    assert session.state is SessionState.LOADED
    assert _ids(session.granted_pool) == ["customers", "orders"]
    assert session.mask_for("orders") == PermissionMask()
    assert session.active_resource_id is None
    assert not session.has_unsaved_changes()


def test_reload_with_unsaved_changes_is_refused(session: EditorSession) -> None:
    session.stage_assign(["invoices"])
    with pytest.raises(InvalidSessionState):
        session.load_baseline([])


def test_begin_commit_plans_minimal_diff(session: EditorSession) -> None:
    session.stage_assign(["products", "invoices"])
    session.stage_unassign(["g-customers"])
    session.set_active_resource("orders")
    session.edit_active_mask(MaskFlag.DELETE, False)

    plan = session.begin_commit()

    assert [a.resource_id for a in plan.assigns] == ["invoices", "products"]
    assert [(u.grant_id, u.resource_id) for u in plan.unassigns] == [("g-customers", "customers")]
    assert [(u.grant_id, u.mask) for u in plan.updates] == [("g-orders", PermissionMask(can_delete=False))]
    assert session.state is SessionState.COMMITTING


def test_no_update_for_resource_being_unassigned(session: EditorSession) -> None:
    session.set_active_resource("orders")
    session.edit_active_mask(MaskFlag.DELETE, False)
    session.stage_unassign(["g-orders"])
    plan = session.begin_commit()
    assert not plan.updates
    assert [u.grant_id for u in plan.unassigns] == ["g-orders"]


def test_unchanged_session_plans_nothing(session: EditorSession) -> None:
    assert session.begin_commit().is_empty


def test_staging_blocked_while_committing(session: EditorSession) -> None:
    session.begin_commit()
    with pytest.raises(CommitInProgress):
        session.begin_commit()
    with pytest.raises(CommitInProgress):
        session.stage_assign(["invoices"])
    with pytest.raises(CommitInProgress):
        session.set_active_resource("orders")


def test_discard_does_not_release_running_commit(session: EditorSession) -> None:
    session.stage_assign(["invoices"])
    session.begin_commit()
    session.discard()

    assert session.state is SessionState.LOADED
    assert session.commit_running
    session.stage_assign(["products"])
    with pytest.raises(CommitInProgress):
        session.begin_commit()

    session.release_commit()
    assert [a.resource_id for a in session.begin_commit().assigns] == ["products"]


def test_record_assigned_folds_grant(session: EditorSession) -> None:
    session.stage_assign(["invoices"])
    session.begin_commit()
    session.record_assigned(
        Grant(id="new-1", owner_id="ps-1", resource_id="invoices", mask=PermissionMask())
    )
    session.finish_commit()
    assert not session.pending_assignments
    assert session.baseline_grant("invoices").id == "new-1"
    assert session.state is SessionState.LOADED


def test_inherited_grants_are_locked() -> None:
    s = EditorSession("user-1", PermissionMask())
    s.load_baseline(
        [
            Grant("d-1", "user-1", "orders", PermissionMask()),
            Grant("p-1", "user-1", "orders", READ_ONLY, source=GrantSource.PROFILE),
            Grant("p-2", "user-1", "customers", READ_ONLY, source=GrantSource.PROFILE),
        ],
        make_resources("customers", "invoices", "orders"),
    )
    assert _ids(s.locked_pool) == ["customers", "orders"]
    assert s.granted_pool == []
    assert _ids(s.available_pool) == ["invoices"]

    assert s.stage_assign(["customers"]) == []
    with pytest.raises(LockedResource):
        s.stage_unassign(["p-2"])
    assert s.set_active_resource("customers") == READ_ONLY
    with pytest.raises(LockedResource):
        s.edit_active_mask(MaskFlag.CREATE, True)


def test_grant_outside_catalog_gets_placeholder() -> None:
    s = EditorSession("ps-1", PermissionMask())
    s.load_baseline([Grant("g-1", "ps-1", "legacy", READ_ONLY)], make_resources("orders"))
    assert _ids(s.granted_pool) == ["legacy"]
    assert s.resource("legacy").name == "legacy"


def test_inconsistent_baseline_is_repaired_and_staged() -> None:
    """A stored mask breaking the hierarchy is repaired and written back on commit."""
    broken = PermissionMask(can_create=False, can_read=False, can_update=True, can_delete=False)
    s = EditorSession("ps-1", PermissionMask())
    s.load_baseline([Grant("g-1", "ps-1", "orders", broken)], make_resources("orders"))

    assert s.repaired_resources == {"orders"}
    assert s.mask_for("orders") == PermissionMask.none()
    assert s.has_unsaved_changes()
    assert [u.mask for u in s.begin_commit().updates] == [PermissionMask.none()]


def test_cache_attributes(session: EditorSession) -> None:
    resource = session.cache_attributes("orders", ["id", "total"])
    assert resource.attributes == ("id", "total")
    assert session.resource("orders").attributes == ("id", "total")


@pytest.mark.parametrize("mask_cls", [PermissionMask, FieldMask])
def test_every_edit_sequence_keeps_mask_consistent(mask_cls: type[HierarchicalMask]) -> None:
    """Any three edits leave a consistent mask; rejected edits change nothing."""
    s = EditorSession("owner-1", mask_cls())
    s.load_baseline([Grant("g-1", "owner-1", "orders", mask_cls())], make_resources("orders"))
    edits = [(flag, value) for flag in mask_cls.flags() for value in (True, False)]

    for sequence in itertools.product(edits, repeat=3):
        s.discard()
        s.set_active_resource("orders")
        for flag, value in sequence:
            before = s.active_mask
            try:
                s.edit_active_mask(flag, value)
            except HierarchyViolation:
                assert s.active_mask == before
            assert s.active_mask.is_consistent(), sequence
