"""Unit tests for selection and focus."""

import pytest

from accessdesk.domain.editor import EditorSelection, EditorSession, PoolSide, SelectionMode
from accessdesk.domain.exceptions import LockedResource, NotFound, ValidationError
from accessdesk.domain.entities import Grant
from accessdesk.domain.value_objects import GrantSource, PermissionMask

from tests.conftest import READ_ONLY, make_resources


@pytest.fixture
def selection(session: EditorSession) -> EditorSelection:
    return EditorSelection(session)


def test_toggle_highlights_and_unhighlights(selection: EditorSelection) -> None:
    assert selection.mode is SelectionMode.IDLE
    assert selection.toggle("available", "invoices") is True
    assert selection.highlighted_available == {"invoices"}
    assert selection.mode is SelectionMode.HIGHLIGHTING
    assert selection.toggle(PoolSide.AVAILABLE, "invoices") is False
    assert selection.mode is SelectionMode.IDLE


def test_toggle_checks_side(selection: EditorSelection) -> None:
    with pytest.raises(ValidationError):
        selection.toggle("sideways", "invoices")
    with pytest.raises(NotFound):
        selection.toggle("available", "orders")
    with pytest.raises(NotFound):
        selection.toggle("granted", "invoices")


def test_move_highlighted_to_granted(selection: EditorSelection, session: EditorSession) -> None:
    selection.toggle("available", "products")
    selection.toggle("available", "invoices")
    assert selection.move_to_granted() == ["invoices", "products"]
    assert session.pending_assignments == {"invoices", "products"}
    assert not selection.highlighted_available


def test_move_highlighted_to_available(selection: EditorSelection, session: EditorSession) -> None:
    selection.toggle("granted", "orders")
    assert selection.move_to_available() == ["orders"]
    assert session.pending_unassignments == {"g-orders"}
    assert not selection.highlighted_granted


def test_explicit_ids_leave_highlights_alone(selection: EditorSelection) -> None:
    selection.toggle("available", "products")
    selection.move_to_granted(["invoices"])
    assert selection.highlighted_available == {"products"}


def test_focus_is_independent_of_highlights(selection: EditorSelection, session: EditorSession) -> None:
    assert selection.focus("orders") == PermissionMask()
    assert selection.mode is SelectionMode.FOCUSED
    selection.toggle("available", "invoices")
    selection.move_to_granted()
    assert selection.focused == "orders"
    selection.toggle("granted", "orders")
    selection.move_to_available()
    assert selection.focused is None
    assert session.active_resource_id is None


def test_prune_after_discard(selection: EditorSelection, session: EditorSession) -> None:
    session.stage_assign(["invoices"])
    selection.toggle("granted", "invoices")
    session.discard()
    selection.prune()
    assert not selection.highlighted_granted


def test_locked_resources_cannot_be_highlighted() -> None:
    s = EditorSession("user-1", PermissionMask())
    s.load_baseline(
        [Grant("p-1", "user-1", "orders", READ_ONLY, source=GrantSource.PROFILE)],
        make_resources("orders", "invoices"),
    )
    selection = EditorSelection(s)
    with pytest.raises(LockedResource):
        selection.toggle("granted", "orders")
    with pytest.raises(NotFound):
        selection.toggle("available", "orders")
