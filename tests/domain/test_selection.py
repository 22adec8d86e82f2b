from __future__ import annotations

import time

from importflow.domain.selection import SelectionSet


def test_defaults_to_all_eligible_selected() -> None:
    selection = SelectionSet(["A", "B"])

    assert selection.keys() == ("A", "B")
    assert selection.count() == 2


def test_toggle_ignores_ineligible_keys() -> None:
    selection = SelectionSet(["A", "B"])

    selection.toggle("C")
    selection.toggle("A")

    assert "C" not in selection
    assert selection.keys() == ("B",)

    selection.toggle("A")
    assert selection.keys() == ("A", "B")


def test_set_many_is_bounded_by_eligible_keys() -> None:
    selection = SelectionSet(["A", "B", "C"], selected=[])

    selection.set_many(["C", "A", "X"], included=True)
    assert selection.keys() == ("A", "C")

    selection.set_many(["A", "X"], included=False)
    assert selection.keys() == ("C",)


def test_select_all_and_none() -> None:
    selection = SelectionSet(["A", "B"], selected=["A"])

    selection.select_all()
    assert len(selection) == 2

    selection.deselect_all()
    assert len(selection) == 0
    assert list(selection) == []


def test_group_state_is_tri_state() -> None:
    selection = SelectionSet(["A", "B", "C"])

    assert selection.group_state(["A", "B"]) == "all"
    selection.toggle("A")
    assert selection.group_state(["A", "B"]) == "some"
    selection.toggle("B")
    assert selection.group_state(["A", "B"]) == "none"
    assert selection.group_state(["unknown"]) == "none"


def test_empty_selection() -> None:
    selection = SelectionSet.empty()

    selection.toggle("A")
    selection.select_all()

    assert selection.count() == 0
    assert not selection.is_eligible("A")


def test_bulk_edits_scale_linearly() -> None:
    keys = [f"feature-{n}" for n in range(20_000)]
    started = time.perf_counter()

    selection = SelectionSet(keys)
    selection.set_many(keys, included=False)
    selection.set_many(reversed(keys), included=True)

    assert selection.count() == len(keys)
    assert time.perf_counter() - started < 1.0
