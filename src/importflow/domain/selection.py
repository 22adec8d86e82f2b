"""Selection set bookkeeping for the review stage."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

type GroupState = Literal["all", "some", "none"]


class SelectionSet:
    """Keys the user opted into, always a subset of the eligible keys.

    All operations are local and never fail; keys outside the eligible set
    are silently ignored.
    """

    __slots__ = ("_eligible", "_eligible_keys", "_selected")

    def __init__(self, eligible: Iterable[str], *, selected: Iterable[str] | None = None) -> None:
        self._eligible: tuple[str, ...] = tuple(dict.fromkeys(eligible))
        self._eligible_keys: frozenset[str] = frozenset(self._eligible)
        self._selected: set[str] = set()
        self.set_many(self._eligible if selected is None else selected, included=True)

    @classmethod
    def empty(cls) -> SelectionSet:
        return cls(())

    @property
    def eligible(self) -> tuple[str, ...]:
        return self._eligible

    def is_eligible(self, key: str) -> bool:
        return key in self._eligible_keys

    def toggle(self, key: str) -> None:
        if not self.is_eligible(key):
            return
        if key in self._selected:
            self._selected.discard(key)
        else:
            self._selected.add(key)

    def set_many(self, keys: Iterable[str], *, included: bool) -> None:
        for key in keys:
            if not self.is_eligible(key):
                continue
            if included:
                self._selected.add(key)
            else:
                self._selected.discard(key)

    def select_all(self) -> None:
        self._selected = set(self._eligible)

    def deselect_all(self) -> None:
        self._selected.clear()

    def is_selected(self, key: str) -> bool:
        return key in self._selected

    def count(self) -> int:
        return len(self._selected)

    def keys(self) -> tuple[str, ...]:
        """Selected keys in eligible order."""

        return tuple(key for key in self._eligible if key in self._selected)

    def group_state(self, keys: Iterable[str]) -> GroupState:
        """Tri-state of a group of keys (only eligible keys are considered)."""

        members = [key for key in keys if self.is_eligible(key)]
        chosen = sum(1 for key in members if key in self._selected)
        if members and chosen == len(members):
            return "all"
        if chosen:
            return "some"
        return "none"

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, key: object) -> bool:
        return key in self._selected

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __repr__(self) -> str:
        return f"SelectionSet(selected={self.keys()!r}, eligible={len(self._eligible)})"
