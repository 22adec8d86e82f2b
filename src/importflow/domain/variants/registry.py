"""Sync of the code-defined feature registry into stored feature records.

Only features missing from the store are selectable. Updated features are
shown for review and written only when the variant is asked to include
updates; unchanged features are informational.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING, Final

from importflow.domain.errors import DuplicateKeyError, OracleError, RecordWriteError, StoreError
from importflow.domain.ports.oracle import OracleRequest
from importflow.domain.ports.persistence import WriteKind, WriteOutcome
from importflow.domain.proposal import ItemStatus, Proposal, ProposedItem

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping, Sequence

    from importflow.domain.cancellation import CancellationToken
    from importflow.domain.ports.persistence import Record, RecordStore

log = getLogger(__name__)

FEATURES_TABLE: Final[str] = "application_features"
RELEASE_FEATURES_TABLE: Final[str] = "enablement_release_features"

FEATURE: Final[str] = "feature"
RELEASE_LINK: Final[str] = "release_link"
REGISTRY_SOURCE: Final[str] = "registry"

SYNCED_FIELDS: Final[tuple[str, ...]] = (
    "feature_name",
    "description",
    "route_path",
    "module_code",
    "group_code",
    "group_name",
    "icon_name",
    "role_requirements",
    "workflow_steps",
    "ui_elements",
)


@dataclass(frozen=True, slots=True, kw_only=True)
class FeatureDefinition:
    code: str
    name: str
    description: str = ""
    route_path: str = ""
    icon: str = ""
    tab_code: str | None = None
    role_requirements: tuple[str, ...] = ()
    workflow_steps: tuple[str, ...] = ()
    ui_elements: tuple[str, ...] = ()
    related_features: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class FeatureGroup:
    code: str
    name: str
    features: tuple[FeatureDefinition, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class ModuleDefinition:
    code: str
    name: str
    description: str = ""
    icon: str = ""
    route_path: str = ""
    role_requirements: tuple[str, ...] = ()
    groups: tuple[FeatureGroup, ...] = ()

    def features(self) -> tuple[FeatureDefinition, ...]:
        return tuple(feature for group in self.groups for feature in group.features)


@dataclass(frozen=True, slots=True)
class RegistryEntry:
    module: ModuleDefinition
    group: FeatureGroup
    feature: FeatureDefinition


@dataclass(frozen=True, slots=True)
class FeatureRegistry:
    """Code-defined catalogue of modules, feature groups and features."""

    modules: tuple[ModuleDefinition, ...] = ()

    def module(self, code: str) -> ModuleDefinition | None:
        return next((module for module in self.modules if module.code == code), None)

    def entries(self) -> Iterator[RegistryEntry]:
        """Yield every feature in registry order."""

        for module in self.modules:
            for group in module.groups:
                for feature in group.features:
                    yield RegistryEntry(module, group, feature)

    def feature_count(self, module_code: str | None = None) -> int:
        if module_code is None:
            return sum(len(module.features()) for module in self.modules)
        module = self.module(module_code)
        return len(module.features()) if module else 0


def feature_row(entry: RegistryEntry, *, display_order: int) -> dict[str, object]:
    feature = entry.feature
    return {
        "feature_code": feature.code,
        "feature_name": feature.name,
        "description": feature.description,
        "route_path": feature.route_path,
        "module_code": entry.module.code,
        "group_code": entry.group.code,
        "group_name": entry.group.name,
        "icon_name": feature.icon,
        "role_requirements": list(feature.role_requirements),
        "workflow_steps": list(feature.workflow_steps),
        "ui_elements": list(feature.ui_elements),
        "display_order": display_order,
    }


def _comparable(value: object) -> object:
    if isinstance(value, tuple):
        return list(value)  # pyright: ignore[reportUnknownArgumentType]
    if value is None:
        return ""
    return value


def changed_fields(stored: Mapping[str, object], desired: Mapping[str, object]) -> tuple[str, ...]:
    return tuple(
        name
        for name in SYNCED_FIELDS
        if _comparable(stored.get(name)) != _comparable(desired.get(name))
    )


def diff_registry(
    registry: FeatureRegistry,
    stored: Iterable[Mapping[str, object]],
    *,
    scope: Iterable[str] = (),
) -> Proposal:
    """Classify registry features as new, updated or unchanged against stored rows."""

    stored_by_code: dict[object, Mapping[str, object]] = {
        row.get("feature_code"): row for row in stored
    }
    wanted = frozenset(scope)
    items: list[ProposedItem] = []
    modules: set[str] = set()
    # Positions are registry-wide, not per scope.
    for display_order, entry in enumerate(registry.entries(), start=1):
        if wanted and entry.module.code not in wanted:
            continue
        modules.add(entry.module.code)
        desired = feature_row(entry, display_order=display_order)
        existing = stored_by_code.get(entry.feature.code)
        changes: tuple[str, ...] = ()
        if existing is None:
            status = ItemStatus.NEW
        else:
            changes = changed_fields(existing, desired)
            status = ItemStatus.UPDATED if changes else ItemStatus.UNCHANGED
        items.append(
            ProposedItem(
                key=entry.feature.code,
                status=status,
                label=entry.feature.name,
                group=entry.module.code,
                kind=FEATURE,
                payload=desired,
                changes=changes,
            )
        )

    return Proposal.from_items(
        items,
        aggregates={
            "modules": len(modules),
            "registry_features": len(items),
            "stored_features": len(stored_by_code),
        },
    )


@dataclass(slots=True)
class RegistryDiffOracle:
    """Local oracle diffing the registry against the feature table."""

    registry: FeatureRegistry
    store: RecordStore

    async def __call__(
        self,
        request: OracleRequest,
        *,
        token: CancellationToken | None = None,
    ) -> Proposal:
        try:
            stored = await self.store.select(FEATURES_TABLE)
        except StoreError as exc:
            raise OracleError(f"Could not load stored features: {exc}") from exc
        if token is not None:
            token.raise_if_cancelled()
        try:
            return diff_registry(self.registry, stored, scope=request.scan_scope)
        except DuplicateKeyError as exc:
            raise OracleError(f"Registry defines feature {exc.key!r} more than once") from exc


def release_link(item: ProposedItem, release_id: str) -> ProposedItem:
    return ProposedItem(
        key=f"{item.key}@{release_id}",
        status=ItemStatus.NEW,
        label=f"{item.label} (release {release_id})",
        group=item.group,
        kind=RELEASE_LINK,
        payload={"release_id": release_id, "feature_code": item.key},
    )


@dataclass(slots=True)
class FeatureWriter:
    """Creates new feature rows, updates changed ones and links releases."""

    store: RecordStore

    async def ensure_ready(self) -> None:
        await self.store.ping()

    async def write(
        self,
        item: ProposedItem,
        *,
        parent: WriteOutcome | None = None,
        position: int = 1,
    ) -> WriteOutcome:
        _ = parent
        if item.kind == RELEASE_LINK:
            record = await self.store.insert(RELEASE_FEATURES_TABLE, dict(item.payload))
            return WriteOutcome(kind=WriteKind.CREATED, record=record, position=position)
        if item.kind != FEATURE:
            raise RecordWriteError(f"Unsupported item kind: {item.kind}")
        if item.status is ItemStatus.NEW:
            return await self._create(item, position)
        if item.status is ItemStatus.UPDATED:
            return await self._update(item, position)
        raise RecordWriteError(f"Feature {item.key} is unchanged", table=FEATURES_TABLE)

    async def _create(self, item: ProposedItem, position: int) -> WriteOutcome:
        values = dict(item.payload)
        values["source"] = REGISTRY_SOURCE
        values["is_active"] = True
        record = await self.store.insert(FEATURES_TABLE, values)
        return WriteOutcome(kind=WriteKind.CREATED, record=record, position=position)

    async def _update(self, item: ProposedItem, position: int) -> WriteOutcome:
        values = {name: item.payload[name] for name in item.changes or SYNCED_FIELDS}
        records = await self.store.update(
            FEATURES_TABLE,
            match={"feature_code": item.key},
            values=values,
        )
        if not records:
            raise RecordWriteError(f"Feature {item.key} no longer exists", table=FEATURES_TABLE)
        return WriteOutcome(kind=WriteKind.UPDATED, record=_first(records), position=position)


def _first(records: Sequence[Record]) -> Record:
    return records[0]


@dataclass(slots=True)
class RegistrySyncVariant:
    """Only new features are selectable; updates are opt-in for the whole batch."""

    store: RecordStore
    include_updates: bool = False
    name: str = field(default="registry-sync", init=False)
    verb: str = field(default="Sync", init=False)
    noun: str = field(default="Feature", init=False)
    topics: tuple[str, ...] = field(
        default=(FEATURES_TABLE, RELEASE_FEATURES_TABLE),
        init=False,
    )

    def build_request(self, value: Iterable[str]) -> OracleRequest:
        return OracleRequest(scan_scope=frozenset(value))

    def eligible(self, item: ProposedItem) -> bool:
        return item.status is ItemStatus.NEW

    def prepare_batch(
        self,
        proposal: Proposal,
        selected: Sequence[ProposedItem],
        *,
        link_target: str | None = None,
    ) -> list[ProposedItem]:
        keys = {item.key for item in selected}
        if self.include_updates:
            keys.update(item.key for item in proposal.with_status(ItemStatus.UPDATED))
        batch = list(proposal.items_for(keys))
        if link_target:
            batch = [
                replace(item, children=(*item.children, release_link(item, link_target)))
                for item in batch
            ]
        return batch

    def writer(self) -> FeatureWriter:
        return FeatureWriter(self.store)


if TYPE_CHECKING:
    from importflow.domain.ports.oracle import ProposalOracle
    from importflow.domain.ports.persistence import ItemWriter
    from importflow.domain.variants.base import WorkflowVariant

    def _checks(store: RecordStore) -> None:
        _oracle: ProposalOracle = RegistryDiffOracle(FeatureRegistry(), store)
        _writer: ItemWriter = FeatureWriter(store)
        _variant: WorkflowVariant[Iterable[str]] = RegistrySyncVariant(store)
