"""Load the feature registry from its JSON definition file.

The file mirrors the front-end registry: a list of modules (or an object with
a ``modules`` list), each with groups of features. Keys use camelCase as in
the front-end source; snake_case is accepted too.
"""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from importflow.config.errors import ConfigurationError
from importflow.domain.variants.registry import (
    FeatureDefinition,
    FeatureGroup,
    FeatureRegistry,
    ModuleDefinition,
)

if TYPE_CHECKING:
    from pathlib import Path

log = getLogger(__name__)


class RegistryFileError(ConfigurationError):
    """Raised when the registry file is missing or malformed."""


def _none_to_list(value: object) -> object:
    return [] if value is None else value


class RegistryBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class FeaturePayload(RegistryBaseModel):
    code: str = Field(min_length=1)
    name: str
    description: str = ""
    route_path: str = Field(default="", alias="routePath")
    icon: str = ""
    tab_code: str | None = Field(default=None, alias="tabCode")
    role_requirements: list[str] = Field(default_factory=list["str"], alias="roleRequirements")
    workflow_steps: list[str] = Field(default_factory=list["str"], alias="workflowSteps")
    ui_elements: list[str] = Field(default_factory=list["str"], alias="uiElements")
    related_features: list[str] = Field(default_factory=list["str"], alias="relatedFeatures")

    _lists = field_validator(
        "role_requirements",
        "workflow_steps",
        "ui_elements",
        "related_features",
        mode="before",
    )(_none_to_list)

    def to_domain(self) -> FeatureDefinition:
        return FeatureDefinition(
            code=self.code,
            name=self.name,
            description=self.description,
            route_path=self.route_path,
            icon=self.icon,
            tab_code=self.tab_code,
            role_requirements=tuple(self.role_requirements),
            workflow_steps=tuple(self.workflow_steps),
            ui_elements=tuple(self.ui_elements),
            related_features=tuple(self.related_features),
        )


class GroupPayload(RegistryBaseModel):
    group_code: str = Field(alias="groupCode")
    group_name: str = Field(alias="groupName")
    features: list[FeaturePayload] = Field(default_factory=list["FeaturePayload"])

    def to_domain(self) -> FeatureGroup:
        return FeatureGroup(
            code=self.group_code,
            name=self.group_name,
            features=tuple(feature.to_domain() for feature in self.features),
        )


class ModulePayload(RegistryBaseModel):
    code: str = Field(min_length=1)
    name: str
    description: str = ""
    icon: str = ""
    route_path: str = Field(default="", alias="routePath")
    role_requirements: list[str] = Field(default_factory=list["str"], alias="roleRequirements")
    groups: list[GroupPayload] = Field(default_factory=list["GroupPayload"])

    def to_domain(self) -> ModuleDefinition:
        return ModuleDefinition(
            code=self.code,
            name=self.name,
            description=self.description,
            icon=self.icon,
            route_path=self.route_path,
            role_requirements=tuple(self.role_requirements),
            groups=tuple(group.to_domain() for group in self.groups),
        )


class RegistryPayload(RegistryBaseModel):
    modules: list[ModulePayload]


def parse_registry(payload: object) -> FeatureRegistry:
    if isinstance(payload, list):
        payload = {"modules": payload}
    try:
        parsed = RegistryPayload.model_validate(payload)
    except ValidationError as exc:
        raise RegistryFileError(f"Invalid feature registry: {exc}") from exc
    return FeatureRegistry(modules=tuple(module.to_domain() for module in parsed.modules))


def load_registry(path: Path) -> FeatureRegistry:
    """Read and validate a registry file."""

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RegistryFileError(f"Cannot read registry file {path}: {exc}") from exc
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RegistryFileError(f"Registry file {path} is not valid JSON: {exc}") from exc

    registry = parse_registry(payload)
    log.info(
        "Loaded feature registry from %s: %s modules, %s features",
        path,
        len(registry.modules),
        registry.feature_count(),
    )
    return registry
