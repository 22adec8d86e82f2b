"""Concrete workflows built on the generic wizard session."""

from __future__ import annotations

from .agreement import (
    AgreementDocument,
    AgreementImportVariant,
    AgreementWriter,
    read_document,
)
from .base import WorkflowVariant
from .registry import (
    FeatureDefinition,
    FeatureGroup,
    FeatureRegistry,
    FeatureWriter,
    ModuleDefinition,
    RegistryDiffOracle,
    RegistrySyncVariant,
    diff_registry,
)

__all__ = [
    "AgreementDocument",
    "AgreementImportVariant",
    "AgreementWriter",
    "FeatureDefinition",
    "FeatureGroup",
    "FeatureRegistry",
    "FeatureWriter",
    "ModuleDefinition",
    "RegistryDiffOracle",
    "RegistrySyncVariant",
    "WorkflowVariant",
    "diff_registry",
    "read_document",
]
