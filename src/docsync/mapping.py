"""Docs-map configuration and resolution of changed files to target documents."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .utils.globs import filter_paths

LOGGER = logging.getLogger(__name__)


class ConfigError(RuntimeError):
    """Raised when the docs-map configuration is missing or malformed."""


class MapModel(BaseModel):
    """Base model for docs-map entries; unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class DocEntry(MapModel):
    path: str
    anchor: Optional[str] = None

    @field_validator("path")
    @classmethod
    def _path_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("mapping.docs[].path must be a non-empty string")
        return value.strip()


class MappingRule(MapModel):
    """One ``code`` glob and the documents it feeds."""

    code: str
    docs: Union[str, List[Union[str, DocEntry]]]
    anchor: Optional[str] = None

    @field_validator("code")
    @classmethod
    def _code_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("mapping.code must be a non-empty string")
        return value.strip()

    @field_validator("docs")
    @classmethod
    def _docs_not_empty(cls, value: Union[str, List[Union[str, DocEntry]]]) -> Union[str, List[Union[str, DocEntry]]]:
        if isinstance(value, str):
            if not value.strip():
                raise ValueError("mapping.docs must be a non-empty string")
            return value.strip()
        if not value:
            raise ValueError("mapping.docs must be a string or non-empty list")
        for entry in value:
            if isinstance(entry, str) and not entry.strip():
                raise ValueError("mapping.docs[] entries must be non-empty strings")
        return value

    def doc_entries(self) -> List[DocEntry]:
        """Return the rule's documents with rule-level anchors applied."""
        if isinstance(self.docs, str):
            return [DocEntry(path=self.docs, anchor=self.anchor)]
        entries: List[DocEntry] = []
        for entry in self.docs:
            if isinstance(entry, str):
                entries.append(DocEntry(path=entry, anchor=self.anchor))
            else:
                entries.append(DocEntry(path=entry.path, anchor=entry.anchor or self.anchor))
        return entries


class FallbackSettings(MapModel):
    search_headings: bool = False


class DocsMap(MapModel):
    """Top-level docs-map document."""

    mappings: List[MappingRule]
    style_guide: Optional[str] = None
    fallback: FallbackSettings = Field(default_factory=FallbackSettings)


@dataclass(frozen=True, slots=True)
class ResolvedTarget:
    """A document to update plus the changed files that triggered it."""

    doc_path: str
    anchor: Optional[str]
    matched_files: Tuple[str, ...]

    @property
    def key(self) -> Tuple[str, str]:
        return (self.doc_path, self.anchor or "")


def _format_validation_error(error: ValidationError) -> str:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        messages.append(f"{location}: {item.get('msg', 'invalid value')}" if location else item.get("msg", ""))
    return "; ".join(messages) or str(error)


def parse_docs_map(data: object) -> DocsMap:
    """Validate an already-parsed docs-map document."""
    if not isinstance(data, dict):
        raise ConfigError("docs-map must be a mapping at the top level")
    if not isinstance(data.get("mappings"), list):
        raise ConfigError("docs-map must include mappings[]")
    try:
        return DocsMap.model_validate(data)
    except ValidationError as error:
        raise ConfigError(f"Invalid docs-map: {_format_validation_error(error)}") from error


def load_docs_map(path: Path | str) -> DocsMap:
    """Load and validate the docs-map YAML file at ``path``."""
    map_path = Path(path)
    if not map_path.exists():
        raise ConfigError(f"docs-map not found at {map_path}")
    try:
        with map_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse docs-map {map_path}: {error}") from error
    return parse_docs_map(data)


def resolve_targets(changed_files: Iterable[str], docs_map: DocsMap) -> List[ResolvedTarget]:
    """Map changed code paths to target documents.

    Targets are keyed by ``(doc_path, anchor)``. The first rule that produces
    a key fixes its position in the output; later rules only add files.
    """
    files: Sequence[str] = list(changed_files)
    order: List[Tuple[str, str]] = []
    anchors: Dict[Tuple[str, str], Optional[str]] = {}
    matched: Dict[Tuple[str, str], Dict[str, None]] = {}

    for rule in docs_map.mappings:
        hits = filter_paths(files, rule.code)
        if not hits:
            continue
        for entry in rule.doc_entries():
            key = (entry.path, entry.anchor or "")
            if key not in matched:
                order.append(key)
                anchors[key] = entry.anchor or None
                matched[key] = {}
            for path in hits:
                matched[key].setdefault(path, None)

    targets = [
        ResolvedTarget(doc_path=key[0], anchor=anchors[key], matched_files=tuple(matched[key]))
        for key in order
    ]
    LOGGER.debug("Resolved %d target(s) from %d changed file(s).", len(targets), len(files))
    return targets


__all__ = [
    "ConfigError",
    "DocEntry",
    "DocsMap",
    "FallbackSettings",
    "MappingRule",
    "ResolvedTarget",
    "load_docs_map",
    "parse_docs_map",
    "resolve_targets",
]
