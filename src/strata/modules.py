"""
Module configuration parsing.

A module is a unit of configuration that contributes items to named
collections. Modules are written as YAML:

    id: base
    name: Base configuration
    collections:
      layers:
        - name: osm
          type: TileLayer
      styles:
        - name: default
"""

from __future__ import annotations

import pathlib as _pathlib
import typing as _typing

import pydantic as _pydantic
import yaml as _yaml

import strata.errors as errors


class ModuleConfig(_pydantic.BaseModel):
    """
    Module configuration parsed from YAML.

    Required fields:
    - id: Unique module identifier

    Item records are kept as plain mappings; each collection's deserializer
    decides what they become.
    """

    model_config = _pydantic.ConfigDict(extra="forbid")

    id: str = _pydantic.Field(
        ...,
        min_length=1,
        description="Unique module id",
    )

    name: str | None = _pydantic.Field(
        default=None,
        description="Human readable module name",
    )

    description: str = _pydantic.Field(
        default="",
        description="What the module contributes",
    )

    collections: dict[str, list[dict[str, _typing.Any]]] = _pydantic.Field(
        default_factory=dict,
        description="Item records per collection name",
    )

    def items_for(self, collection_name: str) -> list[dict[str, _typing.Any]]:
        """Records contributed to collection_name (empty if none)."""
        return self.collections.get(collection_name, [])


def parse_module(content: str, *, source: str = "<string>") -> ModuleConfig:
    """
    Parse a module configuration from YAML text.

    Raises:
        ModuleConfigError: If the YAML is malformed or fails validation.
    """
    try:
        data = _yaml.safe_load(content)
    except _yaml.YAMLError as e:
        raise errors.ModuleConfigError(source, f"Invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise errors.ModuleConfigError(source, "Module config must be a mapping")

    try:
        return ModuleConfig.model_validate(data)
    except _pydantic.ValidationError as e:
        raise errors.ModuleConfigError(source, str(e)) from e


def load_module_file(path: _pathlib.Path) -> ModuleConfig:
    """
    Load a module configuration file.

    Raises:
        ModuleConfigError: If the file cannot be read or parsed.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise errors.ModuleConfigError(str(path), f"Cannot read file: {e}") from e
    return parse_module(content, source=str(path))


def dump_module(config: ModuleConfig) -> str:
    """Serialize a module configuration to YAML."""
    data = config.model_dump(exclude_defaults=True)
    return _yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
