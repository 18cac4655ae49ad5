"""
Shared pytest fixtures for Strata tests.

This file is automatically loaded by pytest. Fixtures defined here are
available to all test files without explicit imports.
"""

import os as _os
import typing as _typing

import pytest as _pytest

import strata.collections as collections
import strata.config as config


class ModuleClock:
    """Mutable dynamic module id, handed to OverrideCollection as provider."""

    def __init__(self, module_id: str = "_defaultDynamicModule") -> None:
        self.module_id = module_id

    def __call__(self) -> str:
        return self.module_id


class Recorder:
    """Event listener that records every payload it receives."""

    def __init__(self) -> None:
        self.calls: list[_typing.Any] = []

    def __call__(self, payload: _typing.Any) -> None:
        self.calls.append(payload)


class Layer:
    """A destroyable item with a to_dict() serializer."""

    def __init__(self, name: str, title: str = "", *, fail_destroy: bool = False) -> None:
        self.name = name
        self.title = title
        self.destroyed = False
        self._fail_destroy = fail_destroy

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "title": self.title}

    @classmethod
    def from_dict(cls, record: dict[str, _typing.Any]) -> "Layer":
        return cls(record["name"], record.get("title", ""))

    def destroy(self) -> None:
        if self._fail_destroy:
            raise RuntimeError("destroy failed")
        self.destroyed = True

    def __repr__(self) -> str:
        return f"Layer({self.name!r}, {self.title!r})"


@_pytest.fixture(autouse=True)
def clean_strata_env(monkeypatch: _pytest.MonkeyPatch) -> None:
    """Keep STRATA_ environment variables out of every test."""
    for key in list(_os.environ):
        if key.startswith("STRATA_"):
            monkeypatch.delenv(key)


@_pytest.fixture
def settings() -> config.Settings:
    """Settings without .env loading."""
    return config.Settings.construct_without_dotenv()


@_pytest.fixture
def clock() -> ModuleClock:
    return ModuleClock()


@_pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@_pytest.fixture
def styles(clock: ModuleClock) -> collections.OverrideCollection[dict[str, _typing.Any]]:
    """Override collection over a plain Collection keyed by 'id'."""
    return collections.OverrideCollection(collections.Collection("id"), clock)


@_pytest.fixture
def layers(clock: ModuleClock) -> collections.OverrideCollection[Layer]:
    """Override collection of Layer objects over an IndexedCollection."""
    return collections.OverrideCollection(
        collections.IndexedCollection(),
        clock,
        deserialize_item=Layer.from_dict,
    )


@_pytest.fixture
def make_layer() -> type[Layer]:
    """The Layer item class."""
    return Layer
