"""Shared fixtures for building sources and definition files in tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from lib_combined_config.domain.config import ROOT_NAME, HierarchicalConfiguration
from lib_combined_config.domain.events import ConfigurationEvent, EventType
from lib_combined_config.domain.node import Node


def memory_source(data: Mapping[str, Any] | None = None) -> HierarchicalConfiguration:
    """Return an in-memory configuration holding *data*."""

    return HierarchicalConfiguration(Node.from_mapping(ROOT_NAME, data or {}))


@dataclass(eq=False)
class RecordingListener:
    """Change listener that remembers every event it receives."""

    events: list[ConfigurationEvent] = field(default_factory=list)

    def __call__(self, event: ConfigurationEvent) -> None:
        self.events.append(event)

    def types(self, *, before_update: bool | None = None) -> list[EventType]:
        return [
            event.type
            for event in self.events
            if before_update is None or event.before_update is before_update
        ]

    def reset(self) -> None:
        self.events.clear()


@dataclass
class DefinitionSandbox:
    """Directory holding a definition file and the source files it declares."""

    root: Path

    def write(self, relative: str, content: str) -> Path:
        target = self.root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return target

    def definition(self, content: str, name: str = "definition.toml") -> Path:
        return self.write(name, content)


def create_definition_sandbox(tmp_path: Path) -> DefinitionSandbox:
    root = tmp_path / "sandbox"
    root.mkdir(parents=True, exist_ok=True)
    return DefinitionSandbox(root)
