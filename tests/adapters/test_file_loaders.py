from __future__ import annotations

import json
from pathlib import Path

import pytest

from lib_combined_config.adapters.file_loaders import structured as structured_module
from lib_combined_config.adapters.file_loaders.structured import (
    JSONFileLoader,
    TOMLFileLoader,
    YAMLFileLoader,
    loader_for_path,
    supported_suffixes,
)
from lib_combined_config.domain.errors import InvalidFormat, NotFound


def test_toml_loader(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("[db]\nport = 5432\n", encoding="utf-8")
    assert TOMLFileLoader().load(str(path))["db"]["port"] == 5432


def test_toml_loader_missing_file(tmp_path: Path) -> None:
    with pytest.raises(NotFound):
        TOMLFileLoader().load(str(tmp_path / "missing.toml"))


def test_toml_loader_invalid(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("[db\n", encoding="utf-8")
    with pytest.raises(InvalidFormat):
        TOMLFileLoader().load(str(path))


def test_json_loader_invalid(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{invalid}", encoding="utf-8")
    with pytest.raises(InvalidFormat):
        JSONFileLoader().load(str(path))


def test_json_loader_valid(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"feature": True}), encoding="utf-8")
    assert JSONFileLoader().load(str(path))["feature"] is True


def test_json_loader_rejects_non_mapping(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(InvalidFormat):
        JSONFileLoader().load(str(path))


@pytest.mark.skipif(structured_module.yaml is None, reason="PyYAML not available")
def test_yaml_loader_handles_empty_file(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("# empty file\n", encoding="utf-8")
    assert YAMLFileLoader().load(str(path)) == {}


@pytest.mark.skipif(structured_module.yaml is None, reason="PyYAML not available")
def test_yaml_loader_invalid(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("key: [unclosed\n", encoding="utf-8")
    with pytest.raises(InvalidFormat):
        YAMLFileLoader().load(str(path))


@pytest.mark.parametrize(
    ("name", "loader_cls"),
    [("a.toml", TOMLFileLoader), ("a.JSON", JSONFileLoader), ("a.yaml", YAMLFileLoader), ("a.yml", YAMLFileLoader)],
)
def test_loader_for_path(name: str, loader_cls: type) -> None:
    assert isinstance(loader_for_path(name), loader_cls)


def test_loader_for_unknown_suffix() -> None:
    with pytest.raises(InvalidFormat):
        loader_for_path("settings.ini")
    assert supported_suffixes() == [".json", ".toml", ".yaml", ".yml"]
