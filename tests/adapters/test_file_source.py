from __future__ import annotations

import os
from pathlib import Path

import pytest

from lib_combined_config.adapters.file_loaders.structured import JSONFileLoader
from lib_combined_config.adapters.sources.file import (
    FileAlwaysReloadingStrategy,
    FileChangedReloadingStrategy,
    FileConfiguration,
    FileSourceProvider,
    strategy_named,
)
from lib_combined_config.application.builder import SourceDeclaration
from lib_combined_config.application.combined import CombinedConfiguration
from lib_combined_config.domain.errors import InvalidArgumentError, InvalidFormat, NotFound
from lib_combined_config.domain.events import EventType
from tests.support import RecordingListener


def write(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


def bump_mtime(path: Path) -> None:
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))


def test_load_toml(tmp_path: Path) -> None:
    source = FileConfiguration(write(tmp_path / "a.toml", "[db]\nhost = 'alpha'\nports = [1, 2]\n"))
    source.load()
    assert source.get("db.host") == "alpha"
    assert source.get_list("db.ports") == [1, 2]


def test_load_with_explicit_loader(tmp_path: Path) -> None:
    source = FileConfiguration(write(tmp_path / "data.txt", '{"a": 1}'), loader=JSONFileLoader())
    source.load()
    assert source.get("a") == 1


def test_unknown_suffix_needs_loader(tmp_path: Path) -> None:
    with pytest.raises(InvalidFormat):
        FileConfiguration(tmp_path / "data.ini")


def test_load_errors_propagate(tmp_path: Path) -> None:
    with pytest.raises(NotFound):
        FileConfiguration(tmp_path / "missing.json").load()
    broken = FileConfiguration(write(tmp_path / "broken.json", "{"))
    with pytest.raises(InvalidFormat):
        broken.load()


def test_changed_strategy_reloads_on_modification(tmp_path: Path) -> None:
    path = write(tmp_path / "a.json", '{"a": 1}')
    source = FileConfiguration(path, reloading=FileChangedReloadingStrategy())
    source.load()
    listener = RecordingListener()
    source.add_change_listener(listener)
    assert source.reload_if_changed() is False
    write(path, '{"a": 22}')
    bump_mtime(path)
    assert source.reload_if_changed() is True
    assert source.get("a") == 22
    assert [(event.type, event.before_update) for event in listener.events] == [
        (EventType.RELOAD, True),
        (EventType.RELOAD, False),
    ]


def test_always_strategy_reloads_every_time(tmp_path: Path) -> None:
    path = write(tmp_path / "a.json", '{"a": 1}')
    source = FileConfiguration(path, reloading=FileAlwaysReloadingStrategy())
    source.load()
    assert source.reload_if_changed() is True
    assert source.reload_if_changed() is True


def test_without_strategy_never_reloads(tmp_path: Path) -> None:
    source = FileConfiguration(write(tmp_path / "a.json", '{"a": 1}'))
    source.load()
    assert source.reload_if_changed() is False


def test_combined_view_sees_reloaded_file(tmp_path: Path) -> None:
    path = write(tmp_path / "a.json", '{"a": 1}')
    source = FileConfiguration(path, reloading=FileChangedReloadingStrategy())
    source.load()
    view = CombinedConfiguration()
    view.add_source(source, "file")
    view.force_reload_check = True
    assert view.get("a") == 1
    write(path, '{"a": 2, "b": 3}')
    bump_mtime(path)
    assert view.get("a") == 2
    assert view.get_source("b") is source


def test_clone_copies_strategy_and_tree(tmp_path: Path) -> None:
    source = FileConfiguration(write(tmp_path / "a.json", '{"a": 1}'), reloading=FileChangedReloadingStrategy())
    source.load()
    duplicate = source.clone()
    assert isinstance(duplicate, FileConfiguration)
    assert duplicate.reloading is not source.reloading
    assert duplicate.reload_if_changed() is False
    duplicate.set_property("a", 5)
    assert source.get("a") == 1


def test_strategy_named() -> None:
    assert strategy_named(None) is None
    assert strategy_named("never") is None
    assert isinstance(strategy_named("Changed"), FileChangedReloadingStrategy)
    assert isinstance(strategy_named("always"), FileAlwaysReloadingStrategy)
    with pytest.raises(InvalidArgumentError):
        strategy_named("sometimes")


def test_provider_resolves_relative_paths(tmp_path: Path) -> None:
    write(tmp_path / "a.yaml", "db:\n  host: alpha\n")
    provider = FileSourceProvider(tmp_path)
    source = provider(SourceDeclaration("file", parameters={"path": "a.yaml", "reload": "changed"}))
    assert source.get("db.host") == "alpha"
    assert isinstance(source.reloading, FileChangedReloadingStrategy)
    assert Path(source.path) == tmp_path / "a.yaml"


def test_provider_requires_path(tmp_path: Path) -> None:
    with pytest.raises(InvalidArgumentError):
        FileSourceProvider(tmp_path)(SourceDeclaration("file"))


def test_provider_list_delimiter(tmp_path: Path) -> None:
    write(tmp_path / "a.json", "{}")
    source = FileSourceProvider(tmp_path)(SourceDeclaration("json", parameters={"path": "a.json", "list-delimiter": ";"}))
    source.add_property("items", "a;b")
    assert source.get_list("items") == ["a", "b"]
