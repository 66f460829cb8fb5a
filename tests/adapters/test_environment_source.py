from __future__ import annotations

from lib_combined_config.adapters.sources.environment import (
    EnvironmentConfiguration,
    EnvironmentSourceProvider,
    assign_nested,
    default_env_prefix,
)
from lib_combined_config.application.builder import SourceDeclaration
from lib_combined_config.application.combined import CombinedConfiguration
from lib_combined_config.domain.events import EventType
from tests.support import RecordingListener


def test_prefix_filter_and_nesting() -> None:
    env = {"DEMO_DB__HOST": "alpha", "DEMO_DB__PORT": "5432", "DEMO_DEBUG": "true", "OTHER": "x"}
    config = EnvironmentConfiguration("DEMO", environ=env)
    assert config.get("db.host") == "alpha"
    assert config.get("db.port") == 5432
    assert config.get("debug") is True
    assert "other" not in config


def test_prefix_with_trailing_underscore() -> None:
    config = EnvironmentConfiguration("DEMO_", environ={"DEMO_A": "1"})
    assert config.get("a") == 1


def test_commas_are_not_split() -> None:
    config = EnvironmentConfiguration("DEMO", environ={"DEMO_HOSTS": "a,b"})
    assert config.get("hosts") == "a,b"


def test_scalar_and_nested_variable_share_a_node() -> None:
    config = EnvironmentConfiguration("APP", environ={"APP_SERVICE": "on", "APP_SERVICE__TIMEOUT": "5"})
    assert config.get("service") == "on"
    assert config.get("service.timeout") == 5


def test_reload_if_changed_detects_new_variables() -> None:
    env = {"DEMO_A": "1"}
    config = EnvironmentConfiguration("DEMO", environ=env)
    listener = RecordingListener()
    config.add_change_listener(listener)
    assert config.reload_if_changed() is False
    env["DEMO_B"] = "2"
    env["UNRELATED"] = "x"
    assert config.reload_if_changed() is True
    assert config.get("b") == 2
    assert listener.types() == [EventType.RELOAD, EventType.RELOAD]


def test_combined_view_polls_environment() -> None:
    env = {"DEMO_A": "1"}
    view = CombinedConfiguration()
    view.add_source(EnvironmentConfiguration("DEMO", environ=env), "env")
    view.force_reload_check = True
    assert view.get("a") == 1
    env["DEMO_A"] = "2"
    assert view.get("a") == 2


def test_provider_uses_prefix_or_slug() -> None:
    env = {"MY_APP_X": "1", "OTHER_X": "2"}
    provider = EnvironmentSourceProvider(env)
    assert provider(SourceDeclaration("env", parameters={"prefix": "OTHER"})).get("x") == 2
    assert provider(SourceDeclaration("env", parameters={"slug": "my-app"})).get("x") == 1


def test_default_env_prefix() -> None:
    assert default_env_prefix("lib-combined-config") == "LIB_COMBINED_CONFIG"


def test_assign_nested_is_case_insensitive() -> None:
    data: dict[str, object] = {}
    assign_nested(data, "Service__Timeout", 5)
    assign_nested(data, "SERVICE__RETRIES", 3)
    assert data == {"service": {"timeout": 5, "retries": 3}}
