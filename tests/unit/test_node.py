from __future__ import annotations

import pytest

from lib_combined_config.domain.errors import InvalidArgumentError
from lib_combined_config.domain.node import Node


def test_children_keep_document_order_and_duplicates() -> None:
    root = Node("root")
    for name in ("server", "db", "server"):
        root.add_child(Node(name))
    assert [child.name for child in root.children] == ["server", "db", "server"]
    assert len(root.children_named("server")) == 2
    assert root.child_names() == ["server", "db"]


def test_add_child_rejects_attached_nodes() -> None:
    first = Node("first")
    second = Node("second")
    child = first.add_child(Node("child"))
    with pytest.raises(InvalidArgumentError):
        second.add_child(child)


def test_add_child_rejects_cycles() -> None:
    root = Node("root")
    child = root.add_child(Node("child"))
    root.parent = None
    with pytest.raises(InvalidArgumentError):
        child.add_child(root)


def test_add_child_rejects_non_nodes() -> None:
    with pytest.raises(InvalidArgumentError):
        Node("root").add_child("child")  # type: ignore[arg-type]


def test_remove_child_detaches_parent() -> None:
    root = Node("root")
    child = root.add_child(Node("child"))
    assert root.remove_child(child) is True
    assert child.parent is None
    assert root.remove_child(child) is False


def test_attributes_are_separate_from_children() -> None:
    node = Node("db", attributes={"name": "attr"})
    node.add_child(Node("name", "child"))
    assert node.attributes["name"] == "attr"
    assert node.children_named("name")[0].value == "child"


def test_attribute_view_is_read_only() -> None:
    node = Node("db", attributes={"a": 1})
    with pytest.raises(TypeError):
        node.attributes["a"] = 2  # type: ignore[index]


def test_copy_is_deep_and_detached() -> None:
    root = Node.from_mapping("root", {"db": {"host": "alpha"}})
    clone = root.copy()
    clone.children_named("db")[0].children_named("host")[0].value = "beta"
    assert root.children_named("db")[0].children_named("host")[0].value == "alpha"
    assert clone.parent is None


def test_copy_without_children() -> None:
    root = Node.from_mapping("root", {"db": {"host": "alpha"}})
    assert root.copy(children=False).children == ()


def test_stamp_tags_every_node_and_attribute() -> None:
    marker = object()
    root = Node.from_mapping("root", {"db": {"@kind": "sql", "host": "alpha"}})
    stamped = root.stamp(marker)
    db = stamped.children_named("db")[0]
    assert stamped.origin is marker
    assert db.origin is marker
    assert db.attribute_origin("kind") is marker
    assert root.origin is None


def test_copy_attribute_keeps_origin_of_other_node() -> None:
    first = Node("a").stamp("first")
    second = Node("a", attributes={"x": 1}).stamp("second")
    first.copy_attribute(second, "x")
    assert first.attribute_origin("x") == "second"
    assert first.copy().attribute_origin("x") == "second"


def test_remove_attribute_reports_presence() -> None:
    node = Node("n", attributes={"x": None})
    assert node.remove_attribute("x") is True
    assert node.remove_attribute("x") is False


def test_is_defined() -> None:
    assert Node("empty").is_defined() is False
    assert Node("valued", 0).is_defined() is True
    assert Node("attributed", attributes={"a": 1}).is_defined() is True


def test_from_mapping_and_to_python() -> None:
    data = {"db": {"host": "alpha", "ports": [1, 2]}, "servers": [{"name": "a"}, {"name": "b"}]}
    assert Node.from_mapping("root", data).to_python() == data


def test_to_python_renders_attributes_and_text() -> None:
    root = Node("root")
    db = root.add_child(Node("db", "value", attributes={"kind": "sql"}))
    db.add_child(Node("host", "alpha"))
    assert root.to_python() == {"db": {"@kind": "sql", "#text": "value", "host": "alpha"}}
    assert Node.from_mapping("root", root.to_python()).to_python() == root.to_python()
