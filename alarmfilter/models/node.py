"""Structured node tree for alarmfilter.

The HMI runtime keeps filter configuration, generated schema types and edit
models in one information-model tree. This module provides that tree: nodes are
objects, object types, folders or typed variables, each with ordered children
addressed by name.

NodeSnapshot is the pydantic mirror of a Node used to persist a tree as JSON.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Iterator, Optional, Protocol

from pydantic import BaseModel, ConfigDict


class ConfigurationError(Exception):
    """Exception raised when a required structural node is missing.

    Attributes:
        message: Error description
        node: Path of the node being resolved (if available)
    """

    def __init__(self, message: str, node: Optional[str] = None):
        self.node = node

        if node:
            full_message = f"{node}: {message}"
        else:
            full_message = message

        super().__init__(full_message)


class NodeKind(str, Enum):
    """Structural role of a node in the tree."""

    OBJECT = "object"
    OBJECT_TYPE = "object_type"
    FOLDER = "folder"
    VARIABLE = "variable"


class ValueType(str, Enum):
    """Data type carried by a variable node."""

    BASE = "BaseDataType"
    BOOLEAN = "Boolean"
    DATETIME = "DateTime"
    UINT16 = "UInt16"
    STRING = "String"
    NODE_ID = "NodeId"


class TypedTree(Protocol):
    """The part of a node tree the schema reconciler walks."""

    name: str
    value_type: Optional[ValueType]
    value: Any
    prototype: Optional[Any]

    @property
    def children(self) -> list[Any]: ...

    def get_child(self, name: str) -> Optional[Any]: ...

    def add_child(self, node: Any) -> Any: ...

    def remove_child(self, node: Any) -> None: ...


class Node:
    """A named node with an optional typed value and ordered children.

    Attributes:
        name: Browse name, unique among siblings.
        kind: Structural role (object, object type, folder, variable).
        value_type: Data type for variables, None for objects.
        value: Current value for variables.
        parent: Owning node, None for a root.
        type_definition: Object type this object was created from.
        prototype: Type field this variable was seeded from.
    """

    def __init__(
        self,
        name: str,
        kind: NodeKind = NodeKind.OBJECT,
        value_type: Optional[ValueType] = None,
        value: Any = None,
    ) -> None:
        self.name = name
        self.kind = kind
        self.value_type = value_type
        self.value = value
        self.parent: Optional[Node] = None
        self.type_definition: Optional[Node] = None
        self.prototype: Optional[Node] = None
        self._children: dict[str, Node] = {}

    def __repr__(self) -> str:
        if self.kind == NodeKind.VARIABLE:
            return f"Node({self.name!r}, {self.value_type.value if self.value_type else None}, {self.value!r})"
        return f"Node({self.name!r}, {self.kind.value}, children={len(self._children)})"

    @property
    def children(self) -> list[Node]:
        """Children in insertion order (a copy, safe to mutate the tree while iterating)."""
        return list(self._children.values())

    @property
    def root(self) -> Node:
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    @property
    def path(self) -> str:
        """Absolute slash-separated path, starting with the root's name."""
        names = []
        node: Optional[Node] = self
        while node is not None:
            names.append(node.name)
            node = node.parent
        return "/".join(reversed(names))

    def get_child(self, name: str) -> Optional[Node]:
        return self._children.get(name)

    def add_child(self, node: Node) -> Node:
        """Attach a node as the last child.

        Raises:
            ValueError: If a sibling with the same name already exists.
        """
        if node.name in self._children:
            raise ValueError(f"{self.path} already has a child named '{node.name}'")
        if node.parent is not None:
            node.parent.remove_child(node)
        node.parent = self
        self._children[node.name] = node
        return node

    def remove_child(self, node: Node) -> None:
        if self._children.get(node.name) is node:
            del self._children[node.name]
            node.parent = None

    def variable(self, name: str) -> Optional[Node]:
        """Get a child variable by name, ignoring non-variable children."""
        child = self._children.get(name)
        if child is not None and child.kind == NodeKind.VARIABLE:
            return child
        return None

    def objects(self) -> list[Node]:
        """Children that are objects (edit models, configuration roots)."""
        return [c for c in self._children.values() if c.kind == NodeKind.OBJECT]

    def find(self, relative_path: str) -> Optional[Node]:
        """Look up a descendant by a path relative to this node."""
        node: Optional[Node] = self
        for part in relative_path.split("/"):
            if not part:
                continue
            if node is None:
                return None
            node = node.get_child(part)
        return node

    def locate(self, absolute_path: str) -> Optional[Node]:
        """Look up a node anywhere in this tree by its absolute path."""
        root = self.root
        head, _, rest = absolute_path.partition("/")
        if head != root.name:
            return None
        return root.find(rest)

    def walk(self) -> Iterator[Node]:
        """Yield this node and all descendants, parents before children."""
        yield self
        for child in self._children.values():
            yield from child.walk()


def make_typed_leaf(name: str, value_type: ValueType, value: Any = None) -> Node:
    return Node(name, NodeKind.VARIABLE, value_type, value)


def make_object(name: str) -> Node:
    return Node(name, NodeKind.OBJECT)


def make_folder(name: str) -> Node:
    return Node(name, NodeKind.FOLDER)


def make_object_type(name: str) -> Node:
    return Node(name, NodeKind.OBJECT_TYPE)


def make_object_from_type(name: str, type_node: Node) -> Node:
    """Create an empty object whose type definition is ``type_node``.

    Fields are not copied here; the schema reconciler adds them.
    """
    node = Node(name, NodeKind.OBJECT)
    node.type_definition = type_node
    return node


def make_alias(name: str, target: Node) -> Node:
    """Create a NodeId variable pointing at ``target``."""
    return make_typed_leaf(name, ValueType.NODE_ID, target.path)


def resolve_alias(node: Optional[Node]) -> Node:
    """Follow a NodeId variable to the node it points at.

    Raises:
        ConfigurationError: If the alias is missing, is not a NodeId
            variable, or points at a node that does not exist.
    """
    if node is None:
        raise ConfigurationError("alias variable not found")
    if node.value_type != ValueType.NODE_ID or not node.value:
        raise ConfigurationError("node is not a NodeId alias", node=node.path)

    target = node.locate(str(node.value))
    if target is None:
        raise ConfigurationError(f"alias target '{node.value}' not found", node=node.path)
    return target


class NodeSnapshot(BaseModel):
    """Serializable copy of a node subtree.

    Type definitions and prototypes are stored as absolute paths and relinked
    once the whole tree has been rebuilt.
    """

    model_config = ConfigDict(frozen=False)

    name: str
    kind: NodeKind = NodeKind.OBJECT
    value_type: Optional[ValueType] = None
    value: Any = None
    type_definition: Optional[str] = None
    prototype: Optional[str] = None
    children: list[NodeSnapshot] = []

    @classmethod
    def from_node(cls, node: Node) -> NodeSnapshot:
        return cls(
            name=node.name,
            kind=node.kind,
            value_type=node.value_type,
            value=node.value,
            type_definition=node.type_definition.path if node.type_definition else None,
            prototype=node.prototype.path if node.prototype else None,
            children=[cls.from_node(child) for child in node.children],
        )

    def to_node(self) -> Node:
        """Rebuild the node tree and relink type definitions and prototypes."""
        links: list[tuple[Node, NodeSnapshot]] = []
        root = self._build(links)

        for node, snapshot in links:
            if snapshot.type_definition:
                node.type_definition = root.locate(snapshot.type_definition)
            if snapshot.prototype:
                node.prototype = root.locate(snapshot.prototype)

        return root

    def _build(self, links: list[tuple[Node, NodeSnapshot]]) -> Node:
        node = Node(self.name, self.kind, self.value_type, self._coerce_value())
        if self.type_definition or self.prototype:
            links.append((node, self))
        for child in self.children:
            node.add_child(child._build(links))
        return node

    def _coerce_value(self) -> Any:
        # JSON has no datetime, values come back as ISO strings
        if self.value_type == ValueType.DATETIME and isinstance(self.value, str):
            return datetime.fromisoformat(self.value)
        return self.value


NodeSnapshot.model_rebuild()
