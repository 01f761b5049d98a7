"""The error hierarchy: a forest of registered identities.

A node's children are the registered identities that wrap down to it, so the
deeper a node sits the more specific it is. Insertion always attaches a new
identity to its closest registered relative, in both directions: under the
deepest node it wraps, and above any sibling that wraps it. Lookup walks only
the matching branches and keeps the deepest match.

The tree is built once at startup and read concurrently afterwards. Nothing
here locks.
"""

import weakref
from collections.abc import Iterator
from dataclasses import dataclass, field

from faultroute.chain import Identity, describe, is_identity, matches
from faultroute.exceptions import DuplicateRegistrationError, InvalidArgumentError
from faultroute.handlers import ErrorHandler


@dataclass(eq=False)
class ErrorNode:
    """One registered identity, its handler and the more specific identities below it."""

    identity: Identity
    handler: ErrorHandler
    children: list["ErrorNode"] = field(default_factory=list)
    _parent: weakref.ref["ErrorNode"] | None = field(default=None, init=False, repr=False)

    @property
    def parent(self) -> "ErrorNode | None":
        """The node this one was attached under, None for roots."""
        return self._parent() if self._parent is not None else None

    @parent.setter
    def parent(self, node: "ErrorNode | None") -> None:
        self._parent = weakref.ref(node) if node is not None else None

    @property
    def label(self) -> str:
        return describe(self.identity)

    @property
    def depth(self) -> int:
        return len(self.path()) - 1

    def path(self) -> list["ErrorNode"]:
        """Nodes from the root down to this one."""
        nodes: list[ErrorNode] = []
        node: ErrorNode | None = self
        while node is not None:
            nodes.append(node)
            node = node.parent
        return nodes[::-1]


class ErrorTree:
    """Ordered roots of the forest; ``len()`` counts every node, not just roots."""

    def __init__(self) -> None:
        self.roots: list[ErrorNode] = []

    def __len__(self) -> int:
        return sum(1 for _ in self.walk())

    def __iter__(self) -> Iterator[ErrorNode]:
        return self.walk()

    def __contains__(self, identity: object) -> bool:
        return is_identity(identity) and self.get(identity) is not None  # type: ignore[arg-type]

    def walk(self) -> Iterator[ErrorNode]:
        """All nodes, depth-first pre-order, siblings in insertion order."""
        stack = list(reversed(self.roots))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def _matching(self, err: Identity) -> Iterator[tuple[ErrorNode, int]]:
        # Children of a non-matching node can't match either: they wrap down to it.
        stack = [(root, 0) for root in reversed(self.roots)]
        while stack:
            node, depth = stack.pop()
            if not matches(err, node.identity):
                continue
            yield node, depth
            stack.extend((child, depth + 1) for child in reversed(node.children))

    def get(self, identity: Identity) -> ErrorNode | None:
        """The node registered for exactly this identity, if any."""
        for node, _depth in self._matching(identity):
            if matches(node.identity, identity):
                return node
        return None

    def find(self, err: Identity) -> ErrorNode | None:
        """The deepest node ``err`` matches; the first in tree order wins ties."""
        best: ErrorNode | None = None
        best_depth = -1
        for node, depth in self._matching(err):
            if depth > best_depth:
                best, best_depth = node, depth
        return best

    def resolve(self, err: Identity) -> ErrorHandler | None:
        node = self.find(err)
        return node.handler if node is not None else None

    def insert(self, identity: Identity, handler: ErrorHandler) -> ErrorNode:
        """Attach ``identity`` at its closest registered relatives.

        Raises:
            InvalidArgumentError: identity or handler is missing or unusable.
            DuplicateRegistrationError: identity is already in the tree.
        """
        if identity is None:
            raise InvalidArgumentError("cannot register nil error")
        if not is_identity(identity):
            raise InvalidArgumentError(
                f"error identity must be an exception or exception class, got {identity!r}"
            )
        if handler is None or not callable(handler):
            raise InvalidArgumentError("handler cannot be nil")

        parent: ErrorNode | None = None
        parent_depth = -1
        for node, depth in self._matching(identity):
            if matches(node.identity, identity):
                raise DuplicateRegistrationError(identity, describe(identity))
            if depth > parent_depth:
                parent, parent_depth = node, depth

        siblings = parent.children if parent is not None else self.roots
        adopted = [node for node in siblings if matches(node.identity, identity)]

        new_node = ErrorNode(identity=identity, handler=handler)
        new_node.parent = parent
        if adopted:
            siblings[:] = [node for node in siblings if node not in adopted]
            for child in adopted:
                child.parent = new_node
            new_node.children.extend(adopted)
        siblings.append(new_node)
        return new_node

    def render(self) -> str:
        """Indented outline of the forest, one identity per line."""
        return "\n".join(f"{'  ' * node.depth}{node.label}" for node in self.walk())
