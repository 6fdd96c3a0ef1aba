"""
Mutable tree nodes for catalog hierarchies.

A node wraps a user object (an Entry, a FormatEntry, a SampleDimension,
a Category or a plain label) and keeps its children in insertion order.
"""

from typing import Any, Callable, Dict, Iterator, List, Optional


class TreeNode:
    """
    Node of a catalog tree.

    Attributes:
        user_object: Object represented by this node
        allows_children: False for leaves that never get children
        text: Label override (defaults to str(user_object))
    """

    def __init__(
        self,
        user_object: Any = None,
        allows_children: bool = True,
        text: Optional[str] = None,
    ):
        self.user_object = user_object
        self.allows_children = allows_children
        self.text = text
        self.parent: Optional["TreeNode"] = None
        self._children: List["TreeNode"] = []

    @property
    def children(self) -> List["TreeNode"]:
        """Children in insertion order (read-only copy)."""
        return list(self._children)

    @property
    def child_count(self) -> int:
        return len(self._children)

    @property
    def is_leaf(self) -> bool:
        return not self._children

    def get_child_at(self, index: int) -> "TreeNode":
        return self._children[index]

    def add(self, child: "TreeNode") -> "TreeNode":
        """
        Append a child node.

        Args:
            child: Node to append (detached from its former parent)

        Returns:
            The appended child
        """
        if not self.allows_children:
            raise ValueError(f"Node '{self}' does not allow children")
        if child.parent is not None:
            child.parent._children.remove(child)
        child.parent = self
        self._children.append(child)
        return child

    def find_child(self, predicate: Callable[["TreeNode"], bool]) -> Optional["TreeNode"]:
        """Return the first child matching predicate, or None."""
        for child in self._children:
            if predicate(child):
                return child
        return None

    def walk(self) -> Iterator["TreeNode"]:
        """Iterate depth-first, this node first."""
        yield self
        for child in self._children:
            yield from child.walk()

    def path(self) -> List["TreeNode"]:
        """Nodes from the root down to this node."""
        nodes = []
        node: Optional[TreeNode] = self
        while node is not None:
            nodes.append(node)
            node = node.parent
        nodes.reverse()
        return nodes

    def to_dict(self) -> Dict[str, Any]:
        """Convert to nested dictionary of labels."""
        return {
            "label": str(self),
            "children": [child.to_dict() for child in self._children],
        }

    def __str__(self) -> str:
        if self.text is not None:
            return self.text
        return str(self.user_object)

    def __repr__(self) -> str:
        return f"TreeNode({str(self)!r}, children={len(self._children)})"
