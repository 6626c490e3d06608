"""Index-addressed syntax trees.

A tree-sitter parse is copied once into a flat, immutable arena. Nodes refer to
their parent and children by index, so transforms (see ``coalesce_comments``)
build a new arena instead of mutating nodes, and tests can build small trees
by hand without a parser.

Two node variants live in an arena:
  - ParsedNode: a node produced by the parser; its text is a slice of the source bytes.
  - CompositeComment: a synthetic node standing for a run of sibling comments; its
    text is the joined text of the merged comments, which stay reachable as children.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple, Union

from tree_sitter import Node

COMPOSITE_COMMENT = "composite_comment"

Point = Tuple[int, int]


@dataclass(frozen=True)
class ParsedNode:
    type: str
    start_byte: int
    end_byte: int
    start_point: Point
    end_point: Point
    children: Tuple[int, ...] = ()
    parent: Optional[int] = None


@dataclass(frozen=True)
class CompositeComment:
    start_byte: int
    end_byte: int
    start_point: Point
    end_point: Point
    text: str
    children: Tuple[int, ...] = ()
    parent: Optional[int] = None

    @property
    def type(self) -> str:
        return COMPOSITE_COMMENT


SyntaxNode = Union[ParsedNode, CompositeComment]


class SyntaxArena:
    """Immutable tree of ``SyntaxNode`` records over a source byte string."""

    def __init__(self, source: bytes, nodes: List[SyntaxNode], root: int = 0) -> None:
        if not 0 <= root < len(nodes):
            raise ValueError(f"root index {root} out of range for {len(nodes)} nodes")
        self.source = source
        self._nodes: Tuple[SyntaxNode, ...] = tuple(nodes)
        self.root = root

    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, index: int) -> SyntaxNode:
        return self._nodes[index]

    def type(self, index: int) -> str:
        return self._nodes[index].type

    def children(self, index: int) -> Tuple[int, ...]:
        return self._nodes[index].children

    def parent(self, index: int) -> Optional[int]:
        return self._nodes[index].parent

    def text(self, index: int) -> str:
        node = self._nodes[index]
        if isinstance(node, CompositeComment):
            return node.text
        return self.source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def first_child_of_type(self, index: int, types) -> Optional[int]:
        """Return the first direct child whose type is in ``types``."""
        for child in self._nodes[index].children:
            if self._nodes[child].type in types:
                return child
        return None

    def walk(self, index: Optional[int] = None) -> Iterator[int]:
        """Yield node indices in pre-order (document order) starting at ``index``."""
        stack = [self.root if index is None else index]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(self._nodes[current].children))

    @classmethod
    def from_tree_sitter(cls, root_node: Node, source: bytes) -> "SyntaxArena":
        """Copy a tree-sitter node and its descendants into a new arena.

        Works on raw bytes: tree-sitter offsets are byte offsets into ``source``.
        """
        records: List[Optional[dict]] = []
        child_lists: List[List[int]] = []
        stack = [(root_node, None)]
        while stack:
            ts_node, parent = stack.pop()
            index = len(records)
            records.append({
                "type": ts_node.type,
                "start_byte": ts_node.start_byte,
                "end_byte": ts_node.end_byte,
                "start_point": (ts_node.start_point[0], ts_node.start_point[1]),
                "end_point": (ts_node.end_point[0], ts_node.end_point[1]),
                "parent": parent,
            })
            child_lists.append([])
            if parent is not None:
                child_lists[parent].append(index)
            stack.extend((child, index) for child in reversed(ts_node.children))

        nodes: List[SyntaxNode] = [
            ParsedNode(children=tuple(kids), **rec) for rec, kids in zip(records, child_lists)
        ]
        return cls(source, nodes, root=0)


__all__ = [
    "COMPOSITE_COMMENT",
    "ParsedNode",
    "CompositeComment",
    "SyntaxNode",
    "SyntaxArena",
]
