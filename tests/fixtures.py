# Shared test fixtures utilities.
# Builds small syntax arenas by hand (no Tree-sitter needed) and provides
# deterministic token calculators so walker tests can reason in characters.

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from syntax_arena import CompositeComment, ParsedNode, SyntaxArena  # noqa: E402


@dataclass
class NodeShape:
    type: str
    start: int
    end: int
    children: List["NodeShape"] = field(default_factory=list)


class ArenaBuilder:
    """Describe a tree by its leaves in document order.

    Leaves are located by searching the source from a moving cursor, so they must be
    created in the order they appear. Inner nodes span their first to last child,
    like most Tree-sitter nodes; the root spans the whole source.

        b = ArenaBuilder("x = 1")
        arena = b.build(b.root("module", b.tree("assignment", b.leaf("identifier", "x"), ...)))
    """

    def __init__(self, source: str) -> None:
        self.source = source.encode("utf-8")
        self._cursor = 0

    def leaf(self, type_: str, text: Optional[str] = None) -> NodeShape:
        needle = (text if text is not None else type_).encode("utf-8")
        at = self.source.find(needle, self._cursor)
        if at < 0:
            raise ValueError(f"{needle!r} not found after byte {self._cursor}")
        self._cursor = at + len(needle)
        return NodeShape(type_, at, at + len(needle))

    def tree(self, type_: str, *children: NodeShape) -> NodeShape:
        if not children:
            raise ValueError("inner nodes need at least one child; use leaf()")
        return NodeShape(type_, children[0].start, children[-1].end, list(children))

    def root(self, type_: str, *children: NodeShape) -> NodeShape:
        return NodeShape(type_, 0, len(self.source), list(children))

    def build(self, root: NodeShape) -> SyntaxArena:
        nodes: List[Optional[ParsedNode]] = []
        child_lists: List[List[int]] = []
        parents: List[Optional[int]] = []
        stack: List[Tuple[NodeShape, Optional[int]]] = [(root, None)]
        shapes: List[NodeShape] = []
        while stack:
            shape, parent = stack.pop()
            index = len(shapes)
            shapes.append(shape)
            parents.append(parent)
            child_lists.append([])
            if parent is not None:
                child_lists[parent].append(index)
            stack.extend((c, index) for c in reversed(shape.children))
        for index, shape in enumerate(shapes):
            nodes.append(ParsedNode(
                type=shape.type,
                start_byte=shape.start,
                end_byte=shape.end,
                start_point=byte_to_point(self.source, shape.start),
                end_point=byte_to_point(self.source, shape.end),
                children=tuple(child_lists[index]),
                parent=parents[index],
            ))
        return SyntaxArena(self.source, nodes, root=0)


def byte_to_point(contents: bytes, index: int) -> Tuple[int, int]:
    """
    Convert a byte offset to (row, col) with 0-based row/col using newline counts.
    """
    row = contents.count(b"\n", 0, index)
    last_nl = contents.rfind(b"\n", 0, index)
    col = index if last_nl == -1 else index - (last_nl + 1)
    return (row, col)


def describe(arena: SyntaxArena, index: Optional[int] = None):
    """Index-free nested description of a tree, for comparing arenas structurally."""
    index = arena.root if index is None else index
    node = arena.node(index)
    text = node.text if isinstance(node, CompositeComment) else None
    return (node.type, node.start_byte, node.end_byte, text,
            tuple(describe(arena, c) for c in node.children))


# ---------- Token calculators ---------------------------------------------------

class CharCalculator:
    """One token per character."""

    def __init__(self) -> None:
        self.calls = 0

    def count(self, text: str) -> int:
        self.calls += 1
        return len(text)


class FixedCostCalculator:
    """Costs looked up from a table; unknown texts cost ``default``."""

    def __init__(self, costs: Dict[str, int], default: int = 1) -> None:
        self.costs = dict(costs)
        self.default = default

    def count(self, text: str) -> int:
        return self.costs.get(text, self.default)


# ---------- Canned trees --------------------------------------------------------

GREETER_SOURCE = (
    "class Greeter:\n"
    "    def hello(self):\n"
    "        return \"hello\"\n"
    "\n"
    "    def bye(self):\n"
    "        return \"bye\"\n"
)


def _py_method(b: ArenaBuilder, name: str, params: str, value: str) -> NodeShape:
    return b.tree(
        "function_definition",
        b.leaf("def"), b.leaf("identifier", name), b.leaf("parameters", params), b.leaf(":"),
        b.tree("block", b.tree("return_statement", b.leaf("return"), b.leaf("string", value))),
    )


def greeter_arena() -> SyntaxArena:
    """Python-shaped tree: a class with two one-line methods (class spans 99 chars)."""
    b = ArenaBuilder(GREETER_SOURCE)
    return b.build(b.root(
        "module",
        b.tree(
            "class_definition",
            b.leaf("class"), b.leaf("identifier", "Greeter"), b.leaf(":"),
            b.tree(
                "block",
                _py_method(b, "hello", "(self)", "\"hello\""),
                _py_method(b, "bye", "(self)", "\"bye\""),
            ),
        ),
    ))


def many_methods_source(count: int) -> str:
    methods = "\n".join(f"    def method{i}():\n        return {i}" for i in range(1, count + 1))
    return "class MyClass:\n" + methods + "\n"


def many_methods_arena(count: int) -> SyntaxArena:
    b = ArenaBuilder(many_methods_source(count))
    class_name = b.leaf("class"), b.leaf("identifier", "MyClass"), b.leaf(":")
    methods = [_py_method(b, f"method{i}", "()", str(i)) for i in range(1, count + 1)]
    return b.build(b.root(
        "module",
        b.tree("class_definition", *class_name, b.tree("block", *methods)),
    ))


FILLER = "# filler comment"


def comment_flood_source(before: int, after: int) -> str:
    return (
        "\n".join([FILLER] * before)
        + "\n\ndef tiny():\n    return 1\n\n"
        + "\n".join([FILLER] * after)
    )


def comment_flood_arena(before: int, after: int) -> SyntaxArena:
    """Module with ``before`` comments, a tiny function, then ``after`` comments."""
    b = ArenaBuilder(comment_flood_source(before, after))
    leading = [b.leaf("comment", FILLER) for _ in range(before)]
    func = _py_method(b, "tiny", "()", "1")
    trailing = [b.leaf("comment", FILLER) for _ in range(after)]
    return b.build(b.root("module", *leading, func, *trailing))


__all__ = [
    "ROOT",
    "SRC",
    "NodeShape",
    "ArenaBuilder",
    "byte_to_point",
    "describe",
    "CharCalculator",
    "FixedCostCalculator",
    "GREETER_SOURCE",
    "greeter_arena",
    "many_methods_source",
    "many_methods_arena",
    "FILLER",
    "comment_flood_source",
    "comment_flood_arena",
]
