# SCOPE:
# - Use Tree-sitter (tree_sitter_language_pack) to parse; walk the syntax tree and emit
#   bounded-size chunks that follow semantic boundaries (classes, functions, comments).
# - Parse RAW BYTES; compute all offsets on BYTES. Decode ONLY AFTER slicing.
# - Per node, in order:
#     * root or collapsible node whose text costs < max_chunk_size -> emit whole, stop.
#     * comment -> buffer; consecutive comments are packed into one chunk.
#     * collapsible node too large -> emit a collapsed form (nested bodies replaced by
#       placeholders), then still descend so inner functions surface on their own.
#     * everything else -> descend into children.
# - Chunks are produced lazily; a caller may stop consuming at any point.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Union

from tree_sitter_language_pack import get_parser

from Calculators.TokenCalculator import TokenCalculator
from coalesce_comments import coalesce_comments
from grammars import CLASS_COLLAPSER, FUNCTION_COLLAPSER, GrammarProfile, get_profile, language_for_path
from syntax_arena import CompositeComment, SyntaxArena
from token_registry import create_token_calculator

# ---------------- Constants ----------------
BRACE_PLACEHOLDER = b"{ ... }"
PLACEHOLDER = b"..."
CLASS_HEADER_ELISION = b"...\n\n"
COMMENT_HEADROOM = 5  # tokens kept free in every comment chunk

logger = logging.getLogger(__name__)


class UnsupportedLanguageError(RuntimeError):
    """No grammar is available for the requested file."""


@dataclass(frozen=True)
class Chunk:
    content: str
    start_line: int
    end_line: int


def chunk_file(
        path: str,
        max_chunk_size: int,
        calculator: Optional[TokenCalculator] = None,
        coalesce: bool = False,
) -> Iterator[Chunk]:
    """Read ``path`` from disk and chunk it; see ``chunk_code``."""
    contents = Path(path).read_bytes()
    yield from chunk_code(path, contents, max_chunk_size, calculator=calculator, coalesce=coalesce)


def chunk_code(
        path: str,
        contents: Union[str, bytes],
        max_chunk_size: int,
        calculator: Optional[TokenCalculator] = None,
        coalesce: bool = False,
) -> Iterator[Chunk]:
    """
    Chunk source code along its syntax tree.

    Logic:
      - Empty or whitespace-only contents yield nothing; the parser is never loaded.
      - The grammar is chosen from the file extension of ``path``.
      - With ``coalesce``, runs of sibling comments are merged before walking.

    Raises:
      UnsupportedLanguageError: if no grammar exists for ``path`` (raised before any chunk).
    """
    if isinstance(contents, str):
        contents = contents.encode("utf-8")
    if not contents.strip():
        return

    language = language_for_path(path)
    if language is None:
        raise UnsupportedLanguageError(f"Failed to load parser for file {path}: unsupported file type")
    profile = get_profile(language)
    arena = parse_source(language, contents)
    if coalesce:
        arena = coalesce_comments(arena, profile)

    logger.debug("Chunking %s as %s (%d nodes, max_chunk_size=%d)", path, language, len(arena), max_chunk_size)
    yield from chunk_arena(arena, profile, max_chunk_size, calculator=calculator)


def parse_source(language: str, contents: bytes) -> SyntaxArena:
    """Parse ``contents`` with the Tree-sitter grammar ``language`` into a SyntaxArena."""
    try:
        parser = get_parser(language)
    except Exception as e:
        raise UnsupportedLanguageError(f"No Tree-sitter grammar for language '{language}'") from e
    tree = parser.parse(contents)
    return SyntaxArena.from_tree_sitter(tree.root_node, contents)


def chunk_arena(
        arena: SyntaxArena,
        profile: GrammarProfile,
        max_chunk_size: int,
        calculator: Optional[TokenCalculator] = None,
) -> Iterator[Chunk]:
    """Walk an already-built arena and yield its chunks lazily."""
    walk = _ChunkWalk(arena, profile, max_chunk_size, calculator or create_token_calculator())
    yield from walk.run()


# -----------------------------
# Comment buffering
# -----------------------------

@dataclass
class CommentBuffer:
    """
    Consecutive comments waiting to be emitted as one chunk.

    Line numbers are counted per buffered comment starting at ``start_line`` (1 for a
    fresh run), not read back from the syntax nodes.
    """
    contents: List[str] = field(default_factory=list)
    start_line: int = 1
    token_count: int = 0

    def add(self, comment: str, cost: int, max_chunk_size: int) -> Optional[Chunk]:
        """
        Append ``comment``; if it would push the buffer past ``max_chunk_size - COMMENT_HEADROOM``
        tokens, first flush what is buffered and start over with this comment.

        Returns:
          The flushed chunk, or None when nothing was flushed.
        """
        flushed = None
        if self.token_count + cost > max_chunk_size - COMMENT_HEADROOM:
            flushed = self.flush()
            self.token_count = cost
        else:
            self.token_count += cost
        self.contents.append(comment)
        return flushed

    def flush(self) -> Optional[Chunk]:
        if not self.contents:
            return None
        chunk = Chunk(
            content="\n".join(self.contents),
            start_line=self.start_line,
            end_line=self.start_line + len(self.contents) - 1,
        )
        self.start_line = chunk.end_line + 1
        self.contents = []
        self.token_count = 0
        return chunk


# -----------------------------
# Chunk walker
# -----------------------------

class _ChunkWalk:
    """One chunking run over an arena. Owns the comment buffer for that run only."""

    def __init__(self, arena: SyntaxArena, profile: GrammarProfile, max_chunk_size: int,
                 calculator: TokenCalculator) -> None:
        self._arena = arena
        self._profile = profile
        self._max = max_chunk_size
        self._calculator = calculator
        self.comments = CommentBuffer()

    def run(self) -> Iterator[Chunk]:
        """
        Visit nodes in document order with an explicit stack.

        Logic per node:
          1) root or collapsible, and cost(text) < max -> flush comments, emit whole, skip subtree.
          2) comment -> buffer it (emit a flushed comment chunk if the buffer overflowed).
          3) collapsible -> flush comments, emit the collapsed form over the node's rows.
          4) descend into every child (composite comments are not descended into).
        Remaining comments are flushed once the walk is over.
        """
        arena, profile = self._arena, self._profile
        stack = [(arena.root, True)]
        while stack:
            index, is_root = stack.pop()
            node = arena.node(index)
            collapser = profile.collapser_for(node.type)

            if (is_root or collapser is not None) and self._cost(arena.text(index)) < self._max:
                yield from self._flush_comments()
                yield self._node_chunk(index, arena.text(index))
                continue

            if self._is_comment(index):
                text = arena.text(index)
                flushed = self.comments.add(text, self._cost(text), self._max)
                if flushed is not None:
                    yield flushed
                if isinstance(node, CompositeComment):
                    continue
            elif collapser is not None:
                yield from self._flush_comments()
                logger.debug("Collapsing %s at rows %d-%d", node.type, node.start_point[0], node.end_point[0])
                yield self._node_chunk(index, self._collapse(index, collapser))

            stack.extend((child, False) for child in reversed(node.children))

        yield from self._flush_comments()

    def _flush_comments(self) -> Iterator[Chunk]:
        flushed = self.comments.flush()
        if flushed is not None:
            yield flushed

    def _collapse(self, index: int, collapser: str) -> str:
        if collapser == CLASS_COLLAPSER:
            return collapse_class(self._arena, index, self._profile, self._max, self._calculator)
        if collapser == FUNCTION_COLLAPSER:
            return collapse_function(self._arena, index, self._profile)
        raise ValueError(f"Unknown collapsing constructor '{collapser}'")

    def _is_comment(self, index: int) -> bool:
        node = self._arena.node(index)
        return isinstance(node, CompositeComment) or node.type in self._profile.comment_types

    def _node_chunk(self, index: int, content: str) -> Chunk:
        node = self._arena.node(index)
        return Chunk(content=content, start_line=node.start_point[0], end_line=node.end_point[0])

    def _cost(self, text: str) -> int:
        return self._calculator.count(text)


# -----------------------------
# Collapsing constructors
# -----------------------------

def collapse_class(
        arena: SyntaxArena,
        index: int,
        profile: GrammarProfile,
        max_chunk_size: int,
        calculator: TokenCalculator,
) -> str:
    """
    Build a class outline: every method body becomes a placeholder.

    Logic:
      - The body is the first child in ``class_body_types``; without one the class text
        is returned unmodified.
      - Methods (body children in ``function_declaration_types``) are collapsed last to
        first so earlier byte offsets stay valid while later ranges are spliced.
      - While the outline still costs more than ``max_chunk_size``, whole methods are
        removed starting from the last one; afterwards runs of 2+ blank lines are deleted.

    Returns:
      The outline text, never longer than the class's own span.
    """
    node = arena.node(index)
    code = arena.source[:node.end_byte]
    fragments: List[bytes] = []

    body = arena.first_child_of_type(index, profile.class_body_types)
    if body is not None:
        methods = [c for c in arena.children(body) if arena.type(c) in profile.function_declaration_types]
        for method in reversed(methods):
            method_body = arena.first_child_of_type(method, profile.function_body_types)
            if method_body is None:
                continue
            start, end = arena.node(method_body).start_byte, arena.node(method_body).end_byte
            placeholder = placeholder_for(arena, method_body, profile)
            fragments.insert(0, code[arena.node(method).start_byte:start] + placeholder)
            code = splice_replace(code, start, end, placeholder)

    code = code[node.start_byte:]
    pruned = False
    while fragments and calculator.count(_decode(code).strip()) > max_chunk_size:
        pruned = True
        fragment = fragments.pop()
        at = code.rfind(fragment)
        if at > 0:
            code = code[:at] + code[at + len(fragment):]

    text = _decode(code)
    if pruned:
        text = remove_blank_line_runs(text)
    return text


def collapse_function(arena: SyntaxArena, index: int, profile: GrammarProfile) -> str:
    """
    Signature plus placeholder for a function; the body is its LAST child.

    A method sitting directly in a class body is prefixed with the class header
    (``class Foo:`` / ``impl Foo``) and an elision so the chunk shows where it belongs.
    A function without children is returned as-is.
    """
    node = arena.node(index)
    if not node.children:
        return arena.text(index)

    source = arena.source
    body = node.children[-1]
    func_text = source[node.start_byte:arena.node(body).start_byte] + placeholder_for(arena, body, profile)

    container = node.parent
    owner = arena.parent(container) if container is not None else None
    if (
            owner is not None
            and arena.type(container) in profile.method_container_types
            and arena.type(owner) in profile.class_container_types
    ):
        header = source[arena.node(owner).start_byte:arena.node(container).start_byte]
        indent = b" " * node.start_point[1]
        return _decode(header + CLASS_HEADER_ELISION + indent + func_text)
    return _decode(func_text)


# -----------------------------
# Helpers (small, single-purpose)
# -----------------------------

def placeholder_for(arena: SyntaxArena, index: int, profile: GrammarProfile) -> bytes:
    """Return ``{ ... }`` for brace bodies of the grammar, ``...`` otherwise."""
    if arena.type(index) in profile.brace_body_types:
        return BRACE_PLACEHOLDER
    return PLACEHOLDER


def splice_replace(text: bytes, start: int, end: int, replacement: bytes) -> bytes:
    """Return ``text`` with ``[start, end)`` replaced by ``replacement``."""
    return text[:start] + replacement + text[end:]


def remove_blank_line_runs(text: str) -> str:
    """
    Delete every run of two or more consecutive blank (whitespace-only) lines.

    Runs are removed entirely, not squeezed to one line; a single blank line is kept.
    Lines are scanned bottom-up; a run is only removed once a non-blank line above it
    is found, so blank lines at the very top survive.
    """
    lines = text.split("\n")
    run_end = -1
    for i in range(len(lines) - 1, -1, -1):
        if lines[i].strip() == "":
            if run_end < 0:
                run_end = i
            continue
        if run_end - i > 1:
            del lines[i + 1:run_end + 1]
        run_end = -1
    return "\n".join(lines)


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


__all__ = [
    "Chunk",
    "CommentBuffer",
    "UnsupportedLanguageError",
    "chunk_file",
    "chunk_code",
    "chunk_arena",
    "parse_source",
    "collapse_class",
    "collapse_function",
    "placeholder_for",
    "splice_replace",
    "remove_blank_line_runs",
]
