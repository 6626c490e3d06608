"""Merge runs of consecutive sibling comments into one composite comment node."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Iterable, List, Optional

from syntax_arena import CompositeComment, SyntaxArena, SyntaxNode

if TYPE_CHECKING:  # pragma: no cover
    from grammars import GrammarProfile

DEFAULT_COMMENT_TYPES = frozenset({"comment"})

logger = logging.getLogger(__name__)


def coalesce_comments(arena: SyntaxArena, profile: Optional["GrammarProfile"] = None) -> SyntaxArena:
    """
    Return a new arena where every run of two or more adjacent sibling comments is
    replaced by a single CompositeComment.

    Logic:
      - Only sibling adjacency at one level decides a merge; whitespace between comments
        is not a node, so blank lines do not break a run.
      - The composite spans [first comment start, last comment end], its text is the
        comments' texts joined with "\\n", and its children are copies of the merged comments.
      - Single comments stay ordinary comment nodes; other nodes keep their own spans.
      - The input arena is never modified. Composite nodes are not comments, so running
        the transform again changes nothing.
    """
    comment_types = profile.comment_types if profile is not None else DEFAULT_COMMENT_TYPES
    nodes: List[Optional[SyntaxNode]] = []

    def reserve() -> int:
        nodes.append(None)
        return len(nodes) - 1

    merged = 0
    # (old index, new index, new parent, coalesce children?)
    stack = [(arena.root, reserve(), None, True)]
    while stack:
        old, new, parent, coalesce = stack.pop()
        node = arena.node(old)
        if isinstance(node, CompositeComment):
            coalesce = False
        pending = []
        kids = []

        groups = _comment_runs(arena, node.children, comment_types) if coalesce else [[c] for c in node.children]
        for group in groups:
            slot = reserve()
            kids.append(slot)
            if len(group) == 1:
                pending.append((group[0], slot, new, coalesce))
                continue
            members = []
            for comment in group:
                copy_slot = reserve()
                members.append(copy_slot)
                pending.append((comment, copy_slot, slot, False))
            first, last = arena.node(group[0]), arena.node(group[-1])
            nodes[slot] = CompositeComment(
                start_byte=first.start_byte,
                end_byte=last.end_byte,
                start_point=first.start_point,
                end_point=last.end_point,
                text="\n".join(arena.text(c) for c in group),
                children=tuple(members),
                parent=new,
            )
            merged += 1

        nodes[new] = replace(node, children=tuple(kids), parent=parent)
        stack.extend(reversed(pending))

    logger.debug("Coalesced %d comment run(s) across %d nodes", merged, len(arena))
    return SyntaxArena(arena.source, nodes, root=0)


def composite_comments(arena: SyntaxArena) -> List[int]:
    """Indices of all composite comment nodes, in document order."""
    return [i for i in arena.walk() if isinstance(arena.node(i), CompositeComment)]


def _comment_runs(arena: SyntaxArena, children: Iterable[int], comment_types) -> List[List[int]]:
    """Group ``children`` in order: each maximal comment run is one group, every other child its own."""
    groups: List[List[int]] = []
    run: List[int] = []
    for child in children:
        if arena.type(child) in comment_types:
            run.append(child)
            continue
        if run:
            groups.append(run)
            run = []
        groups.append([child])
    if run:
        groups.append(run)
    return groups


__all__ = [
    "DEFAULT_COMMENT_TYPES",
    "coalesce_comments",
    "composite_comments",
]
