"""Comment diff engine: which comments of a tree are new relative to a snapshot.

Every function here is pure. Trees are lists of top-level ``Comment`` models;
inputs are never mutated and no function raises on well-formed input.

A missing snapshot means the post has never been acknowledged, so nothing in
it counts as new.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from redseen.models import Comment, Snapshot, Thread
from redseen.statuses import PostState
from redseen.utils.db import now_ms


def iter_comments(tree: Sequence[Comment]) -> Iterator[Comment]:
    """Depth-first, parent before children, in reply order."""
    for comment in tree:
        yield comment
        yield from iter_comments(comment.replies)


def _is_new(comment: Comment, snapshot: Snapshot | None) -> bool:
    return snapshot is not None and comment.id not in snapshot.comment_ids


def annotate(tree: Sequence[Comment], snapshot: Snapshot | None) -> list[Comment]:
    """Return a copy of the tree with ``is_new`` set on every comment."""
    return [
        comment.model_copy(
            update={
                "is_new": _is_new(comment, snapshot),
                "replies": annotate(comment.replies, snapshot),
            }
        )
        for comment in tree
    ]


def count_new(tree: Sequence[Comment], snapshot: Snapshot | None) -> int:
    return sum(1 for comment in iter_comments(tree) if _is_new(comment, snapshot))


def has_new(tree: Sequence[Comment], snapshot: Snapshot | None) -> bool:
    return any(_is_new(comment, snapshot) for comment in iter_comments(tree))


def collect_ids(tree: Sequence[Comment]) -> set[str]:
    return {comment.id for comment in iter_comments(tree)}


def find_new_threads(tree: Sequence[Comment]) -> list[Thread]:
    """Extract one thread per comment flagged ``is_new``.

    The tree must already be annotated. The walk continues below a new
    comment, so a new reply to a new comment yields a second thread whose
    path runs through the first one.
    """
    threads: list[Thread] = []
    for comment in tree:
        threads.extend(_threads_below(comment, ()))
    return threads


def _threads_below(comment: Comment, path: tuple[Comment, ...]) -> Iterator[Thread]:
    path = (*path, comment)
    if comment.is_new:
        yield Thread(comments=list(path), new_comment_index=len(path) - 1)
    for reply in comment.replies:
        yield from _threads_below(reply, path)


def acknowledge(tree: Sequence[Comment], now: int | None = None) -> Snapshot:
    """Build the snapshot that replaces whatever was stored for this post.

    Only ids present in the tree are kept; ids of deleted comments drop out.
    """
    return Snapshot(
        comment_ids=frozenset(collect_ids(tree)),
        last_fetch_time=now_ms() if now is None else now,
    )


def clear_new_flags(tree: Sequence[Comment]) -> list[Comment]:
    return annotate(tree, None)


def post_state(tree: Sequence[Comment], snapshot: Snapshot | None) -> PostState:
    if snapshot is None:
        return PostState.UNSEEN
    if has_new(tree, snapshot):
        return PostState.SEEN_WITH_NEW
    return PostState.SEEN
