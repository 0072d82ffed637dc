"""Terminal rendering helpers for posts and comment trees."""

from __future__ import annotations

from datetime import datetime

from redseen.models import Comment, Thread


def format_timestamp(created_utc: float, now: datetime | None = None) -> str:
    """'Today at 14:05' for today's timestamps, 'March 3, 2025, 14:05' otherwise (local time)."""
    when = datetime.fromtimestamp(created_utc)
    today = (now or datetime.now()).date()
    if when.date() == today:
        return f"Today at {when:%H:%M}"
    return f"{when:%B} {when.day}, {when.year}, {when:%H:%M}"


def render_comment(comment: Comment, indent: int = 0, new: bool | None = None) -> list[str]:
    pad = "  " * indent
    is_new = comment.is_new if new is None else new
    marker = " [new]" if is_new else ""
    lines = [f"{pad}- {comment.author} · {format_timestamp(comment.created_utc)}{marker}"]
    lines.extend(f"{pad}  {line}" for line in comment.body.splitlines() or [""])
    return lines


def render_tree(tree: list[Comment], indent: int = 0) -> list[str]:
    lines: list[str] = []
    for comment in tree:
        lines.extend(render_comment(comment, indent))
        lines.extend(render_tree(comment.replies, indent + 1))
    return lines


def render_thread(thread: Thread) -> list[str]:
    """Path comments without their subtrees; the new comment is marked."""
    lines: list[str] = []
    for position, comment in enumerate(thread.comments):
        lines.extend(render_comment(comment, position, new=position == thread.new_comment_index))
    return lines
