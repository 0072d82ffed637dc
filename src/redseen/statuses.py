"""Status enumerations for posts, listings and countdowns."""

from __future__ import annotations

from enum import StrEnum


class PostState(StrEnum):
    """Comment tracking lifecycle for one post."""
    UNSEEN = "unseen"
    SEEN = "seen"
    SEEN_WITH_NEW = "seen_with_new"


class ListingSort(StrEnum):
    """Subreddit listing order."""
    HOT = "hot"
    NEW = "new"
    TOP = "top"
    RISING = "rising"


class CountdownState(StrEnum):
    """Auto-acknowledge countdown lifecycle."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    EXPIRED = "expired"
