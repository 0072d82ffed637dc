"""Pydantic models for posts, comment trees, snapshots and threads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from redseen.statuses import PostState


class Comment(BaseModel):
    id: str
    author: str = "[deleted]"
    created_utc: float = 0.0
    body: str = ""
    replies: list[Comment] = []
    depth: int = 0
    # Computed against a snapshot, never persisted
    is_new: bool = Field(default=False, exclude=True)


class Post(BaseModel):
    permalink: str
    title: str = ""
    author: str = "[deleted]"
    created_utc: float = 0.0
    selftext: str = ""
    subreddit: str = ""
    score: int = 0
    num_comments: int = 0
    comments: list[Comment] = []


class Snapshot(BaseModel):
    """Comment ids seen for one post as of its last acknowledgement.

    Serializes to ``{"commentIds": [...], "lastFetchTime": <ms>}``.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    comment_ids: frozenset[str] = Field(alias="commentIds")
    last_fetch_time: int = Field(default=0, alias="lastFetchTime")

    @field_validator("comment_ids", mode="before")
    @classmethod
    def ids_must_be_array(cls, value):
        if not isinstance(value, (list, tuple, set, frozenset)):
            raise ValueError("commentIds must be an array")
        return value

    @field_validator("last_fetch_time", mode="before")
    @classmethod
    def fetch_time_or_zero(cls, value):
        # Informational only; a bad timestamp must not discard the ids
        if isinstance(value, bool):
            return 0
        if isinstance(value, int):
            return value
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0

    @field_serializer("comment_ids")
    def sorted_ids(self, ids: frozenset[str]) -> list[str]:
        return sorted(ids)


class Thread(BaseModel):
    """Path from a top-level comment down to one new comment."""

    comments: list[Comment]
    new_comment_index: int

    @property
    def new_comment(self) -> Comment:
        return self.comments[self.new_comment_index]


class PostView(Post):
    """A post annotated against its snapshot, ready for display."""

    new_comment_count: int = 0
    has_new_comments: bool = False
    comment_count: int = 0
    is_newly_fetched: bool = False
    is_read: bool = False
    state: PostState = PostState.UNSEEN


Comment.model_rebuild()
