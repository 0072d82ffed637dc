"""YAML config loading. Operational settings come from the environment."""

from __future__ import annotations

from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from redseen.settings import Settings
from redseen.statuses import ListingSort


class SubredditConfig(BaseModel):
    name: str
    limit: int | None = None
    sort: ListingSort | None = None


class AppConfig(BaseModel):
    subreddits: list[SubredditConfig] = []
    default_limit: int = 6
    default_sort: ListingSort = ListingSort.HOT
    settings: Settings = Field(default_factory=Settings)

    def subreddit(self, name: str) -> SubredditConfig | None:
        key = name.lower()
        for sub in self.subreddits:
            if sub.name.lower() == key:
                return sub
        return None

    def post_limit(self, name: str) -> int:
        sub = self.subreddit(name)
        if sub is not None and sub.limit is not None:
            return sub.limit
        return self.default_limit

    def sort_for(self, name: str) -> ListingSort:
        sub = self.subreddit(name)
        if sub is not None and sub.sort is not None:
            return sub.sort
        return self.default_sort


def load_config(config_path: str = "config.yaml") -> AppConfig:
    """Load config from YAML file. Settings are always read from env / .env."""
    load_dotenv()

    data: dict = {}
    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            data = yaml.safe_load(f) or {}

    data.pop("settings", None)
    return AppConfig(**data, settings=Settings())
