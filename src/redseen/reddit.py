"""Reddit JSON API client: subreddit listings and full comment trees."""

from __future__ import annotations

import math
import time
from typing import Any

import httpx
import structlog
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
)

from redseen.http import create_http_client
from redseen.models import Comment, Post
from redseen.settings import Settings
from redseen.statuses import ListingSort

REDDIT_BASE_URL = "https://www.reddit.com"


class RedditFetchError(Exception):
    """A Reddit request failed or returned something that is not a listing."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(f"{message} ({url})")
        self.url = url


def _should_retry(retry_state) -> bool:
    exc = retry_state.outcome.exception()
    return isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code in (429, 503)


def _rate_limit_sleep(resp: httpx.Response, min_delay: float, log: structlog.stdlib.BoundLogger) -> None:
    """Adaptively sleep based on Reddit's rate-limit response headers."""
    remaining = resp.headers.get("x-ratelimit-remaining")
    reset = resp.headers.get("x-ratelimit-reset")
    if remaining is not None and reset is not None:
        try:
            remaining_f, reset_f = float(remaining), max(0.0, float(reset))
        except ValueError:
            remaining_f = reset_f = math.nan
        if not (math.isfinite(remaining_f) and math.isfinite(reset_f)):
            log.debug("reddit.rate_limit_headers_unparseable", remaining=remaining, reset=reset)
            time.sleep(min_delay)
        elif remaining_f <= 1:
            log.warning("reddit.rate_limit_exhausted", remaining=remaining_f, sleeping=reset_f)
            time.sleep(reset_f)
        elif remaining_f < 5:
            delay = reset_f / remaining_f
            log.info("reddit.rate_limit_low", remaining=remaining_f, reset_in=reset_f, sleeping=round(delay, 1))
            time.sleep(delay)
        else:
            time.sleep(min_delay)
    else:
        time.sleep(min_delay)


@retry(
    retry=_should_retry,
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=2, min=4, max=120),
    reraise=True,
)
def _fetch_json(client: httpx.Client, url: str, log: structlog.stdlib.BoundLogger) -> tuple[Any, httpx.Response]:
    """Fetch JSON from URL, respecting Retry-After on 429s."""
    resp = client.get(url)
    if resp.status_code == 429:
        retry_after = resp.headers.get("retry-after")
        if retry_after:
            log.warning("reddit.429_retry_after", url=url, retry_after=retry_after)
            time.sleep(float(retry_after))
    resp.raise_for_status()
    return resp.json(), resp


def _is_listing(payload: Any) -> bool:
    return isinstance(payload, dict) and isinstance(payload.get("data"), dict)


def _listing_children(listing: Any) -> list[dict]:
    """Dict children of a listing; anything else (``""`` replies, junk) yields none."""
    if not _is_listing(listing):
        return []
    children = listing["data"].get("children", [])
    if not isinstance(children, list):
        return []
    return [child for child in children if isinstance(child, dict)]


def parse_comment(child: dict, depth: int = 0) -> Comment | None:
    """Convert one ``t1`` listing child into a Comment; ``more`` stubs yield None."""
    if child.get("kind") != "t1":
        return None
    data = child.get("data")
    if not isinstance(data, dict):
        return None
    comment_id = data.get("id") or str(data.get("name") or "").removeprefix("t1_")
    if not comment_id:
        return None

    return Comment(
        id=comment_id,
        author=data.get("author") or "[deleted]",
        created_utc=float(data.get("created_utc") or 0),
        body=data.get("body") or "",
        replies=parse_comments(_listing_children(data.get("replies")), depth + 1),
        depth=data.get("depth", depth),
    )


def parse_comments(children: list[dict], depth: int = 0) -> list[Comment]:
    comments = []
    for child in children:
        comment = parse_comment(child, depth)
        if comment is not None:
            comments.append(comment)
    return comments


def parse_post(post_data: dict, comments: list[Comment] | None = None) -> Post:
    return Post(
        permalink=post_data.get("permalink", ""),
        title=post_data.get("title") or "",
        author=post_data.get("author") or "[deleted]",
        created_utc=float(post_data.get("created_utc") or 0),
        selftext=post_data.get("selftext") or "",
        subreddit=post_data.get("subreddit") or "",
        score=post_data.get("score") or 0,
        num_comments=post_data.get("num_comments") or 0,
        comments=comments or [],
    )


class RedditClient:
    """Unauthenticated client for Reddit's public ``.json`` endpoints."""

    def __init__(self, settings: Settings, log: structlog.stdlib.BoundLogger) -> None:
        self.settings = settings
        self.log = log
        self._client = create_http_client(
            proxy_url=settings.proxy_url or None,
            user_agent=settings.user_agent,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> RedditClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _get(self, url: str) -> Any:
        time.sleep(self.settings.reddit_rate_limit)
        try:
            data, resp = _fetch_json(self._client, url, self.log)
        except httpx.HTTPError as exc:
            raise RedditFetchError(f"request failed: {exc}", url) from exc
        except ValueError as exc:
            raise RedditFetchError("response is not JSON", url) from exc
        _rate_limit_sleep(resp, 0, self.log)
        return data

    def fetch_listing(self, subreddit: str, sort: ListingSort | str = ListingSort.HOT, limit: int = 6) -> list[dict]:
        """Raw post data dicts for one page of a subreddit listing."""
        sort = ListingSort(sort)
        url = f"{REDDIT_BASE_URL}/r/{subreddit}/{sort}.json?limit={limit}&raw_json=1"
        data = self._get(url)
        if not _is_listing(data):
            raise RedditFetchError("unexpected listing payload", url)

        posts = [child.get("data") for child in _listing_children(data) if child.get("kind", "t3") == "t3"]
        posts = [post for post in posts if isinstance(post, dict) and isinstance(post.get("permalink"), str)]
        posts = [post for post in posts if post["permalink"]][:limit]
        self.log.info("reddit.listing_fetched", subreddit=subreddit, sort=str(sort), posts=len(posts))
        return posts

    def fetch_comments(self, permalink: str) -> list[Comment]:
        """Full comment tree of a post, top-level comments in reply order."""
        url = f"{REDDIT_BASE_URL}{permalink.rstrip('/')}.json?raw_json=1"
        data = self._get(url)
        if not isinstance(data, list) or len(data) < 2 or not _is_listing(data[1]):
            raise RedditFetchError("unexpected comments payload", url)

        try:
            comments = parse_comments(_listing_children(data[1]))
        except (TypeError, ValueError) as exc:
            raise RedditFetchError(f"unexpected comment data: {exc}", url) from exc
        self.log.debug("reddit.comments_fetched", permalink=permalink, top_level=len(comments))
        return comments

    def fetch_posts(self, subreddit: str, sort: ListingSort | str = ListingSort.HOT, limit: int = 6) -> list[Post]:
        """Listing plus the comment tree of every post in it."""
        posts = []
        for post_data in self.fetch_listing(subreddit, sort, limit):
            comments = self.fetch_comments(post_data["permalink"])
            try:
                posts.append(parse_post(post_data, comments))
            except (TypeError, ValueError) as exc:
                raise RedditFetchError(f"unexpected post data: {exc}", post_data["permalink"]) from exc
        return posts
