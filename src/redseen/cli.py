"""Click CLI with commands: posts, comments, threads, mark-seen, watch, status, cleanup."""

from __future__ import annotations

import contextlib
import threading
from collections.abc import Iterator

import click
import structlog

from redseen.autoack import AutoAcknowledger
from redseen.cache import ListingCache
from redseen.config import load_config
from redseen.db import get_engine, init_db
from redseen.models import PostView
from redseen.read_posts import ReadPostStore
from redseen.reader import Reader
from redseen.reddit import RedditClient, RedditFetchError
from redseen.snapshots import SqlSnapshotStore
from redseen.statuses import CountdownState, ListingSort
from redseen.utils.formatting import format_timestamp, render_thread, render_tree
from redseen.utils.logging import setup_logging
from redseen.worker import loop_options, run_loop

_SORTS = click.Choice([s.value for s in ListingSort])


@click.group()
@click.option("--config", "config_path", default="config.yaml", help="Path to config YAML file.")
@click.pass_context
def cli(ctx: click.Context, config_path: str) -> None:
    """Redseen: a Reddit reader that remembers which comments you have seen."""
    ctx.ensure_object(dict)
    cfg = load_config(config_path)
    ctx.obj["config"] = cfg

    engine = get_engine(cfg.settings.database_url)
    init_db(engine)
    ctx.obj["engine"] = engine


@contextlib.contextmanager
def _reader(ctx: click.Context, log: structlog.stdlib.BoundLogger) -> Iterator[Reader]:
    cfg = ctx.obj["config"]
    engine = ctx.obj["engine"]
    with RedditClient(cfg.settings, log) as client:
        yield Reader(
            client=client,
            store=SqlSnapshotStore(engine, log),
            cache=ListingCache(engine, cfg.settings.cache_ttl_seconds, log),
            read_posts=ReadPostStore(engine),
            config=cfg,
            log=log,
        )


def _fail(log: structlog.stdlib.BoundLogger, message: str) -> None:
    log.exception("cli.fetch_failed")
    click.echo(f"Error: {message}", err=True)
    raise SystemExit(1)


def _pick_post(reader: Reader, subreddit: str, index: int, sort: str | None, log) -> PostView:
    try:
        view = reader.get_post(subreddit, index, sort)
    except RedditFetchError as exc:
        _fail(log, str(exc))
    if view is None:
        click.echo(f"No posts in r/{subreddit}.")
        raise SystemExit(1)
    return view


def _post_header(view: PostView) -> str:
    return f"{view.title}\n  by {view.author} · {format_timestamp(view.created_utc)} · {view.comment_count} comments"


@cli.command()
@click.argument("subreddit")
@click.option("--sort", type=_SORTS, default=None, help="Listing order (defaults to config).")
@click.option("--refresh", is_flag=True, help="Ignore the listing cache.")
@click.pass_context
def posts(ctx: click.Context, subreddit: str, sort: str | None, refresh: bool) -> None:
    """List posts with their new-comment counts."""
    log = setup_logging(ctx.obj["config"].settings.log_dir)

    with _reader(ctx, log) as reader:
        try:
            views = reader.load_posts(subreddit, sort, refresh)
        except RedditFetchError as exc:
            _fail(log, str(exc))

    if not views:
        click.echo(f"No posts in r/{subreddit}.")
        return

    for index, view in enumerate(views):
        unread = " *" if view.is_newly_fetched and not view.is_read else ""
        new = f" ({view.new_comment_count} new)" if view.has_new_comments else ""
        click.echo(f"[{index}]{unread} {view.title}")
        click.echo(f"     by {view.author} · {view.comment_count} comments{new}")


@cli.command()
@click.argument("subreddit")
@click.argument("index", type=int, default=0)
@click.option("--sort", type=_SORTS, default=None, help="Listing order (defaults to config).")
@click.option("--auto-ack", is_flag=True, help="Mark everything seen after a countdown.")
@click.pass_context
def comments(ctx: click.Context, subreddit: str, index: int, sort: str | None, auto_ack: bool) -> None:
    """Show a post's comment tree with new comments marked."""
    cfg = ctx.obj["config"]
    log = setup_logging(cfg.settings.log_dir)

    with _reader(ctx, log) as reader:
        view = reader.open_post(_pick_post(reader, subreddit, index, sort, log))

        click.echo(_post_header(view))
        if view.selftext:
            click.echo(view.selftext)
        click.echo("")
        for line in render_tree(view.comments):
            click.echo(line)

        if view.has_new_comments:
            click.echo(f"\n{view.new_comment_count} new comments.")
            if auto_ack:
                _countdown_then_acknowledge(reader, view, cfg.settings.auto_ack_seconds)


def _countdown_then_acknowledge(reader: Reader, view: PostView, seconds: float) -> None:
    expired = threading.Event()
    countdown = AutoAcknowledger(seconds, expired.set)
    click.echo(f"Marking all seen in {seconds:g}s (Ctrl-C to keep them new).")
    countdown.start()
    try:
        expired.wait()
    except KeyboardInterrupt:
        # An interrupt wins over a timer that fired concurrently
        countdown.cancel()
        click.echo("Kept as new.")
        return
    if countdown.state == CountdownState.EXPIRED:
        reader.acknowledge(view)
        click.echo("Marked all seen.")


@cli.command()
@click.argument("subreddit")
@click.argument("index", type=int, default=0)
@click.option("--sort", type=_SORTS, default=None, help="Listing order (defaults to config).")
@click.option("--mark-seen", is_flag=True, help="Acknowledge after printing the threads.")
@click.pass_context
def threads(ctx: click.Context, subreddit: str, index: int, sort: str | None, mark_seen: bool) -> None:
    """Print each new comment with the chain of comments leading to it."""
    log = setup_logging(ctx.obj["config"].settings.log_dir)

    with _reader(ctx, log) as reader:
        view = _pick_post(reader, subreddit, index, sort, log)
        found = reader.new_threads(view)
        if not found:
            click.echo("No new comments.")
            return

        click.echo(f"New comments ({len(found)}) in: {view.title}")
        for thread in found:
            click.echo("")
            for line in render_thread(thread):
                click.echo(line)

        if mark_seen:
            reader.acknowledge(view)
            click.echo("\nMarked all seen.")


@cli.command("mark-seen")
@click.argument("subreddit")
@click.argument("index", type=int, default=0)
@click.option("--sort", type=_SORTS, default=None, help="Listing order (defaults to config).")
@click.pass_context
def mark_seen(ctx: click.Context, subreddit: str, index: int, sort: str | None) -> None:
    """Acknowledge every comment currently on a post."""
    log = setup_logging(ctx.obj["config"].settings.log_dir)

    with _reader(ctx, log) as reader:
        view = _pick_post(reader, subreddit, index, sort, log)
        cleared = view.new_comment_count
        reader.acknowledge(view)
    click.echo(f"Marked all seen: {view.title} ({cleared} new cleared)")


@cli.command()
@click.argument("subreddit")
@click.option("--sort", type=_SORTS, default=None, help="Listing order (defaults to config).")
@loop_options(default_interval=300)
@click.pass_context
def watch(ctx: click.Context, subreddit: str, sort: str | None, loop: bool, interval: int) -> None:
    """Refresh a subreddit and report posts with new comments."""
    log = setup_logging(ctx.obj["config"].settings.log_dir, "watch")

    with _reader(ctx, log) as reader:

        def poll() -> int:
            views = reader.load_posts(subreddit, sort, refresh=True)
            with_new = [v for v in views if v.has_new_comments]
            for view in with_new:
                click.echo(f"{view.new_comment_count:>4} new · {view.title}")
            return len(with_new)

        run_loop(poll, loop=loop, interval=interval, log=log, name="watch")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show how many posts are tracked, read and cached."""
    engine = ctx.obj["engine"]
    cfg = ctx.obj["config"]

    click.echo("\n=== Tracking ===")
    click.echo(f"  Posts with snapshots: {SqlSnapshotStore(engine).count()}")
    click.echo(f"  Read markers:         {ReadPostStore(engine).count()}")
    click.echo(f"  Cached listings:      {ListingCache(engine, cfg.settings.cache_ttl_seconds).count()}")

    click.echo("\n=== Subreddits ===")
    if not cfg.subreddits:
        click.echo(f"  none configured (defaults: {cfg.default_limit} posts, {cfg.default_sort})")
    for sub in cfg.subreddits:
        click.echo(f"  r/{sub.name}: {cfg.post_limit(sub.name)} posts, {cfg.sort_for(sub.name)}")
    click.echo()


@cli.command()
@click.pass_context
def cleanup(ctx: click.Context) -> None:
    """Drop read markers that are stale or no longer cached."""
    log = setup_logging(ctx.obj["config"].settings.log_dir)

    with _reader(ctx, log) as reader:
        removed = reader.cleanup_read_posts()
    click.echo(f"Removed {removed} read markers.")
