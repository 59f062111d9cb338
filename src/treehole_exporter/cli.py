"""CLI interface for the Treehole exporter."""

import asyncio
import functools
import logging
from pathlib import Path
from typing import Optional

import click
import orjson
from tqdm import tqdm

from .client import EXPORT_PAGE_SIZE, TreeholeClient
from .credentials import (
    ChainSource,
    CookieStringSource,
    MappingSource,
    StorageFileSource,
    TOKEN_COOKIE,
    UUID_STORAGE_KEY,
    XSRF_COOKIE,
)
from .exceptions import ApiFailure, HttpStatusError, TreeholeError
from .export import write_aggregate
from .transport import API_BASE, AiohttpTransport, BaseTransport, HttpxTransport
from .utils import parse_pid

logger = logging.getLogger(__name__)

TRANSPORTS = {
    "httpx": HttpxTransport,
    "aiohttp": AiohttpTransport,
}


class PidType(click.ParamType):
    """Post id given as ``12345`` or as text containing ``#12345``."""

    name = "pid"

    def convert(self, value, param, ctx):
        pid = parse_pid(value)
        if pid is None:
            self.fail(f"{value!r} is not a post id", param, ctx)
        return pid


class PageProgress:
    """tqdm bar fed by ``TreeholeClient``'s page hook; created once the page count is known."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.bar: Optional[tqdm] = None

    def __call__(self, page: int, last_page: int):
        if not self.enabled:
            return
        if self.bar is None:
            self.bar = tqdm(total=last_page, desc="Fetching comments", unit="page")
        self.bar.update(1)

    def close(self):
        if self.bar is not None:
            self.bar.close()


def build_transport(
    transport: str,
    cookie_file: Optional[str],
    storage_file: Optional[str],
    token: Optional[str],
    xsrf: Optional[str],
    uuid: Optional[str],
    base_url: str,
    timeout: Optional[float],
) -> BaseTransport:
    """Layer explicit options over the cookie/storage files and build the transport."""
    cookie_overrides = MappingSource({TOKEN_COOKIE: token, XSRF_COOKIE: xsrf})
    storage_overrides = MappingSource({UUID_STORAGE_KEY: uuid})

    cookies = ChainSource(
        cookie_overrides,
        CookieStringSource.from_file(cookie_file) if cookie_file else CookieStringSource.from_env(),
    )
    storage_sources = [storage_overrides]
    if storage_file:
        storage_sources.append(StorageFileSource(storage_file))

    return TRANSPORTS[transport](
        cookies=cookies,
        storage=ChainSource(*storage_sources),
        base_url=base_url,
        timeout=timeout,
    )


def describe_error(error: TreeholeError) -> str:
    """User-facing message for a failed fetch."""
    if isinstance(error, HttpStatusError):
        return f"server answered HTTP {error.status} {error.status_text}".rstrip()
    if isinstance(error, ApiFailure):
        return f"server refused the request: {error.message}"
    return str(error)


def connection_options(func):
    """Options shared by every command that talks to the API."""
    options = [
        click.option('--cookie-file', type=click.Path(dir_okay=False),
                     help='File holding the browser cookie string (document.cookie)'),
        click.option('--storage-file', type=click.Path(dir_okay=False),
                     help='JSON dump of the browser localStorage'),
        click.option('--token', envvar='TREEHOLE_TOKEN', help='Session token (pku_token cookie)'),
        click.option('--xsrf', envvar='TREEHOLE_XSRF', help='Anti-forgery token (XSRF-TOKEN cookie)'),
        click.option('--uuid', envvar='TREEHOLE_UUID', help='Device identifier (pku-uuid)'),
        click.option('--base-url', default=API_BASE, show_default=True, help='API base URL'),
        click.option('--transport', type=click.Choice(sorted(TRANSPORTS)), default='httpx',
                     show_default=True, help='HTTP library used for requests'),
        click.option('--timeout', type=float, default=None, help='Request timeout in seconds'),
        click.option('--sort', type=click.Choice(['asc', 'desc']), default='asc',
                     show_default=True, help='Comment order'),
        click.option('--page-size', type=click.IntRange(min=1), default=EXPORT_PAGE_SIZE,
                     show_default=True, help='Comments per request'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def run_fetch(coro_factory, **options):
    """Build a client from CLI options, run ``coro_factory(client)`` and map failures."""
    transport = build_transport(
        options['transport'], options['cookie_file'], options['storage_file'],
        options['token'], options['xsrf'], options['uuid'],
        options['base_url'], options['timeout'],
    )

    async def _run():
        async with TreeholeClient(transport) as client:
            return await coro_factory(client)

    try:
        return asyncio.run(_run())
    except TreeholeError as e:
        logger.error("failed: %s", e)
        raise click.ClickException(
            f"Export failed, {describe_error(e)}. Check your login state and network."
        ) from e


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Log every request')
def main(verbose):
    """Treehole Exporter - fetch a Treehole post with its whole comment thread."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='[treehole-exporter] %(levelname)s %(name)s: %(message)s',
    )


@main.command()
@click.argument('pid', type=PidType())
@click.option('--output-dir', default='output', show_default=True,
              help='Directory for the exported JSON file')
@click.option('--no-progress', is_flag=True, help='Hide the page progress bar')
@connection_options
def export(pid, output_dir, no_progress, **options):
    """Export a post and all of its comments to a JSON file for rendering."""
    progress = PageProgress(enabled=not no_progress)
    try:
        aggregate = run_fetch(
            functools.partial(
                _fetch_aggregate, pid=pid, sort=options['sort'],
                page_size=options['page_size'], on_page=progress,
            ),
            **options,
        )
    finally:
        progress.close()

    path = write_aggregate(aggregate, Path(output_dir))
    click.echo(f"Exported #{pid}: {len(aggregate.comments)} comments, "
               f"{len(aggregate.users)} participants -> {path}")


@main.command()
@click.argument('pid', type=PidType())
@connection_options
def comments(pid, **options):
    """Print every comment of a post as JSON."""
    rows = run_fetch(
        functools.partial(
            _fetch_comments, pid=pid, sort=options['sort'], page_size=options['page_size'],
        ),
        **options,
    )
    click.echo(orjson.dumps([c.to_dict() for c in rows], option=orjson.OPT_INDENT_2).decode())


async def _fetch_aggregate(client: TreeholeClient, pid, sort, page_size, on_page):
    return await client.fetch_post_with_comments(pid, sort, page_size, on_page)


async def _fetch_comments(client: TreeholeClient, pid, sort, page_size):
    return await client.fetch_all_comments(pid, sort, page_size)


if __name__ == '__main__':
    main()
