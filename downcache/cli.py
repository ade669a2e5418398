"""Command-line interface for downcache."""

import asyncio
import json
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console

from config.settings import CacheConfig, Settings
from downcache.fetcher.errors import DowncacheError, StorageError
from downcache.fetcher.retriever import Downcache, FetchRequest
from downcache.utils.logging import setup_logging
from downcache.utils.paths import url_to_path

console = Console(stderr=True)


def _load_settings() -> Settings:
    load_dotenv()
    return Settings()


@click.group(invoke_without_command=True)
@click.pass_context
def cli(ctx):
    """Disk-backed HTTP response cache.

    \b
    Fetches a URL once, stores the body under
    {directory}/{host}/{path} and serves it from disk afterwards.
    Live fetches are rate limited (one per --limit milliseconds).

    \b
    COMMANDS:
      get   - Print a URL's body, from cache when possible
      path  - Print the cache file a URL maps to

    \b
    SETTINGS:
      DOWNCACHE_DIRECTORY, DOWNCACHE_RATE_LIMIT and DOWNCACHE_LOG_LEVEL
      may be set in the environment or a .env file.
    """
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


@cli.command()
@click.argument("url")
@click.option("--dir", "directory", default=None, help="Cache directory")
@click.option("--path", "cache_path", default=None, help="Explicit cache path relative to the directory")
@click.option("--force", is_flag=True, help="Ignore the cached copy and fetch live")
@click.option("--no-cache", is_flag=True, help="Do not write the response to the cache")
@click.option("--json", "as_json", is_flag=True, help="Parse the body as JSON and pretty-print it")
@click.option("--limit", type=click.IntRange(min=0), default=None, help="Milliseconds between live fetches")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None, help="Write the body to a file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def get(url, directory, cache_path, force, no_cache, as_json, limit, output, verbose):
    """Print the body of URL, fetching and caching it on a miss.

    \b
    Examples:
      downcache get https://example.com/data.json --json
      downcache get https://example.com/page --force
      downcache get https://example.com/page --dir ./tmp/cache -o page.html
    """
    settings = _load_settings()
    config = CacheConfig.from_settings(settings)
    if verbose:
        config = config.model_copy(update={"log_level": "verbose"})
    setup_logging(config.log_level)

    request = FetchRequest(
        url=url,
        path=cache_path,
        force=force,
        no_cache=no_cache,
        json=as_json,
        directory=directory,
        rate_limit=limit,
    )

    try:
        result = asyncio.run(_retrieve(config, request))
    except StorageError as e:
        # The fetch itself worked; still hand over the body.
        console.print(f"[yellow]Warning:[/yellow] {e}")
        result = e.result
        if result is None:
            raise SystemExit(1)
    except DowncacheError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    if as_json and not isinstance(result.body, str):
        text = json.dumps(result.body, indent=2, ensure_ascii=False)
    else:
        text = result.text

    if output:
        Path(output).write_text(text, encoding="utf-8")
        console.print(f"[green]✓[/green] {result.status.value}: written to [bold]{output}[/bold]")
    else:
        click.echo(text)
        console.print(f"[green]✓[/green] {result.status.value} ({result.path})")


async def _retrieve(config: CacheConfig, request: FetchRequest):
    async with Downcache(config) as dc:
        return await dc.retrieve(request)


@cli.command()
@click.argument("url")
@click.option("--dir", "directory", default=None, help="Cache directory")
def path(url, directory):
    """Print the cache file path URL maps to.

    \b
    Query strings are not part of the path:
      downcache path "https://example.com/list?page=2"
      -> cache/example.com/list
    """
    settings = _load_settings()
    try:
        relative = url_to_path(url)
    except DowncacheError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)
    click.echo(str(Path(directory or settings.directory) / relative))


if __name__ == "__main__":
    cli()
