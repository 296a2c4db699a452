"""blogmap CLI.

Commands:
- discover: Find post URLs for a blog (sitemap, RSS, Firecrawl map)
- preview: Full import preview for an account (duplicates, filters, enrichment)
- languages: List detectable languages
- serve: Run the preview API
- init-db: Create the asset database
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

import click
import httpx
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

load_dotenv()

from blogmap.config import load_config  # noqa: E402
from blogmap.discovery import discover_blog_urls  # noqa: E402
from blogmap.duplicates import SqlAssetStore, create_asset_engine, init_db  # noqa: E402
from blogmap.errors import BlogmapError  # noqa: E402
from blogmap.language import get_language_options  # noqa: E402
from blogmap.preview import PreviewRequest, preview_blog_import  # noqa: E402

console = Console()

format_option = click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "text"], case_sensitive=False),
    default="text",
    help="Output format (json for scripts, text for humans)",
)


def print_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _posts_table(title: str, rows: list[dict], with_type: bool = False) -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("Date", style="cyan", no_wrap=True)
    table.add_column("Title")
    if with_type:
        table.add_column("Type", style="magenta")
        table.add_column("Lang", style="green")
        table.add_column("Dup", style="yellow")
    table.add_column("URL", style="dim", overflow="fold")
    for row in rows:
        cells = [row.get("publishedDate") or "-", row.get("title", "")]
        if with_type:
            cells += [
                row.get("detectedAssetType") or "?",
                row.get("language") or "-",
                "yes" if row.get("isDuplicate") else "",
            ]
        cells.append(row["url"])
        table.add_row(*cells)
    return table


@click.group()
@click.version_option(package_name="blogmap")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def main(verbose: bool):
    """blogmap - discover blog posts and preview bulk imports."""
    _configure_logging(verbose)


@main.command()
@click.argument("url")
@click.option("--max-urls", type=int, default=None, help="Maximum URLs to return")
@format_option
def discover(url: str, max_urls: Optional[int], output_format: str):
    """Discover post URLs for a blog.

    \b
    Examples:
        blogmap discover example.com/blog
        blogmap discover https://example.com/blog --max-urls 20 --format json
    """
    config = load_config(max_urls=max_urls)

    async def _run():
        async with httpx.AsyncClient() as client:
            return await discover_blog_urls(url, client=client, config=config)

    try:
        result = asyncio.run(_run())
    except BlogmapError as e:
        raise click.ClickException(e.message) from e

    if output_format == "json":
        print_json(result.to_json_dict())
        return

    if result.fallback_required:
        console.print(
            "[yellow]No posts found via sitemap, RSS or Firecrawl map. "
            "Try `blogmap preview`, which falls back to listing-page extraction.[/yellow]"
        )
        return

    data = result.to_json_dict()
    console.print(_posts_table(f"{result.count} posts", data["urls"]))
    console.print(
        f"[dim]Method: {result.discovery_method.value} | Credits used: {result.credits_used}[/dim]"
    )


@main.command()
@click.argument("url")
@click.option("--account", "account_id", required=True, help="Account whose assets are checked")
@click.option("--start", "date_start", default=None, help="Earliest publish date (YYYY-MM-DD)")
@click.option("--end", "date_end", default=None, help="Latest publish date (YYYY-MM-DD)")
@click.option("--language", "languages", multiple=True, help="Keep only these language codes")
@click.option(
    "--include-undetected/--exclude-undetected",
    default=True,
    help="Keep posts whose language cannot be detected",
)
@click.option("--exclude-duplicates", is_flag=True, help="Drop posts already imported")
@click.option("--max-posts", type=int, default=None, help="Maximum posts to discover")
@format_option
def preview(
    url: str,
    account_id: str,
    date_start: Optional[str],
    date_end: Optional[str],
    languages: tuple[str, ...],
    include_undetected: bool,
    exclude_duplicates: bool,
    max_posts: Optional[int],
    output_format: str,
):
    """Preview a bulk blog import for an account."""
    config = load_config()
    engine = create_asset_engine(config.database_url)
    init_db(engine)
    request = PreviewRequest(
        blog_url=url,
        date_range_start=date_start,
        date_range_end=date_end,
        max_posts=max_posts,
        languages=list(languages),
        include_undetected_language=include_undetected,
        exclude_duplicates=exclude_duplicates,
    )

    async def _run():
        async with httpx.AsyncClient() as client:
            return await preview_blog_import(
                request,
                account_id=account_id,
                checker=SqlAssetStore(engine),
                client=client,
                config=config,
            )

    try:
        response = asyncio.run(_run())
    except BlogmapError as e:
        raise click.ClickException(e.message) from e
    finally:
        engine.dispose()

    data = response.to_json_dict()
    if output_format == "json":
        print_json(data)
        return

    console.print(_posts_table(f"{data['total']} posts", data["posts"], with_type=True))
    stats = data["dateStats"]
    console.print(
        f"[bold]{data['new']}[/bold] new, [bold]{data['duplicates']}[/bold] duplicates | "
        f"method: {data['discovery']['method']} "
        f"({data['discovery']['creditsUsed']} credits) | "
        f"dated: {stats['withDate']}, undated: {stats['withoutDate']}"
    )
    if data["detectedLanguages"]:
        console.print(f"[dim]Languages: {', '.join(data['detectedLanguages'])}[/dim]")


@main.command()
@format_option
def languages(output_format: str):
    """List languages that can be detected from URLs."""
    options = get_language_options()
    if output_format == "json":
        print_json(options)
        return
    table = Table(title="Languages")
    table.add_column("Code", style="cyan")
    table.add_column("Name")
    for option in options:
        table.add_row(option["code"], option["name"])
    console.print(table)


@main.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, type=int, show_default=True)
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str, port: int, reload: bool):
    """Run the preview API server."""
    import uvicorn

    console.print(f"[green]Serving blogmap API on http://{host}:{port}[/green]")
    uvicorn.run("blogmap.web.app:app", host=host, port=port, reload=reload)


@main.command("init-db")
@click.option("--database-url", default=None, help="Override the configured database URL")
def init_db_command(database_url: Optional[str]):
    """Create the asset database used for duplicate checks."""
    config = load_config(database_url=database_url)
    engine = create_asset_engine(config.database_url)
    try:
        init_db(engine)
    finally:
        engine.dispose()
    console.print(f"[green]Initialized asset database at {config.database_url}[/green]")


if __name__ == "__main__":
    main()
