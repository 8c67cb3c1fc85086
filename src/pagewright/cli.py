"""CLI interface for pagewright"""

import logging
from pathlib import Path
from typing import Optional

import click

from pagewright.domain.models.page import PageInfo
from pagewright.infrastructure.config.config_manager import ConfigManager, ConfigurationError
from pagewright.infrastructure.confluence.client import ConfluenceClient
from pagewright.infrastructure.confluence.errors import ConfluenceError
from pagewright.infrastructure.retry import CancelToken, retry_policy_from_config

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger().setLevel(level)
    for logger_name in logging.Logger.manager.loggerDict:
        logging.getLogger(logger_name).setLevel(level)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Exit with a user-friendly error message"""
    if exc is not None:
        logger.error(message, exc_info=verbose)
    else:
        logger.error(message)
    raise click.ClickException(message)


def _create_client(ctx: click.Context) -> ConfluenceClient:
    """Create Confluence client from config file, env and CLI options"""
    obj = ctx.obj
    if obj.get("client") is not None:
        return obj["client"]

    verbose = obj.get("verbose", False)
    try:
        config_manager = ConfigManager(config_path=obj.get("config_path"))
    except ConfigurationError as e:
        _die(str(e), verbose=verbose, exc=e)

    confluence_config = config_manager.get_confluence_config()
    timeout = obj.get("timeout")
    try:
        client = ConfluenceClient(
            base_url=obj.get("base_url") or confluence_config.base_url,
            username=confluence_config.username,
            password=confluence_config.password,
            retry_policy=retry_policy_from_config(config_manager.get_retry_config()),
            cancel_token=CancelToken(timeout=timeout),
            cloud=confluence_config.cloud,
            timeout=confluence_config.timeout,
        )
    except ValueError as e:
        _die(str(e), verbose=verbose, exc=e)

    obj["client"] = client
    return client


def _format_page(page: PageInfo, base_url: str) -> str:
    line = f"{page.id}\t{page.title}"
    if page.version.number:
        line += f"\t(version {page.version.number})"
    if page.links.full:
        line += f"\t{base_url}{page.links.full}"
    return line


def _run(ctx: click.Context, action):
    """Run a client action, converting client errors into CLI errors"""
    verbose = ctx.obj.get("verbose", False)
    try:
        return action(_create_client(ctx))
    except click.ClickException:
        raise
    except ConfluenceError as e:
        _die(str(e), verbose=verbose, exc=e)
    except OSError as e:
        _die(f"Fatal error: {e}", verbose=verbose, exc=e)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .pagewright.yml config file",
)
@click.option("--base-url", type=str, help="Confluence URL (default: from config or CONFLUENCE_BASE_URL)")
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    help="Give up (including rate-limit waits) after this many seconds",
)
@click.pass_context
def cli(ctx, verbose: bool, config: Path, base_url: str, timeout: float):
    """pagewright - Confluence API client"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["base_url"] = base_url
    ctx.obj["timeout"] = timeout


@cli.command("find-page")
@click.argument("space", type=str)
@click.option("--title", type=str, default="", help="Page title (default: any page)")
@click.option(
    "--type",
    "page_type",
    type=click.Choice(["page", "blogpost"]),
    default="page",
    show_default=True,
)
@click.pass_context
def find_page(ctx, space: str, title: str, page_type: str):
    """Find a page by title in SPACE."""
    page = _run(ctx, lambda client: client.find_page(space, title, page_type))
    if page is None:
        click.echo("Page not found")
        ctx.exit(1)
    click.echo(_format_page(page, _create_client(ctx).base_url))


@cli.command("get-page")
@click.argument("page_id", type=str)
@click.pass_context
def get_page(ctx, page_id: str):
    """Show the page with PAGE_ID."""
    page = _run(ctx, lambda client: client.get_page_by_id(page_id))
    click.echo(_format_page(page, _create_client(ctx).base_url))
    for ancestor in page.ancestors:
        click.echo(f"  ancestor: {ancestor.id}\t{ancestor.title}")


@cli.command("home-page")
@click.argument("space", type=str)
@click.option("--root", is_flag=True, help="Show the top-level page instead of the home page")
@click.pass_context
def home_page(ctx, space: str, root: bool):
    """Show the home page of SPACE."""
    if root:
        page = _run(ctx, lambda client: client.find_root_page(space))
    else:
        page = _run(ctx, lambda client: client.find_home_page(space))
    click.echo(_format_page(page, _create_client(ctx).base_url))


@cli.command()
@click.argument("page_id", type=str)
@click.pass_context
def attachments(ctx, page_id: str):
    """List attachments of PAGE_ID."""
    infos = _run(ctx, lambda client: client.get_attachments(page_id))
    for info in infos:
        click.echo(f"{info.id}\t{info.filename}\t{info.metadata.comment}")
    click.echo(f"\n{len(infos)} attachment(s)")


@cli.command()
@click.argument("page_id", type=str)
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--name", type=str, help="Attachment name (default: file name)")
@click.option("--comment", type=str, default="", help="Attachment comment")
@click.option("--replace", "attachment_id", type=str, help="Upload as new version of this attachment ID")
@click.pass_context
def upload(ctx, page_id: str, file_path: Path, name: str, comment: str, attachment_id: str):
    """Upload FILE_PATH as an attachment of PAGE_ID."""
    name = name or file_path.name
    content = file_path.read_bytes()

    if attachment_id:
        info = _run(
            ctx, lambda client: client.update_attachment(page_id, attachment_id, name, comment, content)
        )
    else:
        info = _run(ctx, lambda client: client.create_attachment(page_id, name, comment, content))

    click.echo(f"{info.id}\t{info.filename}")
    if info.links.download:
        click.echo(f"{_create_client(ctx).base_url}{info.links.download}")


@cli.command()
@click.argument("page_id", type=str)
@click.option("--prefix", type=str, default="global", show_default=True)
@click.pass_context
def labels(ctx, page_id: str, prefix: str):
    """List labels of PAGE_ID."""
    info = _run(ctx, lambda client: client.get_page_labels(PageInfo(id=page_id), prefix))
    for name in info.names:
        click.echo(name)


@cli.command("add-labels")
@click.argument("page_id", type=str)
@click.argument("names", nargs=-1, required=True)
@click.pass_context
def add_labels(ctx, page_id: str, names):
    """Add global labels NAMES to PAGE_ID."""
    info = _run(ctx, lambda client: client.add_page_labels(PageInfo(id=page_id), list(names)))
    click.echo(f"Labels: {', '.join(info.names)}")


@cli.command("remove-label")
@click.argument("page_id", type=str)
@click.argument("name", type=str)
@click.pass_context
def remove_label(ctx, page_id: str, name: str):
    """Remove label NAME from PAGE_ID."""
    _run(ctx, lambda client: client.delete_page_label(PageInfo(id=page_id), name))
    click.echo(f"Removed label {name}")


@cli.command()
@click.pass_context
def whoami(ctx):
    """Show the authenticated user."""
    user = _run(ctx, lambda client: client.get_current_user())
    click.echo(user.account_id or user.user_key)


@cli.command("find-user")
@click.argument("name", type=str)
@click.pass_context
def find_user(ctx, name: str):
    """Find a user by full NAME."""
    user = _run(ctx, lambda client: client.get_user_by_name(name))
    click.echo(user.account_id or user.user_key)


@cli.command()
@click.argument("page_id", type=str)
@click.argument("allowed_user", type=str)
@click.pass_context
def restrict(ctx, page_id: str, allowed_user: str):
    """Allow only ALLOWED_USER to edit PAGE_ID."""

    def _restrict(client: ConfluenceClient) -> None:
        page = client.get_page_by_id(page_id)
        client.restrict_page_updates(page, allowed_user)

    _run(ctx, _restrict)
    click.echo(f"Edits of page {page_id} restricted to {allowed_user}")


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
