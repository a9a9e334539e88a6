"""Command-line interface for acc_uploader."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Awaitable
from pathlib import Path
from typing import NoReturn, TypeVar

import click

from acc_uploader import (
    AccClient,
    AccError,
    AuthenticationError,
    TraversalWarning,
)

T = TypeVar("T")


def get_client(dotenv_path: str | None = None) -> AccClient:
    """Create an AccClient from ACC_* environment variables (and .env)."""
    return AccClient.from_env(dotenv_path)


def _run(awaitable: Awaitable[T]) -> T:
    return asyncio.run(awaitable)  # type: ignore[arg-type]


def _fail(message: str) -> NoReturn:
    click.echo(click.style(message, fg="red"), err=True)
    sys.exit(1)


@click.group()
@click.version_option(package_name="acc-uploader")
@click.option("--verbose", "-v", is_flag=True, help="Log API calls and pipeline stages")
def main(verbose: bool) -> None:
    """ACC CLI - Browse folders and upload files to Autodesk Construction Cloud."""
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


@main.command("auth-url")
@click.option("--state", default=None, help="Opaque value echoed back to the callback")
def auth_url(state: str | None) -> None:
    """Print the URL a user must visit to authorize this application."""
    try:
        client = get_client()
        try:
            click.echo(client.auth.build_authorization_url(state))
        finally:
            _run(client.close())
    except AccError as e:
        _fail(f"Error: {e}")


@main.command("exchange-code")
@click.argument("code")
def exchange_code(code: str) -> None:
    """Exchange an authorization CODE for user tokens.

    The tokens are printed, not stored: keeping them is up to the caller.
    """

    async def _exchange() -> None:
        client = get_client()
        try:
            context = await client.auth.exchange_code(code)
        finally:
            await client.close()
        click.echo(f"access_token: {context.access_token}")
        click.echo(f"expires_at: {context.expires_at.isoformat()}")
        if context.refresh_token:
            click.echo(f"refresh_token: {context.refresh_token}")

    try:
        _run(_exchange())
    except AuthenticationError as e:
        _fail(f"Authentication failed: {e}")
    except AccError as e:
        _fail(f"Error: {e}")


@main.command()
def hubs() -> None:
    """List the hubs visible to the application."""

    async def _hubs() -> None:
        client = get_client()
        try:
            for hub in await client.projects.list_hubs():
                click.echo(f"  {hub.id}  {hub.name}")
        finally:
            await client.close()

    try:
        _run(_hubs())
    except AuthenticationError as e:
        _fail(f"Authentication failed: {e}")
    except AccError as e:
        _fail(f"Error: {e}")


@main.command()
@click.argument("hub_id")
def projects(hub_id: str) -> None:
    """List the projects of HUB_ID."""

    async def _projects() -> None:
        client = get_client()
        try:
            for project in await client.projects.list_projects(hub_id):
                click.echo(f"  {project.id}  {project.name}")
        finally:
            await client.close()

    try:
        _run(_projects())
    except AuthenticationError as e:
        _fail(f"Authentication failed: {e}")
    except AccError as e:
        _fail(f"Error: {e}")


@main.command("ls")
@click.argument("project_id")
@click.argument("folder_id", required=False)
@click.option("--hub", "hub_id", envvar="ACC_HUB_ID", help="Hub id (for top folders)")
def list_folder(project_id: str, folder_id: str | None, hub_id: str | None) -> None:
    """List a folder of PROJECT_ID.

    Without FOLDER_ID the project's top folders are listed.

    Examples:

        acc ls b.1234 --hub b.abcd

        acc ls b.1234 urn:adsk.wipprod:fs.folder:co.xyz
    """

    async def _ls() -> None:
        client = get_client()
        try:
            if folder_id is None:
                folders = await client.folders.list_top_folders(project_id, hub_id)
                items = []
            else:
                contents = await client.folders.get_contents(project_id, folder_id)
                folders, items = contents.folders, contents.items
        finally:
            await client.close()

        if not folders and not items:
            click.echo(f"(empty folder: {folder_id or project_id})")
            return
        for folder in folders:
            label = folder.display_name or folder.name
            click.echo(click.style(f"  {label}/", fg="blue") + f"  {folder.id}")
        for item in items:
            click.echo(f"  {item.display_name or item.name}  {item.id}")

    try:
        _run(_ls())
    except AuthenticationError as e:
        _fail(f"Authentication failed: {e}")
    except AccError as e:
        _fail(f"Error: {e}")


@main.command()
@click.argument("project_id")
@click.option("--root", "root_id", default=None, help="Folder to start from")
def tree(project_id: str, root_id: str | None) -> None:
    """List every folder of PROJECT_ID, recursively."""

    async def _tree() -> None:
        client = get_client()
        warnings: list[TraversalWarning] = []
        try:
            folders = await client.folders.list_all_folders(
                project_id, root_id, warnings=warnings
            )
        finally:
            await client.close()

        for folder in folders:
            click.echo(f"  {folder.display_name or folder.name}  {folder.id}")
        for warning in warnings:
            click.echo(
                click.style("! ", fg="yellow") + f"skipped {warning.folder_id}: {warning.message}",
                err=True,
            )

    try:
        _run(_tree())
    except AuthenticationError as e:
        _fail(f"Authentication failed: {e}")
    except AccError as e:
        _fail(f"Error: {e}")


@main.command()
@click.argument("project_id")
@click.argument("parent_id")
@click.argument("path")
def mkdir(project_id: str, parent_id: str, path: str) -> None:
    """Create PATH (e.g. Reports/2024) below PARENT_ID, reusing existing folders.

    Examples:

        acc mkdir b.1234 urn:adsk.wipprod:fs.folder:co.xyz Reports/Weekly
    """

    async def _mkdir() -> None:
        client = get_client()
        try:
            folder = await client.folders.ensure_path(project_id, parent_id, path)
        finally:
            await client.close()
        click.echo(click.style(f"Folder ready: {path}", fg="green") + f"  {folder.id}")

    try:
        _run(_mkdir())
    except AuthenticationError as e:
        _fail(f"Authentication failed: {e}")
    except (AccError, ValueError) as e:
        _fail(f"Error: {e}")


@main.command()
@click.argument("project_id")
@click.argument("folder_id")
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("--content-type", default=None, help="MIME type for every file (default: guessed)")
@click.option("--stop-on-error", is_flag=True, help="Stop at the first failed upload")
def upload(
    project_id: str,
    folder_id: str,
    files: tuple[Path, ...],
    content_type: str | None,
    stop_on_error: bool,
) -> None:
    """Upload FILES into FOLDER_ID of PROJECT_ID.

    Examples:

        acc upload b.1234 urn:adsk.wipprod:fs.folder:co.xyz report.pdf

        acc upload b.1234 urn:adsk.wipprod:fs.folder:co.xyz *.pdf --stop-on-error
    """

    async def _upload() -> bool:
        client = get_client()
        try:
            results = await client.uploads.upload_many(
                project_id,
                folder_id,
                list(files),
                content_type=content_type,
                stop_on_error=stop_on_error,
            )
        finally:
            await client.close()

        success_count = 0
        for result in results:
            if result.success:
                item_id = result.item.id if result.item else ""
                click.echo(click.style("✓ ", fg="green") + f"{result.file_name} -> {item_id}")
                success_count += 1
            else:
                click.echo(
                    click.style("✗ ", fg="red") + f"{result.file_name}: {result.error}",
                    err=True,
                )

        total = len(files)
        if success_count == total:
            click.echo(click.style(f"\nAll {total} file(s) uploaded successfully!", fg="green"))
            return True
        click.echo(f"\n{success_count}/{total} file(s) uploaded.", err=True)
        return False

    try:
        all_uploaded = _run(_upload())
    except AuthenticationError as e:
        _fail(f"Authentication failed: {e}")
    except AccError as e:
        _fail(f"Error: {e}")
    if not all_uploaded:
        sys.exit(1)


if __name__ == "__main__":
    main()
