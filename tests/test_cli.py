"""Tests for CLI functionality."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner
from helpers import HUB_ID, PROJECT_ID, folder_data, item_data

from acc_uploader.cli import main
from acc_uploader.exceptions import (
    AuthenticationError,
    ConfigError,
    NotFoundError,
    UploadFailedError,
)
from acc_uploader.models import (
    AuthContext,
    Folder,
    FolderContents,
    Item,
    Resource,
    TraversalWarning,
    UploadResult,
)
from acc_uploader.upload import UploadStage


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def mock_client() -> MagicMock:
    """Create a mock AccClient; every API call is an AsyncMock."""
    client = MagicMock()
    client.close = AsyncMock()
    client.auth.exchange_code = AsyncMock()
    client.projects.list_hubs = AsyncMock()
    client.projects.list_projects = AsyncMock()
    client.folders.list_top_folders = AsyncMock()
    client.folders.get_contents = AsyncMock()
    client.folders.list_all_folders = AsyncMock()
    client.folders.ensure_path = AsyncMock()
    client.uploads.upload_many = AsyncMock()
    return client


@pytest.fixture
def patched_client(mock_client: MagicMock) -> Iterator[MagicMock]:
    with patch("acc_uploader.cli.get_client", return_value=mock_client):
        yield mock_client


def folder(folder_id: str, name: str) -> Folder:
    return Folder.from_api(folder_data(folder_id, name))


class TestAuthCommands:
    """Tests for the 3-legged helper commands."""

    def test_auth_url(self, runner: CliRunner, patched_client: MagicMock) -> None:
        """Test that the authorization URL is printed."""
        patched_client.auth.build_authorization_url.return_value = "https://auth.example/x"

        result = runner.invoke(main, ["auth-url", "--state", "xyz"])

        assert result.exit_code == 0
        assert "https://auth.example/x" in result.output
        patched_client.auth.build_authorization_url.assert_called_once_with("xyz")
        patched_client.close.assert_awaited_once()

    def test_auth_url_without_callback(self, runner: CliRunner, patched_client: MagicMock) -> None:
        """Test that a configuration error is reported."""
        patched_client.auth.build_authorization_url.side_effect = ConfigError(
            "ACC_CALLBACK_URL is required for the authorization code flow"
        )

        result = runner.invoke(main, ["auth-url"])

        assert result.exit_code == 1
        assert "ACC_CALLBACK_URL" in result.output

    def test_exchange_code(self, runner: CliRunner, patched_client: MagicMock) -> None:
        """Test that exchanged tokens are printed."""
        patched_client.auth.exchange_code.return_value = AuthContext(
            access_token="user-token",
            expires_at=datetime(2024, 1, 1, 13, 0, tzinfo=timezone.utc),
            refresh_token="refresh-1",
        )

        result = runner.invoke(main, ["exchange-code", "abc"])

        assert result.exit_code == 0
        assert "access_token: user-token" in result.output
        assert "refresh_token: refresh-1" in result.output
        patched_client.auth.exchange_code.assert_awaited_once_with("abc")
        patched_client.close.assert_awaited_once()

    def test_exchange_code_failure(self, runner: CliRunner, patched_client: MagicMock) -> None:
        """Test that a rejected code exits with an error."""
        patched_client.auth.exchange_code.side_effect = AuthenticationError("invalid_grant")

        result = runner.invoke(main, ["exchange-code", "abc"])

        assert result.exit_code == 1
        assert "Authentication failed" in result.output
        patched_client.close.assert_awaited_once()


class TestBrowseCommands:
    """Tests for hubs, projects, ls and tree."""

    def test_hubs(self, runner: CliRunner, patched_client: MagicMock) -> None:
        """Test listing hubs."""
        patched_client.projects.list_hubs.return_value = [
            Resource.from_api({"type": "hubs", "id": HUB_ID, "attributes": {"name": "Acme"}})
        ]

        result = runner.invoke(main, ["hubs"])

        assert result.exit_code == 0
        assert HUB_ID in result.output
        assert "Acme" in result.output

    def test_projects(self, runner: CliRunner, patched_client: MagicMock) -> None:
        """Test listing the projects of a hub."""
        patched_client.projects.list_projects.return_value = [
            Resource.from_api(
                {"type": "projects", "id": PROJECT_ID, "attributes": {"name": "Tower"}}
            )
        ]

        result = runner.invoke(main, ["projects", HUB_ID])

        assert result.exit_code == 0
        assert "Tower" in result.output
        patched_client.projects.list_projects.assert_awaited_once_with(HUB_ID)

    def test_ls_top_folders(self, runner: CliRunner, patched_client: MagicMock) -> None:
        """Test that ls without a folder lists the top folders of the hub."""
        patched_client.folders.list_top_folders.return_value = [folder("f1", "Project Files")]

        result = runner.invoke(main, ["ls", PROJECT_ID, "--hub", HUB_ID])

        assert result.exit_code == 0
        assert "Project Files/" in result.output
        patched_client.folders.list_top_folders.assert_awaited_once_with(PROJECT_ID, HUB_ID)

    def test_ls_folder(self, runner: CliRunner, patched_client: MagicMock) -> None:
        """Test listing folders and items of one folder."""
        patched_client.folders.get_contents.return_value = FolderContents(
            folders=[folder("f2", "Drawings")],
            items=[Item.from_api(item_data("i1", "cover.pdf"))],
        )

        result = runner.invoke(main, ["ls", PROJECT_ID, "f1"])

        assert result.exit_code == 0
        assert "Drawings/" in result.output
        assert "cover.pdf" in result.output

    def test_ls_empty_folder(self, runner: CliRunner, patched_client: MagicMock) -> None:
        """Test listing an empty folder."""
        patched_client.folders.get_contents.return_value = FolderContents(folders=[], items=[])

        result = runner.invoke(main, ["ls", PROJECT_ID, "f1"])

        assert result.exit_code == 0
        assert "(empty folder: f1)" in result.output

    def test_ls_not_found(self, runner: CliRunner, patched_client: MagicMock) -> None:
        """Test that an unknown folder exits with an error."""
        patched_client.folders.get_contents.side_effect = NotFoundError(
            "Resource missing not found", resource_id="missing"
        )

        result = runner.invoke(main, ["ls", PROJECT_ID, "missing"])

        assert result.exit_code == 1
        assert "Error:" in result.output
        patched_client.close.assert_awaited_once()

    def test_tree_reports_warnings(self, runner: CliRunner, patched_client: MagicMock) -> None:
        """Test that skipped subtrees are reported next to the listing."""

        async def list_all_folders(
            project_id: str, root_id: str | None, *, warnings: list[TraversalWarning]
        ) -> list[Folder]:
            warnings.append(TraversalWarning("f2", "status 500"))
            return [folder("f1", "Plans"), folder("f2", "Broken")]

        patched_client.folders.list_all_folders.side_effect = list_all_folders

        result = runner.invoke(main, ["tree", PROJECT_ID])

        assert result.exit_code == 0
        assert "Plans" in result.output
        assert "skipped f2: status 500" in result.output

    def test_tree_authentication_failure(
        self, runner: CliRunner, patched_client: MagicMock
    ) -> None:
        """Test that a token failure during the walk aborts the command."""
        patched_client.folders.list_all_folders.side_effect = AuthenticationError(
            "Autodesk client credentials failed with status 401"
        )

        result = runner.invoke(main, ["tree", PROJECT_ID])

        assert result.exit_code == 1
        assert "Authentication failed" in result.output


class TestMkdirCommand:
    """Tests for the mkdir command."""

    def test_mkdir(self, runner: CliRunner, patched_client: MagicMock) -> None:
        """Test creating a nested path."""
        patched_client.folders.ensure_path.return_value = folder("f9", "Weekly")

        result = runner.invoke(main, ["mkdir", PROJECT_ID, "root", "Reports/Weekly"])

        assert result.exit_code == 0
        assert "Folder ready: Reports/Weekly" in result.output
        patched_client.folders.ensure_path.assert_awaited_once_with(
            PROJECT_ID, "root", "Reports/Weekly"
        )

    def test_mkdir_empty_path(self, runner: CliRunner, patched_client: MagicMock) -> None:
        """Test that an empty path is rejected."""
        patched_client.folders.ensure_path.side_effect = ValueError("Folder path is empty")

        result = runner.invoke(main, ["mkdir", PROJECT_ID, "root", "/"])

        assert result.exit_code == 1
        assert "Folder path is empty" in result.output


class TestUploadCommand:
    """Tests for the upload command."""

    def test_upload_success(
        self, runner: CliRunner, patched_client: MagicMock, tmp_path: Path
    ) -> None:
        """Test successful upload."""
        test_file = tmp_path / "report.pdf"
        test_file.write_bytes(b"%PDF")
        patched_client.uploads.upload_many.return_value = [
            UploadResult(
                success=True,
                file_name="report.pdf",
                folder_id="f1",
                item=Item.from_api(item_data("i1", "report.pdf")),
            )
        ]

        result = runner.invoke(main, ["upload", PROJECT_ID, "f1", str(test_file)])

        assert result.exit_code == 0
        assert "All 1 file(s) uploaded successfully!" in result.output
        patched_client.uploads.upload_many.assert_awaited_once_with(
            PROJECT_ID, "f1", [test_file], content_type=None, stop_on_error=False
        )

    def test_upload_partial_failure(
        self, runner: CliRunner, patched_client: MagicMock, tmp_path: Path
    ) -> None:
        """Test that a failed file makes the command exit non-zero."""
        first = tmp_path / "a.pdf"
        second = tmp_path / "b.pdf"
        first.write_bytes(b"a")
        second.write_bytes(b"b")
        error = UploadFailedError(UploadStage.GRANT, RuntimeError("boom"))
        patched_client.uploads.upload_many.return_value = [
            UploadResult(success=True, file_name="a.pdf", folder_id="f1"),
            UploadResult(success=False, file_name="b.pdf", folder_id="f1", error=str(error)),
        ]

        result = runner.invoke(
            main, ["upload", PROJECT_ID, "f1", str(first), str(second), "--stop-on-error"]
        )

        assert result.exit_code == 1
        assert "b.pdf: Upload failed at grant stage: boom" in result.output
        assert "1/2 file(s) uploaded." in result.output
        _, kwargs = patched_client.uploads.upload_many.call_args
        assert kwargs["stop_on_error"] is True

    def test_upload_missing_file(self, runner: CliRunner, patched_client: MagicMock) -> None:
        """Test that a nonexistent path is rejected by argument parsing."""
        result = runner.invoke(main, ["upload", PROJECT_ID, "f1", "/nonexistent/file.pdf"])

        assert result.exit_code != 0
        patched_client.uploads.upload_many.assert_not_called()


class TestMainCommand:
    """Tests for the main command group."""

    def test_help(self, runner: CliRunner) -> None:
        """Test that help lists the commands."""
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        for command in ("auth-url", "ls", "tree", "mkdir", "upload"):
            assert command in result.output

    def test_missing_configuration(self, runner: CliRunner) -> None:
        """Test that missing credentials are reported."""
        with patch(
            "acc_uploader.cli.get_client",
            side_effect=ConfigError("Missing required environment variables: ACC_CLIENT_ID"),
        ):
            result = runner.invoke(main, ["hubs"])

        assert result.exit_code == 1
        assert "ACC_CLIENT_ID" in result.output
