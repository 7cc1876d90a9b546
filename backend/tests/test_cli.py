"""
Tests for the migrate_to_r2.py command line script.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

import migrate_to_r2
from wallvault.schemas.migration import MigrationBatchResult, MigrationStatus
from wallvault.storage.exceptions import StorageConfigError


class TestArguments:
    """Tests for argument parsing."""

    def test_defaults_from_settings(self):
        args = migrate_to_r2.build_parser().parse_args([])
        assert args.batch == 10
        assert args.delay == 2.0
        assert args.max_batches is None
        assert args.status is False

    def test_batch_size_bounds(self):
        parser = migrate_to_r2.build_parser()
        assert parser.parse_args(["--batch", "100"]).batch == 100
        with pytest.raises(SystemExit):
            parser.parse_args(["--batch", "101"])
        with pytest.raises(SystemExit):
            parser.parse_args(["--batch", "0"])


@pytest.fixture
def fake_service(monkeypatch):
    service = MagicMock()
    service.get_status = AsyncMock(return_value=MigrationStatus(total=3, migrated=1, remaining=2))
    service.run_full_migration = AsyncMock(return_value=MigrationBatchResult(attempted=2, migrated=2))
    monkeypatch.setattr(migrate_to_r2, "MigrationService", lambda db: service)
    return service


class TestRun:
    """Tests for the migration loop driver."""

    @pytest.mark.asyncio
    async def test_status_only(self, fake_service, capsys):
        args = migrate_to_r2.build_parser().parse_args(["--status"])

        assert await migrate_to_r2.run(args) == migrate_to_r2.EXIT_OK
        fake_service.run_full_migration.assert_not_awaited()
        assert "2 remaining" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_runs_full_migration(self, fake_service):
        args = migrate_to_r2.build_parser().parse_args(["--batch", "5", "--delay", "0.5", "--max-batches", "3"])

        assert await migrate_to_r2.run(args) == migrate_to_r2.EXIT_OK
        fake_service.run_full_migration.assert_awaited_once_with(
            batch_size=5, delay_seconds=0.5, max_batches=3
        )

    @pytest.mark.asyncio
    async def test_record_errors_exit_code(self, fake_service, capsys):
        fake_service.run_full_migration.return_value = MigrationBatchResult(
            attempted=2, migrated=1, errors=["Failed to download wallpaper w1: 404 Not Found"]
        )
        args = migrate_to_r2.build_parser().parse_args([])

        assert await migrate_to_r2.run(args) == migrate_to_r2.EXIT_RECORD_ERRORS
        assert "w1" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_configuration_error_exit_code(self, fake_service):
        fake_service.run_full_migration.side_effect = StorageConfigError("R2 storage not configured")
        args = migrate_to_r2.build_parser().parse_args([])

        assert await migrate_to_r2.run(args) == migrate_to_r2.EXIT_CONFIG_ERROR

    @pytest.mark.asyncio
    async def test_nothing_to_migrate(self, fake_service):
        fake_service.get_status.return_value = MigrationStatus(total=3, migrated=3, remaining=0)
        args = migrate_to_r2.build_parser().parse_args([])

        assert await migrate_to_r2.run(args) == migrate_to_r2.EXIT_OK
        fake_service.run_full_migration.assert_not_awaited()
