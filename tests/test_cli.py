"""Tests for the command line entry points."""

import json
from datetime import timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from identity_migration import cli
from identity_migration.config import MigrationSettings
from identity_migration.models.record import EntityType, LoadStatus
from tests.helpers import ScriptedLoader, make_organization, make_user, read_log_entries


@pytest.fixture
def settings(tmp_path):
    return MigrationSettings(
        secret_key="sk_live_abc123",
        delay_ms=1000,
        retry_delay_ms=10000,
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture
def scripted_loader(monkeypatch):
    loader = ScriptedLoader()
    monkeypatch.setattr(cli, "ClerkLoader", lambda **kwargs: loader)
    return loader


def write_export(path, records):
    path.write_text(json.dumps(records), encoding="utf-8")
    return str(path)


def log_files(settings):
    return sorted(Path(settings.log_dir).glob("migration-log-*.json"))


class TestRunMigration:

    def test_summary_for_mixed_run(self, tmp_path, settings, scripted_loader, sleeper, capsys) -> None:
        scripted_loader.script = {"c" * 24: [LoadStatus.RATE_LIMITED, LoadStatus.CREATED]}
        input_file = write_export(tmp_path / "users.json", [
            make_user("a" * 24),
            make_user("b" * 24, email="nope"),
            make_user("c" * 24),
        ])

        code = cli.run_migration(
            EntityType.USER, input_file, settings=settings, sleep=sleeper, progress=MagicMock(text="")
        )

        assert code == cli.EXIT_OK
        out = capsys.readouterr().out.splitlines()
        assert out[-2:] == ["2 users migrated", "0 users failed to upload"]
        assert sleeper.calls == [1.0, 1.0, 1.0, 10.0]
        (log,) = log_files(settings)
        assert len(read_log_entries(log)) == 1

    def test_already_existing_reported_on_second_line(
        self, tmp_path, settings, scripted_loader, sleeper, capsys
    ) -> None:
        scripted_loader.script = {"a" * 24: [LoadStatus.CONFLICT]}
        input_file = write_export(tmp_path / "organizations.json", [make_organization("a" * 24)])

        code = cli.run_migration(
            EntityType.ORGANIZATION, input_file, settings=settings, sleep=sleeper, progress=MagicMock(text="")
        )

        assert code == cli.EXIT_OK
        out = capsys.readouterr().out.splitlines()
        assert out[-2:] == ["0 organizations migrated", "1 organizations failed to upload"]

    def test_offset_applied(self, tmp_path, settings, scripted_loader, sleeper, capsys) -> None:
        settings.offset = 2
        records = [make_user(f"{i:024d}", email="broken") for i in range(5)]
        input_file = write_export(tmp_path / "users.json", records)

        cli.run_migration(EntityType.USER, input_file, settings=settings, sleep=sleeper, progress=MagicMock(text=""))

        (log,) = log_files(settings)
        assert [e["index"] for e in read_log_entries(log)] == [2, 3, 4]
        assert "attempting migration with an offset of 2" in capsys.readouterr().out

    def test_offset_past_end_prints_zero_summary(
        self, tmp_path, settings, scripted_loader, sleeper, capsys
    ) -> None:
        settings.offset = 10
        input_file = write_export(tmp_path / "users.json", [make_user()])

        code = cli.run_migration(
            EntityType.USER, input_file, settings=settings, sleep=sleeper, progress=MagicMock(text="")
        )

        assert code == cli.EXIT_OK
        assert scripted_loader.calls == []
        out = capsys.readouterr().out.splitlines()
        assert out[-2:] == ["0 users migrated", "0 users failed to upload"]
        assert log_files(settings) == []

    def test_failure_log_named_from_utc_start(
        self, tmp_path, settings, scripted_loader, sleeper, monkeypatch
    ) -> None:
        started = []
        original_for_run = cli.FailureLog.for_run

        def recording_for_run(log_dir, started_at, run_id=None):
            started.append(started_at)
            return original_for_run(log_dir, started_at, run_id)

        monkeypatch.setattr(cli.FailureLog, "for_run", recording_for_run)
        input_file = write_export(tmp_path / "users.json", [make_user()])

        cli.run_migration(EntityType.USER, input_file, settings=settings, sleep=sleeper, progress=MagicMock(text=""))

        (started_at,) = started
        assert started_at.utcoffset() == timedelta(0)

    def test_missing_input_file(self, tmp_path, settings, scripted_loader, capsys) -> None:
        code = cli.run_migration(EntityType.USER, str(tmp_path / "missing.json"), settings=settings)

        assert code == cli.EXIT_ERROR
        assert "Could not read input file" in capsys.readouterr().err

    def test_malformed_input_file(self, tmp_path, settings, scripted_loader, capsys) -> None:
        path = tmp_path / "users.json"
        path.write_text("{not json", encoding="utf-8")

        code = cli.run_migration(EntityType.USER, str(path), settings=settings)

        assert code == cli.EXIT_ERROR
        assert scripted_loader.calls == []

    def test_missing_secret_key(self, tmp_path, monkeypatch, scripted_loader, capsys) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("CLERK_SECRET_KEY", raising=False)
        input_file = write_export(tmp_path / "users.json", [make_user()])

        code = cli.run_migration(EntityType.USER, input_file)

        assert code == cli.EXIT_ERROR
        assert "CLERK_SECRET_KEY is required" in capsys.readouterr().err
        assert scripted_loader.calls == []

    def test_log_write_failure_aborts(self, tmp_path, settings, scripted_loader, sleeper, capsys) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")
        settings.log_dir = str(blocker)
        input_file = write_export(tmp_path / "users.json", [make_user(email="broken"), make_user()])

        code = cli.run_migration(
            EntityType.USER, input_file, settings=settings, sleep=sleeper, progress=MagicMock(text="")
        )

        assert code == cli.EXIT_ERROR
        assert scripted_loader.calls == []
        captured = capsys.readouterr()
        assert "Could not write failure log" in captured.err
        assert "users migrated" not in captured.out


class TestMain:

    @pytest.fixture
    def env(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CLERK_SECRET_KEY", "sk_test_abc123")
        monkeypatch.setenv("IMPORT_TO_DEV_INSTANCE", "true")
        monkeypatch.setenv("DELAY_MS", "0")
        monkeypatch.setenv("OFFSET", "0")
        monkeypatch.setenv("MIGRATION_LOG_DIR", str(tmp_path / "logs"))
        return tmp_path

    def test_dry_run_subcommand(self, env, capsys) -> None:
        input_file = write_export(env / "export.json", [make_user(), make_user("f" * 24)])

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--dry-run", "users", input_file])

        assert exc_info.value.code == 0
        out = capsys.readouterr().out
        assert "2 users migrated" in out
        assert "Clerk User Migration Utility" in out

    def test_default_input_file(self, env, scripted_loader, capsys) -> None:
        write_export(env / "organizations.json", [make_organization()])

        with pytest.raises(SystemExit) as exc_info:
            cli.organizations_main([])

        assert exc_info.value.code == 0
        assert "Fetching organizations from organizations.json" in capsys.readouterr().out
        assert len(scripted_loader.calls) == 1

    def test_users_entry_point(self, env, scripted_loader, capsys) -> None:
        input_file = write_export(env / "legacy.json", [make_user()])

        with pytest.raises(SystemExit) as exc_info:
            cli.users_main([input_file])

        assert exc_info.value.code == 0
        assert "1 users migrated" in capsys.readouterr().out

    def test_development_key_without_flag(self, env, monkeypatch, capsys) -> None:
        monkeypatch.setenv("IMPORT_TO_DEV_INSTANCE", "false")
        write_export(env / "users.json", [make_user()])

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["users"])

        assert exc_info.value.code == 1
        assert "development instance" in capsys.readouterr().err

    def test_no_command_prints_help(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.main([])

        assert exc_info.value.code == 1
        assert "usage:" in capsys.readouterr().out
