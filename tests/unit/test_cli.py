"""
Tests for the ora2pg-admin command line.

Commands run through click's CliRunner against projects in tmp_path.
"""

import pytest
from click.testing import CliRunner

from ora2pg_admin.cli.commands.migrate import parse_duration
from ora2pg_admin.cli.main import cli
from ora2pg_admin.config import (
    load_config_from_yaml,
    project_config_path,
    save_config_to_yaml,
)


@pytest.fixture
def runner():
    return CliRunner()


def invoke(runner, project_dir, *args):
    return runner.invoke(cli, ["--project-dir", str(project_dir), *args])


@pytest.fixture
def migration_project(project_dir, project_config, fake_ora2pg):
    """A project whose ora2pg is the stand-in script."""
    project_config.migration.ora2pg_path = fake_ora2pg
    save_config_to_yaml(project_config, project_config_path(project_dir))
    return project_dir


class TestInit:
    """Tests for init."""

    def test_creates_layout(self, runner, tmp_path):
        result = invoke(runner, tmp_path, "init", "sales", "-d", "Sales schema")

        assert result.exit_code == 0, result.output
        for subdir in ("logs", "output", "scripts", "backup", "docs"):
            assert (tmp_path / subdir).is_dir()
        assert (tmp_path / ".gitignore").is_file()
        assert (tmp_path / "README.md").is_file()
        config = load_config_from_yaml(project_config_path(tmp_path), expand_env=False)
        assert config.project.name == "sales"
        assert config.project.description == "Sales schema"

    def test_basic_template(self, runner, tmp_path):
        result = invoke(runner, tmp_path, "init", "hr", "--template", "basic")

        assert result.exit_code == 0, result.output
        config = load_config_from_yaml(project_config_path(tmp_path), expand_env=False)
        assert config.migration.types == ["TABLE", "VIEW", "SEQUENCE"]
        assert config.migration.parallel_jobs == 2

    def test_existing_project(self, runner, tmp_path):
        invoke(runner, tmp_path, "init", "sales")

        result = invoke(runner, tmp_path, "init", "sales")

        assert result.exit_code == 2
        assert "--force" in result.output

    def test_force(self, runner, tmp_path):
        invoke(runner, tmp_path, "init", "sales")

        result = invoke(runner, tmp_path, "init", "renamed", "--force")

        assert result.exit_code == 0, result.output
        config = load_config_from_yaml(project_config_path(tmp_path), expand_env=False)
        assert config.project.name == "renamed"

    def test_invalid_name(self, runner, tmp_path):
        result = invoke(runner, tmp_path, "init", "bad/name")

        assert result.exit_code == 2


class TestConfigCommands:
    """Tests for the config group."""

    def test_show_masks_passwords(self, runner, project_dir):
        result = invoke(runner, project_dir, "config", "show")

        assert result.exit_code == 0, result.output
        assert "oracle-secret" not in result.output
        assert "[REDACTED]" in result.output

    def test_validate(self, runner, project_dir):
        result = invoke(runner, project_dir, "config", "validate")

        assert result.exit_code == 0, result.output
        assert "valid" in result.output

    def test_validate_invalid_file(self, runner, project_dir):
        project_config_path(project_dir).write_text("migration:\n  parallel_jobs: 99\n")

        result = invoke(runner, project_dir, "config", "validate")

        assert result.exit_code == 2
        assert "migration.parallel_jobs" in result.output

    def test_generate(self, runner, project_dir):
        result = invoke(runner, project_dir, "config", "generate")

        assert result.exit_code == 0, result.output
        assert "ORACLE_PWD\toracle-secret" in (project_dir / "output" / "ora2pg.conf").read_text()

    def test_options(self, runner, project_dir):
        result = invoke(
            runner,
            project_dir,
            "config",
            "options",
            "--types",
            "table,copy",
            "--parallel",
            "8",
            "--batch-size",
            "500",
            "--timeout",
            "0",
        )

        assert result.exit_code == 0, result.output
        config = load_config_from_yaml(project_config_path(project_dir))
        assert config.migration.types == ["TABLE", "COPY"]
        assert config.migration.parallel_jobs == 8
        assert config.migration.batch_size == 500
        assert config.migration.timeout_minutes == 0

    def test_database_prompts(self, runner, project_dir):
        answers = "\n".join(["pg.example.com", "5433", "sales", "app", "", "sales"]) + "\n"

        result = runner.invoke(
            cli,
            ["--project-dir", str(project_dir), "config", "database", "postgresql"],
            input=answers,
        )

        assert result.exit_code == 0, result.output
        config = load_config_from_yaml(project_config_path(project_dir))
        assert config.postgresql.host == "pg.example.com"
        assert config.postgresql.port == 5433
        assert config.postgresql.password == "pg-secret"


class TestStatus:
    def test_status(self, runner, project_dir):
        (project_dir / "output" / "TABLE_output.sql").write_text("CREATE TABLE t();\n")

        result = invoke(runner, project_dir, "status")

        assert result.exit_code == 0, result.output
        assert "test-project" in result.output
        assert "TABLE_output.sql" in result.output

    def test_without_project(self, runner, tmp_path):
        result = invoke(runner, tmp_path, "status")

        assert result.exit_code == 2


class TestMigrate:
    """Tests for the migrate group."""

    def test_without_project(self, runner, tmp_path):
        result = invoke(runner, tmp_path, "migrate", "structure")

        assert result.exit_code == 2

    def test_missing_ora2pg(self, runner, project_dir, project_config, tmp_path):
        project_config.migration.ora2pg_path = str(tmp_path / "missing" / "ora2pg")
        save_config_to_yaml(project_config, project_config_path(project_dir))

        result = invoke(runner, project_dir, "migrate", "data", "--no-progress")

        assert result.exit_code == 3

    def test_data_migration(self, runner, migration_project):
        result = invoke(runner, migration_project, "migrate", "data", "--no-progress")

        assert result.exit_code == 0, result.output
        assert "COPY" in result.output
        assert "INSERT" in result.output
        assert (migration_project / "output" / "ora2pg.conf").is_file()

    def test_failed_step_exit_code(self, runner, migration_project, monkeypatch):
        monkeypatch.setenv("FAKE_ORA2PG_FAIL", "VIEW")

        result = invoke(
            runner,
            migration_project,
            "migrate",
            "structure",
            "--types",
            "TABLE,VIEW,SEQUENCE",
            "--no-progress",
        )

        assert result.exit_code == 1
        assert "2 successful" in result.output
        assert "1 failed" in result.output

    def test_unknown_type(self, runner, migration_project):
        result = invoke(
            runner, migration_project, "migrate", "all", "--types", "SYNONYM", "--no-progress"
        )

        assert result.exit_code == 2

    def test_bad_timeout(self, runner, migration_project):
        result = invoke(runner, migration_project, "migrate", "all", "--timeout", "soon")

        assert result.exit_code == 2


class TestParseDuration:
    @pytest.mark.parametrize(
        ("value", "seconds"),
        [("90", 90), ("90s", 90), ("30m", 1800), ("2h", 7200), ("1.5h", 5400), ("0", 0)],
    )
    def test_valid(self, value, seconds):
        assert parse_duration(value) == seconds


class TestCheck:
    """Tests for the check group."""

    def test_env_reports_missing_tool(self, runner, project_dir, project_config, tmp_path):
        project_config.migration.ora2pg_path = str(tmp_path / "missing" / "ora2pg")
        save_config_to_yaml(project_config, project_config_path(project_dir))

        result = invoke(runner, project_dir, "--log-level", "ERROR", "check", "env")

        assert result.exit_code == 1
        assert "ora2pg not found" in result.output
        assert "Project configuration found" in result.output

    def test_env_without_project(self, runner, tmp_path):
        result = invoke(runner, tmp_path, "--log-level", "ERROR", "check", "env")

        assert result.exit_code == 1
        assert "No project" in result.output

    def test_client_json(self, runner, tmp_path):
        result = invoke(runner, tmp_path, "--log-level", "ERROR", "check", "client", "--json")

        assert result.exit_code in (0, 1)
        assert '"status"' in result.output
        assert '"client_info"' in result.output

    def test_connection(self, runner, project_dir, fake_client_tools):
        result = invoke(runner, project_dir, "--log-level", "ERROR", "check", "connection")

        assert result.exit_code == 0, result.output
        assert "Oracle connection succeeded" in result.output
        assert "PostgreSQL connection succeeded" in result.output
        assert "All connection tests passed" in result.output

    def test_connection_failure_json(self, runner, project_dir, project_config, fake_client_tools):
        project_config.postgresql.password = "wrong"
        save_config_to_yaml(project_config, project_config_path(project_dir))

        result = invoke(
            runner, project_dir, "--log-level", "ERROR", "check", "connection", "--json"
        )

        assert result.exit_code == 1
        assert '"postgresql"' in result.output
        assert '"success": false' in result.output
