"""
Unit tests for ora2pg.conf rendering.
"""

import pytest

from ora2pg_admin.exceptions import TemplateError
from ora2pg_admin.service.template import (
    TEMPLATE_FILE_NAME,
    ConfigTemplateRenderer,
    build_oracle_dsn,
    build_pg_dsn,
)


class TestDsn:
    def test_oracle_sid(self, project_config):
        project_config.oracle.host = "oradb"

        assert build_oracle_dsn(project_config) == "dbi:Oracle:host=oradb;sid=ORCL;port=1521"

    def test_oracle_service_preferred(self, project_config):
        project_config.oracle.service = "ORCLPDB1"

        assert "service_name=ORCLPDB1" in build_oracle_dsn(project_config)
        assert "sid=" not in build_oracle_dsn(project_config)

    def test_postgresql(self, project_config):
        assert build_pg_dsn(project_config) == "dbi:Pg:dbname=postgres;host=localhost;port=5432"


class TestRender:
    """Tests for the built-in and custom templates."""

    def test_builtin_template(self, project_config):
        project_config.migration.parallel_jobs = 8
        project_config.oracle.username = "hr"

        text = ConfigTemplateRenderer().render_text(project_config)

        assert "JOBS\t\t8" in text
        assert "ORACLE_PWD\toracle-secret" in text
        assert "SCHEMA\t\tHR" in text
        assert "TYPE\t\tTABLE,VIEW,SEQUENCE,INDEX" in text
        assert "$" not in text

    def test_render_writes_file(self, project_config, tmp_path):
        path = ConfigTemplateRenderer().render(project_config, tmp_path / "out" / "ora2pg.conf")

        assert path.is_file()
        assert "test-project" in path.read_text()

    def test_custom_template(self, project_config, tmp_path):
        (tmp_path / TEMPLATE_FILE_NAME).write_text("ORACLE_DSN $oracle_dsn\nJOBS $parallel_jobs\n")
        renderer = ConfigTemplateRenderer(tmp_path)

        renderer.validate_template()

        assert renderer.render_text(project_config) == (
            "ORACLE_DSN dbi:Oracle:host=localhost;sid=ORCL;port=1521\nJOBS 4\n"
        )

    def test_missing_custom_template_falls_back(self, project_config, tmp_path):
        text = ConfigTemplateRenderer(tmp_path).render_text(project_config)

        assert "PG_DSN" in text

    def test_unknown_placeholder(self, project_config, tmp_path):
        (tmp_path / TEMPLATE_FILE_NAME).write_text("X $not_a_value\n")
        renderer = ConfigTemplateRenderer(tmp_path)

        with pytest.raises(TemplateError):
            renderer.render_text(project_config)
        with pytest.raises(TemplateError):
            renderer.validate_template()

    def test_validate_without_custom_template(self, tmp_path):
        ConfigTemplateRenderer(tmp_path).validate_template()
        ConfigTemplateRenderer().validate_template()

    def test_malformed_template(self, tmp_path):
        (tmp_path / TEMPLATE_FILE_NAME).write_text("JOBS $\n")

        with pytest.raises(TemplateError):
            ConfigTemplateRenderer(tmp_path).validate_template()
