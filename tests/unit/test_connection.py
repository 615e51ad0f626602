"""
Unit tests for the database connection tests.

sqlplus, tnsping and psql are small Python scripts (see the
fake_client_tools fixture), so no database is needed.
"""

import sys

import pytest

from ora2pg_admin.config import OracleConfig, PostgreSQLConfig
from ora2pg_admin.oracle.client import ClientDetector
from ora2pg_admin.oracle.connection import (
    ConnectionTester,
    extract_oracle_error,
    oracle_connect_identifier,
)

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="shebang scripts")


def write_tool(path, body: str) -> None:
    path.write_text(f"#!{sys.executable}\n{body}", encoding="utf-8")
    path.chmod(0o755)


@pytest.fixture
def oracle_config():
    return OracleConfig(host="db.example.com", sid="ORCL", password="oracle-secret")


@pytest.fixture
def postgresql_config():
    return PostgreSQLConfig(host="pg.example.com", database="hr", password="pg-secret")


@pytest.fixture
def tester(fake_client_tools):
    detector = ClientDetector(environ={"ORACLE_HOME": str(fake_client_tools)}, search_paths=[])
    return ConnectionTester(detector=detector, timeout=10)


class TestExtractOracleError:
    @pytest.mark.parametrize(
        ("output", "expected"),
        [
            (
                "ERROR:\nORA-01017: invalid username/password; logon denied\n",
                "ORA-01017: invalid username/password; logon denied",
            ),
            ("TNS-12541: TNS:no listener", "TNS-12541: TNS:no listener"),
            ("SP2-0306: Invalid option.", "SP2-0306: Invalid option."),
            ("  ORA-12154\n", "ORA-12154"),
        ],
    )
    def test_patterns(self, output, expected):
        assert extract_oracle_error(output) == expected

    def test_oracle_error_wins_over_sqlplus_error(self):
        output = "SP2-0640: Not connected\nORA-12541: TNS:no listener\n"

        assert extract_oracle_error(output) == "ORA-12541: TNS:no listener"

    def test_no_error_code(self):
        assert extract_oracle_error("something went wrong") == "Oracle connection failed"


class TestConnectIdentifier:
    def test_service_preferred(self):
        config = OracleConfig(host="db", port=1522, sid="ORCL", service="HRPDB", password="x")

        assert oracle_connect_identifier(config) == "//db:1522/HRPDB"

    def test_sid(self, oracle_config):
        assert oracle_connect_identifier(oracle_config) == "//db.example.com:1521/ORCL"


@posix_only
class TestOracleConnection:
    """Tests for the sqlplus login."""

    def test_success(self, tester, oracle_config):
        result = tester.test_oracle_connection(oracle_config)

        assert result.success is True
        assert result.message == "Oracle connection succeeded"
        assert "db.example.com:1521/ORCL" in result.details
        assert result.response_time > 0

    def test_wrong_password(self, tester, oracle_config):
        oracle_config.password = "wrong"

        result = tester.test_oracle_connection(oracle_config)

        assert result.success is False
        assert result.message == "Oracle connection failed"
        assert result.error == "ORA-01017: invalid username/password; logon denied"
        assert "SP2-0640" in result.details

    def test_tnsping_failure_stops_before_login(self, tester, oracle_config, fake_client_tools):
        write_tool(
            fake_client_tools / "bin" / "tnsping",
            "import sys\nprint('TNS-12541: TNS:no listener')\nsys.exit(1)\n",
        )

        result = tester.test_oracle_connection(oracle_config)

        assert result.success is False
        assert result.message == "Oracle listener is not reachable"
        assert result.error == "TNS-12541: TNS:no listener"

    def test_tnsping_ok(self, tester, oracle_config, fake_client_tools):
        write_tool(fake_client_tools / "bin" / "tnsping", "print('OK (10 msec)')\n")

        assert tester.test_oracle_connection(oracle_config).success is True

    def test_sqlplus_timeout(self, oracle_config, fake_client_tools):
        write_tool(
            fake_client_tools / "bin" / "sqlplus",
            "import sys, time\n"
            "if sys.argv[1:] == ['-version']:\n"
            "    print('SQL*Plus: Release 19.0.0.0.0')\n"
            "    sys.exit(0)\n"
            "time.sleep(5)\n",
        )
        detector = ClientDetector(
            environ={"ORACLE_HOME": str(fake_client_tools)}, search_paths=[]
        )

        result = ConnectionTester(detector=detector, timeout=0.5).test_oracle_connection(
            oracle_config
        )

        assert result.success is False
        assert "timed out" in result.error

    def test_no_client(self, oracle_config, tmp_path, monkeypatch):
        monkeypatch.setenv("PATH", str(tmp_path))
        tester = ConnectionTester(detector=ClientDetector(environ={}, search_paths=[]))

        result = tester.test_oracle_connection(oracle_config)

        assert result.success is False
        assert result.message == "No Oracle client detected"


@posix_only
class TestPostgreSQLConnection:
    """Tests for the psql login."""

    def test_success(self, tester, postgresql_config):
        result = tester.test_postgresql_connection(postgresql_config)

        assert result.success is True
        assert result.message == "PostgreSQL connection succeeded"
        assert "pg.example.com:5432/hr" in result.details

    def test_wrong_password(self, tester, postgresql_config):
        postgresql_config.password = "wrong"

        result = tester.test_postgresql_connection(postgresql_config)

        assert result.success is False
        assert "password authentication failed" in result.error

    def test_psql_missing(self, postgresql_config, tmp_path, monkeypatch):
        monkeypatch.setenv("PATH", str(tmp_path))

        result = ConnectionTester().test_postgresql_connection(postgresql_config)

        assert result.success is False
        assert "psql not found" in result.message

    def test_to_dict(self, tester, postgresql_config):
        data = tester.test_postgresql_connection(postgresql_config).to_dict()

        assert data["success"] is True
        assert set(data) == {"success", "message", "response_time", "error", "details"}


@posix_only
class TestDiagnostics:
    def test_client_installed(self, tester):
        diagnostics = tester.get_connection_diagnostics()

        assert diagnostics[0] == "Oracle client installed"
        assert "Version: 19.0.0.0.0" in diagnostics
        assert any("SID or service name" in line for line in diagnostics)

    def test_no_client(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PATH", str(tmp_path))
        tester = ConnectionTester(detector=ClientDetector(environ={}, search_paths=[]))

        diagnostics = tester.get_connection_diagnostics()

        assert diagnostics[0] == "No Oracle client detected"
        assert diagnostics[1].startswith("Download: https://")
