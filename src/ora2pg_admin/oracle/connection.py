"""Connection tests against the source and target databases.

Both tests go through the client tools rather than a driver: ``tnsping``
(when available) and ``sqlplus`` for Oracle, ``psql`` for PostgreSQL. Each
tool runs a trivial query and the output is searched for a marker.

Passwords reach the tools on stdin (sqlplus) or through ``PGPASSWORD``
(psql), never on the command line.
"""

import os
import re
import shutil
import subprocess
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from ora2pg_admin.config import OracleConfig, PostgreSQLConfig
from ora2pg_admin.i18n import t
from ora2pg_admin.oracle.client import ClientDetector, ClientInfo, executable_name
from ora2pg_admin.service.supervisor import build_environment
from ora2pg_admin.utils.logging import get_logger

logger = get_logger(__name__)

CONNECT_TIMEOUT = 30.0
SUCCESS_MARKER = "CONNECTION_TEST_OK"

# Tried in order; the first match wins
ORACLE_ERROR_PATTERNS = [
    re.compile(r"(ORA-\d+):\s*(.+)"),
    re.compile(r"(TNS-\d+):\s*(.+)"),
    re.compile(r"(SP2-\d+):\s*(.+)"),
]
_ORACLE_ERROR_PREFIXES = ("ORA-", "TNS-", "SP2-")


@dataclass
class ConnectionResult:
    """Outcome of one connection test."""

    success: bool = False
    message: str = ""
    response_time: float = 0.0
    error: str = ""
    details: str = ""

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["response_time"] = round(self.response_time, 3)
        return data


def extract_oracle_error(output: str) -> str:
    """Return the first ORA-, TNS- or SP2- error in ``output``."""
    for pattern in ORACLE_ERROR_PATTERNS:
        match = pattern.search(output)
        if match:
            return f"{match.group(1)}: {match.group(2).strip()}"

    for line in output.splitlines():
        line = line.strip()
        if line.startswith(_ORACLE_ERROR_PREFIXES):
            return line
    return t("connection.oracle_failed")


def oracle_connect_identifier(oracle: OracleConfig) -> str:
    """Easy Connect identifier, the service name preferred over the SID."""
    return f"//{oracle.host}:{oracle.port}/{oracle.service or oracle.sid}"


class ConnectionTester:
    """Tests database connections with the installed client tools.

    Args:
        detector: Oracle client detector (a new one by default)
        timeout: Seconds each client tool may run
    """

    def __init__(self, detector: ClientDetector | None = None, timeout: float = CONNECT_TIMEOUT):
        self._detector = detector or ClientDetector()
        self.timeout = timeout

    def test_oracle_connection(self, oracle: OracleConfig) -> ConnectionResult:
        """Check the listener with tnsping, then log in with sqlplus."""
        started = time.monotonic()
        logger.debug("oracle_connection_test_started", host=oracle.host, port=oracle.port)

        try:
            info = self._detector.detect_client()
        except OSError as e:
            return ConnectionResult(
                message=t("connection.oracle_failed"),
                error=t("check.client_error", error=e),
            )

        if not info.installed:
            return ConnectionResult(
                message=t("check.client_missing"),
                error=t("check.client_missing"),
                details="Install Oracle Instant Client or a full Oracle client",
            )

        network = self._tnsping(oracle, info)
        if not network.success:
            network.message = t("connection.network_failed")
            network.response_time = time.monotonic() - started
            return network

        login = self._sqlplus(oracle, info)
        login.response_time = time.monotonic() - started
        if not login.success:
            login.message = t("connection.oracle_failed")
            logger.warning("oracle_connection_failed", host=oracle.host, error=login.error)
            return login

        target = f"{oracle.host}:{oracle.port}/{oracle.service or oracle.sid}"
        login.message = t("connection.oracle_ok")
        login.details = t("connection.details", target=target, seconds=login.response_time)
        logger.info("oracle_connection_ok", host=oracle.host, response_time=login.response_time)
        return login

    def _tnsping(self, oracle: OracleConfig, info: ClientInfo) -> ConnectionResult:
        tool = self.find_oracle_tool("tnsping", info)
        if not tool:
            logger.debug("tnsping_not_found")
            return ConnectionResult(success=True)

        output, error = self._run([tool, oracle_connect_identifier(oracle)])
        if not error and "OK" in output:
            return ConnectionResult(success=True)
        if any(prefix in output for prefix in _ORACLE_ERROR_PREFIXES):
            error = extract_oracle_error(output)
        return ConnectionResult(error=error or t("connection.network_failed"), details=output)

    def _sqlplus(self, oracle: OracleConfig, info: ClientInfo) -> ConnectionResult:
        tool = self.find_oracle_tool("sqlplus", info)
        if not tool:
            return ConnectionResult(error="sqlplus not found")

        script = (
            f'CONNECT {oracle.username}/"{oracle.password}"@{oracle_connect_identifier(oracle)}\n'
            f"SELECT '{SUCCESS_MARKER}' FROM DUAL;\n"
            "EXIT;\n"
        )
        output, error = self._run([tool, "-S", "/nolog"], stdin=script)
        if SUCCESS_MARKER in output:
            return ConnectionResult(success=True)
        if any(prefix in output for prefix in _ORACLE_ERROR_PREFIXES):
            return ConnectionResult(error=extract_oracle_error(output), details=output)
        return ConnectionResult(error=error or t("connection.oracle_failed"), details=output)

    def test_postgresql_connection(self, postgresql: PostgreSQLConfig) -> ConnectionResult:
        """Log in with psql and run a query."""
        started = time.monotonic()
        logger.debug(
            "postgresql_connection_test_started", host=postgresql.host, port=postgresql.port
        )

        psql = shutil.which(executable_name("psql"))
        if not psql:
            return ConnectionResult(
                message=t("connection.pg_client_missing"),
                error=t("connection.pg_client_missing"),
            )

        # -w never prompts for a password, -t -A print the bare value
        args = [psql, "-h", postgresql.host, "-p", str(postgresql.port)]
        args += ["-U", postgresql.username, "-d", postgresql.database]
        args += ["-w", "-t", "-A", "-c", f"SELECT '{SUCCESS_MARKER}';"]
        environment = build_environment(
            {
                "PGPASSWORD": postgresql.password,
                "PGCONNECT_TIMEOUT": str(max(1, int(self.timeout))),
            }
        )
        output, error = self._run(args, env=environment)
        elapsed = time.monotonic() - started

        if SUCCESS_MARKER in output:
            target = f"{postgresql.host}:{postgresql.port}/{postgresql.database}"
            logger.info("postgresql_connection_ok", host=postgresql.host, response_time=elapsed)
            return ConnectionResult(
                success=True,
                message=t("connection.pg_ok"),
                response_time=elapsed,
                details=t("connection.details", target=target, seconds=elapsed),
            )

        logger.warning("postgresql_connection_failed", host=postgresql.host, error=error)
        return ConnectionResult(
            message=t("connection.pg_failed"),
            response_time=elapsed,
            error=_last_line(output) or error or t("connection.pg_failed"),
            details=output.strip(),
        )

    def find_oracle_tool(self, name: str, info: ClientInfo | None = None) -> str:
        """Locate an Oracle client tool on PATH or inside the detected client."""
        executable = executable_name(name)
        found = shutil.which(executable)
        if found:
            return found

        info = info if info is not None else self._detector.detect_client()
        candidates = []
        if info.home:
            home = Path(info.home)
            bin_dir = home if info.instant_client else home / "bin"
            candidates.append(bin_dir / executable)
        if info.path:
            candidates.append(Path(info.path) / executable)

        for candidate in candidates:
            if candidate.is_file() and os.access(candidate, os.X_OK):
                return str(candidate)
        return ""

    def get_connection_diagnostics(self) -> list[str]:
        """Client facts and troubleshooting hints shown after a failed test."""
        info = self._detector.detect_client()
        if not info.installed:
            guide = self._detector.installation_guide()
            return [t("check.client_missing"), f"Download: {guide.download_url}"]

        diagnostics = ["Oracle client installed"]
        if info.version:
            diagnostics.append(f"Version: {info.version}")
        if info.home:
            diagnostics.append(f"Home: {info.home}")
        diagnostics.extend(
            [
                "Check that the database server is running",
                "Verify the host name and port",
                "Make sure no firewall blocks the listener port",
                "Check the user name and password",
                "Verify the SID or service name",
            ]
        )
        return diagnostics

    def _run(
        self,
        args: list[str],
        stdin: str | None = None,
        env: dict[str, str] | None = None,
    ) -> tuple[str, str]:
        """Run a client tool.

        Returns:
            Combined stdout and stderr, and an error description that is
            empty when the tool exited with status 0
        """
        name = Path(args[0]).name
        try:
            completed = subprocess.run(
                args,
                input=stdin,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=env,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.warning("client_tool_timed_out", tool=name, timeout=self.timeout)
            return "", f"{name} timed out after {self.timeout:g}s"
        except OSError as e:
            logger.debug("client_tool_failed", tool=name, error=str(e))
            return "", f"{name} could not be run: {e}"

        output = completed.stdout + completed.stderr
        if completed.returncode != 0:
            return output, f"{name} exited with status {completed.returncode}"
        return output, ""


def _last_line(text: str) -> str:
    for line in reversed(text.splitlines()):
        if line.strip():
            return line.strip()
    return ""
