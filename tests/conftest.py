"""
Shared pytest fixtures for the ora2pg-admin tests.

This module provides:
- Child process helpers (python_command) running ``sys.executable -c``
- Configuration fixtures (project_config, password_env, project_dir)
- A progress tracker that does not draw (quiet_tracker)
- Stand-ins for ora2pg and the database client tools
- Message language reset between tests
"""

import sys
from collections.abc import Callable, Iterator

import pytest

from ora2pg_admin import i18n
from ora2pg_admin.config import (
    PROJECT_SUBDIRS,
    ProjectConfig,
    create_default_config,
    project_config_path,
    save_config_to_yaml,
)
from ora2pg_admin.reporting.progress import ProgressTracker


@pytest.fixture(autouse=True)
def english_messages() -> Iterator[None]:
    """Run every test with English messages."""
    previous = i18n.get_language()
    i18n.set_language("en")
    yield
    i18n.set_language(previous)


@pytest.fixture
def python_command() -> Callable[[str], list[str]]:
    """Build an argument vector running a Python snippet in a child process."""

    def build(script: str) -> list[str]:
        return [sys.executable, "-c", script]

    return build


@pytest.fixture
def password_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Define the password variables referenced by the default configuration."""
    monkeypatch.setenv("ORACLE_PASSWORD", "oracle-secret")
    monkeypatch.setenv("PG_PASSWORD", "pg-secret")


@pytest.fixture
def project_config() -> ProjectConfig:
    config = create_default_config("test-project", "Test project")
    config.oracle.password = "oracle-secret"
    config.postgresql.password = "pg-secret"
    return config


@pytest.fixture
def project_dir(tmp_path, project_config: ProjectConfig):
    """An initialized project directory with the default layout."""
    for subdir in PROJECT_SUBDIRS:
        (tmp_path / subdir).mkdir()
    save_config_to_yaml(project_config, project_config_path(tmp_path))
    return tmp_path


@pytest.fixture
def quiet_tracker() -> Iterator[ProgressTracker]:
    """A tracker with rendering disabled, stopped after the test."""
    tracker = ProgressTracker(enable=False)
    yield tracker
    tracker.stop()


FAKE_ORA2PG = '''\
import os
import sys

args = sys.argv[1:]
if args == ["--version"]:
    print("Ora2Pg v24.3")
    sys.exit(0)

migration_type = args[args.index("-t") + 1]
print("ARGS " + " ".join(args), flush=True)
print("NLS_LANG " + os.environ.get("NLS_LANG", ""), flush=True)
print(f"Processing table: {migration_type} (1/2)", flush=True)
print(f"Processing table: {migration_type} (2/2)", flush=True)
print("Exported 42 rows", flush=True)
if migration_type in os.environ.get("FAKE_ORA2PG_FAIL", "").split(","):
    sys.stderr.write(f"ERROR: {migration_type} export failed\\n")
    sys.exit(1)
'''


@pytest.fixture
def fake_ora2pg(tmp_path) -> str:
    """An executable standing in for ora2pg.

    It echoes its arguments, reports progress and exits 1 for the types
    listed in ``FAKE_ORA2PG_FAIL``.
    """
    if sys.platform == "win32":
        pytest.skip("shebang scripts need a POSIX system")
    path = tmp_path / "bin" / "ora2pg"
    path.parent.mkdir()
    path.write_text(f"#!{sys.executable}\n{FAKE_ORA2PG}", encoding="utf-8")
    path.chmod(0o755)
    return str(path)


FAKE_SQLPLUS = '''\
import sys

if sys.argv[1:] == ["-version"]:
    print("SQL*Plus: Release 19.0.0.0.0 - Production")
    sys.exit(0)
if any("oracle-secret" in arg for arg in sys.argv):
    sys.exit(9)

script = sys.stdin.read()
if 'CONNECT system/"oracle-secret"@//' in script:
    print("\\nCONNECTION_TEST_OK\\n")
else:
    print("ERROR:\\nORA-01017: invalid username/password; logon denied\\n")
    print("SP2-0640: Not connected")
'''

FAKE_PSQL = '''\
import os
import sys

if any("pg-secret" in arg for arg in sys.argv):
    sys.exit(9)
if os.environ.get("PGPASSWORD") != "pg-secret":
    sys.stderr.write('psql: error: FATAL:  password authentication failed for user "postgres"\\n')
    sys.exit(2)
print("CONNECTION_TEST_OK")
'''


def write_script(path, body: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!{sys.executable}\n{body}", encoding="utf-8")
    path.chmod(0o755)


@pytest.fixture
def fake_client_tools(tmp_path, monkeypatch):
    """Oracle client with sqlplus under ORACLE_HOME, psql alone on PATH.

    sqlplus accepts the password ``oracle-secret`` on stdin and psql the
    password ``pg-secret`` in PGPASSWORD; both exit 9 when a password
    shows up in their arguments.
    """
    if sys.platform == "win32":
        pytest.skip("shebang scripts need a POSIX system")
    home = tmp_path / "oracle" / "19c"
    write_script(home / "bin" / "sqlplus", FAKE_SQLPLUS)
    (home / "lib").mkdir()
    write_script(tmp_path / "pg-bin" / "psql", FAKE_PSQL)
    monkeypatch.setenv("ORACLE_HOME", str(home))
    monkeypatch.setenv("PATH", str(tmp_path / "pg-bin"))
    return home
