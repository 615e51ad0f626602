"""Detection of an installed Oracle client.

ora2pg talks to Oracle through DBD::Oracle, which needs an Oracle client
(full client or Instant Client) on the host. The detector looks for one in
this order:

1. ``$ORACLE_HOME``
2. Common installation directories for the current platform, plus their
   sub-directories two levels deep
3. ``sqlplus``, ``tnsping`` or ``lsnrctl`` on ``PATH``

The client version is read from ``sqlplus -version``.
"""

import os
import platform
import re
import shutil
import subprocess
import sys
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from ora2pg_admin.i18n import t
from ora2pg_admin.utils.logging import get_logger

logger = get_logger(__name__)

COMPATIBLE_MAJOR_VERSIONS = ("11", "12", "18", "19", "21")
PATH_TOOLS = ("sqlplus", "tnsping", "lsnrctl")
VERSION_PROBE_TIMEOUT = 10.0

# Tried in order; the first match wins
VERSION_PATTERNS = [
    re.compile(r"Release\s+(\d+\.\d+\.\d+\.\d+\.\d+)"),
    re.compile(r"Version\s+(\d+\.\d+\.\d+\.\d+\.\d+)"),
    re.compile(r"(\d+\.\d+\.\d+\.\d+\.\d+)"),
    re.compile(r"(\d+\.\d+\.\d+)"),
]

_COMMON_PATHS: dict[str, list[str]] = {
    "linux": [
        "/opt/oracle",
        "/usr/lib/oracle",
        "/home/oracle",
        "/opt/instantclient",
        "/usr/local/oracle",
    ],
    "darwin": [
        "/opt/oracle",
        "/usr/local/oracle",
        "/Applications/Oracle",
        "/opt/instantclient",
    ],
}

_WINDOWS_DIRS = [
    ("app", "oracle", "product"),
    ("oracle", "product"),
    ("Oracle", "instantclient"),
    ("instantclient",),
    ("Program Files", "Oracle"),
    ("Program Files (x86)", "Oracle"),
]

_INSTANT_CLIENT_URL = "https://www.oracle.com/database/technologies/instant-client"
_DOWNLOAD_URLS = {
    "win32": f"{_INSTANT_CLIENT_URL}/winx64-64-downloads.html",
    "linux": f"{_INSTANT_CLIENT_URL}/linux-x86-64-downloads.html",
    "darwin": f"{_INSTANT_CLIENT_URL}/macos-intel-x86-downloads.html",
}


class ClientStatus(str, Enum):
    """Outcome of a client check."""

    NOT_INSTALLED = "NOT_INSTALLED"
    COMPATIBLE = "COMPATIBLE"
    INCOMPATIBLE = "INCOMPATIBLE"
    UNKNOWN_VERSION = "UNKNOWN_VERSION"
    ERROR = "ERROR"


@dataclass
class ClientInfo:
    """What was found about the Oracle client."""

    installed: bool = False
    version: str = ""
    home: str = ""
    instant_client: bool = False
    architecture: str = field(default_factory=platform.machine)
    path: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class InstallationGuide:
    platform: str
    download_url: str
    instructions: list[str]


@dataclass
class ClientStatusReport:
    """Result of ``ClientDetector.check_client_status``."""

    status: ClientStatus
    message: str
    client_info: ClientInfo = field(default_factory=ClientInfo)
    recommendations: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def ok(self) -> bool:
        return self.status is ClientStatus.COMPATIBLE

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "client_info": self.client_info.to_dict(),
            "recommendations": list(self.recommendations),
            "timestamp": self.timestamp.isoformat(),
        }


def executable_name(name: str) -> str:
    return f"{name}.exe" if sys.platform == "win32" else name


def _is_instant_client(path: str | Path) -> bool:
    return "instantclient" in str(path).lower()


def parse_version(output: str) -> str:
    """Extract the client version from ``sqlplus -version`` output ("" if absent)."""
    for pattern in VERSION_PATTERNS:
        match = pattern.search(output)
        if match:
            return match.group(1)
    return ""


def is_compatible(version: str) -> bool:
    """Whether ora2pg supports this client version (11g, 12c, 18c, 19c, 21c)."""
    if not version:
        return False
    return version.split(".", 1)[0] in COMPATIBLE_MAJOR_VERSIONS


class ClientDetector:
    """Locates an Oracle client and reports on its compatibility.

    Args:
        environ: Environment to read ``ORACLE_HOME`` from (defaults to
            ``os.environ``)
        search_paths: Installation directories to probe instead of the
            platform defaults
    """

    def __init__(
        self,
        environ: dict[str, str] | None = None,
        search_paths: list[str | Path] | None = None,
    ):
        self._environ = environ if environ is not None else os.environ
        self._search_paths = search_paths
        self.client_info = ClientInfo()

    def detect_client(self) -> ClientInfo:
        """Search for a client and probe its version."""
        info = ClientInfo()
        self.client_info = info

        oracle_home = self._environ.get("ORACLE_HOME", "")
        if oracle_home:
            logger.debug("oracle_home_found", path=oracle_home)
            info.home = oracle_home
            if self.validate_oracle_home(oracle_home):
                info.installed = True
                info.instant_client = _is_instant_client(oracle_home)
                self._detect_version(info)
                return info

        for path in self.get_common_paths():
            if self.validate_oracle_home(path):
                logger.debug("oracle_client_found", path=str(path))
                info.home = str(path)
                info.installed = True
                info.instant_client = _is_instant_client(path)
                self._detect_version(info)
                return info

        tool_dir = self._find_tools_in_path()
        if tool_dir:
            info.installed = True
            info.path = tool_dir
            self._detect_version(info)
            return info

        logger.warning("oracle_client_not_found")
        return info

    @staticmethod
    def validate_oracle_home(oracle_home: str | Path) -> bool:
        """A full client has ``bin/sqlplus`` and ``lib``; Instant Client has ``sqlplus``."""
        if not oracle_home:
            return False
        home = Path(oracle_home)
        if not home.is_dir():
            return False

        if _is_instant_client(home):
            required = [home / executable_name("sqlplus")]
        else:
            required = [home / "bin" / executable_name("sqlplus"), home / "lib"]

        for path in required:
            if not path.exists():
                logger.debug("oracle_home_incomplete", missing=str(path))
                return False
        return True

    def get_common_paths(self) -> list[Path]:
        """Candidate installation directories, sub-directories included."""
        if self._search_paths is not None:
            bases = [Path(p) for p in self._search_paths]
        elif sys.platform == "win32":
            bases = [
                Path(f"{drive}\\", *parts)
                for drive in ("C:", "D:", "E:")
                for parts in _WINDOWS_DIRS
            ]
        else:
            bases = [Path(p) for p in _COMMON_PATHS.get(sys.platform, [])]

        expanded: list[Path] = []
        for base in bases:
            for child in _subdirectories(base):
                expanded.append(child)
                expanded.extend(_subdirectories(child))
        return bases + expanded

    def _find_tools_in_path(self) -> str:
        for tool in PATH_TOOLS:
            found = shutil.which(tool)
            if found:
                logger.debug("oracle_tool_found", tool=tool, path=found)
                return str(Path(found).parent)
        return ""

    def _sqlplus_path(self, info: ClientInfo) -> str:
        if info.home:
            if info.instant_client:
                return str(Path(info.home) / executable_name("sqlplus"))
            return str(Path(info.home) / "bin" / executable_name("sqlplus"))
        if info.path:
            return str(Path(info.path) / executable_name("sqlplus"))
        return shutil.which("sqlplus") or ""

    def _detect_version(self, info: ClientInfo) -> None:
        sqlplus = self._sqlplus_path(info)
        if not sqlplus:
            logger.debug("sqlplus_not_found")
            return
        try:
            completed = subprocess.run(
                [sqlplus, "-version"],
                capture_output=True,
                text=True,
                timeout=VERSION_PROBE_TIMEOUT,
                check=True,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("sqlplus_version_failed", path=sqlplus, error=str(e))
            return

        info.version = parse_version(completed.stdout)
        if info.version:
            logger.debug("oracle_client_version", version=info.version)

    def is_compatible(self, version: str) -> bool:
        return is_compatible(version)

    def check_client_status(self) -> ClientStatusReport:
        """Detect the client and classify the result."""
        try:
            info = self.detect_client()
        except OSError as e:
            logger.error("oracle_client_detection_failed", error=str(e))
            return ClientStatusReport(
                status=ClientStatus.ERROR, message=t("check.client_error", error=e)
            )

        if not info.installed:
            return ClientStatusReport(
                status=ClientStatus.NOT_INSTALLED,
                message=t("check.client_missing"),
                client_info=info,
                recommendations=[
                    "Install Oracle Instant Client or a full Oracle client",
                    "Set the ORACLE_HOME environment variable",
                    "Add the Oracle client directory to PATH",
                ],
            )

        if not info.version:
            return ClientStatusReport(
                status=ClientStatus.UNKNOWN_VERSION,
                message=t("check.client_unknown_version"),
                client_info=info,
                recommendations=[
                    "Check that sqlplus can be run",
                    "Verify that the Oracle client installation is complete",
                ],
            )

        if self.is_compatible(info.version):
            return ClientStatusReport(
                status=ClientStatus.COMPATIBLE,
                message=t("check.client_compatible", version=info.version),
                client_info=info,
            )

        return ClientStatusReport(
            status=ClientStatus.INCOMPATIBLE,
            message=t("check.client_incompatible", version=info.version),
            client_info=info,
            recommendations=[
                "Use an Oracle 11g, 12c, 18c, 19c or 21c client",
                "Consider upgrading to a supported version",
            ],
        )

    @staticmethod
    def installation_guide(target: str | None = None) -> InstallationGuide:
        """Instant Client installation steps for ``target`` (defaults to this platform)."""
        target = target or sys.platform
        if target.startswith("win"):
            instructions = [
                "Open the Oracle Instant Client download page",
                "Download the Instant Client package for your system",
                "Extract it to a directory such as C:\\instantclient",
                "Add that directory to PATH",
                "Set ORACLE_HOME to that directory",
                "Restart the terminal so the variables take effect",
            ]
            return InstallationGuide("win32", _DOWNLOAD_URLS["win32"], instructions)

        library_var = "DYLD_LIBRARY_PATH" if target == "darwin" else "LD_LIBRARY_PATH"
        profile = "~/.zshrc or ~/.bash_profile" if target == "darwin" else "~/.bashrc or ~/.profile"
        instructions = [
            "Open the Oracle Instant Client download page",
            "Download the Instant Client package (RPM or ZIP) for your system",
            "Install or extract it to a directory such as /opt/instantclient",
            "Set the environment variables:",
            "  export ORACLE_HOME=/opt/instantclient",
            "  export PATH=$ORACLE_HOME:$PATH",
            f"  export {library_var}=$ORACLE_HOME:${library_var}",
            f"Add these lines to {profile}",
        ]
        key = "darwin" if target == "darwin" else "linux"
        return InstallationGuide(key, _DOWNLOAD_URLS[key], instructions)


def _subdirectories(path: Path) -> list[Path]:
    try:
        return sorted(child for child in path.iterdir() if child.is_dir())
    except OSError:
        return []
