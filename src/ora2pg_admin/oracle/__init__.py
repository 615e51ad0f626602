"""Oracle client detection and database connection tests."""

from ora2pg_admin.oracle.client import (
    ClientDetector,
    ClientInfo,
    ClientStatus,
    ClientStatusReport,
    InstallationGuide,
)
from ora2pg_admin.oracle.connection import ConnectionResult, ConnectionTester

__all__ = [
    "ClientDetector",
    "ClientInfo",
    "ClientStatus",
    "ClientStatusReport",
    "ConnectionResult",
    "ConnectionTester",
    "InstallationGuide",
]
