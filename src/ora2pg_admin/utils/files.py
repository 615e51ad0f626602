"""File system helpers shared by the project scaffolding and the migration runner."""

from pathlib import Path

from ora2pg_admin.exceptions import CreateFailedError, FileOperationError
from ora2pg_admin.utils.logging import get_logger

logger = get_logger(__name__)


def ensure_dir(path: str | Path) -> Path:
    """Create a directory (and parents) if it does not exist.

    Raises:
        CreateFailedError: If the directory cannot be created or the path
            exists and is not a directory
    """
    path = Path(path)
    if path.is_dir():
        return path

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CreateFailedError(path, details=str(e)) from e

    logger.debug("directory_created", path=str(path))
    return path


def file_exists(path: str | Path | None) -> bool:
    """Return True if ``path`` names an existing regular file."""
    if not path:
        return False
    return Path(path).is_file()


def dir_exists(path: str | Path | None) -> bool:
    """Return True if ``path`` names an existing directory."""
    if not path:
        return False
    return Path(path).is_dir()


def write_text_file(path: str | Path, content: str) -> Path:
    """Write ``content`` to ``path``, creating the parent directory.

    Raises:
        CreateFailedError: If the parent directory cannot be created
        FileOperationError: If the file cannot be written
    """
    path = Path(path)
    ensure_dir(path.parent)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise FileOperationError(f"Failed to write {path}", path, details=str(e)) from e
    return path


def list_files(directory: str | Path, pattern: str = "*") -> list[Path]:
    """List regular files in ``directory`` matching ``pattern``, newest first."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    files = [p for p in directory.glob(pattern) if p.is_file()]
    return sorted(files, key=lambda p: p.stat().st_mtime, reverse=True)
