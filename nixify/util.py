"""Utility functions for Nixify."""

import logging
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from rich.logging import RichHandler

TEMP_PREFIX = ".nixify-tmp-"


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure logging for the application."""
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO
    
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True)],
    )


@contextmanager
def staging_dir(parent: Path) -> Iterator[Path]:
    """Create a temporary directory under ``parent`` and always remove it.
    
    Args:
        parent: Directory to create the staging directory in
    
    Yields:
        Path to the staging directory
    """
    parent.mkdir(parents=True, exist_ok=True)
    path = Path(tempfile.mkdtemp(prefix=TEMP_PREFIX, dir=parent))
    
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


def atomic_write(path: Path, content: str | bytes, mode: str = "w") -> None:
    """Write file atomically using temp file and rename.
    
    Args:
        path: Target file path
        content: Content to write
        mode: File open mode ('w' for text, 'wb' for binary)
    """
    temp_path = path.with_suffix(".tmp")
    
    try:
        if mode == "wb":
            temp_path.write_bytes(content)
        else:
            temp_path.write_text(content, encoding="utf-8")
        
        # Atomic rename
        temp_path.replace(path)
    
    except Exception:
        # Clean up temp file on error
        if temp_path.exists():
            temp_path.unlink()
        raise
