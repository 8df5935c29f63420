"""Package descriptors read from the lockfile."""

import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from nixify.errors import LockfileError

logger = logging.getLogger(__name__)


class DistKind(Enum):
    """Distribution kinds a package can be locked with."""
    
    TAR = "tar"
    XZ = "xz"
    ZIP = "zip"
    GZIP = "gzip"
    PHAR = "phar"
    RAR = "rar"
    PATH = "path"
    UNSUPPORTED = "unsupported"
    
    @property
    def is_archive(self) -> bool:
        return self in ARCHIVE_KINDS
    
    @classmethod
    def parse(cls, value: str | None) -> "DistKind":
        """Map a raw dist type to a kind; unknown types are UNSUPPORTED."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNSUPPORTED


ARCHIVE_KINDS = frozenset({
    DistKind.TAR, DistKind.XZ, DistKind.ZIP,
    DistKind.GZIP, DistKind.PHAR, DistKind.RAR,
})


@dataclass(frozen=True)
class PackageDescriptor:
    """A locked package as seen by the cache pipeline."""
    
    name: str
    version: str
    unique_name: str
    dist_kind: DistKind
    dist_type: str  # raw value, kept for diagnostics
    urls: tuple[str, ...] = field(default_factory=tuple)
    reference: str | None = None
    
    @property
    def pretty_name(self) -> str:
        return f"{self.name} ({self.version})"
    
    @property
    def dist_url(self) -> str | None:
        return self.urls[0] if self.urls else None


def _string(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def descriptor_from_lock(info: dict[str, Any]) -> PackageDescriptor:
    """Build a descriptor from a single lockfile package entry."""
    name = info["name"]
    version = str(info.get("version", ""))
    normalized = str(info.get("version_normalized") or version)
    
    dist = info.get("dist") if isinstance(info.get("dist"), dict) else {}
    dist_type = _string(dist.get("type")) or ""
    
    urls = []
    if _string(dist.get("url")):
        urls.append(dist["url"])
    mirrors = dist.get("mirrors") if isinstance(dist.get("mirrors"), list) else []
    for mirror in mirrors:
        mirror_url = _string(mirror.get("url")) if isinstance(mirror, dict) else None
        if mirror_url and mirror_url not in urls:
            urls.append(mirror_url)
    
    return PackageDescriptor(
        name=name,
        version=version,
        unique_name=f"{name}-{normalized}",
        dist_kind=DistKind.parse(dist_type),
        dist_type=dist_type,
        urls=tuple(urls),
        reference=_string(dist.get("reference")),
    )


def load_lock_data(path: Path, strict: bool = False) -> dict[str, Any]:
    """Read lockfile data.
    
    Args:
        path: Path to the lockfile
        strict: Raise instead of returning empty data
    
    Returns:
        Parsed lock data; ``{}`` when absent or malformed and not strict
    
    Raises:
        LockfileError: In strict mode, if the file is absent or malformed
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        if strict:
            raise LockfileError(f"No lockfile found at {path}")
        logger.warning("No lockfile found at %s, nothing to do", path)
        return {}
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        if strict:
            raise LockfileError(f"Malformed lockfile {path}: {e}") from e
        logger.warning("Malformed lockfile %s, nothing to do: %s", path, e)
        return {}
    except OSError as e:
        if strict:
            raise LockfileError(f"Cannot read lockfile {path}: {e}") from e
        logger.warning("Cannot read lockfile %s, nothing to do: %s", path, e)
        return {}
    
    if not isinstance(data, dict):
        if strict:
            raise LockfileError(f"Malformed lockfile {path}: expected an object")
        logger.warning("Malformed lockfile %s, nothing to do", path)
        return {}
    
    return data


def iter_locked_packages(lock_data: dict[str, Any]) -> Iterator[PackageDescriptor]:
    """Yield descriptors for ``packages`` then ``packages-dev``, in order."""
    for section in ("packages", "packages-dev"):
        entries = lock_data.get(section) or []
        if not isinstance(entries, list):
            logger.warning("Skipping malformed %s section in lockfile", section)
            continue
        
        for info in entries:
            if not isinstance(info, dict) or not isinstance(info.get("name"), str):
                logger.warning("Skipping malformed %s entry in lockfile", section)
                continue
            yield descriptor_from_lock(info)
