"""Build-manifest payload handed to expression generation."""

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from nixify.cache import CacheEntry, CachedEntry, LocalPathEntry, safe_store_name
from nixify.util import atomic_write


def build_manifest(entries: Iterable[CacheEntry], project_name: str | None = None) -> dict[str, Any]:
    """Build the manifest for collected entries.
    
    Empty sections are left out.
    """
    cache_entries = []
    local_packages = []
    
    for entry in entries:
        if isinstance(entry, CachedEntry):
            cache_entries.append({
                "name": entry.name,
                "filename": entry.cache_file,
                "sha256": entry.sha256,
                "urls": list(entry.urls),
            })
        elif isinstance(entry, LocalPathEntry):
            local_packages.append({
                "name": entry.name,
                "path": entry.path,
            })
    
    manifest = {
        "projectName": safe_store_name(project_name) if project_name else None,
        "cacheEntries": cache_entries,
        "localPackages": local_packages,
    }
    
    return {key: value for key, value in manifest.items() if value}


def write_manifest(path: Path, manifest: dict[str, Any]) -> None:
    """Write the manifest as pretty JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    atomic_write(path, json.dumps(manifest, indent=4) + "\n")
