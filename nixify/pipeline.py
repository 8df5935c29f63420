"""End-to-end run: lockfile to cache to manifest to store."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

import filelock

from nixify.cache import CacheEntry, CacheIndex, CachedEntry, LocalPathEntry
from nixify.config import NixifyConfig
from nixify.fetch import Fetcher
from nixify.manifest import build_manifest, write_manifest
from nixify.packages import PackageDescriptor, iter_locked_packages, load_lock_data
from nixify.preload import Preloader, PreloadResult
from nixify.select import exclude_packages

logger = logging.getLogger(__name__)

LOCK_NAME = ".nixify.lock"
LOCK_TIMEOUT = 10


@dataclass
class PipelineResult:
    """What a pipeline run produced."""
    
    entries: list[CacheEntry] = field(default_factory=list)
    manifest_path: Path | None = None
    preload: PreloadResult | None = None
    
    @property
    def cached(self) -> list[CachedEntry]:
        return [e for e in self.entries if isinstance(e, CachedEntry)]
    
    @property
    def local(self) -> list[LocalPathEntry]:
        return [e for e in self.entries if isinstance(e, LocalPathEntry)]


class Pipeline:
    """Collect cache entries for a project and preload them."""
    
    def __init__(
        self,
        config: NixifyConfig,
        cache_index: CacheIndex | None = None,
        preloader: Preloader | None = None,
        fetcher: Fetcher | None = None,
    ):
        self.config = config
        self.cache_index = cache_index or CacheIndex(config, fetcher=fetcher)
        self.preloader = preloader or Preloader(config)
    
    @property
    def lock_path(self) -> Path:
        return self.config.cache_root / LOCK_NAME
    
    def packages(self) -> list[PackageDescriptor]:
        """Locked packages, minus excluded ones."""
        lock_data = load_lock_data(self.config.lockfile_path)
        return list(exclude_packages(iter_locked_packages(lock_data), self.config.exclude))
    
    def project_name(self) -> str:
        """Project name from composer.json, falling back to the directory name."""
        manifest = self.config.project_root / "composer.json"
        
        try:
            with open(manifest, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            data = {}
        
        name = data.get("name") if isinstance(data, dict) else None
        return name or self.config.project_root.resolve().name
    
    def collect(self) -> list[CacheEntry]:
        return self.cache_index.collect(self.packages())
    
    def run(
        self,
        preload: bool | None = None,
        write: bool = True,
        collect_only: bool = False,
    ) -> PipelineResult:
        """Run the pipeline.
        
        Args:
            preload: Force preloading on or off; None follows the config
            write: Write the manifest file
            collect_only: Stop after collecting entries
        
        Returns:
            Collected entries, manifest path and preload outcome
        
        Raises:
            FetchFailure: If a package missing from the cache cannot be fetched
            filelock.Timeout: If another run holds the cache lock
        """
        self.config.cache_root.mkdir(parents=True, exist_ok=True)
        result = PipelineResult()
        
        with filelock.FileLock(self.lock_path, timeout=LOCK_TIMEOUT):
            result.entries = self.collect()
            logger.debug(
                "Collected %d cached and %d local packages",
                len(result.cached),
                len(result.local),
            )
            
            if collect_only:
                return result
            
            if write:
                result.manifest_path = self.config.manifest_file
                write_manifest(
                    result.manifest_path,
                    build_manifest(result.entries, self.project_name()),
                )
            
            if preload is None:
                preload = self.config.should_preload()
            
            if preload:
                result.preload = self.preloader.preload(result.entries)
        
        return result
