"""Preload cached archives into the Nix store."""

import logging
import os
import shlex
import shutil
import subprocess
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

from nixify.cache import CacheEntry, CachedEntry
from nixify.config import NixifyConfig
from nixify.store_path import compute_fixed_output_store_path
from nixify.util import staging_dir

logger = logging.getLogger(__name__)

HASH_ALGORITHM = "sha256"


@dataclass
class PreloadResult:
    """Outcome of a preload run."""
    
    preloaded: int = 0
    skipped: int = 0
    staged: int = 0
    failed_batches: int = 0
    copy_failed: bool = False
    output: str = ""
    
    @property
    def ok(self) -> bool:
        return self.failed_batches == 0 and not self.copy_failed


class StoreRegistrar:
    """Runs the store command that adds fixed-output files."""
    
    def __init__(self, command: str = "nix-store"):
        self.command = command
    
    def build_command(self, paths: Sequence[Path]) -> str:
        args = " ".join(shlex.quote(str(p)) for p in paths)
        return f"{self.command} --add-fixed {HASH_ALGORITHM} {args}"
    
    def register(self, paths: Sequence[Path]) -> tuple[int, str]:
        """Add ``paths`` to the store.
        
        Returns:
            (exit status, combined stdout and stderr)
        """
        proc = subprocess.run(
            self.build_command(paths),
            shell=True,
            capture_output=True,
            text=True,
        )
        return proc.returncode, proc.stdout + proc.stderr


def chunked(items: Sequence[Path], size: int) -> Iterator[list[Path]]:
    """Split ``items`` into lists of at most ``size``."""
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


class Preloader:
    """Add cached archives to the store, skipping ones already present."""
    
    def __init__(
        self,
        config: NixifyConfig,
        registrar: StoreRegistrar | None = None,
        path_exists: Callable[[str], bool] = os.path.exists,
    ):
        self.config = config
        self.registrar = registrar or StoreRegistrar(config.store_command)
        self.path_exists = path_exists
    
    def store_path(self, entry: CachedEntry) -> str:
        return compute_fixed_output_store_path(
            entry.name,
            HASH_ALGORITHM,
            entry.sha256,
            self.config.store_root,
        )
    
    def preload(self, entries: Iterable[CacheEntry]) -> PreloadResult:
        """Preload cached entries into the store.
        
        Files are copied into a staging directory under their store name,
        since the store command takes the name from the file on disk. They
        are then submitted in batches. The first failing batch stops the
        run; batches already submitted stay registered.
        
        Args:
            entries: Collected cache entries; local path entries are ignored
        
        Returns:
            Counts of what was preloaded, skipped and staged
        """
        result = PreloadResult()
        cache_root = self.config.cache_root
        
        with staging_dir(cache_root) as tmp:
            staged = self._stage(entries, tmp, result)
            result.staged = len(staged)
            
            if not staged:
                return result
            
            for batch in chunked(staged, self.config.batch_size):
                returncode, output = self.registrar.register(batch)
                
                if returncode != 0:
                    logger.error("Preloading into Nix store failed.")
                    if output:
                        logger.error(output)
                    result.failed_batches += 1
                    result.output = output
                    break
                
                result.preloaded += len(batch)
            
            logger.info("Preloaded %d packages into the Nix store.", result.preloaded)
        
        return result
    
    def _stage(self, entries: Iterable[CacheEntry], tmp: Path, result: PreloadResult) -> list[Path]:
        staged: list[Path] = []
        
        for entry in entries:
            if not isinstance(entry, CachedEntry):
                continue
            
            if entry.sha256 is None:
                logger.debug("No digest for %s, not preloading", entry.name)
                continue
            
            store_path = self.store_path(entry)
            if self.path_exists(store_path):
                logger.debug("%s already in store", store_path)
                result.skipped += 1
                continue
            
            dst = tmp / entry.name
            try:
                shutil.copyfile(self.config.cache_root / entry.cache_file, dst)
            except OSError as e:
                logger.error(
                    "Preloading into Nix store failed: could not write %s to temporary directory: %s",
                    entry.name,
                    e,
                )
                result.copy_failed = True
                break
            
            staged.append(dst)
        
        return staged
