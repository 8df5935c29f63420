"""Refetching of packages missing from the cache."""

import logging
import shutil
from pathlib import Path
from typing import Protocol
from urllib.parse import unquote, urlparse

import requests

from nixify.errors import FetchFailure
from nixify.hashing import sha256_file
from nixify.packages import PackageDescriptor
from nixify.util import staging_dir

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 1 << 20


class Downloader(Protocol):
    """Something that can download a package's dist archive."""
    
    def download(self, package: PackageDescriptor, dest_dir: Path) -> Path:
        """Download ``package`` into ``dest_dir`` and return the file path."""
        ...


class HttpDownloader:
    """Download dist archives over HTTP, trying each URL in order."""
    
    def __init__(self, session: requests.Session | None = None, timeout: float = 60.0):
        self.session = session or requests.Session()
        self.timeout = timeout
    
    def download(self, package: PackageDescriptor, dest_dir: Path) -> Path:
        if not package.urls:
            raise requests.RequestException(f"{package.pretty_name} has no dist URL")
        
        last_error: requests.RequestException | None = None
        
        for url in package.urls:
            try:
                return self._download_url(url, dest_dir)
            except requests.RequestException as e:
                logger.debug("Download of %s failed: %s", url, e)
                last_error = e
        
        raise last_error
    
    def _download_url(self, url: str, dest_dir: Path) -> Path:
        target = dest_dir / (Path(unquote(urlparse(url).path)).name or "download")
        
        with self.session.get(url, stream=True, timeout=self.timeout) as response:
            response.raise_for_status()
            with open(target, "wb") as f:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
        
        return target


class Fetcher:
    """Fetch a package into the cache after a cache miss."""
    
    def __init__(self, cache_root: Path, downloader: Downloader | None = None):
        self.cache_root = cache_root
        self.downloader = downloader or HttpDownloader()
    
    def fetch(self, package: PackageDescriptor, name: str, cache_file: str) -> str:
        """Download ``package`` and move it to ``cache_root/cache_file``.
        
        Args:
            package: Package to fetch
            name: Store-safe name, for messages
            cache_file: Cache file path relative to the cache root
        
        Returns:
            SHA-256 hex digest of the cached file
        
        Raises:
            FetchFailure: If the download or the move into the cache fails
        """
        logger.info("Could not find cache for package %s, which will be refetched", name)
        logger.info("  - Fetching %s (%s)", package.name, package.version)
        
        cache_path = self.cache_root / cache_file
        
        with staging_dir(self.cache_root) as tmp:
            try:
                downloaded = self.downloader.download(package, tmp)
            except (requests.RequestException, OSError) as e:
                raise FetchFailure(package.pretty_name, "download", str(e)) from e
            
            try:
                cache_path.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(downloaded), str(cache_path))
            except OSError as e:
                raise FetchFailure(package.pretty_name, "relocate", str(e)) from e
        
        digest = sha256_file(cache_path)
        if digest is None:
            raise FetchFailure(package.pretty_name, "relocate", f"{cache_path} missing after move")
        
        logger.debug("Cached %s as %s (sha256 %s)", package.name, cache_file, digest)
        return digest
