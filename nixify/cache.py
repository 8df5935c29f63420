"""Cache index: map locked packages to cached dist archives."""

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from nixify.config import NixifyConfig
from nixify.fetch import Fetcher
from nixify.hashing import sha1_hex, sha256_file
from nixify.packages import DistKind, PackageDescriptor
from nixify.references import update_dist_reference

logger = logging.getLogger(__name__)

STORE_NAME_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")
CACHE_KEY_UNSAFE = re.compile(r"[^A-Za-z0-9_./]")


def safe_store_name(value: str) -> str:
    """Sanitize a string so it can be used as a store name."""
    return STORE_NAME_UNSAFE.sub("_", value)


def sanitize_cache_key(key: str) -> str:
    """Turn a cache key into the relative file path used in the cache."""
    return CACHE_KEY_UNSAFE.sub("-", key)


@dataclass
class CachedEntry:
    """A package backed by an archive in the cache."""
    
    name: str
    cache_key: str
    cache_file: str
    sha256: str | None
    urls: list[str] = field(default_factory=list)
    package: PackageDescriptor | None = None


@dataclass
class LocalPathEntry:
    """A package installed from a local path; never cached."""
    
    name: str
    path: str
    package: PackageDescriptor | None = None


CacheEntry = CachedEntry | LocalPathEntry


class CacheIndex:
    """Classify locked packages against the local cache."""
    
    def __init__(self, config: NixifyConfig, fetcher: Fetcher | None = None):
        self.config = config
        self.cache_root = config.cache_root
        self.fetcher = fetcher or Fetcher(config.cache_root)
    
    def cache_key(self, package: PackageDescriptor) -> str:
        """Cache key of an archive package.
        
        The cache is keyed by the first URL, since that is the one tried
        first when installing.
        """
        cache_url = package.dist_url or ""
        
        if package.reference is not None:
            cache_url = update_dist_reference(
                cache_url,
                package.reference,
                github_domains=self.config.github_domains,
                gitlab_domains=self.config.gitlab_domains,
            )
        
        return f"{package.name}/{sha1_hex(cache_url)}.{package.dist_type}"
    
    def classify(self, package: PackageDescriptor) -> CacheEntry | None:
        """Build the cache entry for one package.
        
        Returns:
            The entry, or None if the dist kind is not supported
        
        Raises:
            FetchFailure: If the archive is not cached and cannot be fetched
        """
        if package.dist_kind.is_archive:
            cache_key = self.cache_key(package)
            cache_file = sanitize_cache_key(cache_key)
            name = safe_store_name(package.unique_name)
            
            sha256 = sha256_file(self.cache_root / cache_file)
            if sha256 is None:
                sha256 = self.fetcher.fetch(package, name, cache_file)
            
            return CachedEntry(
                name=name,
                cache_key=cache_key,
                cache_file=cache_file,
                sha256=sha256,
                urls=list(package.urls),
                package=package,
            )
        
        if package.dist_kind is DistKind.PATH:
            return LocalPathEntry(
                name=safe_store_name(package.name),
                path=package.dist_url or "",
                package=package,
            )
        
        logger.warning(
            "Package '%s' has dist-type '%s' which is not supported by Nixify",
            package.pretty_name,
            package.dist_type,
        )
        return None
    
    def iter_entries(self, packages: Iterable[PackageDescriptor]) -> Iterator[CacheEntry]:
        """Classify packages one at a time, in order."""
        for package in packages:
            entry = self.classify(package)
            if entry is not None:
                yield entry
    
    def collect(self, packages: Iterable[PackageDescriptor]) -> list[CacheEntry]:
        """Classify all packages."""
        return list(self.iter_entries(packages))
