"""Nixify - Content-addressed caching of locked packages for the Nix store."""

__version__ = "1.0.0"

from nixify.cache import CacheIndex, CachedEntry, LocalPathEntry
from nixify.config import NixifyConfig
from nixify.errors import FetchFailure, NixifyError
from nixify.pipeline import Pipeline
from nixify.preload import Preloader
from nixify.store_path import compute_fixed_output_store_path

__all__ = [
    "CacheIndex",
    "CachedEntry",
    "LocalPathEntry",
    "FetchFailure",
    "NixifyConfig",
    "NixifyError",
    "Pipeline",
    "Preloader",
    "compute_fixed_output_store_path",
]
