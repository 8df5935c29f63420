"""Configuration management for Nixify."""

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import platformdirs
import yaml

from nixify.errors import ConfigError
from nixify.store_path import DEFAULT_STORE_ROOT


def default_cache_root() -> Path:
    """Files cache of the package manager.
    
    ``COMPOSER_CACHE_DIR`` wins over the platform cache directory.
    """
    base = os.environ.get("COMPOSER_CACHE_DIR")
    if base:
        return Path(base) / "files"
    
    return Path(platformdirs.user_cache_dir("composer")) / "files"


def _option(data: dict[str, Any], key: str, kind: type, default: Any, prefix: str = "") -> Any:
    """Value of ``key``, or ``default`` when missing or empty."""
    value = data.get(key)
    if value is None:
        return default
    
    if not isinstance(value, kind):
        raise ConfigError(f"{prefix}{key} must be a {kind.__name__}, got {value!r}")
    return value


def _string_list(data: dict[str, Any], key: str, default: list[str]) -> list[str]:
    value = _option(data, key, list, default)
    if not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{key} must be a list of strings, got {value!r}")
    return list(value)


@dataclass
class NixifyConfig:
    """Per-project configuration (.nixify/config.yaml)."""
    
    project_root: Path = field(default_factory=Path.cwd)
    cache_root: Path = field(default_factory=default_cache_root)
    store_root: str = DEFAULT_STORE_ROOT
    lockfile: str = "composer.lock"
    manifest_path: str = "composer-project.json"
    
    # Preload settings
    enable_preload: bool = True
    store_command: str = "nix-store"
    batch_size: int = 100
    
    # Package names to leave out (gitwildmatch patterns)
    exclude: list[str] = field(default_factory=list)
    
    # Hosts that get the GitHub/GitLab reference rewrite
    github_domains: list[str] = field(default_factory=lambda: ["github.com"])
    gitlab_domains: list[str] = field(default_factory=lambda: ["gitlab.com"])
    
    @property
    def config_path(self) -> Path:
        """Path to the project config file."""
        return self.project_root / ".nixify" / "config.yaml"
    
    @property
    def lockfile_path(self) -> Path:
        return self.project_root / self.lockfile
    
    @property
    def manifest_file(self) -> Path:
        return self.project_root / self.manifest_path
    
    def should_preload(self) -> bool:
        """Preload only when enabled and the store command is installed."""
        if not self.enable_preload:
            return False
        
        return shutil.which(self.store_command) is not None
    
    def save(self) -> None:
        """Save configuration to file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        
        data = {
            "cache-root": str(self.cache_root),
            "store-root": self.store_root,
            "lockfile": self.lockfile,
            "manifest-path": self.manifest_path,
            "preload": {
                "enabled": self.enable_preload,
                "command": self.store_command,
                "batch-size": self.batch_size,
            },
            "exclude": self.exclude,
            "github-domains": self.github_domains,
            "gitlab-domains": self.gitlab_domains,
        }
        
        with open(self.config_path, "w") as f:
            yaml.safe_dump(data, f, sort_keys=False)
    
    @classmethod
    def load(cls, project_root: Path) -> "NixifyConfig":
        """Load configuration for a project.
        
        A missing config file yields the defaults.
        
        Raises:
            ConfigError: If the file exists but is not a valid mapping
        """
        config = cls(project_root=project_root)
        
        if not config.config_path.exists():
            return config
        
        try:
            with open(config.config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (yaml.YAMLError, UnicodeDecodeError, OSError) as e:
            raise ConfigError(f"Invalid config at {config.config_path}: {e}") from e
        
        if not isinstance(data, dict):
            raise ConfigError(f"Config at {config.config_path} must be a mapping")
        
        config.apply(data)
        return config
    
    def apply(self, data: dict[str, Any]) -> None:
        """Overlay values from a config mapping.
        
        Empty keys keep their defaults.
        
        Raises:
            ConfigError: If a value has the wrong type
        """
        cache_root = _option(data, "cache-root", str, None)
        if cache_root is not None:
            self.cache_root = Path(cache_root).expanduser()
        self.store_root = _option(data, "store-root", str, self.store_root).rstrip("/")
        self.lockfile = _option(data, "lockfile", str, self.lockfile)
        self.manifest_path = _option(data, "manifest-path", str, self.manifest_path)
        
        preload = _option(data, "preload", dict, {})
        self.enable_preload = _option(preload, "enabled", bool, self.enable_preload, "preload.")
        self.store_command = _option(preload, "command", str, self.store_command, "preload.")
        
        batch_size = _option(preload, "batch-size", int, self.batch_size, "preload.")
        if isinstance(batch_size, bool) or batch_size < 1:
            raise ConfigError(f"preload.batch-size must be a positive integer, got {batch_size!r}")
        self.batch_size = batch_size
        
        self.exclude = _string_list(data, "exclude", self.exclude)
        self.github_domains = _string_list(data, "github-domains", self.github_domains)
        self.gitlab_domains = _string_list(data, "gitlab-domains", self.gitlab_domains)
    
    @classmethod
    def create_default(cls, project_root: Path) -> "NixifyConfig":
        """Create default configuration for a project."""
        return cls(project_root=project_root)
