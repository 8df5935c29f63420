"""Tests for configuration."""

from pathlib import Path

import pytest

from nixify.config import NixifyConfig, default_cache_root
from nixify.errors import ConfigError


def test_defaults(tmp_path):
    """A project without a config file gets the defaults."""
    config = NixifyConfig.load(tmp_path)
    
    assert config.project_root == tmp_path
    assert config.store_root == "/nix/store"
    assert config.batch_size == 100
    assert config.enable_preload is True
    assert config.lockfile_path == tmp_path / "composer.lock"
    assert config.manifest_file == tmp_path / "composer-project.json"


def test_cache_root_from_env(monkeypatch, tmp_path):
    """COMPOSER_CACHE_DIR decides the cache root."""
    monkeypatch.setenv("COMPOSER_CACHE_DIR", str(tmp_path / "composer"))
    
    assert default_cache_root() == tmp_path / "composer" / "files"


def test_save_and_load(tmp_path):
    """Test config round trip."""
    config = NixifyConfig.create_default(tmp_path)
    config.cache_root = tmp_path / "cache"
    config.store_root = "/tmp/store"
    config.batch_size = 10
    config.enable_preload = False
    config.exclude = ["acme/*"]
    config.save()
    
    assert config.config_path == tmp_path / ".nixify" / "config.yaml"
    
    loaded = NixifyConfig.load(tmp_path)
    
    assert loaded.cache_root == tmp_path / "cache"
    assert loaded.store_root == "/tmp/store"
    assert loaded.batch_size == 10
    assert loaded.enable_preload is False
    assert loaded.exclude == ["acme/*"]


def test_invalid_config(tmp_path):
    """Broken config files raise ConfigError."""
    path = tmp_path / ".nixify" / "config.yaml"
    path.parent.mkdir()
    
    path.write_text("- just\n- a list\n")
    with pytest.raises(ConfigError):
        NixifyConfig.load(tmp_path)
    
    path.write_text("key: [unclosed\n")
    with pytest.raises(ConfigError):
        NixifyConfig.load(tmp_path)
    
    path.write_text("preload:\n  batch-size: 0\n")
    with pytest.raises(ConfigError):
        NixifyConfig.load(tmp_path)
    
    for text in [
        "exclude: acme/*\n",
        "exclude: [1, 2]\n",
        "lockfile: [composer.lock]\n",
        "preload: true\n",
        "preload:\n  enabled: \"false\"\n",
        "preload:\n  batch-size: true\n",
        "cache-root: 5\n",
    ]:
        path.write_text(text)
        with pytest.raises(ConfigError):
            NixifyConfig.load(tmp_path)
    
    path.write_bytes(b"store-root: \xff\xfe\n")
    with pytest.raises(ConfigError):
        NixifyConfig.load(tmp_path)


def test_empty_keys_keep_defaults(tmp_path):
    """Keys left empty in YAML fall back to the defaults."""
    path = tmp_path / ".nixify" / "config.yaml"
    path.parent.mkdir()
    path.write_text(
        "exclude:\ngithub-domains:\ngitlab-domains:\nlockfile:\n"
        "manifest-path:\nstore-root:\ncache-root:\npreload:\n"
    )
    
    config = NixifyConfig.load(tmp_path)
    
    assert config.exclude == []
    assert config.github_domains == ["github.com"]
    assert config.gitlab_domains == ["gitlab.com"]
    assert config.lockfile_path == tmp_path / "composer.lock"
    assert config.store_root == "/nix/store"
    assert config.batch_size == 100
    assert config.enable_preload is True


def test_should_preload(monkeypatch, tmp_path):
    """Preloading needs both the setting and the store command."""
    config = NixifyConfig(project_root=tmp_path)
    
    monkeypatch.setattr("nixify.config.shutil.which", lambda cmd: None)
    assert not config.should_preload()
    
    monkeypatch.setattr("nixify.config.shutil.which", lambda cmd: f"/usr/bin/{cmd}")
    assert config.should_preload()
    
    config.enable_preload = False
    assert not config.should_preload()
