"""Tests for preloading the store."""

import hashlib
import os
from pathlib import Path

import pytest

from nixify.cache import CachedEntry, LocalPathEntry
from nixify.config import NixifyConfig
from nixify.preload import Preloader, StoreRegistrar, chunked
from nixify.store_path import compute_fixed_output_store_path
from nixify.util import TEMP_PREFIX


class FakeRegistrar:
    """Records batches and creates their store paths, like the real command."""
    
    def __init__(self, store_root: Path, fail_on_call: int | None = None):
        self.store_root = store_root
        self.fail_on_call = fail_on_call
        self.batches: list[list[str]] = []
    
    def register(self, paths):
        self.batches.append([p.name for p in paths])
        
        if self.fail_on_call == len(self.batches):
            return 1, "error: disk full"
        
        for path in paths:
            # Staged files must still exist when the command runs
            digest = hashlib.sha256(path.read_bytes()).hexdigest()
            store_path = compute_fixed_output_store_path(path.name, "sha256", digest, str(self.store_root))
            Path(store_path).write_bytes(path.read_bytes())
        
        return 0, ""
    
    @property
    def registered(self) -> list[str]:
        return [name for batch in self.batches for name in batch]


@pytest.fixture
def config(tmp_path):
    store = tmp_path / "store"
    store.mkdir()
    return NixifyConfig(
        project_root=tmp_path,
        cache_root=tmp_path / "cache",
        store_root=str(store),
    )


def make_entries(config, count, prefix="pkg"):
    entries = []
    
    for i in range(count):
        content = f"{prefix} archive {i}".encode()
        cache_file = f"vendor/{prefix}{i}/{i:040x}.zip"
        path = config.cache_root / cache_file
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        
        entries.append(CachedEntry(
            name=f"vendor_{prefix}{i}-1.0.0.0",
            cache_key=cache_file,
            cache_file=cache_file,
            sha256=hashlib.sha256(content).hexdigest(),
        ))
    
    return entries


def leftover_staging(config) -> list[Path]:
    return list(config.cache_root.glob(f"{TEMP_PREFIX}*"))


def test_chunked():
    """Batches hold at most the given size."""
    items = [Path(str(i)) for i in range(250)]
    
    sizes = [len(batch) for batch in chunked(items, 100)]
    
    assert sizes == [100, 100, 50]
    assert list(chunked([], 100)) == []


def test_build_command_escapes_paths():
    """Each staged path is shell-quoted."""
    registrar = StoreRegistrar("nix-store")
    
    command = registrar.build_command([Path("/tmp/a b"), Path("/tmp/c")])
    
    assert command == "nix-store --add-fixed sha256 '/tmp/a b' /tmp/c"


def test_register_reports_exit_status(tmp_path):
    """The registrar returns the exit status and captured output."""
    ok = StoreRegistrar("echo")
    status, output = ok.register([tmp_path / "x"])
    assert status == 0
    assert "--add-fixed sha256" in output
    
    failing = StoreRegistrar("false")
    status, _ = failing.register([tmp_path / "x"])
    assert status != 0


def test_preload_registers_entries(config):
    """Entries are staged under their store name and registered."""
    registrar = FakeRegistrar(Path(config.store_root))
    preloader = Preloader(config, registrar=registrar)
    entries = make_entries(config, 3)
    
    result = preloader.preload(entries)
    
    assert result.ok
    assert result.preloaded == 3
    assert result.staged == 3
    assert registrar.registered == [e.name for e in entries]
    for entry in entries:
        assert os.path.exists(preloader.store_path(entry))
    assert leftover_staging(config) == []


def test_preload_is_idempotent(config):
    """A second run finds the store paths and registers nothing."""
    registrar = FakeRegistrar(Path(config.store_root))
    preloader = Preloader(config, registrar=registrar)
    entries = make_entries(config, 2)
    
    first = preloader.preload(entries)
    second = preloader.preload(entries)
    
    assert first.preloaded == 2
    assert second.preloaded == 0
    assert second.skipped == 2
    assert second.staged == 0
    assert len(registrar.batches) == 1
    assert sorted(registrar.registered) == sorted(e.name for e in entries)


def test_partial_batch_failure(config):
    """With 150 artifacts and a failing second batch, 100 are preloaded."""
    registrar = FakeRegistrar(Path(config.store_root), fail_on_call=2)
    preloader = Preloader(config, registrar=registrar)
    entries = make_entries(config, 150)
    
    result = preloader.preload(entries)
    
    assert result.preloaded == 100
    assert result.staged == 150
    assert result.failed_batches == 1
    assert result.output == "error: disk full"
    assert not result.ok
    assert [len(b) for b in registrar.batches] == [100, 50]
    assert leftover_staging(config) == []


def test_failure_stops_further_batches(config):
    """No batch is attempted after the first failure."""
    config.batch_size = 10
    registrar = FakeRegistrar(Path(config.store_root), fail_on_call=1)
    preloader = Preloader(config, registrar=registrar)
    
    result = preloader.preload(make_entries(config, 35))
    
    assert result.preloaded == 0
    assert len(registrar.batches) == 1


def test_copy_failure_submits_already_staged(config):
    """A failed copy stops staging, but staged files are still submitted."""
    registrar = FakeRegistrar(Path(config.store_root))
    preloader = Preloader(config, registrar=registrar)
    entries = make_entries(config, 4)
    (config.cache_root / entries[2].cache_file).unlink()
    
    result = preloader.preload(entries)
    
    assert result.copy_failed
    assert not result.ok
    assert result.staged == 2
    assert result.preloaded == 2
    assert registrar.registered == [entries[0].name, entries[1].name]
    assert leftover_staging(config) == []


def test_ignores_local_and_undigested_entries(config):
    """Only cached entries with a digest are preloaded."""
    registrar = FakeRegistrar(Path(config.store_root))
    preloader = Preloader(config, registrar=registrar)
    entries = make_entries(config, 1)
    entries.append(LocalPathEntry(name="local", path="/srv/local"))
    entries.append(CachedEntry(name="nodigest", cache_key="x", cache_file="x", sha256=None))
    
    result = preloader.preload(entries)
    
    assert result.preloaded == 1
    assert registrar.registered == [entries[0].name]


def test_nothing_to_do(config):
    """No staged files means no command invocation."""
    registrar = FakeRegistrar(Path(config.store_root))
    
    result = Preloader(config, registrar=registrar).preload([])
    
    assert result.preloaded == 0
    assert registrar.batches == []
    assert leftover_staging(config) == []


def test_staging_removed_on_error(config):
    """The staging directory is removed even if registration raises."""
    class Exploding:
        def register(self, paths):
            raise RuntimeError("boom")
    
    preloader = Preloader(config, registrar=Exploding())
    
    with pytest.raises(RuntimeError):
        preloader.preload(make_entries(config, 1))
    
    assert leftover_staging(config) == []
