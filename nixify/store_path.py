"""Store path computation for fixed-output artifacts.

A store path looks like ``/nix/store/<hash>-<name>``. For a fixed-output
artifact the ``<hash>`` part is derived in two stages:

1. ``fixed:out:<algo>:<digest hex>:`` is hashed with SHA-256 (hex).
2. ``output:out:sha256:<stage 1 hex>:<store root>:<name>`` is hashed with
   SHA-256 (raw bytes), folded to 20 bytes and base-32 encoded.

Every separator matters. A single stray colon yields a path the store
itself would never produce.
"""

from dataclasses import dataclass

from nixify.base32 import encode_base32
from nixify.hashing import compress_hash, sha256_bytes, sha256_hex

DEFAULT_STORE_ROOT = "/nix/store"
HASH_BYTES = 20


@dataclass(frozen=True)
class StorePathResult:
    """A derived store path."""
    
    path: str
    
    def __str__(self) -> str:
        return self.path


def compute_fixed_output_store_path(
    name: str,
    hash_algorithm: str,
    digest_hex: str,
    store_root: str = DEFAULT_STORE_ROOT,
) -> str:
    """Compute the store path of a fixed-output artifact.
    
    Args:
        name: Store name of the artifact
        hash_algorithm: Algorithm of ``digest_hex`` (normally ``sha256``)
        digest_hex: Content digest, hex encoded
        store_root: Store directory
    
    Returns:
        The full store path
    """
    inner = sha256_hex(f"fixed:out:{hash_algorithm}:{digest_hex}:")
    outer = sha256_bytes(f"output:out:sha256:{inner}:{store_root}:{name}")
    encoded = encode_base32(compress_hash(outer, HASH_BYTES))
    
    return f"{store_root}/{encoded}-{name}"


def derive(
    name: str,
    hash_algorithm: str,
    digest_hex: str,
    store_root: str = DEFAULT_STORE_ROOT,
) -> StorePathResult:
    """Same as ``compute_fixed_output_store_path``, wrapped in a result."""
    return StorePathResult(
        compute_fixed_output_store_path(name, hash_algorithm, digest_hex, store_root)
    )
