"""Hash helpers for Nixify."""

import hashlib
from pathlib import Path

CHUNK_SIZE = 1 << 20


def compress_hash(hash_bytes: bytes, size: int) -> bytes:
    """Fold a hash into ``size`` bytes by XOR-ing each byte into position ``i % size``.
    
    Args:
        hash_bytes: Raw hash of any length
        size: Length of the folded output
    
    Returns:
        Folded hash of exactly ``size`` bytes
    """
    out = bytearray(size)
    
    for i, byte in enumerate(hash_bytes):
        out[i % size] ^= byte
    
    return bytes(out)


def sha256_hex(text: str) -> str:
    """SHA-256 of a string, as lowercase hex."""
    return hashlib.sha256(text.encode()).hexdigest()


def sha256_bytes(text: str) -> bytes:
    """SHA-256 of a string, as raw bytes."""
    return hashlib.sha256(text.encode()).digest()


def sha1_hex(text: str) -> str:
    """SHA-1 of a string, as lowercase hex."""
    return hashlib.sha1(text.encode()).hexdigest()


def sha256_file(path: Path) -> str | None:
    """Hash a file with SHA-256.
    
    Returns:
        Hex digest, or None if the file is missing or unreadable
    """
    digest = hashlib.sha256()
    
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                digest.update(chunk)
    except OSError:
        return None
    
    return digest.hexdigest()
