"""Tests for hash helpers."""

import hashlib
from functools import reduce

import pytest

from nixify.hashing import compress_hash, sha1_hex, sha256_file, sha256_hex


@pytest.mark.parametrize(
    "data,size,expected",
    [
        (b"abcde", 3, bytes([5, 7, 99])),
        (b"hello world", 4, bytes([117, 41, 127, 3])),
    ],
)
def test_compress_hash_vectors(data, size, expected):
    """Test known compression vectors."""
    assert compress_hash(data, size) == expected


def test_compress_hash_length():
    """Output always has the requested size."""
    for size in (1, 5, 20, 32, 40):
        assert len(compress_hash(b"some input bytes", size)) == size
    
    assert compress_hash(b"", 4) == bytes(4)


def test_compress_hash_is_positional_xor():
    """Each output byte is the XOR of all input bytes at that position mod size."""
    data = hashlib.sha256(b"fold me").digest()
    size = 20
    
    compressed = compress_hash(data, size)
    
    for i in range(size):
        expected = reduce(lambda a, b: a ^ b, data[i::size], 0)
        assert compressed[i] == expected


def test_compress_hash_folds_blocks():
    """A hash of k*size bytes folds its k blocks together."""
    blocks = [b"\x01\x02\x03\x04", b"\x10\x20\x30\x40", b"\xff\x00\xff\x00"]
    
    expected = bytes(a ^ b ^ c for a, b, c in zip(*blocks))
    
    assert compress_hash(b"".join(blocks), 4) == expected


def test_sha256_helpers():
    """Test string hashing helpers."""
    assert sha256_hex("abc") == hashlib.sha256(b"abc").hexdigest()
    assert sha1_hex("abc") == hashlib.sha1(b"abc").hexdigest()


def test_sha256_file(tmp_path):
    """Test file hashing, including a missing file."""
    path = tmp_path / "archive.zip"
    path.write_bytes(b"archive contents")
    
    assert sha256_file(path) == hashlib.sha256(b"archive contents").hexdigest()
    assert sha256_file(tmp_path / "missing.zip") is None
