"""Test hashing functions for provenance.

Tests for src.utils.hashing:
    - sha256_file() produces consistent hashes
    - Different files → different hashes
    - sha256_array() depends on shape, dtype and values

Test cases:
    - test_sha256_file_known_value()
    - test_sha256_file_detects_changes()
    - test_sha256_file_missing()
    - test_sha256_array_consistent()
    - test_sha256_array_shape_and_dtype()

Run:
    pytest tests/test_hash.py -v
"""

import hashlib

import numpy as np
import pytest

from src.utils import hashing


def test_sha256_file_known_value(tmp_path):
    """Matches hashlib on the same bytes, small chunks included."""
    p = tmp_path / "x.bin"
    p.write_bytes(b"screenshot" * 1000)

    expected = hashlib.sha256(b"screenshot" * 1000).hexdigest()
    assert hashing.sha256_file(p) == expected
    assert hashing.sha256_file(p, chunk_size=7) == expected
    assert len(expected) == 64


def test_sha256_file_detects_changes(tmp_path):
    """One changed byte changes the digest."""
    p = tmp_path / "x.bin"
    p.write_bytes(b"aaaa")
    h1 = hashing.sha256_file(p)
    p.write_bytes(b"aaab")

    assert hashing.sha256_file(p) != h1


def test_sha256_file_missing(tmp_path):
    """Missing file → FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        hashing.sha256_file(tmp_path / "missing.png")


def test_sha256_array_consistent():
    """Equal arrays hash equal, including non-contiguous views."""
    a = np.arange(24, dtype=np.uint8).reshape(2, 3, 4)
    b = np.ascontiguousarray(a[:, :, ::-1][:, :, ::-1])

    assert hashing.sha256_array(a) == hashing.sha256_array(b)


def test_sha256_array_shape_and_dtype():
    """Same bytes with another shape or dtype hash differently."""
    a = np.zeros((4, 6), dtype=np.uint8)

    assert hashing.sha256_array(a) != hashing.sha256_array(a.reshape(6, 4))
    assert hashing.sha256_array(a) != hashing.sha256_array(a.view(np.int8))
