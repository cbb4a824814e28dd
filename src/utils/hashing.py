"""SHA-256 hashing for stored reference provenance.

Provides:
    - sha256_file(): Hash file contents (reference screenshots, masks)
    - sha256_array(): Hash pixel buffers independent of PNG encoding

A stored reference records the hash of its PNG at creation time; comparing
against it later verifies the file was not swapped or edited in between.

Deterministic hashing:
    - Files read in chunks (1 MB default) for memory efficiency
    - Arrays hashed over shape, dtype and C-contiguous bytes
    - Results are hex strings (64 chars)

Usage:
    from src.utils import hashing
    ref_hash = hashing.sha256_file("screens/chrome/1-login.png")
"""

import hashlib
from pathlib import Path
from typing import Union

import numpy as np


def sha256_file(path: Union[str, Path], chunk_size: int = 1 << 20) -> str:
    """Compute SHA-256 hash of file contents.

    Parameters
    ----------
    path : Union[str, Path]
        File path
    chunk_size : int
        Read chunk size in bytes, default 1 MB

    Returns
    -------
    str
        SHA-256 hex digest (64 characters)

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    h = hashlib.sha256()
    with open(path, 'rb') as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            h.update(chunk)
    return h.hexdigest()


def sha256_array(arr: np.ndarray) -> str:
    """Compute SHA-256 hash of an array's shape, dtype and values.

    Two arrays hash equal iff they have identical shape, dtype and pixels.
    """
    arr = np.ascontiguousarray(arr)
    h = hashlib.sha256()
    h.update(str(arr.shape).encode('utf-8'))
    h.update(str(arr.dtype).encode('utf-8'))
    h.update(arr.tobytes())
    return h.hexdigest()
