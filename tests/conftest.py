import random
import sys
from pathlib import Path
import importlib
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture()
def m():
    """Lazily import the main module for tests to avoid module-level import."""
    return importlib.import_module("main")


@pytest.fixture()
def payload():
    """Return a factory for reproducible pseudo-random payloads."""

    def make(n: int, seed: int = 1234) -> bytes:
        rnd = random.Random(seed)
        return bytes(rnd.randrange(256) for _ in range(n))

    return make


@pytest.fixture()
def binary_file(tmp_path: Path, payload):
    """Write a 1000-byte binary image and return its path."""
    path = tmp_path / "game.bin"
    path.write_bytes(payload(1000))
    return path


def scan_stream(data: bytes):
    """Split teleprogram output into blocks and progress bar markup.

    Blocks are returned as ``("block", header, payload, end_marker)`` and
    markup as ``("bar", raw_bytes)`` or ``("step", raw_bytes)``. Anything
    else raises ``AssertionError``.
    """
    items = []
    i = 0
    while i < len(data):
        assert data[i] == 0x1F, f"unexpected byte {data[i]:#x} at {i}"
        if data[i + 1] == 0x3C:
            header = data[i + 2:i + 5]
            j = i + 5
            while 0x40 <= data[j] <= 0x7F:
                j += 1
            items.append(("block", header, data[i + 5:j], data[j]))
            i = j + 1
        elif data[i + 4] == ord("Q"):
            items.append(("bar", data[i:i + 10]))
            i += 10
        else:
            assert data[i + 3:i + 6] == b"\x1d\x82\x7f"
            items.append(("step", data[i:i + 6]))
            i += 6
    return items


@pytest.fixture()
def scan():
    """Provide the stream scanner without importing conftest."""
    return scan_stream
