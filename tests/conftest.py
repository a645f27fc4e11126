import sys
from pathlib import Path

import pytest

# Make 'layerconf' importable when the tests run from a plain checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def write_file():
    """Write UTF-8 text to a path, creating parent directories, and return the path."""

    def _write(path: Path, text: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
