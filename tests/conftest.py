import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def _fresh_engine_config():
    from nanodesign.config import load_engine_config

    load_engine_config.cache_clear()
    yield
    load_engine_config.cache_clear()
