import sys
from pathlib import Path

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from booking_engine.core.config import Settings


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        API_BASE="http://api.test/api",
        HOTEL_ID="",
        APP_ENV="test",
    )
