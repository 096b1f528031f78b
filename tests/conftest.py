from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from klip.storage import ClipStore
from klip.utils import utc_now


@pytest.fixture
def store(tmp_path):
    mgr = ClipStore(db_path=":memory:", image_dir=tmp_path / "images")
    yield mgr
    mgr.close()


@pytest.fixture
def db_file(tmp_path):
    return tmp_path / "data" / "klip.db"


@pytest.fixture
def file_store(db_file, tmp_path):
    mgr = ClipStore(db_path=db_file, image_dir=tmp_path / "images")
    yield mgr
    mgr.close()


@pytest.fixture
def clipboard():
    mock_cb = MagicMock()
    mock_cb.read_text.return_value = None
    return mock_cb


@pytest.fixture
def days_ago():
    """Factory for UTC timestamps relative to now."""

    def _days_ago(days: float):
        return utc_now() - timedelta(days=days)

    return _days_ago
