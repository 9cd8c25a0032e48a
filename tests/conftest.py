# tests/conftest.py

import pytest
from loguru import logger


@pytest.fixture
def log_records():
    """
    Collect loguru records emitted during a test.

    Returns a list of record dicts; use record["level"].name and
    record["message"] to inspect them.
    """
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)
