import pytest

from core.logging_utils import close_backup_logging


@pytest.fixture(autouse=True)
def _reset_backup_logger():
    yield
    close_backup_logging()
