import copy
import os

os.environ.setdefault("LOG_TO_FILE", "0")

import pytest

from r2bot.config import DEFAULT_SETTINGS


@pytest.fixture
def settings():
    return copy.deepcopy(DEFAULT_SETTINGS)
