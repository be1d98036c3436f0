import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from autotester.config import AutotesterPaths


async def _no_sleep(seconds):
    return None


@pytest.fixture
def no_sleep():
    return _no_sleep


@pytest.fixture
def paths(tmp_path):
    return AutotesterPaths(root=str(tmp_path))
