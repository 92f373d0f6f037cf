"""
Pytest configuration for STEM lab tests.

Puts the project root on sys.path, resets feature flags and routes the
class-level Logger into memory for every test.
"""

import os
import sys

import pytest

# Add project root to sys.path for imports
_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from stem_lab.config.feature_flags import FeatureFlags  # noqa: E402
from stem_lab.utils.logger.logger import Logger  # noqa: E402
from stem_lab.utils.logger.memory_strategy import MemoryLogStrategy  # noqa: E402


@pytest.fixture(autouse=True)
def reset_feature_flags():
    FeatureFlags.reset_defaults()
    yield
    FeatureFlags.reset_defaults()


@pytest.fixture(autouse=True)
def memory_log():
    """Capture log output in memory instead of the default log file."""
    previous_strategy = Logger.log_storage_strategy
    previous_enabled = Logger.is_logging_enabled
    storage = MemoryLogStrategy()
    Logger.set_log_storage_strategy(storage)
    Logger.enable_logging()
    yield storage
    Logger.set_log_storage_strategy(previous_strategy)
    Logger.is_logging_enabled = previous_enabled


class RecordingSink:
    """ActionSink double that remembers every reported action."""

    def __init__(self):
        self.actions = []

    def register_action(self, action_id):
        self.actions.append(action_id)


@pytest.fixture
def sink():
    return RecordingSink()
