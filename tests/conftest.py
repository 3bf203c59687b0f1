# Test configuration

import pytest
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")


@pytest.fixture
def test_settings():
    """Override settings for testing"""
    from jsonlite.config.settings import Settings
    return Settings(
        database_url="sqlite://",
        table_name="records",
        queue_capacity=8,
        queue_poll_interval=0.01,
        json_logs=False,
    )


@pytest.fixture
def runner(test_settings):
    """Query runner backed by a fresh in-memory database"""
    from jsonlite.runner import QueryRunner
    query_runner = QueryRunner(settings=test_settings)
    yield query_runner
    query_runner.close()


@pytest.fixture
def logs_path():
    return os.path.join(FIXTURES_DIR, "logs.json")
