"""Root conftest — shared test configuration.

Invariants:
    - Every test starts with the process-wide secret set to "secret"
    - Programmatic configuration is reset after each test (no leakage between tests)
"""

import os

import pytest

from stateless_records.config import configure, reset_configuration

# Ensure tests never pick up a real secret from the environment
os.environ.pop("STATELESS_RECORDS_SECRET", None)


@pytest.fixture(autouse=True)
def configured_secret():
    configure(secret="secret")
    yield "secret"
    reset_configuration()
