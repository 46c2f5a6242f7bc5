"""Shared pytest fixtures for staybook tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_schema_capabilities():
    """Clear the process-wide schema capability cache around every test.

    Tests pin v2 or legacy payment ledgers with set_capabilities(); a value
    left over from one test would silently pick the wrong writer in the next.
    """
    from staybook.infra.schema import set_capabilities

    set_capabilities(None)
    yield
    set_capabilities(None)
