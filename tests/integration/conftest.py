import pytest
import structlog


@pytest.fixture(autouse=True)
def reset_structlog():
    """The CLI binds structlog to the stderr of the running test; undo that afterwards."""
    yield
    structlog.reset_defaults()
