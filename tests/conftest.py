import pytest


@pytest.fixture
def sleeps():
    """Records requested pacing delays instead of sleeping."""
    return []
