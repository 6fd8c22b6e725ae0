# tests/conftest.py
import warnings

import pytest

from fieldtrace.utils.config import reset_config, configure


@pytest.fixture(autouse=True)
def quiet_package_config():
    """Run every test with progress output off and restore defaults afterwards."""
    configure(show_progress=False, verbose=False)
    yield
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        reset_config()

