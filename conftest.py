import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Ensure tests never pick up a developer's store tuning from the environment.
for name in list(os.environ):
    if name.startswith("RESOURCE_STORE_"):
        del os.environ[name]


@pytest.fixture(autouse=True)
def _reset_settings():
    from resource_store.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
