import sys
from pathlib import Path

import pytest


def _ensure_local_backend_on_path() -> None:
    root_dir = Path(__file__).resolve().parents[1]
    if str(root_dir) not in sys.path:
        sys.path.insert(0, str(root_dir))


_ensure_local_backend_on_path()


@pytest.fixture(autouse=True)
def _fresh_dependencies():
    from linguabundle.api.deps import reset_dependencies
    from linguabundle.core.config import get_settings

    get_settings.cache_clear()
    reset_dependencies()
    yield
    get_settings.cache_clear()
    reset_dependencies()
