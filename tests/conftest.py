import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)


@pytest.fixture(autouse=True)
def _isolate_singletons(monkeypatch):
    """Each test gets a fresh in-memory artifact store and dependency cache."""
    for key in ("MODELFORGE_ARTIFACT_STORE", "MODELFORGE_MODEL_PROVIDER", "MODELFORGE_DEFAULT_FILE_PATH"):
        monkeypatch.delenv(key, raising=False)

    from src.modelforge.api import dependencies
    from src.modelforge.infrastructure import artifact_store

    artifact_store.reset_artifact_store()
    dependencies.reset_dependencies()
    yield
    artifact_store.reset_artifact_store()
    dependencies.reset_dependencies()
