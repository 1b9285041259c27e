from pathlib import Path
import sys

import pytest

# Ensure project root is on sys.path before tests import modules
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from components.metadatastore.adapters.sql import SqlMetadataStore  # noqa: E402
from components.metadatastore.engine import create_store_engine  # noqa: E402
from components.metadatastore.schema import create_schema  # noqa: E402


@pytest.fixture
def engine(tmp_path):
    # file-backed so every pooled connection (and thread) sees the same database
    eng = create_store_engine(f"sqlite:///{tmp_path / 'metadata.db'}", busy_timeout=30.0)
    create_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine):
    return SqlMetadataStore(engine)
