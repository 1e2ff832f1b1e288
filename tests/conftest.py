"""
Shared test fixtures and configuration for pytest.
"""

import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bson import ObjectId  # noqa: E402

from backup.snapshot.codec import write_documents  # noqa: E402
from backup.snapshot.manifest import SnapshotManifest  # noqa: E402
from backup.store.memory_store import MemoryStore  # noqa: E402


logger = logging.getLogger(__name__)


# ============================================================================
# Environment detection
# ============================================================================

def mongodb_test_uri():
    """URI of a disposable MongoDB database for integration tests, if any."""
    return os.environ.get("BACKUP_TEST_MONGODB_URI")


def is_mongodb_available() -> bool:
    """Check if MongoDB is available for testing."""
    uri = mongodb_test_uri()
    if not uri:
        return False

    try:
        from pymongo import MongoClient

        client = MongoClient(uri, serverSelectionTimeoutMS=2000)
        client.admin.command("ping")
        client.close()
        return True

    except Exception as e:
        logger.debug(f"MongoDB not available: {e}")
        return False


# ============================================================================
# Pytest hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (requires MongoDB)")


def pytest_collection_modifyitems(config, items):
    """Automatically skip integration tests if MongoDB is not available."""
    if not any("integration" in item.keywords for item in items):
        return
    if is_mongodb_available():
        return

    skip_mongodb = pytest.mark.skip(
        reason="MongoDB not available (set BACKUP_TEST_MONGODB_URI to a disposable database)"
    )

    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_mongodb)


# ============================================================================
# Fixtures
# ============================================================================

USER_ID = ObjectId("656f1c2e8b3e4a0012a1b001")
ACCOUNT_ID = ObjectId("656f1c2e8b3e4a0012a1b101")


@pytest.fixture
def sample_documents():
    """A small, cross-referencing expenses-tracker dataset."""
    created = datetime(2025, 11, 29, 19, 40, tzinfo=timezone.utc)
    return {
        "users": [
            {"_id": USER_ID, "name": "Asha", "email": "asha@example.com", "createdAt": created},
        ],
        "bankaccounts": [
            {
                "_id": ACCOUNT_ID,
                "userId": USER_ID,
                "bankName": "State Bank",
                "balance": 15250.75,
                "createdAt": created,
            },
        ],
        "transactions": [
            {
                "_id": ObjectId("656f1c2e8b3e4a0012a1b201"),
                "userId": USER_ID,
                "accountId": ACCOUNT_ID,
                "type": "expense",
                "amount": 499,
                "category": "Groceries",
                "tags": ["food", "weekly"],
                "date": created,
            },
            {
                "_id": ObjectId("656f1c2e8b3e4a0012a1b202"),
                "userId": USER_ID,
                "accountId": ACCOUNT_ID,
                "type": "income",
                "amount": 85000,
                "category": "Salary",
                "tags": [],
                "date": created,
            },
        ],
    }


@pytest.fixture
def memory_store(sample_documents):
    """MemoryStore pre-loaded with the sample dataset."""
    return MemoryStore(sample_documents)


@pytest.fixture
def backups_dir(tmp_path):
    path = tmp_path / "backups"
    path.mkdir()
    return path


@pytest.fixture
def make_snapshot(backups_dir):
    """
    Factory writing a snapshot directory.

    Usage: make_snapshot("backup-...", {"users": [...]}, manifest=True)
    """

    def _make(name, collections, manifest=True, raw_files=None):
        snapshot_dir = backups_dir / name
        snapshot_dir.mkdir()
        for collection, documents in collections.items():
            write_documents(snapshot_dir / f"{collection}.json", documents)
        for file_name, text in (raw_files or {}).items():
            (snapshot_dir / file_name).write_text(text, encoding="utf-8")
        if manifest:
            SnapshotManifest.create(
                timestamp=name.replace("backup-", ""),
                counts={k: len(v) for k, v in collections.items()},
            ).save(snapshot_dir / "metadata.json")
        return snapshot_dir

    return _make


@pytest.fixture(autouse=True)
def reset_backup_logger():
    """Drop handlers installed by configure_logging between tests."""
    yield
    package_logger = logging.getLogger("backup")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def mongo_store():
    """
    MongoStore connected to the disposable test database.

    Every registry collection is dropped before and after the test.
    """
    from backup.collections import collection_names
    from backup.store.mongo_store import MongoStore

    store = MongoStore(
        mongodb_test_uri(),
        database=os.environ.get("BACKUP_TEST_MONGODB_DATABASE", "expenses_backup_test"),
        server_selection_timeout_ms=2000,
    )

    def drop_all():
        for name in collection_names():
            store.db.drop_collection(name)

    drop_all()
    yield store
    drop_all()
    store.close()
