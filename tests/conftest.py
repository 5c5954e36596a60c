"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for FeedWorker tests.

- Session-scoped database schema, cleared between tests
- Persisted user/feed factories
- Sample feed documents served by the local HTTP test server
"""

import pytest
import tempfile
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
os.environ["FEEDWORKER_DEBUG"] = "true"
os.environ["FEEDWORKER_LOGGING__FILE_PATH"] = ""


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="session")
def session_test_db():
    """Session-scoped test database (created once for all tests).

    Database name: feedworker_test.db (easier to inspect/debug)
    """
    from feedworker.database.schema import DatabaseSchema

    test_dir = Path(tempfile.gettempdir()) / "feedworker_tests"
    test_dir.mkdir(exist_ok=True)
    db_path = test_dir / "feedworker_test.db"

    if db_path.exists():
        db_path.unlink()

    schema = DatabaseSchema(str(db_path))
    schema.create_tables()

    yield str(db_path)

    try:
        db_path.unlink()
    except FileNotFoundError:
        pass


@pytest.fixture
def clean_db(session_test_db):
    """Clean database fixture (clears data between tests).

    Returns:
        str: Path to clean database ready for testing
    """
    from feedworker.database.connection import DatabaseConnection

    conn = DatabaseConnection(session_test_db, pool_size=2)

    with conn.transaction() as db:
        # Order matters for foreign keys
        db.execute("DELETE FROM posts")
        db.execute("DELETE FROM feeds")
        db.execute("DELETE FROM users")

    conn.close_all_connections()

    yield session_test_db


@pytest.fixture
def temp_db():
    """Fresh database file with schema, for tests that need their own file."""
    from feedworker.database.schema import DatabaseSchema

    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    DatabaseSchema(db_path).create_tables()

    yield db_path

    for suffix in ("", "-wal", "-shm"):
        try:
            os.unlink(db_path + suffix)
        except FileNotFoundError:
            pass


@pytest.fixture
def db_connection(clean_db):
    """Create a database connection manager for testing."""
    from feedworker.database.connection import DatabaseConnection

    connection = DatabaseConnection(clean_db, pool_size=2)
    yield connection

    connection.close_all_connections()


@pytest.fixture
def store(db_connection):
    """SQLite-backed feed store over the clean test database."""
    from feedworker.storage.feed_store import SQLiteFeedStore

    return SQLiteFeedStore(db_connection)


# ============================================================================
# Record Fixtures
# ============================================================================


@pytest.fixture
def sample_user(db_connection):
    """Persisted feed owner."""
    from feedworker.database.models import User
    from feedworker.storage.user_repository import UserRepository

    return UserRepository(db_connection).create_user(User(name="Test User"))


@pytest.fixture
def make_feed(db_connection, sample_user):
    """Factory persisting a feed owned by the sample user.

    Feeds created in sequence get strictly increasing creation times.
    """
    from feedworker.database.models import Feed
    from feedworker.storage.feed_repository import FeedRepository

    repo = FeedRepository(db_connection)
    base_time = datetime(2024, 1, 1, tzinfo=timezone.utc)
    created = []

    def _make_feed(name=None, url=None, last_fetched_at=None):
        index = len(created)
        feed = Feed(
            name=name or f"Feed {index}",
            url=url or f"https://example.com/feed{index}.xml",
            user_id=sample_user.id,
            last_fetched_at=last_fetched_at,
            created_at=base_time + timedelta(minutes=index),
            updated_at=base_time + timedelta(minutes=index),
        )
        created.append(repo.create_feed(feed))
        return created[-1]

    return _make_feed


# ============================================================================
# Feed Documents
# ============================================================================


SAMPLE_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Example Feed</title>
    <link>https://example.com/</link>
    <description>Example feed for tests</description>
    <item>
      <title>First Post</title>
      <link>https://example.com/posts/1</link>
      <description>First description</description>
      <pubDate>Mon, 02 Jan 2006 15:04:05 -0700</pubDate>
    </item>
    <item>
      <title>Second Post</title>
      <link>https://example.com/posts/2</link>
      <description>Second description</description>
      <pubDate>Tue, 03 Jan 2006 10:00:00 +0000</pubDate>
    </item>
  </channel>
</rss>
"""

SAMPLE_ATOM = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Example Atom</title>
  <id>urn:uuid:60a76c80-d399-11d9-b93c-0003939e0af6</id>
  <updated>2024-01-02T10:00:00Z</updated>
  <entry>
    <title>Atom Entry</title>
    <link href="https://example.com/atom/1"/>
    <id>urn:uuid:1225c695-cfb8-4ebb-aaaa-80da344efa6a</id>
    <updated>2024-01-02T10:00:00Z</updated>
    <summary>Atom summary</summary>
  </entry>
</feed>
"""

EMPTY_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Empty Feed</title>
    <link>https://example.com/</link>
    <description>No items yet</description>
  </channel>
</rss>
"""


@pytest.fixture
def sample_rss():
    return SAMPLE_RSS


@pytest.fixture
def sample_atom():
    return SAMPLE_ATOM


@pytest.fixture
def empty_rss():
    return EMPTY_RSS
