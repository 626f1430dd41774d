import os
import tempfile
import unittest
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from fansite.db import BackendUnavailable, PostgresDbClient, StorageError
from fansite.tests.contract import ConcurrentIncrementTests, StorageContractTests


class PostgresDbClientTests(StorageContractTests, unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the Postgres client logic.
    """

    def make_db(self):
        return PostgresDbClient("sqlite+pysqlite:///:memory:")

    def test_requires_database_url(self):
        with self.assertRaises(ValueError):
            PostgresDbClient("")

    def test_malformed_url_is_backend_unavailable(self):
        for url in ("not a url", "nosuchdialect://user@host/db"):
            with self.subTest(url=url):
                with self.assertRaises(BackendUnavailable):
                    PostgresDbClient(url)

    def test_unreachable_database_is_backend_unavailable(self):
        error = OperationalError("CREATE TABLE", {}, Exception("connection refused"))
        with patch("fansite.db.Base.metadata.create_all", side_effect=error):
            with self.assertRaises(BackendUnavailable):
                PostgresDbClient("sqlite+pysqlite:///:memory:")

    def test_missing_driver_is_backend_unavailable(self):
        with patch("fansite.db.create_engine", side_effect=ImportError("no psycopg2")):
            with self.assertRaises(BackendUnavailable):
                PostgresDbClient("postgresql://user@localhost/fansite")

    def test_driver_errors_become_storage_errors(self):
        error = OperationalError("SELECT", {}, Exception("server closed the connection"))
        with patch.object(self.db, "Session") as session_factory:
            session_factory.return_value.get.side_effect = error
            with self.assertRaises(StorageError):
                self.db.get_video(1)


class SharedFileDatabaseTests(ConcurrentIncrementTests, unittest.TestCase):
    """
    In-memory SQLite gives every thread its own database, so concurrency
    runs against a file shared by all pooled connections.
    """

    workers = 4

    def make_db(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        db = PostgresDbClient(
            "sqlite+pysqlite:///" + os.path.join(tmp.name, "fansite.db")
        )
        self.addCleanup(db.engine.dispose)
        return db


if __name__ == "__main__":
    unittest.main()
