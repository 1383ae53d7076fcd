"""Unit tests for SQLite engine configuration."""

import pytest
from sqlalchemy import text

from milestone_tracker.db.database import (
    WRITE_TRANSACTION_OPTIONS,
    _is_sqlite_url,
    create_database_engine,
)
from milestone_tracker.db.models import User
from milestone_tracker.repositories.dependencies import build_sqlalchemy_container


@pytest.mark.unit
class TestSQLiteConfiguration:
    def test_url_detection(self):
        assert _is_sqlite_url("sqlite:///tracker.db") is True
        assert _is_sqlite_url("postgresql://localhost/tracker") is False

    def test_pragmas_applied(self, tmp_path):
        engine = create_database_engine(f"sqlite:///{tmp_path / 'pragmas.db'}")
        try:
            with engine.connect() as conn:
                assert conn.execute(text("PRAGMA journal_mode")).scalar().lower() == "wal"
                assert conn.execute(text("PRAGMA busy_timeout")).scalar() == 5000
                assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
        finally:
            engine.dispose()

    def test_reads_do_not_hold_write_lock(self, test_db, owner):
        """An open read transaction leaves the database free for a writer."""
        reader = test_db()
        writer = test_db()
        try:
            assert reader.get(User, owner.id) is not None
            assert reader.in_transaction()

            writer.connection(execution_options=WRITE_TRANSACTION_OPTIONS)
            writer.query(User).filter(User.id == owner.id).update(
                {User.notify_push: True}, synchronize_session=False
            )
            writer.commit()
        finally:
            reader.close()
            writer.close()

    async def test_begin_write_ends_read_transaction(self, db_session, owner):
        repos = build_sqlalchemy_container(db_session)
        await repos.user.get_by_id(owner.id)

        await repos.begin_write()
        await repos.user.update_settings(await repos.user.get_by_id(owner.id), {"notify_push": True})
        await repos.commit()

        assert not db_session.in_transaction()
