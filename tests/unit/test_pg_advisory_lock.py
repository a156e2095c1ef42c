"""
Tests unitarios para pg_advisory_lock.py (sin servidor Postgres).

Se reemplaza `connect` por una conexión falsa que responde a
pg_try_advisory_lock / pg_advisory_unlock.
"""
from __future__ import annotations

from typing import List, Optional

import pytest

psycopg = pytest.importorskip("psycopg")

from record_sync.infrastructure.locking.pg_advisory_lock import (  # noqa: E402
    PostgresAdvisoryLock,
    PostgresAdvisoryLockProvider,
    normalize_psycopg_dsn,
    stable_lock_key,
)
from record_sync.shared.exceptions.sync import TransientError  # noqa: E402


class FakeCursor:
    def __init__(self, conn: "FakeConnection"):
        self._conn = conn
        self._row: Optional[dict] = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql: str, params=None) -> None:
        self._conn.executed.append((sql, params))
        if self._conn.fail_with is not None:
            raise self._conn.fail_with
        if "pg_try_advisory_lock" in sql:
            ok = self._conn.grants.pop(0) if self._conn.grants else False
            self._row = {"locked": ok}
        elif "pg_advisory_unlock" in sql:
            self._row = {"unlocked": True}

    def fetchone(self):
        return self._row


class FakeConnection:
    def __init__(self, grants: List[bool], fail_with: Optional[Exception] = None):
        self.grants = list(grants)
        self.fail_with = fail_with
        self.executed: list = []
        self.closed = False

    def cursor(self):
        return FakeCursor(self)

    def close(self) -> None:
        self.closed = True


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds


def _lock(conn: FakeConnection, clock: FakeClock) -> PostgresAdvisoryLock:
    return PostgresAdvisoryLock(
        "postgresql://u:p@localhost/db",
        "transfer",
        poll_interval=0.1,
        connect=lambda dsn, **kwargs: conn,
        sleep=clock.sleep,
        clock=clock,
    )


class TestHelpers:
    def test_stable_lock_key_is_deterministic_and_signed_bigint(self) -> None:
        key = stable_lock_key("record_sync", "transfer")

        assert key == stable_lock_key("record_sync", "transfer")
        assert key != stable_lock_key("record_sync", "framing")
        assert -(2**63) <= key < 2**63

    def test_normalize_dsn(self) -> None:
        assert normalize_psycopg_dsn("postgresql+psycopg://u:p@h:5432/db") == "postgresql://u:p@h:5432/db"
        assert normalize_psycopg_dsn("postgresql://u@h/db") == "postgresql://u@h/db"
        assert normalize_psycopg_dsn("dbname=test") == "dbname=test"


class TestPostgresAdvisoryLock:
    def test_acquire_first_try_keeps_connection_open(self) -> None:
        conn, clock = FakeConnection([True]), FakeClock()
        lock = _lock(conn, clock)

        assert lock.try_acquire(2.5) is True
        assert conn.closed is False

        lock.release()
        assert conn.closed is True
        assert "pg_advisory_unlock" in conn.executed[-1][0]
        assert conn.executed[-1][1] == (lock.key,)

    def test_polls_until_granted(self) -> None:
        conn, clock = FakeConnection([False, False, True]), FakeClock()

        assert _lock(conn, clock).try_acquire(2.5) is True
        assert clock.now == pytest.approx(0.2)

    def test_timeout_closes_connection(self) -> None:
        conn, clock = FakeConnection([False] * 100), FakeClock()

        assert _lock(conn, clock).try_acquire(0.3) is False
        assert conn.closed is True

    def test_database_error_is_transient(self) -> None:
        conn, clock = FakeConnection([], fail_with=psycopg.OperationalError("server closed")), FakeClock()

        with pytest.raises(TransientError):
            _lock(conn, clock).try_acquire(1.0)
        assert conn.closed is True

    def test_release_without_acquire_is_noop(self) -> None:
        conn, clock = FakeConnection([]), FakeClock()

        _lock(conn, clock).release()

        assert conn.executed == []

    def test_provider_normalizes_dsn(self) -> None:
        provider = PostgresAdvisoryLockProvider("postgresql+psycopg://u:p@h/db")

        lock = provider.get_lock("framing")

        assert lock.name == "framing"
        assert lock._dsn == "postgresql://u:p@h/db"
