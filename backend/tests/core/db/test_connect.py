"""Unit tests for core.db.connect: connect, execute, cursor_to_dicts, run_query, PooledConnection."""

import logging
from unittest.mock import MagicMock, patch

import pytest
from psycopg._queries import PostgresQuery
from psycopg.adapt import Transformer

from dashboard.core.config import Settings
from dashboard.core.db import ClosedError, PooledConnection, QueryError, QueryResult
from dashboard.core.db.connect import (
    SET_TIMEOUT_SQL,
    connect,
    cursor_to_dicts,
    execute,
    run_query,
    timeout_ms,
)
from tests.utils.fake_db import FakeConnection, FakeDriverError


@patch("dashboard.core.db.connect.psycopg")
def test_connect_uses_db_settings(mock_psycopg: MagicMock) -> None:
    cfg = Settings(
        DB_HOST="db.internal",
        DB_PORT=6543,
        DB_USER="reader",
        DB_PASSWORD="secret",
        DB_NAME="analytics",
        DB_CONNECTION_TIMEOUT=2.5,
    )
    conn = connect(cfg)

    assert conn is mock_psycopg.connect.return_value
    mock_psycopg.connect.assert_called_once_with(
        host="db.internal",
        port=6543,
        user="reader",
        password="secret",
        dbname="analytics",
        connect_timeout=3,
        autocommit=True,
    )


def test_execute_without_params() -> None:
    conn = FakeConnection()
    cur = execute(conn, "SELECT 1 AS n")
    assert conn.statements == [("SELECT 1 AS n", None)]
    assert cursor_to_dicts(cur) == [{"n": 1}]


def test_execute_applies_statement_timeout() -> None:
    """With timeout, execute() sets statement_timeout before the query and resets it after."""
    conn = FakeConnection()
    execute(conn, "SELECT 1 AS n", (1,), timeout=5)

    assert conn.statements[0] == (
        "SELECT set_config('statement_timeout', %s, false)",
        ("5000",),
    )
    assert conn.statements[1] == ("SELECT 1 AS n", (1,))
    assert conn.statements[2] == ("RESET statement_timeout", None)


def test_execute_resets_timeout_when_statement_fails() -> None:
    conn = FakeConnection(fail_on=lambda sql: sql.startswith("UPDATE"))
    with pytest.raises(FakeDriverError):
        execute(conn, "UPDATE t SET a = 1", timeout=1)
    assert conn.sql[-1] == "RESET statement_timeout"


def test_execute_sub_millisecond_timeout_still_limits() -> None:
    """A tiny positive timeout must not become 0, which PostgreSQL reads as no limit."""
    conn = FakeConnection()
    execute(conn, "SELECT 1 AS n", timeout=0.0001)
    assert conn.statements[0][1] == ("1",)


@pytest.mark.parametrize(
    "seconds, expected",
    [(0.0001, 1), (0.001, 1), (0.0015, 2), (0.5, 500), (5, 5000)],
)
def test_timeout_ms_rounds_up(seconds: float, expected: int) -> None:
    assert timeout_ms(seconds) == expected


def test_timeout_statement_binds_as_function_argument() -> None:
    """psycopg binds server-side ($1); the parameter must land in a function call, not in SET."""
    pg_query = PostgresQuery(Transformer())
    pg_query.convert(SET_TIMEOUT_SQL, ("5000",))

    assert pg_query.query == b"SELECT set_config('statement_timeout', $1, false)"
    assert [bytes(p) for p in pg_query.params] == [b"5000"]


def test_cursor_to_dicts_without_description() -> None:
    cur = MagicMock()
    cur.description = None
    assert cursor_to_dicts(cur) == []


def test_run_query_select_result() -> None:
    conn = FakeConnection(rows=[{"id": 1, "name": "a"}, {"id": 2, "name": "b"}])
    result = run_query(conn, "  select id, name from campaigns", None)

    assert isinstance(result, QueryResult)
    assert result.rows == ({"id": 1, "name": "a"}, {"id": 2, "name": "b"})
    assert result.row_count == len(result.rows) == 2
    assert result.command == "SELECT"
    assert result.affected_rows == 0


def test_run_query_rows_are_read_only() -> None:
    conn = FakeConnection(rows=[{"id": 1}])
    result = run_query(conn, "SELECT id FROM campaigns")

    with pytest.raises(TypeError):
        result.rows[0]["id"] = 2  # type: ignore[index]
    assert result.rows[0]["id"] == 1
    assert dict(result.rows[0]) == {"id": 1}


def test_run_query_dml_reports_affected_rows() -> None:
    conn = FakeConnection(dml_rowcount=3)
    result = run_query(conn, "DELETE FROM events WHERE id < %s", (10,))

    assert result.rows == ()
    assert result.row_count == 0
    assert result.command == "DELETE"
    assert result.affected_rows == 3


def test_run_query_logs_timing_record(caplog: pytest.LogCaptureFixture) -> None:
    conn = FakeConnection()
    with caplog.at_level(logging.INFO, logger="dashboard.core.db.connect"):
        run_query(conn, "SELECT 1 AS n")

    records = [r for r in caplog.records if r.getMessage().startswith("Executed query")]
    assert len(records) == 1
    assert records[0].levelno == logging.INFO
    assert records[0].db_statement == "SELECT 1 AS n"
    assert records[0].db_rows == 1
    assert records[0].db_duration_ms >= 0


def test_run_query_wraps_driver_error() -> None:
    conn = FakeConnection(fail_on=lambda sql: True)
    params = {"campaign_id": "abc"}

    with pytest.raises(QueryError) as exc_info:
        run_query(conn, "SELECT * FROM campaigns WHERE id = %(campaign_id)s", params)

    err = exc_info.value
    assert err.text == "SELECT * FROM campaigns WHERE id = %(campaign_id)s"
    assert err.params is params
    assert isinstance(err.cause, FakeDriverError)
    assert err.__cause__ is err.cause


def test_run_query_error_log_is_truncated(caplog: pytest.LogCaptureFixture) -> None:
    conn = FakeConnection(fail_on=lambda sql: True)
    long_sql = "SELECT " + ", ".join(f"col_{i}" for i in range(200)) + " FROM t"
    long_params = ["x" * 500]

    with caplog.at_level(logging.ERROR, logger="dashboard.core.db.connect"):
        with pytest.raises(QueryError) as exc_info:
            run_query(conn, long_sql, long_params)

    record = next(r for r in caplog.records if r.getMessage().startswith("Query error"))
    assert len(record.db_statement) <= 103
    assert len(record.db_params) <= 103
    assert long_sql not in record.getMessage()
    # the exception still carries the full statement
    assert exc_info.value.text == long_sql
    assert long_sql not in str(exc_info.value)


def test_pooled_connection_query_and_raw() -> None:
    raw = FakeConnection()
    handle = PooledConnection(raw)
    assert handle.raw is raw
    assert handle.query("SELECT 1 AS n").rows == ({"n": 1},)


def test_pooled_connection_unusable_after_invalidate() -> None:
    handle = PooledConnection(FakeConnection())
    handle.invalidate()
    with pytest.raises(ClosedError):
        handle.query("SELECT 1")
    with pytest.raises(ClosedError):
        _ = handle.raw


def test_pooled_connection_mark_broken() -> None:
    handle = PooledConnection(FakeConnection())
    assert handle.broken is False
    handle.mark_broken()
    assert handle.broken is True
