"""
End-to-end tests for the command line.

Presets point at DuckDB databases (in-memory or a temporary file), so no
network extensions are needed.
"""

import duckdb
import pytest

from sqlpeek import engine
from sqlpeek.cli import main, run_query
from sqlpeek.engine import fetch_result
from sqlpeek.errors import AllocationFailure, QueryFailure
from sqlpeek.profiles import DuckDBProfile


@pytest.fixture
def sales_db(tmp_path):
    """DuckDB file with a 25-row orders table and a 10-column wide table."""
    path = tmp_path / "sales.duckdb"
    con = duckdb.connect(str(path))
    con.execute(
        "CREATE TABLE orders AS "
        "SELECT i AS id, 'customer_' || i AS customer, i * 1.5 AS amount "
        "FROM range(1, 26) t(i)"
    )
    con.execute(
        "CREATE TABLE wide AS SELECT "
        + ", ".join(f"{i} AS col_{i}" for i in range(1, 11))
    )
    con.close()
    return path


@pytest.fixture
def presets(tmp_path, sales_db, monkeypatch):
    """Presets file registered through $SQLPEEK_CONFIG."""
    path = tmp_path / "presets.yaml"
    path.write_text(
        f"""
db_presets:
  - name: memory
    db_type: duckdb
  - name: sales
    db_type: duckdb
    path: "{sales_db}"
    read_only: true
  - name: missing
    db_type: duckdb
    path: "{tmp_path / 'does_not_exist.duckdb'}"
    read_only: true
""",
        encoding="utf-8",
    )
    monkeypatch.setenv("SQLPEEK_CONFIG", str(path))
    return path


def table_rows(report):
    return [
        [cell.strip() for cell in line.split("|")[1:-1]]
        for line in report.split("\n")
        if line.startswith("| ")
    ]


# =============================================================================
# Successful runs
# =============================================================================


class TestReport:
    def test_small_result(self, presets, capsys):
        """Test a small query prints the full table and summary."""
        code = main(["memory", "SELECT 1 AS id, 'ann' AS name"])
        out, err = capsys.readouterr()

        assert code == 0
        assert err == ""
        assert table_rows(out) == [["id", "name"], ["1", "ann"]]
        assert "Total number of rows: 1" in out
        assert "Size in memory: " in out
        assert "id (INT => int32)" in out
        assert "name (VARCHAR => str)" in out

    def test_long_result_is_elided(self, presets, capsys):
        """Test 25 rows render as the first 5, an elision row, the last 5."""
        code = main(["sales", "SELECT id FROM orders ORDER BY id"])
        out, _ = capsys.readouterr()

        assert code == 0
        body = [row[0] for row in table_rows(out)[1:]]
        assert body == ["1", "2", "3", "4", "5", "...", "21", "22", "23", "24", "25"]
        assert "Total number of rows: 25" in out
        assert "id (BIGINT => int64)" in out

    def test_wide_result_is_elided(self, presets, capsys):
        """Test 10 columns render with a marker and a full legend."""
        code = main(["sales", "SELECT * FROM wide"])
        out, _ = capsys.readouterr()

        assert code == 0
        assert table_rows(out)[0] == [
            "col_1",
            "col_2",
            "col_3",
            "<<+3 cols>>",
            "col_7",
            "col_8",
            "col_9",
            "col_10",
        ]
        for i in range(1, 11):
            assert f"col_{i} (INT => int32)" in out

    def test_null_values(self, presets, capsys):
        """Test NULL cells and the NULL column type."""
        code = main(["memory", "SELECT NULL AS nothing, 2 AS two"])
        out, _ = capsys.readouterr()

        assert code == 0
        assert table_rows(out)[1] == ["NULL", "2"]
        assert "nothing (NULL => void)" in out

    def test_statement_without_result(self, presets, capsys):
        """Test statements that return no relation render an empty report."""
        code = main(["memory", "CREATE TABLE t (a INTEGER)"])
        out, _ = capsys.readouterr()

        assert code == 0
        assert "Total number of rows: 0" in out

    def test_explicit_config_option(self, presets, tmp_path, monkeypatch, capsys):
        """Test --config overrides $SQLPEEK_CONFIG."""
        monkeypatch.setenv("SQLPEEK_CONFIG", str(tmp_path / "nowhere.yaml"))
        code = main(["--config", str(presets), "memory", "SELECT 42 AS answer"])
        out, _ = capsys.readouterr()

        assert code == 0
        assert "answer (INT => int32)" in out

    def test_run_query_returns_report(self, presets):
        """Test the orchestrator returns the rendered report."""
        report = run_query("memory", "SELECT 1.5 AS price")
        assert "price (DECIMAL => decimal)" in report
        assert report.endswith("\n")


# =============================================================================
# Failures
# =============================================================================


class TestFailures:
    def test_missing_argument(self, tmp_path, monkeypatch, capsys):
        """Test a missing positional is a usage error before any config I/O."""
        monkeypatch.setenv("SQLPEEK_CONFIG", str(tmp_path / "nowhere.yaml"))
        code = main(["memory"])
        out, err = capsys.readouterr()

        assert code == 2
        assert out == ""
        assert "usage:" in err
        assert "usage error" in err

    def test_extra_argument(self, tmp_path, monkeypatch, capsys):
        """Test an extra positional is a usage error."""
        monkeypatch.setenv("SQLPEEK_CONFIG", str(tmp_path / "nowhere.yaml"))
        code = main(["memory", "SELECT 1", "extra"])
        out, _ = capsys.readouterr()

        assert code == 2
        assert out == ""

    def test_missing_config(self, tmp_path, monkeypatch, capsys):
        """Test an unreadable presets file is a config error."""
        monkeypatch.setenv("SQLPEEK_CONFIG", str(tmp_path / "nowhere.yaml"))
        code = main(["memory", "SELECT 1"])
        out, err = capsys.readouterr()

        assert code == 3
        assert out == ""
        assert "config error" in err

    def test_unknown_preset(self, presets, capsys):
        """Test an unknown preset name is reported with the available ones."""
        code = main(["nope", "SELECT 1"])
        out, err = capsys.readouterr()

        assert code == 4
        assert out == ""
        assert "Preset not found: nope" in err
        assert "memory" in err

    def test_connection_failure(self, presets, capsys):
        """Test a database that cannot be opened is a connection error."""
        code = main(["missing", "SELECT 1"])
        out, err = capsys.readouterr()

        assert code == 5
        assert out == ""
        assert "connection error" in err

    def test_invalid_sql(self, presets, capsys):
        """Test a query the engine rejects is a query error with no table."""
        code = main(["memory", "SELEKT * FORM nowhere"])
        out, err = capsys.readouterr()

        assert code == 6
        assert out == ""
        assert "query error" in err

    def test_missing_table(self, presets, capsys):
        """Test a reference to an unknown table is a query error."""
        code = main(["sales", "SELECT * FROM nonexistent_table_xyz"])
        out, _ = capsys.readouterr()

        assert code == 6
        assert out == ""

    def test_run_query_raises(self, presets):
        """Test the orchestrator propagates typed failures."""
        with pytest.raises(QueryFailure):
            run_query("memory", "SELECT * FROM nonexistent_table_xyz")


# =============================================================================
# Out of memory
# =============================================================================


class ExhaustedRelation:
    columns = ["id"]
    types = ["BIGINT"]

    def fetchall(self):
        raise MemoryError


class ExhaustedConnection:
    """Connection whose every result is too large to fetch."""

    def sql(self, query):
        return ExhaustedRelation()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False


class TestAllocationFailure:
    def test_fetch_result_wraps_memory_error(self):
        """Test running out of memory while fetching is an AllocationFailure."""
        profile = DuckDBProfile(name="memory", db_type="duckdb")
        with pytest.raises(AllocationFailure, match="fetching"):
            fetch_result(ExhaustedConnection(), profile, "SELECT * FROM big")

    def test_exit_status(self, presets, monkeypatch, capsys):
        """Test an out of memory fetch exits with 7 and prints no table."""
        monkeypatch.setattr(engine, "connect", lambda profile: ExhaustedConnection())
        code = main(["memory", "SELECT * FROM big"])
        out, err = capsys.readouterr()

        assert code == 7
        assert out == ""
        assert "allocation error" in err
