"""Tests for CLI commands."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest
from typer.testing import CliRunner, Result

from benchledger import __version__
from benchledger.cli.main import app

# Disable color output to avoid ANSI escape codes in test assertions
os.environ["NO_COLOR"] = "1"
os.environ["TERM"] = "dumb"

runner = CliRunner()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("STORE_PATH", "CONFIG_PATH", "REPO_URL", "LOG_LEVEL"):
        monkeypatch.delenv(f"BENCHLEDGER_{var}", raising=False)


@pytest.fixture
def store(tmp_path: Path) -> Path:
    return tmp_path / "dev" / "bench" / "data.js"


def _write_output(tmp_path: Path, value: int, name: str = "output.txt") -> Path:
    path = tmp_path / name
    path.write_text(
        f"running 2 tests\ntest fib ... bench: {value} ns/iter (+/- 5)\ntest parse ... bench: 50 ns/iter (+/- 1)\n"
    )
    return path


def _ingest(
    store: Path,
    output: Path,
    commit_id: str,
    date: int,
    *,
    global_opts: tuple[str, ...] = (),
    cmd_opts: tuple[str, ...] = (),
) -> Result:
    return runner.invoke(
        app,
        [
            "--store",
            str(store),
            "--log-level",
            "ERROR",
            *global_opts,
            "ingest",
            str(output),
            "--tool",
            "cargo",
            "--commit-id",
            commit_id,
            "--date",
            str(date),
            *cmd_opts,
        ],
    )


class TestVersionCommand:
    """Tests for version command."""

    def test_version_command(self) -> None:
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_version_flag(self) -> None:
        """--version flag shows version and exits."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestIngestCommand:
    """Tests for ingest command."""

    def test_requires_commit(self, tmp_path: Path, store: Path) -> None:
        output = _write_output(tmp_path, 100)
        result = runner.invoke(app, ["--store", str(store), "ingest", str(output), "--tool", "cargo"])

        assert result.exit_code == 1
        assert "Either --commit or --commit-id is required" in result.output
        assert not store.exists()

    def test_ingest_writes_store(self, tmp_path: Path, store: Path) -> None:
        result = _ingest(store, _write_output(tmp_path, 100), "a1", 1000)

        assert result.exit_code == 0, result.output
        assert "No regressions detected" in result.stdout
        assert store.read_text().startswith("window.BENCHMARK_DATA = ")

    def test_ingest_json(self, tmp_path: Path, store: Path) -> None:
        _ingest(store, _write_output(tmp_path, 100), "a1", 1000)
        result = _ingest(store, _write_output(tmp_path, 160), "b2", 2000, global_opts=("--json",))

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["commit"] == "b2"
        assert data["alerts"] == []

    def test_fail_on_alert(self, tmp_path: Path, store: Path) -> None:
        """A 2x slowdown is critical with the default threshold."""
        _ingest(store, _write_output(tmp_path, 100), "a1", 1000)
        result = _ingest(
            store,
            _write_output(tmp_path, 250),
            "b2",
            2000,
            global_opts=("--no-color",),
            cmd_opts=("--fail-on-alert",),
        )

        assert result.exit_code == 1
        assert "fib is 2.50x worse" in result.output
        assert "1 performance regression(s) detected" in result.output

    def test_alert_without_fail_flag_succeeds(self, tmp_path: Path, store: Path) -> None:
        _ingest(store, _write_output(tmp_path, 100), "a1", 1000)
        result = _ingest(store, _write_output(tmp_path, 250), "b2", 2000)

        assert result.exit_code == 0

    def test_threshold_from_config(self, tmp_path: Path, store: Path) -> None:
        config = tmp_path / "benchledger.yaml"
        config.write_text("regressionThreshold:\n  cargo: 0.5\n")
        _ingest(store, _write_output(tmp_path, 100), "a1", 1000)

        result = runner.invoke(
            app,
            ["--store", str(store), "--config", str(config), "--json", "ingest", str(_write_output(tmp_path, 160)),
             "-t", "cargo", "--commit-id", "b2", "--date", "2000"],
        )

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["alerts"][0]["ratio"] == pytest.approx(1.6)

    def test_invalid_config(self, tmp_path: Path, store: Path) -> None:
        config = tmp_path / "bad.yaml"
        config.write_text("retentionCap: 0\n")

        result = runner.invoke(app, ["--store", str(store), "--config", str(config), "tools"])

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_summary_file(self, tmp_path: Path, store: Path) -> None:
        summary = tmp_path / "summary.md"
        _ingest(store, _write_output(tmp_path, 100), "a1", 1000)
        result = _ingest(store, _write_output(tmp_path, 250), "b2", 2000, cmd_opts=("--summary", str(summary)))

        assert result.exit_code == 0
        assert "Performance Alert" in summary.read_text()

    def test_commit_file_push_event(self, tmp_path: Path, store: Path) -> None:
        event = tmp_path / "event.json"
        event.write_text(
            json.dumps(
                {
                    "head_commit": {
                        "id": "dc95b590c78f",
                        "message": "Add benchmarks",
                        "url": "https://github.com/o/r/commit/dc95b590c78f",
                        "author": {"name": "A", "email": "a@example.com", "username": "a"},
                    }
                }
            )
        )
        output = _write_output(tmp_path, 100)
        result = runner.invoke(
            app,
            ["--store", str(store), "--log-level", "ERROR", "ingest", str(output), "-t", "cargo", "--commit", str(event)],
        )

        assert result.exit_code == 0, result.output
        data = json.loads(store.read_text()[len("window.BENCHMARK_DATA = ") :])
        commit = data["entries"]["cargo"][0]["commit"]
        assert commit["id"] == "dc95b590c78f"
        assert commit["author"]["username"] == "a"

    def test_parse_error(self, tmp_path: Path, store: Path) -> None:
        output = tmp_path / "garbage.txt"
        output.write_text("nothing useful\n")

        result = _ingest(store, output, "a1", 1000)

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert not store.exists()

    def test_out_of_order(self, tmp_path: Path, store: Path) -> None:
        _ingest(store, _write_output(tmp_path, 100), "a1", 2000)
        result = _ingest(store, _write_output(tmp_path, 100), "b2", 1000)

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_reads_stdin(self, store: Path) -> None:
        result = runner.invoke(
            app,
            ["--store", str(store), "--log-level", "ERROR", "ingest", "-", "-t", "cargo", "--commit-id", "a1"],
            input="test fib ... bench: 100 ns/iter (+/- 5)\n",
        )

        assert result.exit_code == 0, result.output
        assert "fib" in store.read_text()


class TestIngestRequestCommand:
    """Tests for ingest-request command."""

    def test_ingest_request(self, tmp_path: Path, store: Path) -> None:
        request = tmp_path / "request.json"
        request.write_text(
            json.dumps(
                {
                    "repoUrl": "https://github.com/o/r",
                    "tool": "customBiggerIsBetter",
                    "commit": {"id": "a1"},
                    "date": 1000,
                    "benches": [{"name": "throughput", "value": 900, "unit": "ops/s"}],
                }
            )
        )

        result = runner.invoke(app, ["--store", str(store), "--json", "ingest-request", str(request)])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["tool"] == "customBiggerIsBetter"

    def test_invalid_request(self, tmp_path: Path, store: Path) -> None:
        request = tmp_path / "request.json"
        request.write_text(json.dumps({"tool": "cargo"}))

        result = runner.invoke(app, ["--store", str(store), "ingest-request", str(request)])

        assert result.exit_code == 1
        assert "invalid ingest request" in result.output


class TestQueryCommands:
    """Tests for series, latest, alerts and tools."""

    @pytest.fixture
    def populated(self, tmp_path: Path, store: Path) -> Path:
        _ingest(store, _write_output(tmp_path, 100), "a1", 1000)
        _ingest(store, _write_output(tmp_path, 250), "b2", 2000)
        return store

    def test_tools_empty(self, store: Path) -> None:
        result = runner.invoke(app, ["--store", str(store), "tools"])

        assert result.exit_code == 0
        assert "No ledgers recorded yet." in result.stdout

    def test_tools(self, populated: Path) -> None:
        result = runner.invoke(app, ["--store", str(populated), "--json", "tools"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == ["cargo"]

    def test_series(self, populated: Path) -> None:
        result = runner.invoke(app, ["--store", str(populated), "--json", "series", "cargo", "fib"])

        assert result.exit_code == 0
        series = json.loads(result.stdout)["series"]
        assert [(p["date"], p["value"], p["range"]) for p in series] == [(1000, 100, 5), (2000, 250, 5)]

    def test_series_console(self, populated: Path) -> None:
        result = runner.invoke(app, ["--store", str(populated), "series", "cargo", "fib"])

        assert result.exit_code == 0
        assert "250 ns/iter ± 5" in result.stdout

    def test_latest(self, populated: Path) -> None:
        result = runner.invoke(app, ["--store", str(populated), "--json", "latest", "cargo", "-n", "2"])

        assert result.exit_code == 0
        assert [e["commit"]["id"] for e in json.loads(result.stdout)] == ["b2", "a1"]

    def test_alerts(self, populated: Path) -> None:
        result = runner.invoke(app, ["--store", str(populated), "--json", "alerts", "cargo", "b2"])

        assert result.exit_code == 0
        [alert] = json.loads(result.stdout)
        assert alert["name"] == "fib"
        assert alert["baselineCommitId"] == "a1"

    def test_alerts_console(self, populated: Path) -> None:
        result = runner.invoke(app, ["--store", str(populated), "alerts", "cargo", "b2"])

        assert result.exit_code == 0
        assert "[CRITICAL] fib is 2.50x worse" in result.stdout

    def test_unknown_ledger(self, populated: Path) -> None:
        result = runner.invoke(app, ["--store", str(populated), "latest", "go"])

        assert result.exit_code == 1
        assert "Error:" in result.output
