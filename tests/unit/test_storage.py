"""Unit tests for the history store backends."""

from __future__ import annotations

import asyncio
import json
import os
import shutil
import subprocess
import sys
from pathlib import Path

import pytest

from benchledger.benchmarks import JSONFileStore, Ledger, StorageProtocol, Store, StoreLock
from benchledger.benchmarks.models import BenchResult, CommitInfo, Entry
from benchledger.benchmarks.storage.json_store import JS_PREFIX
from benchledger.core.exceptions import (
    LedgerNotFoundError,
    LoadError,
    PersistenceError,
    RetryableError,
    StoreLockedError,
)

FIXTURES = Path(__file__).parent.parent / "fixtures"

# ============================================================================
# Fixtures
# ============================================================================


def _entry(commit_id: str, date: int, value: float = 100.0) -> Entry:
    return Entry(
        commit=CommitInfo(id=commit_id, message=f"commit {commit_id}"),
        date=date,
        tool="cargo",
        benches=(BenchResult(name="fib", value=value, range_value=5, unit="ns/iter", range_text="± 5"),),
    )


@pytest.fixture
def sample_store() -> Store:
    return Store(
        repo_url="https://github.com/o/r",
        ledgers={"cargo": Ledger(tool="cargo", entries=[_entry("c1", 1000), _entry("c2", 2000, 110)])},
    )


@pytest.fixture
def js_store(tmp_path: Path) -> JSONFileStore:
    """Create a JSONFileStore writing the dashboard script layout."""
    return JSONFileStore(tmp_path / "dev" / "bench" / "data.js", repo_url="https://github.com/o/r")


@pytest.fixture
def json_store(tmp_path: Path) -> JSONFileStore:
    """Create a JSONFileStore writing plain JSON."""
    return JSONFileStore(tmp_path / "benchmarks.json")


# ============================================================================
# JSONFileStore
# ============================================================================


class TestJSONFileStore:
    """Tests for JSONFileStore."""

    def test_implements_protocol(self, json_store: JSONFileStore) -> None:
        assert isinstance(json_store, StorageProtocol)

    @pytest.mark.asyncio
    async def test_load_missing_file(self, js_store: JSONFileStore) -> None:
        """A missing file is an empty history seeded with the repository URL."""
        store = await js_store.load()

        assert store.ledgers == {}
        assert store.repo_url == "https://github.com/o/r"

    @pytest.mark.asyncio
    async def test_empty_file_raises(self, json_store: JSONFileStore) -> None:
        """A truncated store is not mistaken for an empty history."""
        json_store.path.write_text("")
        with pytest.raises(LoadError, match="empty"):
            await json_store.load()

    @pytest.mark.asyncio
    async def test_round_trip_js(self, js_store: JSONFileStore, sample_store: Store) -> None:
        await js_store.save(sample_store)
        loaded = await js_store.load()

        assert loaded.to_dict() == sample_store.to_dict()

    @pytest.mark.asyncio
    async def test_js_layout(self, js_store: JSONFileStore, sample_store: Store) -> None:
        """The .js file assigns the store to window.BENCHMARK_DATA."""
        await js_store.save(sample_store)
        content = js_store.path.read_text(encoding="utf-8")

        assert content.startswith(JS_PREFIX + "{\n")
        assert not content.endswith("\n")
        data = json.loads(content[len(JS_PREFIX) :])
        assert list(data) == ["lastUpdate", "repoUrl", "entries"]
        assert data["lastUpdate"] == 2000

    @pytest.mark.asyncio
    async def test_json_layout(self, json_store: JSONFileStore, sample_store: Store) -> None:
        await json_store.save(sample_store)
        content = json_store.path.read_text(encoding="utf-8")

        assert content.endswith("}\n")
        assert json.loads(content)["entries"]["cargo"][1]["benches"][0]["value"] == 110

    @pytest.mark.asyncio
    async def test_keeps_non_ascii(self, js_store: JSONFileStore, sample_store: Store) -> None:
        await js_store.save(sample_store)
        assert '"range": "± 5"' in js_store.path.read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_loads_dashboard_data(self, tmp_path: Path) -> None:
        """A data.js written by the dashboard action loads and re-saves unchanged."""
        path = tmp_path / "data.js"
        shutil.copy(FIXTURES / "data.js", path)
        original = json.loads(path.read_text(encoding="utf-8")[len(JS_PREFIX) :])

        backend = JSONFileStore(path)
        store = await backend.load()
        ledger = store.ledgers["Rust Benchmark"]

        assert store.repo_url == "https://github.com/crazyjackel/asset-importer-rs"
        assert len(ledger) == 1
        assert ledger.entries[0].commit.id == "dc95b590c78ff6e7f2aa9956378dbac9a3a80fc0"
        assert ledger.entries[0].benches[0].range_value == 303443

        await backend.save(store)
        resaved = json.loads(path.read_text(encoding="utf-8")[len(JS_PREFIX) :])
        assert resaved["entries"] == original["entries"]
        assert resaved["repoUrl"] == original["repoUrl"]

    @pytest.mark.asyncio
    async def test_tolerates_trailing_semicolon(self, tmp_path: Path) -> None:
        path = tmp_path / "data.js"
        path.write_text('window.BENCHMARK_DATA = {"lastUpdate": 0, "repoUrl": "", "entries": {}};\n')
        store = await JSONFileStore(path).load()
        assert store.ledgers == {}

    @pytest.mark.asyncio
    async def test_corrupt_file_raises(self, json_store: JSONFileStore) -> None:
        """A corrupt store is reported rather than silently replaced."""
        json_store.path.write_text("{not json")
        with pytest.raises(LoadError):
            await json_store.load()

    @pytest.mark.asyncio
    async def test_wrong_shape_raises(self, json_store: JSONFileStore) -> None:
        json_store.path.write_text("[1, 2, 3]")
        with pytest.raises(LoadError, match="expected an object"):
            await json_store.load()

    @pytest.mark.asyncio
    async def test_get(self, json_store: JSONFileStore, sample_store: Store) -> None:
        await json_store.save(sample_store)

        ledger = await json_store.get("cargo")
        assert [e.commit.id for e in ledger.entries] == ["c1", "c2"]

        with pytest.raises(LedgerNotFoundError):
            await json_store.get("go")

    @pytest.mark.asyncio
    async def test_failed_save_keeps_previous_file(
        self, json_store: JSONFileStore, sample_store: Store, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A failed write leaves the previous content and no temp files."""
        await json_store.save(sample_store)
        before = json_store.path.read_bytes()

        def fail_replace(self: Path, target: Path) -> Path:
            raise OSError("disk full")

        monkeypatch.setattr(Path, "replace", fail_replace)
        updated = sample_store.copy()
        updated.ledgers["cargo"].entries.append(_entry("c3", 3000))

        with pytest.raises(PersistenceError, match="disk full"):
            await json_store.save(updated)

        assert json_store.path.read_bytes() == before
        assert list(json_store.path.parent.glob("*.tmp")) == []

    @pytest.mark.asyncio
    async def test_lock_path(self, js_store: JSONFileStore) -> None:
        assert js_store.lock_path.name == "data.js.lock"
        async with js_store.lock():
            assert js_store.lock_path.exists()
        assert not js_store.lock_path.exists()


# ============================================================================
# StoreLock
# ============================================================================


class TestStoreLock:
    """Tests for the store write lock."""

    @pytest.mark.asyncio
    async def test_acquire_release(self, tmp_path: Path) -> None:
        lock = StoreLock(tmp_path / "data.js.lock")
        await lock.acquire()

        assert lock.held
        assert (tmp_path / "data.js.lock").read_text().strip().isdigit()

        lock.release()
        assert not lock.held
        assert not (tmp_path / "data.js.lock").exists()

    @pytest.mark.asyncio
    async def test_zero_timeout_rejects_immediately(self, tmp_path: Path) -> None:
        path = tmp_path / "data.js.lock"
        async with StoreLock(path):
            with pytest.raises(StoreLockedError) as exc_info:
                await StoreLock(path, timeout=0).acquire()

        assert isinstance(exc_info.value, RetryableError)

    @pytest.mark.asyncio
    async def test_timeout_expires(self, tmp_path: Path) -> None:
        path = tmp_path / "data.js.lock"
        async with StoreLock(path):
            with pytest.raises(StoreLockedError, match="locked by another writer"):
                await StoreLock(path, timeout=0.1, poll_interval=0.01).acquire()

    @pytest.mark.asyncio
    async def test_waits_for_release(self, tmp_path: Path) -> None:
        """A waiting writer proceeds once the holder releases."""
        path = tmp_path / "data.js.lock"
        holder = StoreLock(path)
        await holder.acquire()

        waiter = StoreLock(path, timeout=5, poll_interval=0.01)
        task = asyncio.create_task(waiter.acquire())
        await asyncio.sleep(0.05)
        assert not task.done()

        holder.release()
        await asyncio.wait_for(task, timeout=5)
        assert waiter.held
        waiter.release()

    @pytest.mark.asyncio
    async def test_released_on_error(self, tmp_path: Path) -> None:
        path = tmp_path / "data.js.lock"
        with pytest.raises(RuntimeError):
            async with StoreLock(path):
                raise RuntimeError("boom")
        assert not path.exists()

    def test_release_without_acquire_is_noop(self, tmp_path: Path) -> None:
        path = tmp_path / "data.js.lock"
        path.write_text("123\n")
        StoreLock(path).release()
        assert path.exists()

    @pytest.mark.asyncio
    @pytest.mark.skipif(os.name != "posix", reason="pid liveness check is POSIX only")
    async def test_reclaims_lock_of_dead_process(self, tmp_path: Path) -> None:
        """A lock left by a crashed writer does not block the next one."""
        path = tmp_path / "data.js.lock"
        path.write_text(f"{_dead_pid()}\n")

        lock = StoreLock(path, timeout=None)
        await asyncio.wait_for(lock.acquire(), timeout=5)

        assert lock.held
        assert path.read_text().strip() == str(os.getpid())
        lock.release()

    @pytest.mark.asyncio
    @pytest.mark.skipif(os.name != "posix", reason="pid liveness check is POSIX only")
    async def test_keeps_lock_of_live_process(self, tmp_path: Path) -> None:
        path = tmp_path / "data.js.lock"
        path.write_text("1\n")

        with pytest.raises(StoreLockedError):
            await StoreLock(path, timeout=0).acquire()
        assert path.exists()

    @pytest.mark.asyncio
    async def test_keeps_lock_without_pid(self, tmp_path: Path) -> None:
        """An empty lock file may belong to a writer that has not recorded its pid yet."""
        path = tmp_path / "data.js.lock"
        path.write_text("")

        with pytest.raises(StoreLockedError):
            await StoreLock(path, timeout=0).acquire()
        assert path.exists()


def _dead_pid() -> int:
    """Pid of a process that has already exited and been reaped."""
    proc = subprocess.Popen([sys.executable, "-c", "pass"])
    proc.wait()
    return proc.pid
