"""Models for benchmark history.

This module provides the value records stored in a ledger (BenchResult,
CommitInfo, Entry) and the containers that hold them (Ledger, Store),
together with conversion to and from the persisted JSON layout.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from benchledger.core.exceptions import LoadError, ParseError

_NUMBER_RE = re.compile(r"[-+]?(?:\d[\d,]*\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


def parse_range(text: str | None, value: float) -> float:
    """Extract a numeric uncertainty from a range string.

    Accepts the spellings harnesses emit: ``"± 303443"``, ``"+/- 1,234"``,
    ``"stddev: 0.0021"`` and relative ``"±1.12%"``.

    Args:
        text: Range text, or None when the harness reports no range.
        value: The measured value, used to resolve relative ranges.

    Returns:
        Non-negative absolute uncertainty (0.0 if none can be read).
    """
    if not text:
        return 0.0
    match = _NUMBER_RE.search(text.replace("+/-", "").replace("+-", ""))
    if match is None:
        return 0.0
    number = abs(float(match.group(0).replace(",", "")))
    if text.rstrip().endswith("%"):
        return abs(value) * number / 100
    return number


def format_number(value: float) -> int | float:
    """Render a float the way the dashboard's JavaScript writer does (no trailing ``.0``)."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


class BenchResult(BaseModel):
    """A single named measurement.

    Attributes:
        name: Benchmark name, unique within one entry.
        value: Measured value.
        range_value: Absolute uncertainty of the measurement (>= 0).
        unit: Unit of ``value`` (e.g. ``ns/iter``).
        range_text: Range as the harness printed it; kept for lossless persistence.
        extra: Free-form details (iterations, samples, ...).

    Example:
        >>> bench = BenchResult(name="fib_20", value=37174, range_value=7527, unit="ns/iter")
    """

    model_config = {"frozen": True, "allow_inf_nan": False}

    name: str = Field(..., min_length=1, description="Benchmark name")
    value: float = Field(..., description="Measured value")
    range_value: float = Field(default=0.0, ge=0, description="Absolute uncertainty")
    unit: str = Field(..., description="Unit of the value")
    range_text: str | None = Field(default=None, description="Range as printed by the harness")
    extra: str | None = Field(default=None, description="Free-form harness details")

    @property
    def range(self) -> str | None:
        """Range text as persisted (``"± <range_value>"`` when none was given)."""
        if self.range_text is not None:
            return self.range_text
        if self.range_value == 0:
            return None
        return f"± {format_number(self.range_value)}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted bench layout."""
        data: dict[str, Any] = {"name": self.name, "value": format_number(self.value)}
        if self.range is not None:
            data["range"] = self.range
        data["unit"] = self.unit
        if self.extra is not None:
            data["extra"] = self.extra
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BenchResult:
        """Create a result from the persisted bench layout.

        ``range`` may be text (``"± 5"``) or a bare number.
        """
        raw_range = data.get("range")
        value = float(data["value"])
        range_text = raw_range if isinstance(raw_range, str) else None
        if isinstance(raw_range, (int, float)) and not isinstance(raw_range, bool):
            range_value = abs(float(raw_range))
        else:
            range_value = parse_range(range_text, value)
        return cls(
            name=data["name"],
            value=value,
            range_value=range_value,
            unit=data["unit"],
            range_text=range_text,
            extra=data.get("extra"),
        )


class GitUser(BaseModel):
    """Author or committer identity of a commit."""

    model_config = {"frozen": True}

    name: str = ""
    email: str = ""
    username: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"email": self.email, "name": self.name}
        if self.username is not None:
            data["username"] = self.username
        return data


class CommitInfo(BaseModel):
    """Metadata of the commit a CI run measured.

    Attributes:
        id: Commit hash.
        author: Author identity.
        committer: Committer identity.
        message: Commit message.
        timestamp: Commit timestamp as reported by the forge (ISO 8601).
        url: Link to the commit.
        distinct: Whether the commit is distinct from already pushed ones.
        tree_id: Optional tree hash.
    """

    model_config = {"frozen": True}

    id: str = Field(..., min_length=1, description="Commit hash")
    author: GitUser = Field(default_factory=GitUser)
    committer: GitUser = Field(default_factory=GitUser)
    message: str = ""
    timestamp: str = ""
    url: str = ""
    distinct: bool = True
    tree_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted commit layout."""
        data: dict[str, Any] = {
            "author": self.author.to_dict(),
            "committer": self.committer.to_dict(),
            "distinct": self.distinct,
            "id": self.id,
            "message": self.message,
            "timestamp": self.timestamp,
        }
        if self.tree_id is not None:
            data["tree_id"] = self.tree_id
        data["url"] = self.url
        return data


class Entry(BaseModel):
    """One CI run: commit metadata plus its measurements.

    Attributes:
        commit: Commit that was benchmarked.
        date: Ingestion time in epoch milliseconds.
        tool: Harness identifier that produced ``benches``.
        benches: Results in the order the harness reported them.
    """

    model_config = {"frozen": True}

    commit: CommitInfo
    date: int = Field(..., ge=0, description="Ingestion time (epoch ms)")
    tool: str = Field(..., min_length=1)
    benches: tuple[BenchResult, ...] = ()

    @field_validator("benches")
    @classmethod
    def _unique_names(cls, benches: tuple[BenchResult, ...]) -> tuple[BenchResult, ...]:
        seen: set[str] = set()
        for bench in benches:
            if bench.name in seen:
                msg = f"duplicate benchmark name in entry: {bench.name!r}"
                raise ValueError(msg)
            seen.add(bench.name)
        return benches

    @property
    def recorded_at(self) -> datetime:
        """Ingestion time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.date / 1000, tz=timezone.utc)

    def bench(self, name: str) -> BenchResult | None:
        """Return the result named ``name``, if this entry has one."""
        for bench in self.benches:
            if bench.name == name:
                return bench
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted entry layout."""
        return {
            "commit": self.commit.to_dict(),
            "date": self.date,
            "tool": self.tool,
            "benches": [bench.to_dict() for bench in self.benches],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Entry:
        """Create an entry from the persisted layout."""
        return cls(
            commit=CommitInfo.model_validate(data["commit"]),
            date=int(data["date"]),
            tool=data["tool"],
            benches=tuple(BenchResult.from_dict(b) for b in data.get("benches", [])),
        )


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(datetime.now(tz=timezone.utc).timestamp() * 1000)


class IngestRequest(BaseModel):
    """A CI run as submitted for ingestion.

    Mirrors the request JSON ``{repoUrl, tool, commit, date, benches}``.
    ``date`` defaults to the time the request is built.

    Example:
        >>> request = IngestRequest.from_dict(json.loads(payload))
        >>> await history.ingest(request.tool, request.to_entry())
    """

    model_config = {"frozen": True}

    repo_url: str | None = None
    tool: str
    commit: CommitInfo
    date: int = Field(default_factory=now_ms, ge=0)
    benches: tuple[BenchResult, ...]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IngestRequest:
        return cls(
            repo_url=data.get("repoUrl"),
            tool=data["tool"],
            commit=CommitInfo.model_validate(data["commit"]),
            date=int(data["date"]) if data.get("date") is not None else now_ms(),
            benches=tuple(BenchResult.from_dict(b) for b in data.get("benches", [])),
        )

    def to_entry(self) -> Entry:
        """Build the entry to merge.

        Raises:
            ParseError: If the benches do not form a valid entry (e.g. repeated names).
        """
        try:
            return Entry(commit=self.commit, date=self.date, tool=self.tool, benches=self.benches)
        except ValidationError as e:
            raise ParseError.malformed(self.tool, f"invalid ingest request: {e}") from e


@dataclass
class Ledger:
    """Chronological history of entries for one tool.

    Entries are kept oldest first; dates are non-decreasing and commit ids
    unique. The ledger only grows at the end or shrinks from the front.
    """

    tool: str
    entries: list[Entry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def last_update(self) -> int:
        """Latest entry date (0 for an empty ledger)."""
        return max((entry.date for entry in self.entries), default=0)

    def index_of(self, commit_id: str) -> int | None:
        """Position of the entry for ``commit_id``, or None."""
        for index, entry in enumerate(self.entries):
            if entry.commit.id == commit_id:
                return index
        return None

    def copy(self) -> Ledger:
        """Shallow copy; entries are immutable so sharing them is safe."""
        return Ledger(tool=self.tool, entries=list(self.entries))


@dataclass
class Store:
    """All ledgers of a repository.

    Attributes:
        repo_url: Repository the measurements belong to.
        ledgers: Ledgers keyed by tool identifier, in insertion order.
    """

    repo_url: str = ""
    ledgers: dict[str, Ledger] = field(default_factory=dict)

    @property
    def last_update(self) -> int:
        """Latest entry date across all ledgers (0 when empty)."""
        return max((ledger.last_update for ledger in self.ledgers.values()), default=0)

    def copy(self) -> Store:
        return Store(
            repo_url=self.repo_url,
            ledgers={tool: ledger.copy() for tool, ledger in self.ledgers.items()},
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted store layout."""
        return {
            "lastUpdate": self.last_update,
            "repoUrl": self.repo_url,
            "entries": {
                tool: [entry.to_dict() for entry in ledger.entries] for tool, ledger in self.ledgers.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Store:
        """Create a store from the persisted layout.

        Raises:
            LoadError: If the data does not follow the store layout.
        """
        try:
            raw_entries = data.get("entries", {})
            if not isinstance(raw_entries, dict):
                msg = "'entries' must be an object keyed by tool"
                raise LoadError(msg)
            ledgers = {
                tool: Ledger(tool=tool, entries=[Entry.from_dict(e) for e in entries])
                for tool, entries in raw_entries.items()
            }
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            msg = f"Malformed store data: {e}"
            raise LoadError(msg) from e
        return cls(repo_url=data.get("repoUrl", ""), ledgers=ledgers)
