"""Configuration management for benchledger.

This module provides the process settings (pydantic-settings, read from
environment variables) and the ledger policy (retention, regression
thresholds, direction overrides) loaded from YAML or a mapping.
"""

from __future__ import annotations

import logging
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self

from benchledger.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

Fraction = Annotated[float, Field(ge=0, allow_inf_nan=False)]

# An alert fires when the current result is at least twice as bad as its baseline
DEFAULT_THRESHOLD = 1.0


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables with
    the BENCHLEDGER_ prefix.

    Attributes:
        store_path: Where the history store is persisted.
        config_path: Optional YAML file with the ledger policy.
        repo_url: Repository URL used to seed a new store.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).

    Example:
        >>> # export BENCHLEDGER_STORE_PATH=gh-pages/dev/bench/data.js
        >>> settings = Settings()
        >>> settings.store_path
        PosixPath('gh-pages/dev/bench/data.js')

    Environment Variables:
        BENCHLEDGER_STORE_PATH: Store file (default: benchmark-data/data.js)
        BENCHLEDGER_CONFIG_PATH: Ledger policy YAML (optional)
        BENCHLEDGER_REPO_URL: Repository URL (default: empty)
        BENCHLEDGER_LOG_LEVEL: Logging level (default: INFO)
    """

    model_config = SettingsConfigDict(
        env_prefix="BENCHLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    store_path: Path = Field(
        default=Path("benchmark-data/data.js"),
        description="Path of the persisted history store (.js or .json)",
    )
    config_path: Path | None = Field(
        default=None,
        description="Optional YAML file with the ledger policy",
    )
    repo_url: str = Field(
        default="",
        description="Repository URL used to seed a new store",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )


class DirectionOverride(BaseModel):
    """Comparison direction for benchmarks matching a name pattern."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True, extra="forbid")

    bigger_is_worse: bool


class LedgerConfig(BaseModel):
    """Policy applied when merging entries and detecting regressions.

    Keys may be given in camelCase (``retentionCap``) or snake_case.

    Attributes:
        repo_url: Repository URL stored in a newly created store.
        retention_cap: Maximum entries kept per ledger (None = unbounded).
        regression_threshold: Per-tool alert threshold as a fraction
            (0.5 alerts when a result is 50% worse than its baseline).
        default_threshold: Threshold for tools missing from ``regression_threshold``.
        fail_threshold: Per-tool threshold at which an alert becomes critical.
        default_fail_threshold: Fallback fail threshold (None = same as the alert threshold).
        direction_overrides: Glob pattern on benchmark names to direction;
            the first matching pattern wins.
        overwrite_on_duplicate_commit: Replace the entry of an already recorded commit.
        lock_timeout: Seconds to wait for the store lock (None waits forever, 0 never waits).

    Example:
        >>> config = LedgerConfig.from_mapping({
        ...     "retentionCap": 100,
        ...     "regressionThreshold": {"cargo": 0.5},
        ...     "directionOverrides": {"*throughput*": {"biggerIsWorse": False}},
        ... })
        >>> config.threshold_for("cargo")
        0.5
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True, extra="forbid")

    repo_url: str = ""
    retention_cap: int | None = Field(default=None, ge=1)
    regression_threshold: dict[str, Fraction] = Field(default_factory=dict)
    default_threshold: Fraction = DEFAULT_THRESHOLD
    fail_threshold: dict[str, Fraction] = Field(default_factory=dict)
    default_fail_threshold: Fraction | None = None
    direction_overrides: dict[str, DirectionOverride] = Field(default_factory=dict)
    overwrite_on_duplicate_commit: bool = False
    lock_timeout: float | None = Field(default=None, ge=0, allow_inf_nan=False)

    @field_validator("retention_cap", mode="before")
    @classmethod
    def _unbounded(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() == "unbounded":
            return None
        return value

    @field_validator("direction_overrides")
    @classmethod
    def _non_empty_patterns(cls, value: dict[str, DirectionOverride]) -> dict[str, DirectionOverride]:
        if any(not pattern.strip() for pattern in value):
            msg = "direction override patterns must not be empty"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def _fail_not_below_alert(self) -> Self:
        tools = set(self.regression_threshold) | set(self.fail_threshold) | {""}
        for tool in tools:
            if self.fail_threshold_for(tool) < self.threshold_for(tool):
                scope = f"for '{tool}'" if tool else "by default"
                msg = f"fail threshold {scope} is below the alert threshold"
                raise ValueError(msg)
        return self

    @classmethod
    def from_mapping(cls, data: dict[str, Any] | None) -> LedgerConfig:
        """Validate a configuration mapping.

        Raises:
            ConfigurationError: If any option is invalid or unknown.
        """
        try:
            return cls.model_validate(data or {})
        except ValidationError as e:
            msg = f"Invalid benchledger configuration: {e}"
            raise ConfigurationError(msg) from e

    @classmethod
    def from_yaml(cls, path: Path | str) -> LedgerConfig:
        """Load the ledger policy from a YAML file.

        The options may sit at the top level or under a ``benchledger`` key.

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid.
        """
        import yaml

        path = Path(path)
        if not path.exists():
            msg = f"Configuration file not found: {path}"
            raise ConfigurationError(msg)

        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            msg = f"Configuration file {path} is not valid YAML: {e}"
            raise ConfigurationError(msg) from e

        if data is None:
            return cls()
        if not isinstance(data, dict):
            msg = f"Configuration file {path} must contain a mapping"
            raise ConfigurationError(msg)

        logger.debug(f"Loaded ledger configuration from {path}")
        return cls.from_mapping(data.get("benchledger", data))

    def to_yaml(self, path: Path | str) -> None:
        """Save the policy to a YAML file using camelCase keys."""
        import yaml

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(by_alias=True, exclude_defaults=True)
        path.write_text(yaml.safe_dump({"benchledger": data}, sort_keys=False), encoding="utf-8")

    def threshold_for(self, tool: str) -> float:
        """Alert threshold (fraction) for a ledger."""
        return self.regression_threshold.get(tool, self.default_threshold)

    def fail_threshold_for(self, tool: str) -> float:
        """Critical threshold (fraction) for a ledger."""
        if tool in self.fail_threshold:
            return self.fail_threshold[tool]
        if self.default_fail_threshold is not None:
            return self.default_fail_threshold
        return self.threshold_for(tool)

    def bigger_is_worse(self, name: str, *, default: bool) -> bool:
        """Resolve the comparison direction of a benchmark.

        Args:
            name: Benchmark name.
            default: Direction to use when no override pattern matches.

        Returns:
            True if a larger value is a degradation.
        """
        for pattern, override in self.direction_overrides.items():
            if fnmatchcase(name, pattern):
                return override.bigger_is_worse
        return default


def load_config(settings: Settings | None = None) -> LedgerConfig:
    """Build the ledger policy for a process.

    Reads ``settings.config_path`` when set and seeds ``repo_url`` from the
    settings when the file does not provide one.
    """
    settings = settings or Settings()
    config = LedgerConfig.from_yaml(settings.config_path) if settings.config_path else LedgerConfig()
    if not config.repo_url and settings.repo_url:
        config = config.model_copy(update={"repo_url": settings.repo_url})
    return config
