"""Parser registry for benchledger.

Provides a central registry of harness parsers keyed by tool identifier,
combining the builtin parsers with parsers registered by other packages.

Third-party packages can contribute parsers through an entry point:

    [project.entry-points."benchledger.parsers"]
    hyperfine = "benchledger_hyperfine:HyperfineParser"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from pydantic import ValidationError

from benchledger.core.exceptions import ParseError
from benchledger.parsers.base import BenchmarkParser

if TYPE_CHECKING:
    from collections.abc import Iterator
    from importlib.metadata import EntryPoint

    from benchledger.benchmarks.models import BenchResult

logger = logging.getLogger(__name__)

NAMESPACE_PARSERS = "benchledger.parsers"


def _get_entry_points(group: str) -> Iterator[EntryPoint]:
    """Get entry points for a group."""
    from importlib.metadata import entry_points

    yield from entry_points(group=group)


@dataclass
class ParserRegistry:
    """Registry of harness parsers.

    Builtin parsers are registered first; entry-point parsers with the same
    tool id override them. Implements a singleton for global access.

    Example:
        >>> registry = ParserRegistry.get()
        >>> registry.get_parser("cargo").parse(b"test a ... bench: 10 ns/iter (+/- 1)")
        [BenchResult(name='a', value=10.0, ...)]
    """

    _instance: ClassVar[ParserRegistry | None] = None

    _parsers: dict[str, BenchmarkParser] = field(default_factory=dict)
    _discovered: bool = field(default=False)

    @classmethod
    def get(cls) -> ParserRegistry:
        """Get the singleton registry instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton instance. Used for testing."""
        cls._instance = None

    def discover(self, *, force: bool = False) -> None:
        """Register builtin parsers and scan entry points.

        Args:
            force: If True, re-discover even if already done.
        """
        if self._discovered and not force:
            return

        self._parsers.clear()
        self._register_builtins()
        self._discover_entry_points()
        self._discovered = True

        logger.debug(f"Parser discovery complete: {len(self._parsers)} tools available")

    def _register_builtins(self) -> None:
        # Import here to avoid circular imports
        from benchledger.parsers import BUILTIN_PARSERS

        for parser_class in BUILTIN_PARSERS:
            self._parsers[parser_class.tool] = parser_class()

    def _discover_entry_points(self) -> None:
        for ep in _get_entry_points(NAMESPACE_PARSERS):
            try:
                parser = ep.load()()
            except Exception as e:
                logger.warning(f"Failed to load parser '{ep.name}' from {NAMESPACE_PARSERS}: {e}")
                continue
            if not isinstance(parser, BenchmarkParser):
                logger.warning(f"Ignoring parser '{ep.name}': it does not implement BenchmarkParser")
                continue
            self._parsers[ep.name] = parser
            logger.debug(f"Registered external parser: {ep.name}")

    def register(self, parser: BenchmarkParser, *, replace: bool = False) -> None:
        """Register a parser under its ``tool`` id.

        Args:
            parser: Parser instance.
            replace: Allow replacing an already registered tool id.

        Raises:
            ValueError: If the tool id is taken and ``replace`` is False.
        """
        if not self._discovered:
            self.discover()
        if parser.tool in self._parsers and not replace:
            msg = f"A parser is already registered for '{parser.tool}'"
            raise ValueError(msg)
        self._parsers[parser.tool] = parser

    def get_parser(self, tool: str) -> BenchmarkParser:
        """Get the parser for a tool id.

        Raises:
            ParseError: With reason UNSUPPORTED_TOOL if no parser is registered.
        """
        if not self._discovered:
            self.discover()

        parser = self._parsers.get(tool)
        if parser is None:
            raise ParseError.unsupported(tool)
        return parser

    def is_registered(self, tool: str) -> bool:
        if not self._discovered:
            self.discover()
        return tool in self._parsers

    def list_tools(self) -> list[str]:
        """Sorted tool ids with a registered parser."""
        if not self._discovered:
            self.discover()
        return sorted(self._parsers)

    def bigger_is_better(self, tool: str) -> bool:
        """Default direction for a tool; unknown tools compare smaller-is-better."""
        if not self.is_registered(tool):
            return False
        return self._parsers[tool].bigger_is_better


def parse(tool: str, raw: bytes | str, *, registry: ParserRegistry | None = None) -> list[BenchResult]:
    """Parse raw harness output into results.

    Args:
        tool: Tool id selecting the parser (e.g. ``"cargo"``, ``"pytest"``).
        raw: Captured harness output.
        registry: Registry to look the parser up in (default: the global one).

    Returns:
        Results in the order the harness reported them.

    Raises:
        ParseError: If the tool is unsupported or the output malformed.

    Example:
        >>> results = parse("cargo", Path("output.txt").read_bytes())
    """
    parser = (registry or ParserRegistry.get()).get_parser(tool)
    data = raw.encode("utf-8") if isinstance(raw, str) else raw
    try:
        results = parser.parse(data)
    except ValidationError as e:
        raise ParseError.malformed(tool, f"invalid result: {e}") from e

    seen: set[str] = set()
    for result in results:
        if result.name in seen:
            raise ParseError.malformed(tool, f"benchmark '{result.name}' is reported more than once")
        seen.add(result.name)

    logger.debug(f"Parsed {len(results)} results from '{tool}' output")
    return results
