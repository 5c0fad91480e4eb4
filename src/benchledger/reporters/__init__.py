"""Reporters module for benchledger.

This module provides output formatters for ingestion results:
- Console: Terminal output with tables and colors
- JSON: Machine-readable format
- Markdown: CI job summaries and commit comments
"""

from __future__ import annotations

from benchledger.reporters.console import ConsoleReporter
from benchledger.reporters.json import JSONReporter
from benchledger.reporters.markdown import MarkdownReporter

__all__ = [
    "ConsoleReporter",
    "JSONReporter",
    "MarkdownReporter",
]
