"""Markdown reporter for benchledger.

Renders an ingestion result as a Markdown table, suitable for a CI job
summary or a commit comment.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from benchledger.reporters.console import format_value

if TYPE_CHECKING:
    from benchledger.benchmarks.history import IngestResult


class MarkdownReporter:
    """Reporter that renders ingestion results as Markdown.

    Example:
        >>> print(MarkdownReporter().report(result))
        # :warning: Performance Alert :warning:
        ...
    """

    def report(self, result: IngestResult) -> str:
        """Generate the Markdown summary of one ingestion.

        Args:
            result: The ingestion result to report.

        Returns:
            Markdown document.
        """
        commit = result.entry.commit
        commit_ref = f"[{commit.id[:12]}]({commit.url})" if commit.url else f"`{commit.id[:12]}`"

        if result.alerts:
            lines = [
                "# :warning: **Performance Alert** :warning:",
                "",
                f"Possible performance regression was detected for benchmark **'{result.tool}'** "
                f"at commit {commit_ref}.",
            ]
        else:
            lines = [f"# {result.tool}", "", f"Benchmark result for commit {commit_ref}."]

        if result.duplicate is not None:
            lines.extend(["", f"> {result.duplicate}; nothing recorded."])
            return "\n".join(lines) + "\n"

        comparisons = result.regression.comparisons
        if comparisons:
            alerts = {alert.name: alert for alert in result.alerts}
            lines.extend(
                [
                    "",
                    "| Benchmark suite | Current | Previous | Ratio |",
                    "|-|-|-|-|",
                ]
            )
            for comparison in comparisons:
                ratio = f"`{comparison.ratio:.2f}`" if comparison.ratio is not None else "-"
                alert = alerts.get(comparison.name)
                if alert is not None:
                    ratio += " :x:" if alert.severity == "critical" else " :warning:"
                lines.append(
                    f"| `{comparison.name}` "
                    f"| `{format_value(comparison.current_value, comparison.unit)}` "
                    f"| `{format_value(comparison.baseline_value, comparison.unit)}` "
                    f"| {ratio} |"
                )

        if result.unit_changes:
            lines.extend(["", "**Unit changes** (not compared):", ""])
            lines.extend(f"- {change.message}" for change in result.unit_changes)

        if result.alerts:
            threshold = result.alerts[0].threshold
            lines.extend(
                [
                    "",
                    f"This comment was automatically generated. Alert threshold: `{1 + threshold:.2f}x`.",
                ]
            )

        return "\n".join(lines) + "\n"

    def report_to_file(self, result: IngestResult, path: Path | str, *, append: bool = True) -> None:
        """Write the summary to a file.

        Args:
            result: The ingestion result.
            path: Target file, e.g. ``$GITHUB_STEP_SUMMARY``.
            append: Append instead of overwriting.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a" if append else "w", encoding="utf-8") as f:
            f.write(self.report(result))
