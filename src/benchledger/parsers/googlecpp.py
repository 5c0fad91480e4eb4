"""Parser for Google Benchmark JSON output (``--benchmark_format=json``)."""

from __future__ import annotations

from benchledger.benchmarks.models import BenchResult
from benchledger.core.exceptions import ParseError
from benchledger.parsers.base import load_json, require_field, require_number


class GoogleCppParser:
    """Parse Google Benchmark iterations; aggregate rows (mean, stddev, ...) are skipped."""

    tool = "googlecpp"
    bigger_is_better = False

    def parse(self, raw: bytes) -> list[BenchResult]:
        report = load_json(raw, self.tool)
        benchmarks = require_field(report, "benchmarks", self.tool, "report")
        if not isinstance(benchmarks, list):
            raise ParseError.malformed(self.tool, "'benchmarks' is not a list")

        results: list[BenchResult] = []
        for index, bench in enumerate(benchmarks):
            name = require_field(bench, "name", self.tool, f"benchmark #{index}")
            if bench.get("run_type") == "aggregate":
                continue
            label = f"benchmark '{name}'"
            real_time = require_number(bench, "real_time", self.tool, label)
            time_unit = require_field(bench, "time_unit", self.tool, label)
            results.append(
                BenchResult(
                    name=name,
                    value=real_time,
                    unit=f"{time_unit}/iter",
                    extra=(
                        f"iterations: {bench.get('iterations')}\n"
                        f"cpu: {bench.get('cpu_time')} {time_unit}\n"
                        f"threads: {bench.get('threads')}"
                    ),
                )
            )
        return results
