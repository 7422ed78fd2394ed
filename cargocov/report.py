"""
Coverage report pipeline for a Cargo workspace.

    test     -> instrumented `cargo test`, writes the raw profile(s)
    merge    -> `cargo profdata -- merge -sparse`
    discover -> `cargo test --no-run --message-format=json`, test binaries
    render   -> `cargo cov -- show --format=html`
    summary  -> `cargo cov -- export --summary-only` (optional)

Each step blocks on its tool and checks the exit status before the next one
starts.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import pandas as pd

from cargocov import discovery, summary, tools
from cargocov.config import ReportConfig
from cargocov.errors import CoverageReportError, DiscoveryError
from cargocov.logging_config import get_logger

logger = get_logger("report")

REQUIRED_TOOLS = ["cargo", "cargo-profdata", "cargo-cov"]


@dataclass
class ReportResult:
    output_dir: Path
    profdata: Path
    objects: List[str] = field(default_factory=list)
    totals: Optional[summary.CoverageTotals] = None
    files: Optional[pd.DataFrame] = None
    summary_csv: Optional[Path] = None
    plot: Optional[Path] = None


class CoverageReportDriver:
    def __init__(self, config: Optional[ReportConfig] = None, runner=tools.run, which=tools.which_or_die):
        self.config = config or ReportConfig()
        self.runner = runner
        self.which = which

    # ------------------------------
    # Helpers
    # ------------------------------
    def _run(self, cmd, env=None, capture=True):
        return self.runner(cmd, env=env, cwd=str(self.config.manifest_dir), capture=capture)

    def _instrument_env(self):
        return self.config.instrument_env(os.environ.get("RUSTFLAGS"))

    def _renderer_filters(self):
        args = []
        if self.config.ignore_filename_regex:
            args.append(f"--ignore-filename-regex={self.config.ignore_filename_regex}")
        return args

    def _object_args(self, objects):
        return discovery.object_args(objects, self.config.object_flag)

    @property
    def profdata_path(self) -> Path:
        return self.config.resolve(self.config.profdata)

    @property
    def output_path(self) -> Path:
        return self.config.resolve(self.config.output_dir)

    # ------------------------------
    # Steps
    # ------------------------------
    def preflight(self):
        for name in REQUIRED_TOOLS:
            self.which(name)
        if self.config.demangler:
            self.which(self.config.demangler)

    def run_tests(self):
        # a leftover profile would be merged into this run's data
        for stale in self.config.raw_profiles():
            logger.debug("Removing stale raw profile %s", stale)
            stale.unlink()

        cmd = self.config.cargo("test", "--tests", *self.config.test_args)
        result = self._run(cmd, env=self._instrument_env(), capture=False)
        if result.returncode != 0 and self.config.keep_going:
            logger.warning(
                "test run failed (rc=%s); continuing with whatever profile it left behind",
                result.returncode,
            )
            return result
        return tools.check("test", result)

    def merge(self) -> Path:
        raws = self.config.raw_profiles()
        if not raws:
            raise CoverageReportError(
                f"no raw profile found at {self.config.resolve(self.config.profraw)}; "
                "did the instrumented test run produce any?"
            )
        logger.info("Merging %d raw profile(s) into %s", len(raws), self.profdata_path)
        cmd = self.config.cargo(
            "profdata", "--", "merge", "-sparse", *[str(r) for r in raws], "-o", str(self.profdata_path)
        )
        tools.check("merge", self._run(cmd))

        if self.config.clean_raw:
            for r in raws:
                r.unlink()
        return self.profdata_path

    def discover(self) -> List[str]:
        cmd = self.config.cargo(
            "test", "--tests", "--no-run", "--message-format=json", *self.config.test_args
        )
        result = tools.check("discover", self._run(cmd, env=self._instrument_env()))
        objects = discovery.discover_objects(
            result.stdout.splitlines(), self.config.debug_bundle_marker
        )
        if not objects:
            raise DiscoveryError("no test binaries found in cargo build output")
        for o in objects:
            logger.debug("Test binary: %s", o)
        logger.info("Found %d test binaries", len(objects))
        return objects

    def render(self, objects) -> Path:
        cmd = self.config.cargo("cov", "--", "show", *self._object_args(objects), "--use-color")
        cmd.append(f"--instr-profile={self.profdata_path}")
        cmd.extend(self._renderer_filters())
        if self.config.demangler:
            cmd.append(f"--Xdemangler={self.config.demangler}")
        cmd.extend([
            "--show-line-counts-or-regions",
            "--show-instantiations",
            "--format=html",
            f"--output-dir={self.output_path}",
        ])
        tools.check("render", self._run(cmd, capture=False))
        logger.info("HTML report written to %s", self.output_path)
        return self.output_path

    def summarize(self, objects, result: ReportResult) -> ReportResult:
        base = [*self._object_args(objects), f"--instr-profile={self.profdata_path}"]
        base.extend(self._renderer_filters())

        r = self._run(self.config.cargo("cov", "--", "export", *base, "--summary-only"))
        if r.returncode == 0 and r.stdout.strip():
            try:
                result.totals = summary.parse_export_json(r.stdout)
                result.files = summary.files_frame(r.stdout)
            except (ValueError, AttributeError, TypeError) as e:
                logger.warning("Could not decode export JSON: %s", e)
        else:
            logger.warning("export failed (rc=%s), falling back to text report", r.returncode)

        # older exports can lack a totals block
        if result.files is not None and not result.files.empty:
            if result.totals is None or result.totals.linecov is None:
                linecov = summary.totals_from_frame(result.files).linecov
                result.totals = result.totals or summary.CoverageTotals()
                result.totals.linecov = linecov

        if result.totals is None:
            r = self._run(self.config.cargo("cov", "--", "report", *base))
            if r.returncode != 0:
                logger.warning("report failed (rc=%s), no coverage totals", r.returncode)
                if r.stderr:
                    logger.debug("STDERR:\n%s", r.stderr)
            else:
                result.totals = summary.parse_report_text(r.stdout)
                if result.totals is None:
                    logger.warning("Could not find a TOTAL row in the coverage report")

        if result.files is not None and self.config.summary_csv:
            result.summary_csv = summary.write_summary_csv(
                result.files, self.config.resolve(self.config.summary_csv)
            )
            logger.info("Per-file summary written to %s", result.summary_csv)

        if self.config.plot:
            if result.files is None or result.files.empty:
                logger.warning("No per-file data, skipping plot")
            else:
                from cargocov.utils.plotter import plot_file_coverage

                result.plot = plot_file_coverage(result.files, self.config.resolve(self.config.plot))
                logger.info("Saved %s", result.plot)
        return result

    def run(self, with_summary: bool = True) -> ReportResult:
        self.preflight()
        self.run_tests()
        profdata = self.merge()
        objects = self.discover()
        output_dir = self.render(objects)
        result = ReportResult(output_dir=output_dir, profdata=profdata, objects=objects)
        if with_summary:
            self.summarize(objects, result)
        return result
