import argparse
import logging
import sys
from pathlib import Path

from cargocov import __version__
from cargocov.config import ReportConfig
from cargocov.errors import CoverageReportError, StepFailedError
from cargocov.logging_config import get_logger, setup_logging
from cargocov.report import CoverageReportDriver
from cargocov.summary import format_totals

logger = get_logger("cli")


def parse_args(argv=None) -> argparse.Namespace:
    defaults = ReportConfig()
    parser = argparse.ArgumentParser(
        prog="cargo-cov-report",
        description="Run a Cargo test suite with coverage instrumentation and render an HTML report.",
        epilog="Arguments after '--' are passed to both `cargo test` invocations.",
    )
    parser.add_argument("-C", "--manifest-dir", type=Path, default=Path.cwd(),
                        help="Directory of the Cargo project (default .)")
    parser.add_argument("--toolchain", default=defaults.toolchain,
                        help=f"rustup toolchain selector, '' for none (default {defaults.toolchain})")
    parser.add_argument("--profraw", default=defaults.profraw,
                        help=f"LLVM_PROFILE_FILE for the test run, %%p/%%m allowed (default {defaults.profraw})")
    parser.add_argument("--profdata", default=defaults.profdata,
                        help=f"Merged profile output (default {defaults.profdata})")
    parser.add_argument("-o", "--output-dir", default=defaults.output_dir,
                        help=f"HTML report directory (default {defaults.output_dir})")
    parser.add_argument("--ignore-filename-regex", default=defaults.ignore_filename_regex,
                        help="Skip source files matching this regex, '' for none")
    parser.add_argument("--demangler", default=defaults.demangler,
                        help="Symbol demangler passed to llvm-cov, '' for none")
    parser.add_argument("--keep-going", action="store_true",
                        help="Render a report even when tests fail")
    parser.add_argument("--clean-raw", action="store_true",
                        help="Delete raw profiles after merging")
    parser.add_argument("--no-summary", action="store_true",
                        help="Skip the coverage summary table")
    parser.add_argument("--summary-csv", default=defaults.summary_csv,
                        help=f"Per-file summary CSV (default {defaults.summary_csv})")
    parser.add_argument("--plot", default=None, metavar="FILE",
                        help="Save a per-file line coverage bar chart (e.g. coverage.pdf)")
    parser.add_argument("--log-file", type=Path, default=None,
                        help="Also log to this file, relative to --manifest-dir")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    argv = list(sys.argv[1:] if argv is None else argv)
    test_args = []
    if "--" in argv:
        split = argv.index("--")
        argv, test_args = argv[:split], argv[split + 1:]
    args = parser.parse_args(argv)
    args.test_args = test_args
    return args


def config_from_args(args: argparse.Namespace) -> ReportConfig:
    return ReportConfig(
        toolchain=args.toolchain or None,
        profraw=args.profraw,
        profdata=args.profdata,
        ignore_filename_regex=args.ignore_filename_regex or None,
        demangler=args.demangler or None,
        output_dir=args.output_dir,
        manifest_dir=args.manifest_dir.resolve(),
        test_args=list(args.test_args),
        keep_going=args.keep_going,
        clean_raw=args.clean_raw,
        summary_csv=args.summary_csv or None,
        plot=args.plot,
    )


def exit_status(returncode: int) -> int:
    # killed by a signal: report it the way a shell would
    if returncode < 0:
        return 128 - returncode
    return returncode


def main(argv=None) -> int:
    args = parse_args(argv)
    config = config_from_args(args)
    log_file = config.resolve(args.log_file) if args.log_file else None
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, log_file)

    driver = CoverageReportDriver(config)
    try:
        result = driver.run(with_summary=not args.no_summary)
    except StepFailedError as e:
        logger.error("%s", e)
        return exit_status(e.returncode)
    except CoverageReportError as e:
        logger.error("%s", e)
        return 1

    if result.totals is not None:
        print(format_totals(result.totals))
    print(f"Wrote report -> {result.output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
