import glob
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

# ------------------------------
# Defaults
# ------------------------------
TOOLCHAIN = "+nightly"
INSTRUMENT_FLAG = "-C instrument-coverage"
PROFRAW = "test.profraw"
PROFDATA = "test.profdata"
IGNORE_FILENAME_REGEX = "(.cargo|rustc)"
DEMANGLER = "rustfilt"
OUTPUT_DIR = "llvm-cov-report"
OBJECT_FLAG = "--object"
DEBUG_BUNDLE_MARKER = "dSYM"
SUMMARY_CSV = "coverage_summary.csv"

# %p, %h, %m, %Nm, %b, %t, %c as understood by the LLVM profile runtime
_PROFILE_SPECIFIER = re.compile(r"%\d*[phmbtc]")


@dataclass
class ReportConfig:
    toolchain: Optional[str] = TOOLCHAIN
    instrument_flag: str = INSTRUMENT_FLAG
    profraw: str = PROFRAW
    profdata: str = PROFDATA
    ignore_filename_regex: Optional[str] = IGNORE_FILENAME_REGEX
    demangler: Optional[str] = DEMANGLER
    output_dir: str = OUTPUT_DIR
    object_flag: str = OBJECT_FLAG
    debug_bundle_marker: str = DEBUG_BUNDLE_MARKER
    manifest_dir: Path = field(default_factory=Path.cwd)
    test_args: List[str] = field(default_factory=list)
    keep_going: bool = False
    clean_raw: bool = False
    summary_csv: Optional[str] = SUMMARY_CSV
    plot: Optional[str] = None

    def resolve(self, path) -> Path:
        """Paths are relative to the manifest directory, like cargo's own output."""
        p = Path(path)
        return p if p.is_absolute() else Path(self.manifest_dir) / p

    def cargo(self, *args) -> List[str]:
        cmd = ["cargo"]
        if self.toolchain:
            cmd.append(self.toolchain)
        cmd.extend(args)
        return cmd

    def instrument_env(self, base_rustflags: Optional[str] = None) -> dict:
        rustflags = self.instrument_flag
        if base_rustflags:
            rustflags = f"{base_rustflags} {rustflags}"
        return {"RUSTFLAGS": rustflags, "LLVM_PROFILE_FILE": str(self.resolve(self.profraw))}

    def raw_profiles(self) -> List[Path]:
        raw = self.resolve(self.profraw)
        if "%" not in self.profraw:
            return [raw] if raw.is_file() else []
        # only the specifiers are wildcards, the rest of the path is literal
        pattern = "*".join(glob.escape(part) for part in _PROFILE_SPECIFIER.split(str(raw)))
        return sorted(Path(p) for p in glob.glob(pattern) if Path(p).is_file())
