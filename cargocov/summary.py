import json
import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

COLUMNS = ["filename", "regioncov", "funccov", "linecov", "branchcov", "lines", "lines_covered"]

# llvm-cov summary categories, in the order `llvm-cov report` prints them
_CATEGORIES = [
    ("regioncov", "regions"),
    ("funccov", "functions"),
    ("linecov", "lines"),
    ("branchcov", "branches"),
]


@dataclass
class CoverageTotals:
    regioncov: Optional[float] = None
    funccov: Optional[float] = None
    linecov: Optional[float] = None
    branchcov: Optional[float] = None

    def as_dict(self):
        return asdict(self)


def _percent(summary, key):
    v = (summary.get(key) or {}).get("percent")
    return float(v) if v is not None else None


# ------------------------------
# `llvm-cov export --summary-only`
# ------------------------------
def parse_export_json(s) -> Optional[CoverageTotals]:
    data = json.loads(s)
    if not isinstance(data, dict) or not data.get("data"):
        return None
    totals = data["data"][0].get("totals", {})
    # Branch totals may not be present depending on compiler/flags
    return CoverageTotals(**{name: _percent(totals, key) for name, key in _CATEGORIES})


def files_frame(s) -> pd.DataFrame:
    """Per-file coverage table from an export JSON document."""
    data = json.loads(s)
    if not isinstance(data, dict):
        data = {}
    records = []
    for export in data.get("data") or []:
        for f in export.get("files") or []:
            summary = f.get("summary") or {}
            lines = summary.get("lines") or {}
            row = {"filename": f.get("filename")}
            for name, key in _CATEGORIES:
                v = _percent(summary, key)
                row[name] = np.nan if v is None else v
            row["lines"] = lines.get("count", 0)
            row["lines_covered"] = lines.get("covered", 0)
            records.append(row)
    return pd.DataFrame(records, columns=COLUMNS)


# ------------------------------
# `llvm-cov report` (text fallback)
# ------------------------------
def parse_report_text(text) -> Optional[CoverageTotals]:
    for line in text.splitlines():
        if line.strip().startswith("TOTAL"):
            # up to 4 percentages in the TOTAL line: region, func, line, branch
            pcts = re.findall(r"(\d+(?:\.\d+)?)%", line)
            vals = [float(x) for x in pcts]
            return CoverageTotals(
                *[vals[i] if len(vals) > i else None for i in range(len(_CATEGORIES))]
            )
    return None


def totals_from_frame(frame: pd.DataFrame) -> CoverageTotals:
    """Line coverage over every file in ``frame``, weighted by line count."""
    lines = frame["lines"].sum()
    if not lines:
        return CoverageTotals()
    return CoverageTotals(linecov=float(np.round(100.0 * frame["lines_covered"].sum() / lines, 2)))


def format_totals(totals: CoverageTotals) -> str:
    labels = {"regioncov": "Region", "funccov": "Function", "linecov": "Line", "branchcov": "Branch"}
    out = ["=== TOTAL COVERAGE ==="]
    for name, val in totals.as_dict().items():
        if val is not None:
            out.append(f"{labels[name]} Coverage: {val:.2f}%")
    return "\n".join(out)


def write_summary_csv(frame: pd.DataFrame, path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame.sort_values("filename").to_csv(path, index=False)
    return path
