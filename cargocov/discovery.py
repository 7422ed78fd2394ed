"""
Turn ``cargo test --no-run --message-format=json`` output into llvm-cov
``--object`` arguments.

Cargo prints one JSON record per line. Only ``compiler-artifact`` records
built with the test profile carry test binaries; everything else (build
scripts, libraries, ``build-finished``) is ignored.
"""

import json
from typing import Iterable, Iterator, List

from cargocov.config import DEBUG_BUNDLE_MARKER, OBJECT_FLAG
from cargocov.errors import DiscoveryError


def parse_build_messages(lines: Iterable[str]) -> Iterator[str]:
    for lineno, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as e:
            raise DiscoveryError(f"malformed build message on line {lineno}: {e}") from e
        if not isinstance(record, dict):
            continue
        profile = record.get("profile")
        if not isinstance(profile, dict) or profile.get("test") is not True:
            continue
        yield from record.get("filenames") or []


def filter_debug_bundles(paths: Iterable[str], marker: str = DEBUG_BUNDLE_MARKER) -> List[str]:
    return [p for p in paths if marker not in p]


def object_args(paths: Iterable[str], flag: str = OBJECT_FLAG) -> List[str]:
    args = []
    for p in paths:
        args.extend([flag, p])
    return args


def discover_objects(lines: Iterable[str], marker: str = DEBUG_BUNDLE_MARKER) -> List[str]:
    return filter_debug_bundles(parse_build_messages(lines), marker)


def discover_object_args(
    lines: Iterable[str], marker: str = DEBUG_BUNDLE_MARKER, flag: str = OBJECT_FLAG
) -> List[str]:
    return object_args(discover_objects(lines, marker), flag)
