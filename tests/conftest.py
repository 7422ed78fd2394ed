import json
import subprocess
from pathlib import Path

import pytest

from cargocov.config import ReportConfig


def artifact(filenames, test, name="app"):
    return json.dumps({
        "reason": "compiler-artifact",
        "package_id": f"{name} 0.1.0 (path+file:///w)",
        "target": {"kind": ["bin"], "name": name, "src_path": "/w/src/main.rs"},
        "profile": {
            "opt_level": "0",
            "debuginfo": 2,
            "debug_assertions": True,
            "overflow_checks": True,
            "test": test,
        },
        "features": [],
        "filenames": filenames,
        "executable": filenames[0] if test else None,
        "fresh": False,
    })


BUILD_OUTPUT = "\n".join([
    json.dumps({"reason": "build-script-executed", "package_id": "libc 0.2.150", "linked_libs": []}),
    artifact(["/w/target/debug/deps/libapp-1a2b.rlib"], test=False, name="applib"),
    artifact(["/w/target/debug/deps/app-3c4d"], test=True),
    artifact(["/w/target/debug/deps/widgets-5e6f", "/w/target/debug/deps/widgets-5e6f.dSYM"], test=True,
             name="widgets"),
    json.dumps({"reason": "build-finished", "success": True}),
]) + "\n"


def file_summary(filename, lines, covered, regions=(10, 5), functions=(4, 3)):
    def cat(count, cov):
        return {"count": count, "covered": cov, "percent": 100.0 * cov / count if count else 0}

    return {
        "filename": filename,
        "summary": {
            "lines": cat(lines, covered),
            "regions": cat(*regions),
            "functions": cat(*functions),
            "instantiations": cat(*functions),
        },
    }


EXPORT_JSON = json.dumps({
    "type": "llvm.coverage.json.export",
    "version": "2.0.1",
    "data": [{
        "files": [
            file_summary("/w/src/widget/canvas.rs", 40, 30),
            file_summary("/w/src/app.rs", 60, 60, regions=(20, 20), functions=(6, 6)),
        ],
        "totals": {
            "lines": {"count": 100, "covered": 90, "percent": 90.0},
            "regions": {"count": 30, "covered": 25, "percent": 83.33},
            "functions": {"count": 10, "covered": 9, "percent": 90.0},
        },
    }],
})

REPORT_TEXT = """\
Filename                      Regions    Missed Regions     Cover   Functions  Missed Functions  Executed       Lines      Missed Lines     Cover    Branches   Missed Branches     Cover
--------------------------------------------------------------------------------------------------------------------------------------------------------------------------------------
/w/src/app.rs                      20                 0   100.00%           6                 0   100.00%          60                 0   100.00%           0                 0         -
/w/src/widget/canvas.rs            10                 5    50.00%           4                 1    75.00%          40                10    75.00%           8                 4    50.00%
--------------------------------------------------------------------------------------------------------------------------------------------------------------------------------------
TOTAL                              30                 5    83.33%          10                 1    90.00%         100                10    90.00%           8                 4    50.00%
"""


class FakeCargo:
    """Stands in for ``tools.run``: records every command and plays cargo's part."""

    def __init__(self, test_rc=0, build_output=BUILD_OUTPUT, export_rc=0, export_out=EXPORT_JSON,
                 report_out=REPORT_TEXT, report_rc=0, write_profile=True):
        self.test_rc = test_rc
        self.build_output = build_output
        self.export_rc = export_rc
        self.export_out = export_out
        self.report_out = report_out
        self.report_rc = report_rc
        self.write_profile = write_profile
        self.calls = []

    def __call__(self, cmd, env=None, cwd=None, capture=True):
        cmd = list(cmd)
        self.calls.append({"cmd": cmd, "env": env, "cwd": cwd, "capture": capture})
        rc, out = 0, ""
        if "test" in cmd and "--no-run" in cmd:
            out = self.build_output
        elif "test" in cmd:
            rc = self.test_rc
            if self.write_profile:
                Path(env["LLVM_PROFILE_FILE"]).write_bytes(b"\xfflprofraw")
        elif "export" in cmd:
            rc, out = self.export_rc, self.export_out
        elif "report" in cmd:
            rc, out = self.report_rc, self.report_out
        elif "merge" in cmd:
            Path(cmd[cmd.index("-o") + 1]).write_bytes(b"\xfflprofdata")
        return subprocess.CompletedProcess(cmd, rc, out if capture else None, "" if capture else None)

    def steps(self):
        names = []
        for call in self.calls:
            cmd = call["cmd"]
            if "--no-run" in cmd:
                names.append("discover")
            elif "test" in cmd:
                names.append("test")
            else:
                names.append(cmd[cmd.index("--") + 1])
        return names

    def command(self, step):
        for name, call in zip(self.steps(), self.calls):
            if name == step:
                return call["cmd"]
        raise AssertionError(f"{step} was never run")


@pytest.fixture
def config(tmp_path):
    return ReportConfig(manifest_dir=tmp_path)


@pytest.fixture
def which_all():
    found = []

    def which(name):
        found.append(name)
        return f"/usr/bin/{name}"

    which.found = found
    return which
