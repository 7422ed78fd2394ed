class CoverageReportError(RuntimeError):
    pass


class ToolNotFoundError(CoverageReportError):
    def __init__(self, name):
        super().__init__(
            f"'{name}' not found in PATH. Install it (cargo-binutils provides "
            f"cargo-profdata and cargo-cov, rustfilt is a cargo crate) or add it to PATH."
        )
        self.name = name


class StepFailedError(CoverageReportError):
    def __init__(self, step, cmd, returncode, stderr=""):
        msg = f"step '{step}' failed (rc={returncode}): {' '.join(str(c) for c in cmd)}"
        if stderr and stderr.strip():
            msg += f"\nSTDERR:\n{stderr.strip()}"
        super().__init__(msg)
        self.step = step
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stderr = stderr


class DiscoveryError(CoverageReportError):
    pass
