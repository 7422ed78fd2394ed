import os
import shlex
import shutil
import subprocess

from cargocov.errors import StepFailedError, ToolNotFoundError
from cargocov.logging_config import get_logger

logger = get_logger("tools")


def which_or_die(name):
    path = shutil.which(name)
    if not path:
        raise ToolNotFoundError(name)
    return path


def format_command(cmd, env=None):
    prefix = " ".join(f"{k}={shlex.quote(v)}" for k, v in (env or {}).items())
    line = " ".join(shlex.quote(str(c)) for c in cmd)
    return f"{prefix} {line}" if prefix else line


def run(cmd, env=None, cwd=None, capture=True):
    """Run ``cmd`` to completion. ``env`` is layered over the current environment.

    With ``capture`` False the tool writes straight to the terminal.
    """
    full_env = None
    if env:
        full_env = os.environ.copy()
        full_env.update(env)
    logger.info("RUN: %s", format_command(cmd, env))
    if capture:
        return subprocess.run(
            cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True, cwd=cwd, env=full_env
        )
    return subprocess.run(cmd, text=True, cwd=cwd, env=full_env)


def check(step, result):
    if result.returncode == 0:
        return result
    stderr = getattr(result, "stderr", None) or ""
    logger.error("%s FAILED (rc=%s)", step, result.returncode)
    if getattr(result, "stdout", None):
        logger.debug("STDOUT:\n%s", result.stdout)
    raise StepFailedError(step, result.args, result.returncode, stderr)
