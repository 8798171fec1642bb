"""Command execution with captured output."""

import logging
import subprocess
from typing import Sequence

from .core.types import CommandResult
from .exceptions import SpawnError

logger = logging.getLogger(__name__)


def execute_command(executable: str, args: Sequence[str] = ()) -> CommandResult:
    """Run a command to completion and capture its output.

    Blocks until the child exits. No helper threads are started, so this is
    safe to call after the process has unshared its PID namespace.

    Args:
        executable: Path of the program (resolved in the current root)
        args: Program arguments

    Returns:
        CommandResult; exit_code is 1 when the child was killed by a signal

    Raises:
        SpawnError: If the program cannot be found or started
    """
    try:
        completed = subprocess.run([executable, *args], capture_output=True, check=False)
    except OSError as e:
        raise SpawnError(f"Tried to run {executable!r} with arguments {list(args)}: {e}") from e

    returncode = completed.returncode

    # Negative return codes mean "terminated by signal": no exit code
    if returncode < 0:
        logger.debug("%s ended without an exit code (%s)", executable, returncode)
        exit_code = 1
    else:
        exit_code = returncode

    return CommandResult(exit_code=exit_code, stdout=completed.stdout, stderr=completed.stderr)
