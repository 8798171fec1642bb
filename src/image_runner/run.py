"""Run a command inside a freshly pulled image root."""

import asyncio
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import BinaryIO, Optional

from .core.types import CommandResult, CommandSpec, RegistryConfig
from .exceptions import ImageRunnerError, SetupError
from .executor import execute_command
from .isolation.bootstrap import bootstrap
from .pull import acquire_image

logger = logging.getLogger(__name__)

ROOT_PREFIX = "image-runner-"


def report_error(error: BaseException) -> None:
    """Print a one-line diagnostic for a failed run on stderr."""
    print(f"image-runner: error: {error}", file=sys.stderr, flush=True)


def relay_output(
    result: CommandResult,
    stdout: Optional[BinaryIO] = None,
    stderr: Optional[BinaryIO] = None,
) -> None:
    """Write the command's captured output byte-for-byte."""
    stdout = stdout or sys.stdout.buffer
    stderr = stderr or sys.stderr.buffer
    stdout.write(result.stdout)
    stdout.flush()
    stderr.write(result.stderr)
    stderr.flush()


def exit_code_from_status(status: int) -> int:
    """Map a waitpid() status to an exit code, 1 when there is none."""
    if os.WIFEXITED(status):
        return os.WEXITSTATUS(status)
    return 1


def _isolated_worker(spec: CommandSpec, root: Path) -> int:
    bootstrap(root, spec.executable)
    result = execute_command(spec.executable, spec.args)
    relay_output(result)
    return result.exit_code


def run_isolated(spec: CommandSpec, root: Path) -> int:
    """Fork a worker that confines itself to root and runs the command.

    The calling process never changes root, so it can still remove the
    image root once the worker has exited.

    Returns:
        The command's exit code, or 1 if the worker ended without one
    """
    if not hasattr(os, "fork"):
        raise SetupError(f"Process isolation is not supported on {sys.platform}")

    sys.stdout.flush()
    sys.stderr.flush()

    pid = os.fork()
    if pid == 0:
        code = 1
        try:
            code = _isolated_worker(spec, root)
        except ImageRunnerError as e:
            report_error(e)
        except Exception:
            logger.exception("Isolated worker failed")
        finally:
            os._exit(code)

    _, status = os.waitpid(pid, 0)
    code = exit_code_from_status(status)
    logger.debug("Worker %d finished with status %#x (exit code %d)", pid, status, code)
    return code


def run_container(spec: CommandSpec, config: Optional[RegistryConfig] = None) -> int:
    """이미지를 받아 격리된 루트에서 명령을 실행합니다.

    임시 루트 디렉토리는 성공/실패와 관계없이 실행이 끝나면 삭제됩니다.

    Args:
        spec: 이미지, 실행 파일 경로, 인자
        config: 레지스트리 설정 (기본값: 환경 변수 또는 Docker Hub)

    Returns:
        int: 명령의 종료 코드 (종료 코드가 없으면 1)

    Raises:
        ImageRunnerError: 이미지 준비 단계에서 실패한 경우

    Examples:
        # alpine 이미지에서 echo 실행
        spec = CommandSpec(
            image=parse_image_reference("alpine"),
            executable="/bin/echo",
            args=("hello",),
        )
        exit_code = run_container(spec)
    """
    config = config or RegistryConfig.from_env()

    with tempfile.TemporaryDirectory(prefix=ROOT_PREFIX) as root:
        logger.debug("Created image root %s", root)
        asyncio.run(acquire_image(spec.image, root, config))
        return run_isolated(spec, Path(root))
