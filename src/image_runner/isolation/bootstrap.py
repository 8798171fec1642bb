"""Confinement of the current process to an image root.

The sequence is one-way: once the filesystem root has changed there is no
way back for this process, so a second bootstrap anywhere in the process is
refused.

    UNCONFINED -> ROOT_CHANGED -> NAMESPACE_ISOLATED | NAMESPACE_SKIPPED
"""

import enum
import logging
import os
import shutil
import stat
from pathlib import Path
from typing import Union

from ..exceptions import ExtractionError, SetupError
from ..tar.extractor import resolve_in_root
from .namespaces import NamespaceUnavailable, unshare_pid_namespace

logger = logging.getLogger(__name__)

DEV_NULL = "dev/null"

# Set once any bootstrap in this process has changed root
_process_confined = False


class BootstrapState(enum.Enum):
    UNCONFINED = "unconfined"
    ROOT_CHANGED = "root_changed"
    NAMESPACE_ISOLATED = "namespace_isolated"
    NAMESPACE_SKIPPED = "namespace_skipped"


def relative_executable_path(executable: str) -> str:
    """Strip leading separators so the path can be joined under a root."""
    relative = executable.lstrip(os.sep)
    if not relative:
        raise SetupError(f"Invalid executable path: {executable!r}")
    return relative


class IsolationBootstrap:
    """Prepares a populated root and confines the current process to it."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)
        self.state = BootstrapState.UNCONFINED

    def bootstrap(self, executable: str) -> BootstrapState:
        """Copy the executable in, provision /dev/null, chroot, unshare.

        Args:
            executable: Host path of the binary to run inside the root

        Returns:
            Final state (NAMESPACE_ISOLATED or NAMESPACE_SKIPPED)

        Raises:
            SetupError: If this process is already confined, or copying,
                device setup or chroot fails
        """
        if self.state is not BootstrapState.UNCONFINED or _process_confined:
            raise SetupError("Process is already confined to an image root")

        self.install_executable(executable)
        self.provision_dev_null()
        self.change_root()
        self.enter_pid_namespace()
        return self.state

    def install_executable(self, executable: str) -> Path:
        """Copy the host binary to the same path inside the root."""
        if not os.path.isfile(executable):
            raise SetupError(f"Executable not found: {executable}")
        directory, basename = os.path.split(relative_executable_path(executable))
        try:
            parent = resolve_in_root(os.path.realpath(self.root), directory)
        except ExtractionError as e:
            raise SetupError(f"{executable} would be installed outside {self.root}: {e}") from e
        target = Path(parent) / basename
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if target.is_symlink():
                target.unlink()
            shutil.copy2(executable, target)
        except OSError as e:
            raise SetupError(f"Failed to copy {executable} into {self.root}: {e}") from e

        logger.debug("Installed %s at %s", executable, target)
        return target

    def provision_dev_null(self) -> Path:
        """Create dev/null in the root: a real device when permitted, else an empty file."""
        target = self.root / DEV_NULL
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if os.path.lexists(target):
                target.unlink()
            try:
                os.mknod(target, 0o666 | stat.S_IFCHR, os.makedev(1, 3))
            except PermissionError:
                target.touch(mode=0o666)
        except OSError as e:
            raise SetupError(f"Failed to provision {target}: {e}") from e
        return target

    def change_root(self) -> None:
        global _process_confined

        if self.state is not BootstrapState.UNCONFINED or _process_confined:
            raise SetupError("Process is already confined to an image root")
        try:
            os.chroot(self.root)
        except OSError as e:
            raise SetupError(f"chroot({self.root}) failed: {e}") from e
        _process_confined = True

        os.chdir("/")
        self.state = BootstrapState.ROOT_CHANGED
        logger.debug("Root changed to %s", self.root)

    def enter_pid_namespace(self) -> None:
        if self.state is not BootstrapState.ROOT_CHANGED:
            raise SetupError(f"Cannot enter a PID namespace from state {self.state.value}")

        try:
            unshare_pid_namespace()
        except NamespaceUnavailable as e:
            logger.debug("PID namespace skipped: %s", e)
            self.state = BootstrapState.NAMESPACE_SKIPPED
            return
        except OSError as e:
            logger.warning("PID namespace isolation unavailable: %s", e)
            self.state = BootstrapState.NAMESPACE_SKIPPED
            return

        self.state = BootstrapState.NAMESPACE_ISOLATED
        logger.debug("Entered new PID namespace")


def bootstrap(root: Union[str, Path], executable: str) -> BootstrapState:
    """Confine the current process to root. See IsolationBootstrap.bootstrap."""
    return IsolationBootstrap(root).bootstrap(executable)
