"""Process-ID namespace entry via unshare(2)."""

import ctypes
import ctypes.util
import os
import sys
from typing import Optional

# Namespace flag from <linux/sched.h>
CLONE_NEWPID = 0x20000000


class NamespaceUnavailable(Exception):
    """The platform offers no PID namespaces."""

    pass


def load_libc() -> Optional[ctypes.CDLL]:
    """Load the C library with errno tracking, or None off Linux."""
    if not sys.platform.startswith("linux"):
        return None
    try:
        return ctypes.CDLL("libc.so.6", use_errno=True)
    except OSError:
        name = ctypes.util.find_library("c")
        return ctypes.CDLL(name, use_errno=True) if name else None


def unshare_pid_namespace(libc: Optional[ctypes.CDLL] = None) -> None:
    """Move the calling process's future children into a new PID namespace.

    The caller itself keeps its PID; the first child it forks afterwards
    becomes PID 1 of the new namespace.

    Raises:
        NamespaceUnavailable: If the platform or libc has no unshare(2)
        OSError: If unshare(2) fails (typically EPERM without CAP_SYS_ADMIN)
    """
    libc = libc or load_libc()
    if libc is None or not hasattr(libc, "unshare"):
        raise NamespaceUnavailable(f"unshare(2) is not available on {sys.platform}")

    # int unshare(int flags);
    ret = libc.unshare(CLONE_NEWPID)
    if ret != 0:
        errno = ctypes.get_errno()
        raise OSError(errno, f"unshare(CLONE_NEWPID) failed: {os.strerror(errno)}")
