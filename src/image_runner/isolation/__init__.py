"""Process isolation: chroot and PID namespace."""

from .bootstrap import BootstrapState, IsolationBootstrap

__all__ = ["BootstrapState", "IsolationBootstrap"]
