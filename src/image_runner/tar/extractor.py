"""Layer tar extraction onto an image root."""

import asyncio
import logging
import os
import shutil
import stat
import tarfile
import zlib
from pathlib import Path
from typing import Union

from ..exceptions import ExtractionError

logger = logging.getLogger(__name__)

WHITEOUT_PREFIX = ".wh."
OPAQUE_WHITEOUT = ".wh..wh..opq"

PathLike = Union[str, Path]

MAX_SYMLINK_HOPS = 40


def _is_within(root: str, path: str) -> bool:
    """Check that an absolute, normalised path lies inside root."""
    return os.path.commonpath([root, path]) == root


def resolve_in_root(root: str, relative: str) -> str:
    """Follow a relative path under root the way it would resolve after chroot.

    Components are walked one at a time. A symlink with an absolute target
    restarts at root rather than at the host's ``/``.

    Args:
        root: Real, absolute path of the image root
        relative: Path below the root, every component of which is followed

    Returns:
        Absolute host path inside root

    Raises:
        ExtractionError: If a relative link climbs above root or links loop
    """
    pending = [part for part in reversed(relative.split("/")) if part]
    resolved: list[str] = []
    hops = 0

    while pending:
        part = pending.pop()
        if part == ".":
            continue
        if part == "..":
            if not resolved:
                raise ExtractionError(f"{relative!r} resolves outside the root")
            resolved.pop()
            continue

        candidate = os.path.join(root, *resolved, part)
        if not os.path.islink(candidate):
            resolved.append(part)
            continue

        hops += 1
        if hops > MAX_SYMLINK_HOPS:
            raise ExtractionError(f"Too many levels of symbolic links in {relative!r}")
        link = os.readlink(candidate)
        if link.startswith("/"):
            resolved = []
        pending.extend(segment for segment in reversed(link.split("/")) if segment)

    return os.path.join(root, *resolved)


def _remove_path(path: str) -> None:
    """Remove a file, symlink or directory tree without following symlinks."""
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    else:
        os.unlink(path)


class LayerExtractor:
    """Unpacks one gzip tar layer into a destination root.

    Every member name is treated as hostile: the target must stay inside the
    root, and its parent directory is resolved against the root the way it
    would be after chroot. Otherwise the whole layer fails with
    ExtractionError.
    """

    def __init__(self, destination: PathLike) -> None:
        self.root = os.path.realpath(destination)
        # Paths materialised by the current layer; opaque whiteouts keep them
        self._created: set[str] = set()
        self._directory_modes: list[tuple[str, int]] = []

    def resolve(self, name: str) -> str:
        """Map a member name to a host path inside the root.

        Args:
            name: Member name or link target as stored in the archive

        Returns:
            Absolute host path under the root

        Raises:
            ExtractionError: If the path escapes the root
        """
        relative = os.path.normpath(name.lstrip("/"))
        target = os.path.normpath(os.path.join(self.root, relative))
        if not _is_within(self.root, target):
            raise ExtractionError(f"Refusing to extract {name!r}: path escapes the root")

        if target == self.root:
            return target

        # Symlinks from this or an earlier layer may redirect the parent
        directory, basename = os.path.split(relative)
        try:
            resolved = resolve_in_root(self.root, directory)
        except ExtractionError as e:
            raise ExtractionError(f"Refusing to extract {name!r}: {e}") from e
        return os.path.join(resolved, basename)

    def extract(self, blob_path: PathLike) -> None:
        """Extract a gzip tar layer.

        Args:
            blob_path: Path to the compressed layer blob

        Raises:
            ExtractionError: If the blob cannot be decompressed, is malformed,
                tries to escape the root, or a filesystem write fails
        """
        self._created = set()
        self._directory_modes = []

        try:
            with tarfile.open(str(blob_path), mode="r|gz") as tar:
                for member in tar:
                    self._extract_member(tar, member)

            # Deepest first so read-only parents are applied last
            for path, mode in sorted(self._directory_modes, reverse=True):
                os.chmod(path, mode)
        except ExtractionError:
            raise
        except (tarfile.TarError, EOFError, zlib.error) as e:
            raise ExtractionError(f"Malformed layer archive {blob_path}: {e}") from e
        except OSError as e:
            raise ExtractionError(f"Failed to write layer {blob_path}: {e}") from e

    def _extract_member(self, tar: tarfile.TarFile, member: tarfile.TarInfo) -> None:
        basename = os.path.basename(member.name.rstrip("/"))

        if basename == OPAQUE_WHITEOUT:
            self._apply_opaque_whiteout(os.path.dirname(member.name.rstrip("/")))
            return
        if basename.startswith(WHITEOUT_PREFIX):
            hidden = os.path.join(
                os.path.dirname(member.name.rstrip("/")), basename[len(WHITEOUT_PREFIX):]
            )
            self._apply_whiteout(hidden)
            return

        target = self.resolve(member.name)
        if target == self.root:
            return

        mode = member.mode & 0o7777

        if member.isdir():
            self._make_directory(target)
            self._directory_modes.append((target, mode))
            self._created.add(target)
            return

        os.makedirs(os.path.dirname(target), exist_ok=True)
        self._clear_target(target)

        if member.isreg():
            source = tar.extractfile(member)
            if source is None:
                raise ExtractionError(f"Cannot read content of {member.name!r}")
            with source, open(target, "wb") as dest:
                shutil.copyfileobj(source, dest)
            os.chmod(target, mode)
            os.utime(target, (member.mtime, member.mtime))
        elif member.issym():
            os.symlink(member.linkname, target)
        elif member.islnk():
            os.link(self.resolve(member.linkname), target, follow_symlinks=False)
        elif member.isfifo():
            os.mkfifo(target, mode)
        elif member.ischr() or member.isblk():
            kind = stat.S_IFCHR if member.ischr() else stat.S_IFBLK
            try:
                os.mknod(target, mode | kind, os.makedev(member.devmajor, member.devminor))
            except PermissionError:
                logger.warning("Skipping device node %s: not permitted", member.name)
                return
        else:
            logger.debug("Skipping unsupported member type %r: %s", member.type, member.name)
            return

        self._created.add(target)

    def _make_directory(self, target: str) -> None:
        if os.path.lexists(target) and not (
            os.path.isdir(target) and not os.path.islink(target)
        ):
            os.unlink(target)
        os.makedirs(target, exist_ok=True)

    def _clear_target(self, target: str) -> None:
        """Drop whatever a lower layer left at target."""
        if os.path.lexists(target):
            _remove_path(target)

    def _apply_whiteout(self, hidden: str) -> None:
        target = self.resolve(hidden)
        if target == self.root:
            raise ExtractionError(f"Whiteout cannot remove the root: {hidden!r}")
        if os.path.lexists(target):
            logger.debug("Whiteout removes %s", hidden)
            _remove_path(target)

    def _apply_opaque_whiteout(self, directory: str) -> None:
        target = self.resolve(directory) if directory else self.root
        if not os.path.isdir(target) or os.path.islink(target):
            return
        for child in os.listdir(target):
            path = os.path.join(target, child)
            if path not in self._created:
                _remove_path(path)


def extract_layer(blob_path: PathLike, destination: PathLike) -> None:
    """Extract one compressed layer blob into destination.

    Args:
        blob_path: Path to the gzip tar blob
        destination: Image root directory

    Raises:
        ExtractionError: If extraction fails
    """
    LayerExtractor(destination).extract(blob_path)


async def extract_layer_async(blob_path: PathLike, destination: PathLike) -> None:
    """Run extract_layer in the default executor."""
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, extract_layer, blob_path, destination)
