"""A scratch directory whose paths are all kept under one root."""

from __future__ import annotations

import os
import random
import shutil
import tempfile
import threading

_temp_file_index = 0
_index_lock = threading.Lock()


def file_exists(path: str) -> bool:
    """Return True if ``path`` can be stat'ed."""
    try:
        os.stat(path)
    except OSError:
        return False
    return True


def copy_file(src: str, dest: str) -> None:
    """Copy the contents of ``src`` into ``dest`` and flush them to disk."""
    with open(src, "rb") as source, open(dest, "wb") as target:
        shutil.copyfileobj(source, target)
        target.flush()
        os.fsync(target.fileno())


def _split_path(path: str) -> list[str]:
    return os.path.normpath(path).split("/")


def _join(root: str, path: str) -> str:
    """Join ``path`` under ``root`` even when ``path`` is absolute."""
    return os.path.normpath(f"{root}/{path}")


def _remove_all(path: str) -> None:
    if os.path.islink(path) or os.path.isfile(path):
        os.remove(path)
    elif os.path.isdir(path):
        shutil.rmtree(path)
    elif os.path.lexists(path):
        os.remove(path)


def _next_temp_index() -> int:
    global _temp_file_index
    with _index_lock:
        index = _temp_file_index
        _temp_file_index += 1
    return index


class Sandbox:
    """Creates files and directories below ``root`` and removes them on cleanup."""

    def __init__(self, root: str | None = None) -> None:
        self.root = root if root is not None else tempfile.mkdtemp(prefix="sandbox")
        self._lock = threading.Lock()
        self._resources: list[str] = []

    def __enter__(self) -> "Sandbox":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cleanup()

    def track(self, path: str) -> None:
        """Register ``path`` to be deleted on cleanup."""
        normalized = self.normalize(path)
        with self._lock:
            self._resources.append(normalized)

    def touch(self, path: str) -> str:
        """Create an empty file, or refresh its timestamps if it exists."""
        target = self.normalize(path)
        if file_exists(target):
            os.utime(target, None)
        else:
            self.write_file(target, b"", 0o766)
        return target

    def temp_file(self, tail: str | None = None) -> str:
        """Return the path of a file that does not yet exist inside the sandbox."""
        if tail is None:
            # Long paths break unix sockets on some systems.
            tail = str(random.randint(0, 2**63 - 1))[:10]
        tail += str(_next_temp_index())

        target = self.normalize(tail)
        if file_exists(target):
            suffix = 0
            while file_exists(f"{target}{suffix}"):
                suffix += 1
            target = f"{target}{suffix}"

        self.track(target)
        return target

    def mkdir(self, path: str, mode: int = 0o755) -> str:
        """Create a directory (and parents) inside the sandbox."""
        target = self.normalize(path)
        self.track(target)
        os.makedirs(target, mode, exist_ok=True)
        return target

    def symlink(self, oldname: str, newname: str) -> str:
        """Create ``newname`` inside the sandbox pointing at ``oldname``."""
        dest = self.normalize(newname)
        self.track(dest)
        os.symlink(oldname, dest)
        return dest

    def write(self, path: str, data: str) -> str:
        """Write text into ``path`` with mode 0644."""
        return self.write_file(path, data.encode(), 0o644)

    def write_file(self, path: str, data: bytes, mode: int = 0o644) -> str:
        """Write bytes into ``path``, creating it with ``mode`` if needed."""
        target = self.normalize(path)
        self.track(target)
        fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        return target

    def cleanup(self) -> None:
        """Remove every tracked resource and the sandbox root."""
        with self._lock:
            resources = list(self._resources)
        for resource in resources:
            try:
                _remove_all(resource)
            except OSError:
                pass
        _remove_all(self.root)

    def contains_path(self, path: str) -> bool:
        """Return True if ``path`` lies lexically under the sandbox root."""
        parts = _split_path(path)
        for idx, component in enumerate(_split_path(self.root)):
            if idx >= len(parts) or component != parts[idx]:
                return False
        return True

    def normalize(self, path: str) -> str:
        """Return ``path`` prefixed with the sandbox root unless already inside it."""
        if self.contains_path(path):
            return path
        return _join(self.root, path)