"""Object-store transports used by workspace sync.

A transport performs one mirror pass in one direction. Retry, backoff and the
"missing namespace" policy live in :mod:`agentbase.workspace.sync`.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import shutil
from pathlib import Path
from typing import Protocol

import anyio

logger = logging.getLogger(__name__)

_HASH_CHUNK_SIZE = 1024 * 1024


class SyncTransportError(Exception):
    """A single transport pass failed."""

    def __init__(self, message: str, *, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class SyncTransport(Protocol):
    """Directory mirror between a local tree and a remote namespace."""

    name: str

    async def push(self, local_path: Path, workspace_id: str) -> None:
        ...

    async def pull(self, workspace_id: str, local_path: Path) -> None:
        ...


class GsutilTransport:
    """Mirror via ``gsutil -m rsync`` with checksum comparison and mirror-delete."""

    name = "gsutil"

    def __init__(
        self,
        *,
        bucket: str,
        binary: str = "gsutil",
        timeout_sec: float = 300.0,
    ) -> None:
        self.bucket = bucket
        self.binary = binary
        self.timeout_sec = timeout_sec

    def remote_url(self, workspace_id: str) -> str:
        return f"gs://{self.bucket}/{workspace_id}/"

    def build_command(self, source: str, destination: str) -> list[str]:
        # -c compares checksums; timestamps are unreliable through fuse mounts.
        return [self.binary, "-m", "rsync", "-r", "-d", "-c", source, destination]

    async def push(self, local_path: Path, workspace_id: str) -> None:
        await self._rsync(f"{local_path}/", self.remote_url(workspace_id))

    async def pull(self, workspace_id: str, local_path: Path) -> None:
        await self._rsync(self.remote_url(workspace_id), f"{local_path}/")

    async def _rsync(self, source: str, destination: str) -> None:
        command = self.build_command(source, destination)
        logger.debug("Running %s", " ".join(command))

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise SyncTransportError(
                f"Storage sync utility '{self.binary}' could not be started: {exc}"
            ) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout_sec
            )
        except asyncio.TimeoutError:
            kill_process(process)
            await process.wait()
            raise SyncTransportError(
                f"{self.binary} rsync timed out after {self.timeout_sec:g}s"
            ) from None
        except asyncio.CancelledError:
            kill_process(process)
            raise

        stderr_text = stderr.decode("utf-8", errors="replace").strip()
        if process.returncode != 0:
            raise SyncTransportError(
                f"{self.binary} rsync {source} -> {destination} exited with status "
                f"{process.returncode}: {stderr_text}",
                returncode=process.returncode,
                stderr=stderr_text,
            )
        if stdout:
            logger.debug("%s output: %s", self.binary, stdout.decode("utf-8", errors="replace").strip())


def kill_process(process: asyncio.subprocess.Process) -> None:
    """Kill ``process`` unless it has already exited."""
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass


def file_digest(path: Path) -> str:
    """Return the SHA-256 hex digest of a file's content."""
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _list_files(root: Path) -> dict[str, Path]:
    files: dict[str, Path] = {}
    for dirpath, _dirnames, filenames in os.walk(root):
        for filename in filenames:
            absolute = Path(dirpath) / filename
            files[absolute.relative_to(root).as_posix()] = absolute
    return files


def _clear_conflict(target: Path, destination: Path) -> None:
    """Remove whatever occupies ``target`` or its parents with the wrong type."""
    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
    parent = target.parent
    while parent != destination:
        if parent.exists() and not parent.is_dir():
            parent.unlink()
            break
        parent = parent.parent


def mirror_tree(source: Path, destination: Path) -> list[str]:
    """Make ``destination`` an exact copy of ``source`` by content checksum.

    Files missing from ``source`` are deleted and directories left empty are
    pruned before anything is copied, so a path that changed between file and
    directory is replaced. Files whose digests differ are then copied. Returns
    the relative paths that were deleted or copied.
    """
    if not source.is_dir():
        raise FileNotFoundError(f"Sync source {source} does not exist")

    destination.mkdir(parents=True, exist_ok=True)
    source_files = _list_files(source)
    destination_files = _list_files(destination)
    changed: list[str] = []

    for relative in sorted(set(destination_files) - set(source_files)):
        (destination / relative).unlink()
        changed.append(relative)

    for dirpath, _dirnames, _filenames in os.walk(destination, topdown=False):
        current = Path(dirpath)
        if current == destination or any(current.iterdir()):
            continue
        if not (source / current.relative_to(destination)).is_dir():
            current.rmdir()

    for relative, source_file in sorted(source_files.items()):
        target = destination / relative
        existing = destination_files.get(relative)
        if existing is not None and file_digest(existing) == file_digest(source_file):
            continue
        _clear_conflict(target, destination)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source_file, target)
        changed.append(relative)

    return changed


class LocalMirrorTransport:
    """Object-store emulation on the local filesystem.

    Each namespace is the directory ``root/{workspace_id}``. Useful for offline
    development and for exercising the sync contract without cloud access.
    """

    name = "local-mirror"

    def __init__(self, root: Path, *, timeout_sec: float = 300.0) -> None:
        self.root = Path(root)
        self.timeout_sec = timeout_sec

    def namespace_path(self, workspace_id: str) -> Path:
        return self.root / workspace_id

    async def push(self, local_path: Path, workspace_id: str) -> None:
        changed = await self._mirror(Path(local_path), self.namespace_path(workspace_id))
        logger.debug("Pushed %d change(s) to %s", len(changed), workspace_id)

    async def pull(self, workspace_id: str, local_path: Path) -> None:
        namespace = self.namespace_path(workspace_id)
        if not namespace.is_dir():
            raise FileNotFoundError(f"Namespace {workspace_id} not found")
        changed = await self._mirror(namespace, Path(local_path))
        logger.debug("Pulled %d change(s) from %s", len(changed), workspace_id)

    async def _mirror(self, source: Path, destination: Path) -> list[str]:
        try:
            with anyio.fail_after(self.timeout_sec):
                return await anyio.to_thread.run_sync(
                    mirror_tree, source, destination, abandon_on_cancel=True
                )
        except TimeoutError:
            raise SyncTransportError(
                f"Local mirror {source} -> {destination} timed out after {self.timeout_sec:g}s"
            ) from None


__all__ = [
    "GsutilTransport",
    "LocalMirrorTransport",
    "SyncTransport",
    "SyncTransportError",
    "file_digest",
    "kill_process",
    "mirror_tree",
]
