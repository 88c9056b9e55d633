"""Stable namespace identifiers for local workspaces."""

from __future__ import annotations

import hashlib
import os
import re
import secrets
import string
import time
from pathlib import Path

DIGEST_LENGTH = 16
CLOUD_SUFFIX_LENGTH = 7

_SLUG_INVALID_RE = re.compile(r"[^a-z0-9-]")
_SLUG_DASHES_RE = re.compile(r"-+")
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def canonical_workspace_path(path: str | os.PathLike[str]) -> str:
    """Return the absolute, normalized form of a workspace path.

    Relative paths resolve against the current working directory. Symlinks are
    not followed so the result depends on the path string alone.
    """
    return os.path.abspath(os.fspath(path))


def slugify(name: str) -> str:
    """Lowercase ``name`` and collapse characters outside ``[a-z0-9-]`` to ``-``."""
    slug = _SLUG_INVALID_RE.sub("-", name.lower())
    slug = _SLUG_DASHES_RE.sub("-", slug)
    return slug.strip("-")


def workspace_id(path: str | os.PathLike[str]) -> str:
    """Derive the remote namespace key for a local workspace.

    Format is ``{slug}-{digest}`` where ``digest`` is the first 16 hex characters
    of the SHA-256 of the canonical path and ``slug`` is the sanitized basename.
    Identical absolute paths always map to the same identifier.
    """
    canonical = canonical_workspace_path(path)
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:DIGEST_LENGTH]
    slug = slugify(Path(canonical).name)
    return f"{slug}-{digest}"


def cloud_workspace_id() -> str:
    """Return a fresh, random namespace for cloud-only execution."""
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(CLOUD_SUFFIX_LENGTH))
    return f"cloud-{int(time.time() * 1000)}-{suffix}"


__all__ = ["canonical_workspace_path", "cloud_workspace_id", "slugify", "workspace_id"]
