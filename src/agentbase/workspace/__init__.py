"""Workspace identity and object-store synchronization."""

from __future__ import annotations

from agentbase.workspace.identity import (
    canonical_workspace_path,
    cloud_workspace_id,
    slugify,
    workspace_id,
)
from agentbase.workspace.sync import WorkspaceSync, is_missing_target, retry_with_backoff
from agentbase.workspace.transports import (
    GsutilTransport,
    LocalMirrorTransport,
    SyncTransport,
    SyncTransportError,
)

__all__ = [
    "GsutilTransport",
    "LocalMirrorTransport",
    "SyncTransport",
    "SyncTransportError",
    "WorkspaceSync",
    "canonical_workspace_path",
    "cloud_workspace_id",
    "is_missing_target",
    "retry_with_backoff",
    "slugify",
    "workspace_id",
]
