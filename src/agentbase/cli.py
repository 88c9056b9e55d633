from __future__ import annotations

import json
import logging
import pathlib
from typing import NoReturn, Optional

import anyio
import typer
import yaml

from agentbase.errors import AgentbaseError
from agentbase.mcp import build_codex_config, load_mcp_servers, render_codex_config

app = typer.Typer(no_args_is_help=True)
sync_app = typer.Typer(help="Workspace object-store sync commands")
mcp_app = typer.Typer(help="Model Context Protocol server configuration commands")


def _fail(exc: Exception) -> NoReturn:
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(1)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Dual-mode execution runtime for code-editing agents."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("run")
def run_task(
    task: str = typer.Argument(..., help="Natural-language task for the agent"),
    workspace: pathlib.Path = typer.Option(
        pathlib.Path("."), "--workspace", "-w", help="Workspace directory"
    ),
    runtime: str = typer.Option("local", "--runtime", "-r", help="Runtime: local or cloud"),
    session: Optional[str] = typer.Option(None, "--session", "-s", help="Session id to resume"),
    resume_last: bool = typer.Option(
        False, "--resume-last", help="Resume the last recorded session for this workspace"
    ),
    model: Optional[str] = typer.Option(None, "--model", help="Model override"),
    reasoning_effort: Optional[str] = typer.Option(
        None, "--reasoning-effort", help="Reasoning effort: none, low, medium, high"
    ),
    mcp_config: Optional[pathlib.Path] = typer.Option(
        None, "--mcp-config", exists=True, dir_okay=False, help="JSON/YAML MCP server list"
    ),
    skip_sync: bool = typer.Option(
        False, "--skip-sync", help="Cloud only: run in a fresh namespace without syncing files"
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Cloud only: request timeout in seconds"
    ),
) -> None:
    """Execute a task with the local or cloud runtime."""
    # Lazy import to reduce startup time
    from agentbase.runtime import RuntimeExecutionConfig, create_runtime
    from agentbase.storage import SessionStore, create_session_record
    from agentbase.workspace import workspace_id

    if session and resume_last:
        typer.echo("Error: --session and --resume-last are mutually exclusive", err=True)
        raise typer.Exit(1)
    if reasoning_effort is not None and reasoning_effort not in {"none", "low", "medium", "high"}:
        typer.echo(f"Error: invalid reasoning effort '{reasoning_effort}'", err=True)
        raise typer.Exit(1)

    runtime = runtime.strip().lower()
    workspace_path = str(workspace.resolve())
    store = SessionStore()
    if resume_last:
        record = store.resolve_last(runtime, workspace_path)
        if record is None:
            typer.echo(f"Error: no recorded {runtime} session for {workspace_path}", err=True)
            raise typer.Exit(1)
        session = record.session_id

    overrides: dict[str, object] = {}
    if runtime == "cloud":
        overrides["skip_workspace_sync"] = skip_sync
        if timeout is not None:
            overrides["timeout_sec"] = timeout

    try:
        servers = load_mcp_servers(mcp_config) if mcp_config is not None else []
        runner = create_runtime(runtime, **overrides)
        config = RuntimeExecutionConfig(
            task=task,
            workspace=workspace_path,
            session_id=session,
            model=model,
            reasoning_effort=reasoning_effort,  # type: ignore[arg-type]
            mcp_servers=tuple(servers),
        )

        async def _execute():
            try:
                return await runner.execute(config)
            finally:
                await runner.cleanup()

        result = anyio.run(_execute)
    except (AgentbaseError, ValueError, yaml.YAMLError) as exc:
        _fail(exc)

    typer.echo(result.output)
    if result.session_id:
        store.upsert(
            create_session_record(
                runtime=runner.type,
                workspace=workspace_path,
                session_id=result.session_id,
                workspace_id=None if skip_sync else workspace_id(workspace_path),
                extra={"model": model} if model else None,
            )
        )
        typer.echo(f"session: {result.session_id}", err=True)


@app.command("workspace-id")
def workspace_id_command(
    path: pathlib.Path = typer.Argument(pathlib.Path("."), help="Workspace directory"),
) -> None:
    """Print the remote namespace id derived from a workspace path."""
    from agentbase.workspace import workspace_id

    typer.echo(workspace_id(str(path)))


@app.command("sessions")
def sessions_list(
    runtime: Optional[str] = typer.Option(None, "--runtime", "-r", help="Filter by runtime"),
    json_output: bool = typer.Option(False, "--json", help="Output machine readable JSON"),
) -> None:
    """List recorded sessions, most recent first."""
    from dataclasses import asdict

    from agentbase.storage import SessionStore

    records = SessionStore().list(runtime)
    if json_output:
        typer.echo(json.dumps([asdict(record) for record in records], ensure_ascii=False, indent=2))
        return
    if not records:
        typer.echo("No sessions recorded.")
        return
    for record in records:
        typer.echo(f"{record.runtime:<6} {record.session_id:<40} {record.workspace}")


def _sync(direction: str, path: pathlib.Path, namespace: Optional[str]) -> None:
    from agentbase.workspace import WorkspaceSync, workspace_id

    target = namespace or workspace_id(str(path))
    adapter = WorkspaceSync.from_settings()
    try:
        if direction == "upload":
            anyio.run(adapter.upload, path, target)
        else:
            anyio.run(adapter.download, target, path)
    except AgentbaseError as exc:
        _fail(exc)
    typer.echo(f"{direction} complete: {path} <-> {target}")


@sync_app.command("upload")
def sync_upload(
    path: pathlib.Path = typer.Argument(pathlib.Path("."), help="Local workspace directory"),
    namespace: Optional[str] = typer.Option(
        None, "--workspace-id", help="Namespace id (defaults to the path-derived id)"
    ),
) -> None:
    """Mirror a local workspace to its remote namespace."""
    _sync("upload", path, namespace)


@sync_app.command("download")
def sync_download(
    path: pathlib.Path = typer.Argument(pathlib.Path("."), help="Local workspace directory"),
    namespace: Optional[str] = typer.Option(
        None, "--workspace-id", help="Namespace id (defaults to the path-derived id)"
    ),
) -> None:
    """Mirror a remote namespace into a local workspace."""
    _sync("download", path, namespace)


@mcp_app.command("render")
def mcp_render(
    config: pathlib.Path = typer.Argument(..., exists=True, dir_okay=False),
    output: Optional[pathlib.Path] = typer.Option(
        None, "--output", "-o", help="Write the TOML fragment to a file"
    ),
    merge: bool = typer.Option(
        False, "--merge", help="Merge into the configured base Codex config.toml"
    ),
    model: Optional[str] = typer.Option(None, "--model", help="Model to inject when merging"),
) -> None:
    """Render MCP server descriptors as Codex config.toml blocks."""
    try:
        servers = load_mcp_servers(config)
    except (ValueError, yaml.YAMLError) as exc:
        _fail(exc)

    if merge:
        from agentbase.settings import get_runtime_settings

        base_path = pathlib.Path(get_runtime_settings().CODEX_CONFIG_PATH).expanduser()
        base = base_path.read_text(encoding="utf-8") if base_path.is_file() else ""
        rendered = build_codex_config(base, model=model, servers=servers)
    else:
        rendered = render_codex_config(servers)

    if output is not None:
        output.write_text(rendered, encoding="utf-8")
        typer.echo(f"Wrote {len(servers)} server block(s) to {output}")
        return
    typer.echo(rendered, nl=False)


app.add_typer(sync_app, name="sync")
app.add_typer(mcp_app, name="mcp")


if __name__ == "__main__":
    app()
