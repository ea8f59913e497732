"""Job artifact commands.

``agentlab job artifacts <job_id>`` lists artifacts (``list`` is the default
subcommand) and ``agentlab job artifacts download <job_id>`` fetches one.
Downloads stream into a temporary file next to the destination and are
renamed into place once complete.
"""

import hashlib
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

import click
import typer

from agentlab.cli.client import APIError, AgentlabClient, decode_json, query_escape
from agentlab.cli.commands._base import (
    api_path,
    client_from_state,
    emit,
    get_state,
    wrap_job_not_found,
)
from agentlab.cli.core import HELP_TOKEN, AgentlabCommand, AgentlabGroup, usage_error
from agentlab.cli.errors import CLIError
from agentlab.cli.output import print_json, print_line, print_table
from agentlab.cli.parsing import resolve_output_path
from agentlab.config import ConfigError
from agentlab.logging import get_logger

logger = get_logger(__name__)

BUNDLE_NAME = "agentlab-artifacts.tar.gz"
DEFAULT_SUBCOMMAND = "list"
CHUNK_SIZE = 64 * 1024


class ArtifactsGroup(AgentlabGroup):
    """Routes ``artifacts <job_id>`` to the default ``list`` subcommand."""

    def resolve_command(self, ctx: click.Context, args: list[str]):
        if args and not args[0].startswith("-") and args[0] != HELP_TOKEN:
            if self.get_command(ctx, args[0]) is None:
                args = [DEFAULT_SUBCOMMAND, *args]
        return super().resolve_command(ctx, args)


artifacts_app = typer.Typer(
    name="artifacts",
    help="List and download job artifacts",
    cls=ArtifactsGroup,
    no_args_is_help=True,
)


def artifact_name(artifact: dict[str, Any]) -> str:
    name = str(artifact.get("name") or "").strip()
    if name:
        return name
    path = str(artifact.get("path") or "").strip()
    return os.path.basename(path) if path else ""


def select_artifact(
    artifacts: list[dict[str, Any]],
    path: str = "",
    name: str = "",
    latest: bool = False,
    bundle: bool = False,
) -> dict[str, Any]:
    """Pick one artifact: by path, then name, then bundle, then latest.

    The latest artifact is the last one listed.
    """
    if not artifacts:
        raise CLIError("no artifacts found")
    if path:
        for artifact in artifacts:
            if str(artifact.get("path") or "").strip() == path:
                return artifact
        raise CLIError(f'artifact path "{path}" not found')
    if name:
        if "/" in name or "\\" in name:
            raise CLIError("artifact name must not contain path separators")
        matches = [a for a in artifacts if a.get("name") == name]
        if not matches:
            raise CLIError(f'artifact name "{name}" not found')
        return matches[-1]
    if bundle:
        matches = [a for a in artifacts if a.get("name") == BUNDLE_NAME]
        if matches:
            return matches[-1]
    return artifacts[-1]


def _fetch_artifacts(client: AgentlabClient, job_id: str) -> bytes:
    try:
        return client.do_json("GET", api_path("/v1/jobs", job_id, "artifacts"))
    except APIError as e:
        raise wrap_job_not_found(job_id, e)


def _download_to(client: AgentlabClient, url: str, target: Path) -> tuple[int, str]:
    """Stream ``url`` into ``target`` atomically; return (size, sha256)."""
    directory = target.parent
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".part", dir=directory)
    except OSError as e:
        raise ConfigError(f"create download file in {directory}: {e}") from e
    size = 0
    digest = hashlib.sha256()
    try:
        with os.fdopen(fd, "wb") as handle:
            with client.do_stream("GET", url) as response:
                for chunk in response.iter_bytes(CHUNK_SIZE):
                    handle.write(chunk)
                    digest.update(chunk)
                    size += len(chunk)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, target)
    except OSError as e:
        os.unlink(tmp_name)
        raise ConfigError(f"write {target}: {e}") from e
    except BaseException:
        os.unlink(tmp_name)
        raise
    return size, digest.hexdigest()


@artifacts_app.command("list", cls=AgentlabCommand)
def list_artifacts(
    ctx: typer.Context,
    job_id: str = typer.Argument(..., metavar="JOB_ID"),
) -> None:
    """List a job's artifacts.

    Examples:
        agentlab job artifacts job-123
    """
    state = get_state(ctx)
    job_id = job_id.strip()
    if not job_id:
        raise usage_error("job_id is required", show_usage=True)
    with client_from_state(state) as client:
        payload = _fetch_artifacts(client, job_id)

    def render(data: Any) -> None:
        artifacts = data.get("artifacts") if isinstance(data, dict) else None
        if not artifacts:
            print_line(f"No artifacts found for job {job_id}")
            return
        print_table(
            ["NAME", "PATH", "SIZE(B)", "MIME", "CREATED", "SHA256"],
            [
                (
                    artifact_name(a),
                    a.get("path"),
                    a.get("size_bytes", 0),
                    a.get("mime"),
                    a.get("created_at"),
                    str(a.get("sha256") or "").strip()[:12],
                )
                for a in artifacts
            ],
        )

    emit(state, payload, render)


@artifacts_app.command("download", cls=AgentlabCommand)
def download_artifact(
    ctx: typer.Context,
    job_id: str = typer.Argument(..., metavar="JOB_ID"),
    out: Optional[str] = typer.Option(None, "--out", help="output file or directory"),
    path: Optional[str] = typer.Option(None, "--path", help="artifact path to download"),
    name: Optional[str] = typer.Option(None, "--name", help="artifact name to download"),
    latest: bool = typer.Option(False, "--latest", help="download the most recent artifact"),
    bundle: bool = typer.Option(
        False, "--bundle", help=f"download the artifact bundle ({BUNDLE_NAME})"
    ),
) -> None:
    """Download one artifact of a job (the bundle by default).

    Examples:
        agentlab job artifacts download job-123

        agentlab job artifacts download job-123 --path "logs/run 1.txt" --out ./logs/
    """
    state = get_state(ctx)
    job_id = job_id.strip()
    if not job_id:
        raise usage_error("job_id is required", show_usage=True)
    path = (path or "").strip()
    name = (name or "").strip()
    if path and name:
        raise usage_error("path and name are mutually exclusive")
    if not (path or name or latest or bundle):
        bundle = True

    with client_from_state(state) as client:
        listing = decode_json(_fetch_artifacts(client, job_id), "artifact list")
        artifacts = listing.get("artifacts") if isinstance(listing, dict) else None
        if not artifacts:
            raise CLIError(f"no artifacts found for job {job_id}")
        artifact = select_artifact(artifacts, path=path, name=name, latest=latest, bundle=bundle)

        artifact_path = (
            str(artifact.get("path") or "").strip()
            or str(artifact.get("name") or "").strip()
        )
        if not artifact_path:
            raise CLIError("selected artifact has no path")
        try:
            target = resolve_output_path(
                out, artifact_name(artifact) or os.path.basename(artifact_path)
            )
        except OSError as e:
            raise ConfigError(f"prepare output path {out}: {e}") from e

        url = (
            api_path("/v1/jobs", job_id, "artifacts", "download")
            + "?path="
            + query_escape(artifact_path)
        )
        logger.debug("downloading %s to %s", artifact_path, target)
        size, sha256 = _download_to(client, url, target)

    expected = str(artifact.get("sha256") or "").strip().lower()
    if expected and expected != sha256:
        raise CLIError(
            f"checksum mismatch for {artifact_path}: expected {expected[:12]}, got {sha256[:12]}",
            hints=[f"the downloaded file was kept at {target}"],
        )

    if state.json_mode:
        print_json(
            {
                "job_id": job_id,
                "path": artifact_path,
                "name": artifact_name(artifact),
                "out": str(target),
                "size_bytes": size,
                "sha256": sha256,
            }
        )
        return
    print_line(f"downloaded {artifact_path} to {target}")
