"""Tests for ``agentlab job`` commands."""

import pytest

from agentlab.cli.commands.job import (
    STATEFUL_WORKSPACE_SIZE_GB,
    STATEFUL_WORKSPACE_STORAGE,
    format_event,
)

REPO = "https://github.com/org/mega-repo.git"
JOB = {
    "id": "job-1",
    "repo_url": REPO,
    "ref": "main",
    "profile": "yolo",
    "task": "fix tests",
    "status": "QUEUED",
    "sandbox_vmid": 1009,
}


class TestJobRun:
    def test_posts_request_body(self, cli, daemon) -> None:
        daemon.route("POST", "/v1/jobs", JOB, status=201)

        result = cli(
            "job",
            "run",
            "--repo",
            REPO,
            "--profile",
            "yolo",
            "--task",
            "fix tests",
            "--ref",
            "dev",
            "--ttl",
            "2h",
            "--keepalive",
        )

        assert result.exit_code == 0, result.stderr
        assert daemon.requests[0].json() == {
            "repo_url": REPO,
            "profile": "yolo",
            "task": "fix tests",
            "ref": "dev",
            "ttl_minutes": 120,
            "keepalive": True,
        }
        assert "Job ID: job-1" in result.stdout
        assert "Status: QUEUED" in result.stdout

    def test_repo_is_required(self, cli, daemon) -> None:
        result = cli("job", "run", "--profile", "yolo")
        assert result.exit_code == 2
        assert "repo is required" in result.stderr
        assert daemon.requests == []

    def test_workspace_size_without_create_fails_offline(self, cli, daemon) -> None:
        result = cli("job", "run", "--repo", REPO, "--workspace-size", "80G")
        assert result.exit_code == 2
        assert "--workspace-size requires --workspace new:<name>" in result.stderr
        assert daemon.requests == []

    def test_workspace_wait_without_selector_fails_offline(self, cli, daemon) -> None:
        result = cli("job", "run", "--repo", REPO, "--workspace-wait", "2m")
        assert result.exit_code == 2
        assert "--workspace-wait requires" in result.stderr
        assert daemon.requests == []

    def test_workspace_and_create_conflict(self, cli, daemon) -> None:
        result = cli(
            "job", "run", "--repo", REPO, "--workspace", "ws-1", "--workspace-create", "data"
        )
        assert result.exit_code == 2
        assert daemon.requests == []

    def test_stateful_with_existing_workspace_conflicts(self, cli, daemon) -> None:
        result = cli("job", "run", "--repo", REPO, "--stateful", "--workspace", "ws-1")
        assert result.exit_code == 2
        assert daemon.requests == []

    def test_create_requires_size(self, cli, daemon) -> None:
        result = cli("job", "run", "--repo", REPO, "--workspace", "new:data")
        assert result.exit_code == 2
        assert "--workspace-size is required" in result.stderr

    def test_stateful_defaults(self, cli, daemon) -> None:
        daemon.route("POST", "/v1/jobs", JOB)

        result = cli(
            "job", "run", "--stateful", "--repo", REPO, "--profile", "yolo", "--task", "t"
        )

        assert result.exit_code == 0, result.stderr
        body = daemon.requests[0].json()
        assert body["workspace_create"] == {
            "name": "stateful-mega-repo",
            "size_gb": STATEFUL_WORKSPACE_SIZE_GB,
            "storage": STATEFUL_WORKSPACE_STORAGE,
        }
        assert STATEFUL_WORKSPACE_SIZE_GB == 80
        assert STATEFUL_WORKSPACE_STORAGE == "local-zfs"
        assert body["stateful"] is True

    def test_new_workspace_with_wait(self, cli, daemon) -> None:
        daemon.route("POST", "/v1/jobs", JOB)

        result = cli(
            "job",
            "run",
            "--repo",
            REPO,
            "--workspace",
            "new:data",
            "--workspace-size",
            "40GB",
            "--workspace-storage",
            "fast",
            "--workspace-wait",
            "90s",
        )

        assert result.exit_code == 0, result.stderr
        body = daemon.requests[0].json()
        assert body["workspace_create"] == {"name": "data", "size_gb": 40, "storage": "fast"}
        assert body["workspace_wait_seconds"] == 90
        assert "workspace_id" not in body

    def test_existing_workspace(self, cli, daemon) -> None:
        daemon.route("POST", "/v1/jobs", JOB)
        cli("job", "run", "--repo", REPO, "--workspace", "ws-1", "--workspace-wait", "1m")
        body = daemon.requests[0].json()
        assert body["workspace_id"] == "ws-1"
        assert body["workspace_wait_seconds"] == 60

    def test_unknown_profile_suggests(self, cli, daemon) -> None:
        daemon.error("POST", "/v1/jobs", 'unknown profile "yolp"', status=400)
        daemon.route("GET", "/v1/profiles", {"profiles": [{"name": "yolo"}, {"name": "ubuntu"}]})

        result = cli("job", "run", "--repo", REPO, "--profile", "yolp", "--task", "t")

        assert result.exit_code == 1
        assert 'unknown profile "yolp" (did you mean "yolo"?)' in result.stderr
        assert "next: agentlab profile list" in result.stderr


class TestJobShow:
    def test_show_with_events(self, cli, daemon) -> None:
        job = dict(
            JOB,
            events=[{"ts": "2026-01-01T00:00:00Z", "kind": "job.started", "job_id": "job-1", "msg": "go"}],
        )
        daemon.route("GET", "/v1/jobs/job-1", job)

        result = cli("job", "show", "job-1", "--events-tail", "5")

        assert result.exit_code == 0, result.stderr
        assert daemon.requests[0].query == "events_tail=5"
        assert "Events:" in result.stdout
        assert "2026-01-01T00:00:00Z job.started [job-1] go" in result.stdout

    def test_show_json_is_verbatim(self, cli, daemon) -> None:
        daemon.route("GET", "/v1/jobs/job-1", JOB)
        result = cli("--json", "job", "show", "job-1")
        assert result.json() == JOB
        assert daemon.requests[0].query == ""

    def test_not_found(self, cli, daemon) -> None:
        daemon.error("GET", "/v1/jobs/nope", "job not found")
        result = cli("job", "show", "nope")
        assert result.exit_code == 1
        assert "error: job nope not found" in result.stderr
        assert "hint: job ids are printed by agentlab job run" in result.stderr

    def test_negative_events_tail(self, cli, daemon) -> None:
        result = cli("job", "show", "job-1", "--events-tail", "-1")
        assert result.exit_code == 2


class TestFormatEvent:
    def test_without_job(self) -> None:
        assert format_event({"ts": "t", "kind": "k", "msg": "m"}) == "t k m"

    @pytest.mark.parametrize("event", [{}, {"msg": None}])
    def test_missing_fields(self, event) -> None:
        assert format_event(event) == "- - -"
