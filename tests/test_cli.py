import pytest
from click.testing import CliRunner
from unittest.mock import patch

from cli import cli, docker_clean_command
from models import ContainerState, ProbeResult, ReadinessReport
from utils import ComposeError, DockerUnavailableError

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("cli.configure_logging"):
        yield


def ready_report():
    return ReadinessReport(
        overall=True,
        rounds=2,
        results={"database": ProbeResult(name="database", success=True)},
    )


def failed_report():
    return ReadinessReport(
        overall=False,
        rounds=30,
        results={
            "model-server": ProbeResult(name="model-server", success=True),
            "database": ProbeResult(
                name="database",
                success=False,
                diagnostic="FATAL: password authentication failed",
            ),
        },
    )


class TestUsage:
    """Test cases for command dispatch"""

    def test_missing_subcommand(self):
        result = runner.invoke(cli, [])
        assert result.exit_code == 1
        assert "Usage" in result.output

    def test_unknown_subcommand(self):
        result = runner.invoke(cli, ["launch"])
        assert result.exit_code != 0
        assert "Usage" in result.output

    def test_help_lists_commands(self):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("start", "stop", "restart", "logs", "clean", "stats", "status"):
            assert command in result.output


class TestStart:
    """Test cases for the start command"""

    def test_ready(self):
        with patch(
            "cli.start_services",
            return_value={"already_running": False, "ready": True, "report": ready_report()},
        ) as start:
            result = runner.invoke(cli, ["start"])

        assert result.exit_code == 0
        assert "All services are ready" in result.output
        assert start.call_args[1]["max_attempts"] is None

    def test_not_ready_prints_report_and_fails(self):
        with patch(
            "cli.start_services",
            return_value={"already_running": False, "ready": False, "report": failed_report()},
        ):
            result = runner.invoke(cli, ["start"])

        assert result.exit_code == 1
        assert "did not become ready after 30" in result.output
        assert "database" in result.output and "FAIL" in result.output
        assert "password authentication failed" in result.output

    def test_options_are_forwarded(self):
        with patch(
            "cli.start_services",
            return_value={"already_running": True, "ready": True, "report": ready_report()},
        ) as start:
            result = runner.invoke(
                cli, ["--compose-file", "stack.yml", "start", "--attempts", "5", "--interval", "0.5"]
            )

        assert result.exit_code == 0
        assert "already running" in result.output
        assert start.call_args[1] == {
            "max_attempts": 5,
            "interval": 0.5,
            "compose_kwargs": {"compose_file": "stack.yml"},
        }

    def test_docker_unavailable(self):
        with patch("cli.start_services", side_effect=DockerUnavailableError()):
            result = runner.invoke(cli, ["start"])

        assert result.exit_code == 1
        assert "Docker is not available" in result.output

    def test_compose_error(self):
        with patch("cli.start_services", side_effect=ComposeError("'up -d' failed with exit code 1")):
            result = runner.invoke(cli, ["start"])

        assert result.exit_code == 1
        assert "failed with exit code 1" in result.output


class TestStatus:
    """Test cases for the status command"""

    def status_result(self, healthy):
        return {
            "containers": {
                "ollama": ContainerState(name="ollama", exists=True, status="running", running=True),
                "postgres": ContainerState(
                    name="postgres", exists=True, status="running", running=True, health="healthy"
                ),
                "pgadmin": ContainerState(name="pgadmin", exists=False, status="not_found"),
            },
            "checks": {
                "model-server": ProbeResult(name="model-server", success=True, diagnostic="listening"),
                "database": ProbeResult(
                    name="database",
                    success=healthy,
                    diagnostic="accepting connections" if healthy else "no response",
                ),
            },
            "healthy": healthy,
        }

    def test_healthy(self):
        with patch("cli.get_status", return_value=self.status_result(True)):
            result = runner.invoke(cli, ["status"])

        assert result.exit_code == 0
        assert "postgres" in result.output and "running (healthy)" in result.output
        assert "not_found" in result.output
        # detail is printed for passing checks too
        assert "listening" in result.output
        assert "accepting connections" in result.output

    def test_unhealthy(self):
        with patch("cli.get_status", return_value=self.status_result(False)):
            result = runner.invoke(cli, ["status"])

        assert result.exit_code == 1
        assert "FAIL" in result.output
        assert "no response" in result.output


class TestStopRestart:
    """Test cases for stop and restart"""

    def test_stop(self):
        report = {"graceful": True, "forced": [], "still_running": [], "errors": []}
        with patch("cli.stop_services", return_value=report):
            result = runner.invoke(cli, ["stop"])

        assert result.exit_code == 0
        assert "Services stopped." in result.output

    def test_stop_forced_with_leftovers(self):
        report = {
            "graceful": False,
            "forced": ["ollama"],
            "still_running": ["postgres"],
            "errors": ["timed out"],
        }
        with patch("cli.stop_services", return_value=report):
            result = runner.invoke(cli, ["stop"])

        assert result.exit_code == 1
        assert "force-stopped: ollama" in result.output
        assert "Still running: postgres" in result.output

    def test_restart_not_ready(self):
        result_value = {
            "stop": {"graceful": True, "forced": [], "still_running": [], "errors": []},
            "start": {"already_running": False, "ready": False, "report": failed_report()},
        }
        with patch("cli.restart_services", return_value=result_value):
            result = runner.invoke(cli, ["restart"])

        assert result.exit_code == 1


class TestLogsStats:
    """Test cases for logs and stats"""

    def test_logs(self):
        with patch("cli.show_logs") as show_logs:
            result = runner.invoke(cli, ["logs", "database", "--no-follow", "--tail", "20"])

        assert result.exit_code == 0
        show_logs.assert_called_once_with(
            ("database",), follow=False, tail="20", compose_kwargs={}
        )

    def test_stats_table(self):
        samples = [
            {
                "name": "ollama",
                "running": True,
                "cpu_percent": 12.5,
                "memory_usage": 2 * 1024**3,
                "memory_limit": 8 * 1024**3,
                "memory_percent": 25.0,
            }
        ]
        with patch("cli.get_stats", return_value=samples):
            result = runner.invoke(cli, ["stats"])

        assert result.exit_code == 0
        assert "ollama" in result.output
        assert "2.0GiB / 8.0GiB" in result.output
        assert "12.50%" in result.output

    def test_stats_nothing_running(self):
        with patch("cli.get_stats", return_value=[]):
            result = runner.invoke(cli, ["stats"])

        assert "No aixcl containers are running." in result.output


class TestCleanCommands:
    """Test cases for clean and docker-clean"""

    def test_clean_requires_confirmation(self):
        with patch("cli.clean_stack") as clean_stack:
            result = runner.invoke(cli, ["clean"], input="n\n")

        assert result.exit_code == 1
        clean_stack.assert_not_called()

    def test_clean_confirmed(self):
        report = {
            "containers_removed": 5,
            "images_pruned": 1,
            "volumes_removed": 0,
            "space_reclaimed": 0,
            "errors": [],
        }
        with patch("cli.clean_stack", return_value=report) as clean_stack:
            result = runner.invoke(cli, ["clean", "--yes", "--volumes"])

        assert result.exit_code == 0
        assert "Removed 5 container(s)" in result.output
        assert clean_stack.call_args[1]["remove_volumes"] is True

    def test_docker_clean(self):
        report = {
            "messages": ["No containers to stop or remove.", "Docker environment cleanup complete!"],
            "errors": [],
        }
        with patch("cli.docker_clean", return_value=report):
            result = runner.invoke(docker_clean_command, ["--yes"])

        assert result.exit_code == 0
        assert "Docker environment cleanup complete!" in result.output

    def test_docker_clean_aborts_without_confirmation(self):
        with patch("cli.docker_clean") as docker_clean:
            result = runner.invoke(docker_clean_command, [], input="n\n")

        assert result.exit_code == 1
        docker_clean.assert_not_called()

    def test_docker_clean_dry_run(self):
        preview = {
            "containers": [{"name": "web", "id": "abc", "status": "running"}],
            "images": ["nginx:latest"],
            "volumes": [],
            "networks": [],
        }
        with patch("cli.get_cleanup_preview", return_value=preview), patch(
            "cli.docker_clean"
        ) as docker_clean:
            result = runner.invoke(docker_clean_command, ["--dry-run"])

        assert result.exit_code == 0
        assert "nginx:latest" in result.output
        docker_clean.assert_not_called()
