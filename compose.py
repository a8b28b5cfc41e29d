"""
Compose Module

Thin wrapper around the Docker Compose CLI for the aixcl stack.
"""

import os
import subprocess

import config
from utils import ComposeError, ComposeUnavailableError, logger


def get_compose_command(runner=subprocess.run):
    """Return ``docker compose`` if available, else ``docker-compose``"""
    candidates = (
        (["docker", "compose"], ["docker", "compose", "version"]),
        (["docker-compose"], ["docker-compose", "--version"]),
    )
    for command, version_check in candidates:
        try:
            result = runner(version_check, capture_output=True, timeout=5)
            if result.returncode == 0:
                return command
        except (subprocess.TimeoutExpired, FileNotFoundError):
            pass

    raise ComposeUnavailableError()


def run_compose(
    args,
    *,
    compose_file=None,
    project_dir=None,
    capture=False,
    timeout=None,
    check=True,
    runner=subprocess.run,
):
    """Run a compose subcommand against the stack's compose file"""
    compose_file = compose_file or config.COMPOSE_FILE
    project_dir = project_dir or config.PROJECT_DIR
    if not os.path.isabs(compose_file):
        compose_file = os.path.join(project_dir, compose_file)

    cmd = get_compose_command(runner) + ["-f", compose_file] + list(args)
    logger.info("Running compose", command=" ".join(cmd))

    try:
        result = runner(
            cmd,
            cwd=project_dir,
            capture_output=capture,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        raise ComposeError(f"'{' '.join(args)}' timed out after {timeout}s", returncode=124)

    if check and result.returncode != 0:
        stderr = (result.stderr or "").strip() if capture else ""
        raise ComposeError(
            f"'{' '.join(args)}' failed with exit code {result.returncode}"
            + (f": {stderr}" if stderr else ""),
            returncode=result.returncode,
        )
    return result


def compose_up(**kwargs):
    return run_compose(["up", "-d"], **kwargs)


def compose_pull(**kwargs):
    return run_compose(["pull"], **kwargs)


def compose_down(timeout=None, **kwargs):
    args = ["down"]
    if timeout is not None:
        args += ["--timeout", str(int(timeout))]
        # Leave headroom for compose itself beyond the container stop timeout
        kwargs.setdefault("timeout", int(timeout) + 30)
    return run_compose(args, **kwargs)


def compose_logs(services=(), follow=False, tail=None, **kwargs):
    args = ["logs"]
    if follow:
        args.append("--follow")
    if tail is not None:
        args += ["--tail", str(tail)]
    args += list(services)
    return run_compose(args, **kwargs)
