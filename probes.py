"""
Probe Module

Factories for the read-only predicates the readiness prober evaluates.
A probe returns False when the service answered badly or not at all, and
raises ProbeExecutionError only when the probe mechanism itself (the Docker
daemon) could not be used.
"""

import httpx
from docker.errors import APIError, DockerException

import config
from container_operations import (
    exec_in_container,
    get_container_logs,
    get_container_state,
)
from models import HealthCheck
from service_registry import get_docker_client
from utils import (
    ContainerException,
    DockerUnavailableError,
    ProbeExecutionError,
    logger,
)


class _LazyDockerClient:
    """Connect to Docker on first use so that building checks never fails"""

    def __init__(self, client=None):
        self._client = client

    def get(self):
        if self._client is None:
            try:
                self._client = get_docker_client()
            except DockerUnavailableError as e:
                raise ProbeExecutionError(e.message)
        return self._client


def http_probe(url, *, expected_status=200, timeout=5.0, client=None):
    """GET ``url`` and succeed iff the response status is ``expected_status``"""

    def probe():
        try:
            if client is not None:
                response = client.get(url, timeout=timeout)
            else:
                response = httpx.get(url, timeout=timeout)
        except httpx.HTTPError as e:
            logger.debug("HTTP probe failed", url=url, error=str(e))
            return False
        return response.status_code == expected_status

    return probe


def exec_probe(container_name, command, *, client=None):
    """Run ``command`` in the container and succeed iff it exits with 0"""
    docker_client = client if isinstance(client, _LazyDockerClient) else _LazyDockerClient(client)

    def probe():
        try:
            return exec_in_container(container_name, command, client=docker_client.get()) == 0
        except APIError as e:
            # Includes NotFound and "container is not running" conflicts
            logger.debug("Exec probe failed", container=container_name, error=str(e))
            return False
        except (DockerException, OSError) as e:
            raise ProbeExecutionError(f"Could not exec in {container_name}: {e}")

    return probe


def running_probe(container_name, *, client=None):
    """Succeed iff the container exists and is running"""
    docker_client = client if isinstance(client, _LazyDockerClient) else _LazyDockerClient(client)

    def probe():
        try:
            return get_container_state(container_name, client=docker_client.get()).running
        except ContainerException as e:
            logger.debug("Running probe failed", container=container_name, error=e.message)
            return False
        except (DockerException, OSError) as e:
            raise ProbeExecutionError(f"Could not inspect {container_name}: {e}")

    return probe


def log_tail_diagnostic(container_name, lines=20, *, client=None):
    """Return a callable yielding the container's most recent log lines"""
    docker_client = client if isinstance(client, _LazyDockerClient) else _LazyDockerClient(client)

    def diagnostic():
        try:
            return get_container_logs(container_name, tail=lines, client=docker_client.get())
        except (DockerException, OSError) as e:
            raise ProbeExecutionError(f"Could not read logs for {container_name}: {e}")

    return diagnostic


def build_probe(definition, *, client=None, http_client=None):
    spec = definition.probe
    if spec.kind == "http":
        return http_probe(
            spec.url,
            expected_status=spec.expected_status,
            timeout=spec.timeout,
            client=http_client,
        )
    if spec.kind == "exec":
        return exec_probe(definition.container_name, spec.command, client=client)
    return running_probe(definition.container_name, client=client)


def build_health_checks(
    definitions,
    *,
    max_attempts=None,
    interval=None,
    client=None,
    http_client=None,
):
    """Turn service definitions into HealthChecks"""
    max_attempts = max_attempts if max_attempts is not None else config.START_MAX_ATTEMPTS
    interval = interval if interval is not None else config.START_INTERVAL
    docker_client = _LazyDockerClient(client)

    return [
        HealthCheck(
            name=definition.name,
            probe=build_probe(definition, client=docker_client, http_client=http_client),
            max_attempts=max_attempts,
            interval=interval,
            diagnostic=log_tail_diagnostic(
                definition.container_name, definition.log_tail, client=docker_client
            ),
        )
        for definition in definitions
    ]
