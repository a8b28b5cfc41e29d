"""
Service Manager Module

High-level lifecycle management for the aixcl stack: start, stop, restart,
status, stats and logs. Compose drives the stack; the Docker SDK answers
questions about individual containers.
"""

import time

import config
from compose import compose_down, compose_logs, compose_up
from container_operations import (
    get_container_states,
    get_container_stats,
    kill_container,
    stop_container,
)
from models import ReadinessReport
from probes import build_health_checks
from readiness import check_once, poll_until_ready
from service_registry import ServiceRegistry, get_docker_client
from utils import ComposeError, log_container_operation, logger


def _setup(registry, client):
    registry = registry if registry is not None else ServiceRegistry()
    client = client if client is not None else get_docker_client()
    return registry, client


def start_services(
    registry=None,
    client=None,
    max_attempts=None,
    interval=None,
    sleep=time.sleep,
    http_client=None,
    compose_kwargs=None,
):
    """Bring the stack up and wait until every health check passes

    When every managed container is already running nothing is started and
    the checks are evaluated once instead of polled.

    Returns:
        dict: ``already_running``, ``ready`` and the ReadinessReport
    """
    registry, client = _setup(registry, client)
    max_attempts = max_attempts if max_attempts is not None else config.START_MAX_ATTEMPTS
    interval = interval if interval is not None else config.START_INTERVAL

    missing = config.missing_env_vars()
    if missing:
        logger.warning("Missing environment variables", variables=missing)

    states = get_container_states(registry.managed_containers(), client=client)
    already_running = all(state.running for state in states.values())

    if not already_running:
        logger.info("Starting services")
        compose_up(**(compose_kwargs or {}))
        log_container_operation("start", "stack", "success")

    checks = build_health_checks(
        registry.list_services(),
        max_attempts=max_attempts,
        interval=interval,
        client=client,
        http_client=http_client,
    )

    if already_running:
        logger.info("Services already running", containers=list(states))
        results = check_once(checks)
        report = ReadinessReport(
            overall=all(result.success for result in results.values()),
            rounds=1,
            results=results,
        )
    else:
        report = poll_until_ready(checks, max_attempts, interval, sleep=sleep)

    return {"already_running": already_running, "ready": report.overall, "report": report}


def stop_services(
    registry=None, client=None, timeout=None, compose_kwargs=None
):
    """Stop the stack gracefully, forcing only the managed containers on failure

    Returns:
        dict: Report of the shutdown
    """
    registry, client = _setup(registry, client)
    timeout = timeout if timeout is not None else config.STOP_TIMEOUT
    managed = registry.managed_containers()
    report = {"graceful": True, "forced": [], "still_running": [], "errors": []}

    try:
        compose_down(timeout=timeout, **(compose_kwargs or {}))
        log_container_operation("stop", "stack", "success")
    except ComposeError as e:
        logger.warning("Graceful shutdown failed, forcing managed containers", error=e.message)
        report["graceful"] = False
        report["errors"].append(e.message)

        for name in managed:
            result = stop_container(name, timeout=10, client=client)
            if "error" in result:
                result = kill_container(name, client=client)
            if "error" in result:
                report["errors"].append(f"{name}: {result['error']}")
            else:
                report["forced"].append(name)

    states = get_container_states(managed, client=client)
    report["still_running"] = [name for name, state in states.items() if state.running]
    if report["still_running"]:
        logger.warning("Containers still running", containers=report["still_running"])

    return report


def restart_services(registry=None, client=None, **kwargs):
    """Stop then start the stack"""
    registry, client = _setup(registry, client)
    compose_kwargs = kwargs.pop("compose_kwargs", None)
    stop_report = stop_services(
        registry, client, timeout=kwargs.pop("timeout", None), compose_kwargs=compose_kwargs
    )
    start_report = start_services(registry, client, compose_kwargs=compose_kwargs, **kwargs)
    return {"stop": stop_report, "start": start_report}


def get_status(registry=None, client=None, http_client=None):
    """Single-round status: container states plus every health check's detail"""
    registry, client = _setup(registry, client)
    containers = get_container_states(registry.managed_containers(), client=client)
    checks = build_health_checks(
        registry.list_services(), max_attempts=1, client=client, http_client=http_client
    )
    results = check_once(checks)

    return {
        "containers": containers,
        "checks": results,
        "healthy": all(result.success for result in results.values()),
    }


def get_stats(registry=None, client=None):
    """Resource usage of the running managed containers"""
    registry, client = _setup(registry, client)
    stats = []
    for name in registry.managed_containers():
        sample = get_container_stats(name, client=client)
        if sample.get("running"):
            stats.append(sample)
    return stats


def show_logs(services=(), follow=False, tail=None, registry=None, compose_kwargs=None):
    """Stream compose logs; check names are accepted in place of service names"""
    registry = registry if registry is not None else ServiceRegistry()
    targets = []
    for name in services:
        definition = registry.get_service(name)
        targets.append(definition.container_name if definition else name)
    return compose_logs(targets, follow=follow, tail=tail, **(compose_kwargs or {}))
