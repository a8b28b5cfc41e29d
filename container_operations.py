"""
Container Operations Module

Structured Docker container queries and actions by container name: state,
logs, exec, stop, kill, remove and resource stats.
"""

import docker
from docker.errors import APIError, DockerException

from models import ContainerState
from service_registry import get_docker_client
from utils import ContainerException, log_container_operation, logger


def _client(client):
    return client if client is not None else get_docker_client()


def get_container_state(name: str, client=None) -> ContainerState:
    """Look up a container by name and return its run-state"""
    client = _client(client)
    try:
        container = client.containers.get(name)
    except docker.errors.NotFound:
        return ContainerState(name=name, exists=False, status="not_found")
    except APIError as e:
        raise ContainerException(f"Failed to inspect container {name}: {e}")

    state = container.attrs.get("State", {}) if isinstance(container.attrs, dict) else {}
    health = state.get("Health") or {}
    return ContainerState(
        name=name,
        exists=True,
        status=container.status,
        running=container.status == "running",
        health=health.get("Status"),
        id=container.short_id,
    )


def get_container_states(names, client=None):
    client = _client(client)
    return {name: get_container_state(name, client=client) for name in names}


def get_container_logs(name: str, tail: int = 20, client=None) -> str:
    """Return the last ``tail`` lines of a container's stdout and stderr"""
    client = _client(client)
    try:
        container = client.containers.get(name)
        raw = container.logs(tail=max(1, int(tail)), stdout=True, stderr=True)
    except docker.errors.NotFound:
        return f"Container {name} not found"
    except APIError as e:
        raise ContainerException(f"Failed to read logs for {name}: {e}")

    if isinstance(raw, (bytes, bytearray)):
        return raw.decode("utf-8", errors="replace").rstrip()
    return str(raw).rstrip()


def exec_in_container(name: str, command, client=None) -> int:
    """Run a command inside a running container and return its exit code"""
    client = _client(client)
    container = client.containers.get(name)
    result = container.exec_run(command, stdout=True, stderr=True)
    logger.debug("Exec finished", container=name, command=command, exit_code=result.exit_code)
    return result.exit_code


def stop_container(name: str, timeout: int = 10, client=None):
    """Stop a running container"""
    client = _client(client)
    try:
        container = client.containers.get(name)
        if container.status != "running":
            return {"message": f"Container {name} is already stopped"}

        container.stop(timeout=timeout)
        container.reload()
        log_container_operation("stop", name, "success")
        return {
            "message": f"Container {name} stopped successfully",
            "status": container.status,
        }
    except docker.errors.NotFound:
        return {"message": f"Container {name} does not exist"}
    except DockerException as e:
        log_container_operation("stop", name, "failed", {"error": str(e)})
        return {"error": str(e)}


def kill_container(name: str, client=None):
    """Kill a container that did not stop gracefully"""
    client = _client(client)
    try:
        container = client.containers.get(name)
        if container.status != "running":
            return {"message": f"Container {name} is not running"}

        container.kill()
        log_container_operation("kill", name, "success")
        return {"message": f"Container {name} killed"}
    except docker.errors.NotFound:
        return {"message": f"Container {name} does not exist"}
    except DockerException as e:
        log_container_operation("kill", name, "failed", {"error": str(e)})
        return {"error": str(e)}


def remove_container(name: str, force: bool = False, client=None):
    client = _client(client)
    try:
        container = client.containers.get(name)
        container.remove(force=force)
        log_container_operation("remove", name, "success")
        return {"message": f"Container {name} removed", "removed": True}
    except docker.errors.NotFound:
        return {"message": f"Container {name} was already removed", "removed": False}
    except DockerException as e:
        log_container_operation("remove", name, "failed", {"error": str(e)})
        return {"error": str(e), "removed": False}


def _cpu_percent(stats):
    cpu = stats.get("cpu_stats", {})
    precpu = stats.get("precpu_stats", {})
    cpu_delta = cpu.get("cpu_usage", {}).get("total_usage", 0) - precpu.get(
        "cpu_usage", {}
    ).get("total_usage", 0)
    system_delta = cpu.get("system_cpu_usage", 0) - precpu.get("system_cpu_usage", 0)
    online_cpus = cpu.get("online_cpus") or len(
        cpu.get("cpu_usage", {}).get("percpu_usage") or []
    ) or 1
    if cpu_delta <= 0 or system_delta <= 0:
        return 0.0
    return cpu_delta / system_delta * online_cpus * 100.0


def get_container_stats(name: str, client=None):
    """Take a single stats sample for a running container"""
    client = _client(client)
    try:
        container = client.containers.get(name)
        if container.status != "running":
            return {"name": name, "running": False}
        stats = container.stats(stream=False)
    except docker.errors.NotFound:
        return {"name": name, "running": False}
    except APIError as e:
        raise ContainerException(f"Failed to read stats for {name}: {e}")

    memory = stats.get("memory_stats", {})
    usage = memory.get("usage", 0)
    limit = memory.get("limit", 0)
    return {
        "name": name,
        "running": True,
        "cpu_percent": round(_cpu_percent(stats), 2),
        "memory_usage": usage,
        "memory_limit": limit,
        "memory_percent": round(usage / limit * 100.0, 2) if limit else 0.0,
    }
