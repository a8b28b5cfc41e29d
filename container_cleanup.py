"""
Container Cleanup Module

Reclaims Docker resources. ``clean_stack`` is scoped to the aixcl stack;
``docker_clean`` wipes every container, image, volume and custom network on
the host.
"""

import os
import re

import docker
from docker.errors import DockerException

import config
from compose import compose_down
from container_operations import remove_container
from service_registry import ServiceRegistry, get_docker_client
from utils import ComposeError, logger

# Named volumes declared in docker-compose.yml
STACK_VOLUMES = (
    "ollama",
    "open-webui",
    "open-webui-data",
    "postgres-data",
    "postgres-backups",
)


def compose_project_name(project_dir=None):
    """Default compose project name for a directory"""
    name = os.path.basename(os.path.abspath(project_dir or config.PROJECT_DIR))
    return re.sub(r"[^a-z0-9_-]", "", name.lower())


def clean_stack(
    remove_volumes=False,
    registry=None,
    client=None,
    project_name=None,
    compose_kwargs=None,
):
    """Stop the stack, remove its containers and prune dangling images

    Returns:
        dict: Report of cleanup actions taken
    """
    registry = registry if registry is not None else ServiceRegistry()
    client = client if client is not None else get_docker_client()

    report = {
        "containers_removed": 0,
        "images_pruned": 0,
        "volumes_removed": 0,
        "space_reclaimed": 0,
        "errors": [],
    }

    try:
        compose_down(**(compose_kwargs or {}))
    except ComposeError as e:
        report["errors"].append(e.message)

    for name in registry.managed_containers():
        result = remove_container(name, force=True, client=client)
        if result.get("removed"):
            report["containers_removed"] += 1
        if "error" in result:
            report["errors"].append(f"Failed to remove container {name}: {result['error']}")

    try:
        pruned = client.images.prune(filters={"dangling": True})
        report["images_pruned"] = len(pruned.get("ImagesDeleted") or [])
        report["space_reclaimed"] += pruned.get("SpaceReclaimed") or 0
    except DockerException as e:
        report["errors"].append(f"Failed to prune images: {str(e)}")

    if remove_volumes:
        prefix = project_name or compose_project_name()
        for volume_name in STACK_VOLUMES:
            full_name = f"{prefix}_{volume_name}"
            try:
                client.volumes.get(full_name).remove()
                report["volumes_removed"] += 1
                logger.info("Removed volume", volume=full_name)
            except docker.errors.NotFound:
                continue
            except DockerException as e:
                report["errors"].append(f"Failed to remove volume {full_name}: {str(e)}")

    logger.info(
        "Stack cleanup completed",
        containers_removed=report["containers_removed"],
        images_pruned=report["images_pruned"],
        volumes_removed=report["volumes_removed"],
    )
    return report


def _remove_all(resources, remove, kind, report):
    for resource in resources:
        label = getattr(resource, "name", None) or resource.short_id
        try:
            remove(resource)
            report[f"{kind}_removed"] += 1
        except docker.errors.NotFound:
            # Already gone, e.g. an image id listed under several tags
            continue
        except DockerException as e:
            logger.error(f"Error removing {kind[:-1]}", name=label, error=str(e))
            report["errors"].append(f"Failed to remove {kind[:-1]} {label}: {str(e)}")


def _stop_running(containers, report):
    for container in containers:
        if container.status != "running":
            continue
        try:
            container.stop()
        except docker.errors.NotFound:
            continue
        except DockerException as e:
            logger.error("Error stopping container", name=container.name, error=str(e))
            report["errors"].append(f"Failed to stop container {container.name}: {str(e)}")


def docker_clean(client=None):
    """Remove every container, image, volume and custom network on the host

    Returns:
        dict: Report of cleanup actions taken, with operator messages
    """
    client = client if client is not None else get_docker_client()
    report = {
        "containers_removed": 0,
        "images_removed": 0,
        "volumes_removed": 0,
        "networks_removed": 0,
        "space_reclaimed": 0,
        "messages": [],
        "errors": [],
    }
    messages = report["messages"]

    containers = client.containers.list(all=True)
    if not containers:
        messages.append("No containers to stop or remove.")
    else:
        messages.append("Stopping all running containers...")
        _stop_running(containers, report)
        messages.append("Removing all containers...")
        _remove_all(containers, lambda container: container.remove(), "containers", report)

    images = client.images.list()
    if not images:
        messages.append("No images to remove.")
    else:
        messages.append("Removing all images...")
        _remove_all(
            images, lambda image: client.images.remove(image.id, force=True), "images", report
        )

    volumes = client.volumes.list()
    if not volumes:
        messages.append("No volumes to remove.")
    else:
        messages.append("Removing all volumes...")
        _remove_all(volumes, lambda volume: volume.remove(force=True), "volumes", report)

    networks = client.networks.list(filters={"type": "custom"})
    if not networks:
        messages.append("No custom networks to remove.")
    else:
        messages.append("Removing all custom networks...")
        _remove_all(networks, lambda network: network.remove(), "networks", report)

    messages.append("Performing a system prune to clean up any remaining resources...")
    prunes = (
        ("containers", lambda: client.containers.prune()),
        ("images", lambda: client.images.prune(filters={"dangling": False})),
        ("networks", lambda: client.networks.prune()),
        ("volumes", lambda: client.volumes.prune()),
    )
    for kind, prune in prunes:
        try:
            result = prune() or {}
            report["space_reclaimed"] += result.get("SpaceReclaimed") or 0
        except DockerException as e:
            report["errors"].append(f"Failed to prune {kind}: {str(e)}")

    messages.append("Docker environment cleanup complete!")
    logger.info(
        "Docker cleanup completed",
        containers_removed=report["containers_removed"],
        images_removed=report["images_removed"],
        volumes_removed=report["volumes_removed"],
        networks_removed=report["networks_removed"],
        errors=len(report["errors"]),
    )
    return report


def get_cleanup_preview(client=None):
    """Get what docker_clean would remove

    Returns:
        dict: Names of the containers, images, volumes and networks affected
    """
    client = client if client is not None else get_docker_client()
    return {
        "containers": [
            {"name": c.name, "id": c.short_id, "status": c.status}
            for c in client.containers.list(all=True)
        ],
        "images": [
            image.tags[0] if image.tags else image.short_id
            for image in client.images.list()
        ],
        "volumes": [volume.name for volume in client.volumes.list()],
        "networks": [
            network.name for network in client.networks.list(filters={"type": "custom"})
        ],
    }
