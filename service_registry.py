"""
Service Registry Module

Holds the catalogue of services that make up the aixcl stack and the
readiness probe defined for each of them. The catalogue is read-only: the
built-in definitions can be replaced by a JSON file, but nothing is ever
written back.
"""

import json
import os

import docker
from docker.errors import DockerException
from pydantic import ValidationError

import config
from models import ProbeSpec, ServiceDefinition
from utils import DockerUnavailableError, logger

# Containers started by docker-compose.yml, in start order
MANAGED_CONTAINERS = (
    "ollama",
    "open-webui",
    "postgres",
    "pgadmin",
    "watchtower",
)


def default_services():
    """Built-in health-checked services"""
    return [
        ServiceDefinition(
            name="model-server",
            container_name="ollama",
            probe=ProbeSpec(
                kind="http", url=config.OLLAMA_URL, timeout=config.HTTP_PROBE_TIMEOUT
            ),
        ),
        ServiceDefinition(
            name="web-ui",
            container_name="open-webui",
            probe=ProbeSpec(
                kind="http", url=config.WEBUI_URL, timeout=config.HTTP_PROBE_TIMEOUT
            ),
        ),
        ServiceDefinition(
            name="database",
            container_name="postgres",
            probe=ProbeSpec(
                kind="exec", command=["pg_isready", "-U", config.postgres_user()]
            ),
        ),
    ]


def get_docker_client():
    """Connect to the Docker daemon described by the environment"""
    try:
        return docker.from_env()
    except DockerException as e:
        logger.warning("Docker is not available", error=str(e))
        raise DockerUnavailableError(f"Docker is not available: {e}")


class ServiceRegistry:
    """Service name to probe definition mapping injected into the prober"""

    def __init__(self, services_file=None, managed_containers=MANAGED_CONTAINERS):
        self.services_file = services_file or config.SERVICES_FILE
        self._managed_containers = tuple(managed_containers)
        self.services = self._load_registry()

    def _load_registry(self):
        """Load service definitions from file, falling back to the defaults"""
        if self.services_file and os.path.exists(self.services_file):
            try:
                with open(self.services_file, "r") as f:
                    raw = json.load(f)
                services = [ServiceDefinition(**entry) for entry in raw["services"]]
                logger.info(
                    "Loaded service registry",
                    registry_file=self.services_file,
                    service_count=len(services),
                )
                return {service.name: service for service in services}
            except (json.JSONDecodeError, IOError, KeyError, TypeError, ValidationError) as e:
                logger.warning(
                    "Could not load service registry",
                    registry_file=self.services_file,
                    error=str(e),
                )
        return {service.name: service for service in default_services()}

    def get_service(self, name):
        """Get a service definition by check name"""
        return self.services.get(name)

    def list_services(self):
        return list(self.services.values())

    def managed_containers(self):
        """Every container of the stack, health-checked or not"""
        names = list(self._managed_containers)
        for service in self.services.values():
            if service.container_name not in names:
                names.append(service.container_name)
        return names
