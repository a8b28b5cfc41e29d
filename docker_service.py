"""
Docker Service Module - Main API Interface

This module provides a unified interface to the aixcl stack management
functionality. It imports from specialized modules and exposes a clean
public API.

Structure:
- service_registry.py: Service catalogue and Docker client access
- container_operations.py: Structured per-container queries and actions
- compose.py: Docker Compose invocation
- probes.py / readiness.py: Health checks and the readiness prober
- service_manager.py: Stack lifecycle management
- container_cleanup.py: Stack and host-wide resource cleanup
"""

from service_registry import (
    MANAGED_CONTAINERS,
    ServiceRegistry,
    default_services,
    get_docker_client,
)
from container_operations import (
    get_container_logs,
    get_container_state,
    get_container_states,
    get_container_stats,
)
from probes import (
    build_health_checks,
    exec_probe,
    http_probe,
    log_tail_diagnostic,
    running_probe,
)
from readiness import check_once, poll_until_ready
from service_manager import (
    get_stats,
    get_status,
    restart_services,
    show_logs,
    start_services,
    stop_services,
)
from container_cleanup import clean_stack, docker_clean, get_cleanup_preview

# Public API exports - these are the functions that should be imported by other modules
__all__ = [
    # Registry access
    "MANAGED_CONTAINERS",
    "ServiceRegistry",
    "default_services",
    "get_docker_client",
    # Container operations
    "get_container_logs",
    "get_container_state",
    "get_container_states",
    "get_container_stats",
    # Probes and readiness
    "build_health_checks",
    "exec_probe",
    "http_probe",
    "log_tail_diagnostic",
    "running_probe",
    "check_once",
    "poll_until_ready",
    # Service management
    "get_stats",
    "get_status",
    "restart_services",
    "show_logs",
    "start_services",
    "stop_services",
    # Cleanup
    "clean_stack",
    "docker_clean",
    "get_cleanup_preview",
]
