import logging
import sys
from functools import wraps
from typing import Any, Dict

import click
import structlog


def configure_logging(level: str = "INFO", json_logs: bool = True):
    """Configure structured logging to stderr"""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, str(level).upper(), logging.INFO),
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


configure_logging()

logger = structlog.get_logger()


def log_container_operation(
    operation: str, target: str, status: str, details: Dict[str, Any] = None
):
    """Log container operations with structured logging"""
    logger.info(
        "Container operation",
        operation=operation,
        target=target,
        status=status,
        details=details or {},
    )


# Error handling utilities
class AixclException(Exception):
    """Base exception for aixcl"""

    def __init__(self, message: str, error_code: str = None, exit_code: int = 1):
        self.message = message
        self.error_code = error_code
        self.exit_code = exit_code
        super().__init__(self.message)


class DockerUnavailableError(AixclException):
    """The Docker daemon could not be reached"""

    def __init__(self, message: str = "Docker is not available on this system"):
        super().__init__(message, "DOCKER_UNAVAILABLE", 1)


class ProbeExecutionError(AixclException):
    """A probe's underlying mechanism could not run at all.

    Distinct from a probe that ran and reported failure: an HTTP
    transport error or a non-zero exit code is a failed check, while a
    missing tool or unreachable container runtime is an execution error.
    """

    def __init__(self, message: str):
        super().__init__(message, "PROBE_EXECUTION", 1)


class ComposeError(AixclException):
    """Exception for docker compose invocation failures"""

    def __init__(self, message: str, returncode: int = 1):
        self.returncode = returncode
        super().__init__(message, "COMPOSE_ERROR", 1)


class ComposeUnavailableError(ComposeError):
    def __init__(self, message: str = "Neither 'docker compose' nor 'docker-compose' is available"):
        super().__init__(message, returncode=127)


class ContainerException(AixclException):
    """Exception for container-related errors"""

    def __init__(self, message: str):
        super().__init__(message, "CONTAINER_ERROR", 1)


def handle_exceptions(func):
    """Decorator to log exceptions and turn them into CLI errors"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except AixclException as e:
            logger.error(
                "aixcl exception",
                error_code=e.error_code,
                message=e.message,
                exit_code=e.exit_code,
            )
            error = click.ClickException(e.message)
            error.exit_code = e.exit_code
            raise error
        except (click.ClickException, click.Abort, click.exceptions.Exit):
            raise
        except Exception as e:
            logger.error("Unexpected error", error=str(e), exc_info=True)
            raise click.ClickException(f"Unexpected error: {e}")

    return wrapper
