"""
Configuration Module

Environment-driven settings for the aixcl CLI. Values come from the process
environment, with a ``.env`` file in the working directory loaded first.
"""

import os

from dotenv import load_dotenv

load_dotenv()

COMPOSE_FILE = os.getenv("AIXCL_COMPOSE_FILE", "docker-compose.yml")
PROJECT_DIR = os.getenv("AIXCL_PROJECT_DIR", os.getcwd())
SERVICES_FILE = os.getenv("AIXCL_SERVICES_FILE")

OLLAMA_URL = os.getenv("OLLAMA_URL", "http://localhost:11434/api/version")
WEBUI_URL = os.getenv("WEBUI_URL", "http://localhost:8080/health")

START_MAX_ATTEMPTS = int(os.getenv("START_MAX_ATTEMPTS", 30))
START_INTERVAL = float(os.getenv("START_INTERVAL", 2))
STOP_TIMEOUT = int(os.getenv("STOP_TIMEOUT", 30))
HTTP_PROBE_TIMEOUT = float(os.getenv("HTTP_PROBE_TIMEOUT", 5))
DIAGNOSTIC_LOG_LINES = int(os.getenv("DIAGNOSTIC_LOG_LINES", 20))

LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
LOG_FORMAT = os.getenv("LOG_FORMAT", "console")

# Variables interpolated by docker-compose.yml
REQUIRED_ENV_VARS = (
    "POSTGRES_USER",
    "POSTGRES_PASSWORD",
    "POSTGRES_DATABASE",
    "PGADMIN_EMAIL",
    "PGADMIN_PASSWORD",
    "OPENWEBUI_EMAIL",
    "OPENWEBUI_PASSWORD",
)


def postgres_user():
    return os.getenv("POSTGRES_USER", "postgres")


def missing_env_vars(environ=None):
    """Return the required variables that are unset or empty"""
    environ = os.environ if environ is None else environ
    return [name for name in REQUIRED_ENV_VARS if not environ.get(name)]
