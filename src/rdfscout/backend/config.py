"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os


class Config:
    """Default configuration for the Flask backend."""

    SECRET_KEY = os.getenv("SECRET_KEY", "dev-key-change-in-prod")
    DEBUG = os.getenv("FLASK_DEBUG", "0") == "1"

    # CORS: origins allowed to call this API
    CORS_ORIGINS = os.getenv(
        "CORS_ORIGINS", "http://localhost:*",
    ).split(",")

    # Directory for the vars_/properties_/nodes_<endpoint>.json files ("" = off)
    DATA_DIR = os.getenv("DATA_DIR", "data")

    # Node sampling limits
    NODE_LIMIT = int(os.getenv("NODE_LIMIT", "100"))
    TOTAL_NODE_LIMIT = int(os.getenv("TOTAL_NODE_LIMIT", "1000"))
    FILTER_MIN_LENGTH = int(os.getenv("FILTER_MIN_LENGTH", "3"))

    # SPARQL transport
    SPARQL_TIMEOUT = int(os.getenv("SPARQL_TIMEOUT", "60"))
    SPARQL_MAX_RETRIES = int(os.getenv("SPARQL_MAX_RETRIES", "3"))

    # Deadline for a whole discovery/classification/sampling run (0 = none)
    DISCOVERY_TIMEOUT = int(os.getenv("DISCOVERY_TIMEOUT", "600"))

    # Cache TTL in seconds (0 = disabled)
    CACHE_TTL = int(os.getenv("CACHE_TTL", "3600"))

    MAX_WORKERS = int(os.getenv("MAX_WORKERS", "8"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE", "")


class TestConfig(Config):
    """Configuration overrides for testing."""

    TESTING = True
    DATA_DIR = ""
    CACHE_TTL = 0
    DISCOVERY_TIMEOUT = 0
    LOG_FILE = ""
