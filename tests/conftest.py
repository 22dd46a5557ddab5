import os

# Set test defaults BEFORE any imports that might load config
# These are only used if not already set (e.g., by integration tests that need real values)
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("CLUSTER_BACKEND", "memory")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from tests.fixtures import *  # noqa: F401,F403
