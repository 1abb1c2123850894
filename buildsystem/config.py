"""Configuration for the build-system handler engine."""

import os
from dotenv import load_dotenv

load_dotenv()


def get_int(env_var: str, default: int) -> int:
    """Get an integer from environment or return default."""
    try:
        return int(os.getenv(env_var, default))
    except ValueError:
        print(f"Warning: Invalid {env_var}, using default {default}")
        return default


def get_float(env_var: str, default: float) -> float:
    """Get a float from environment or return default."""
    try:
        return float(os.getenv(env_var, default))
    except ValueError:
        print(f"Warning: Invalid {env_var}, using default {default}")
        return default


# ============================================================================
# Generation service
# ============================================================================

# Which provider the CLI builds when none is given: "openai" or "llm_server"
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai")

# OpenAI-compatible endpoint (OpenAI itself, or any router speaking its API)
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL")  # None means api.openai.com

# Self-hosted llm-server exposing /chat/completions and /tags
LLM_SERVER_URL = os.getenv("LLM_SERVER_URL", "http://localhost:3001")

# Model used by handlers when the build config does not name one
DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "gpt-4o-mini")

# ============================================================================
# Synchronizer
# ============================================================================

# Max generation calls in flight across all handlers of one process
BATCH_CONCURRENCY = get_int("BATCH_CONCURRENCY", 5)

# Per-call deadline in seconds; 0 disables it
REQUEST_TIMEOUT = get_float("REQUEST_TIMEOUT", 120.0)

# ============================================================================
# Pipeline defaults
# ============================================================================

DEFAULT_PROJECT_NAME = "Default Project Name"
DEFAULT_PLATFORM = "web"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
