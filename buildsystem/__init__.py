"""Build-system handler engine for LLM-generated design documents."""

__version__ = "0.1.0"
