"""Tracing helpers: trace headers, daemon endpoints, wildcard matching, logging and host metadata."""

__version__ = "0.1.0"