"""Observability package: structlog configuration.

Provides:
- configure_structlog: Environment-aware processor chain (JSON in production,
  console rendering elsewhere)
"""

from __future__ import annotations

from src.salesboard.observability.logging import configure_structlog

__all__ = ["configure_structlog"]
