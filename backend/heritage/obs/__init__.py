"""Observability package bootstrap."""

from __future__ import annotations

from fastapi import FastAPI

from heritage.obs import logging as obs_logging
from heritage.obs import middleware
from heritage.settings import settings

_logging_configured = False


def init(app: FastAPI) -> None:
	"""Install request instrumentation and, once per process, JSON logging."""
	global _logging_configured
	if settings.obs_enabled and not _logging_configured:
		obs_logging.configure_logging()
		_logging_configured = True
	middleware.install(app, enabled=settings.obs_enabled)


__all__ = ["init"]
