"""Celery entrypoint: ``celery -A ingestion.worker worker -Q ingestion.digest``."""

from __future__ import annotations

from .celery_app import get_celery_app

app = get_celery_app()
