"""Persistence collaborators consumed by the submission and recommendation engine."""

from .lesson_catalog import LessonCatalog, lesson_catalog
from .progress_store import ProgressStore

__all__ = ["LessonCatalog", "ProgressStore", "lesson_catalog"]
