"""Lazily constructed service singletons injected into the routers."""

from __future__ import annotations

from typing import Optional

from .recommendations import RecommendationService, build_recommendation_service
from .repositories.progress_store import ProgressStore
from .submission_processor import SubmissionProcessor, build_submission_processor


_progress_store: Optional[ProgressStore] = None
_submission_processor: Optional[SubmissionProcessor] = None
_recommendation_service: Optional[RecommendationService] = None


def get_progress_store() -> ProgressStore:
    global _progress_store
    if _progress_store is None:
        _progress_store = ProgressStore()
    return _progress_store


def get_submission_processor() -> SubmissionProcessor:
    global _submission_processor
    if _submission_processor is None:
        _submission_processor = build_submission_processor()
    return _submission_processor


def get_recommendation_service() -> RecommendationService:
    global _recommendation_service
    if _recommendation_service is None:
        _recommendation_service = build_recommendation_service()
    return _recommendation_service


def reset_dependencies() -> None:
    """Drop cached services so the next request rebuilds them from current settings."""
    global _progress_store, _submission_processor, _recommendation_service
    _progress_store = None
    _submission_processor = None
    _recommendation_service = None


__all__ = [
    "get_progress_store",
    "get_recommendation_service",
    "get_submission_processor",
    "reset_dependencies",
]
