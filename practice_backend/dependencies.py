"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
import threading

from fastapi import Depends

from practice_backend.config import Settings, get_settings
from practice_backend.contributions import GitHubContributionSource
from practice_backend.db import (
    InMemoryPracticeStore,
    PracticeStore,
    SqlPracticeStore,
    SupabasePracticeStore,
    UnconfiguredPracticeStore,
)
from practice_backend.submissions import LeetCodeSubmissionSource

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_practice_store: PracticeStore | None = None
_contribution_source: GitHubContributionSource | None = None
_submission_source: LeetCodeSubmissionSource | None = None


def build_practice_store(settings: Settings) -> PracticeStore:
    if settings.use_in_memory_backends:
        return InMemoryPracticeStore()
    if settings.supabase_url and settings.supabase_key:
        return SupabasePracticeStore(
            settings.supabase_url,
            settings.supabase_key,
            page_size=settings.store_page_size,
            timeout=settings.upstream_timeout_seconds,
        )
    if settings.database_url:
        return SqlPracticeStore(settings.database_url)
    logger.warning("Practice store not configured; database operations will fail")
    return UnconfiguredPracticeStore()


def get_practice_store(settings: Settings = Depends(get_settings)) -> PracticeStore:
    """
    Return the process-wide store, built on first use from settings.
    """
    global _practice_store
    if _practice_store is not None:
        return _practice_store
    with _lock:
        if _practice_store is None:
            _practice_store = build_practice_store(settings)
    return _practice_store


def get_contribution_source(
    settings: Settings = Depends(get_settings),
) -> GitHubContributionSource:
    global _contribution_source
    if _contribution_source is not None:
        return _contribution_source
    with _lock:
        if _contribution_source is None:
            _contribution_source = GitHubContributionSource(
                settings.github_token, timeout=settings.upstream_timeout_seconds
            )
    return _contribution_source


def get_submission_source(
    settings: Settings = Depends(get_settings),
) -> LeetCodeSubmissionSource:
    global _submission_source
    if _submission_source is not None:
        return _submission_source
    with _lock:
        if _submission_source is None:
            _submission_source = LeetCodeSubmissionSource(
                timeout=settings.upstream_timeout_seconds
            )
    return _submission_source
