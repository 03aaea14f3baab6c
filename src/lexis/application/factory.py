"""
Store Factory
Centralizes the logic for selecting the record store adapter.
"""

import logging
import random

from lexis.application.config import AppConfig
from lexis.application.due_selector import DueSetSelector
from lexis.application.recorder import ReviewRecorder
from lexis.domain.errors import LexisError
from lexis.infrastructure.adapters.memory_store import InMemoryStore
from lexis.infrastructure.adapters.supabase_store import SupabaseStore

logger = logging.getLogger(__name__)


def get_store(config: AppConfig) -> InMemoryStore | SupabaseStore:
    """
    Returns the store implementing both repository ports for ``config.backend``.
    """
    if config.backend == "supabase":
        if not config.supabase_url or not config.supabase_key:
            raise LexisError(
                "The supabase backend needs LEXIS_SUPABASE_URL and LEXIS_SUPABASE_KEY."
            )
        return SupabaseStore(
            url=config.supabase_url,
            key=config.supabase_key,
            audio_bucket=config.audio_bucket,
            timeout=config.request_timeout,
        )

    if config.seed_file is not None:
        return InMemoryStore.from_seed_file(config.seed_file)

    logger.debug("Using an empty in-memory store")
    return InMemoryStore()


def build_services(
    config: AppConfig, store: InMemoryStore | SupabaseStore | None = None
) -> tuple[DueSetSelector, ReviewRecorder]:
    """Wire the selector and recorder to one store."""
    store = store or get_store(config)
    rng = random.Random(config.shuffle_seed)
    return DueSetSelector(store, rng=rng), ReviewRecorder(store)
