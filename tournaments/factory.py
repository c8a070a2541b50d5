"""Factory functions wiring storage, engine and roster from configuration."""

import logging
import random

from config.settings import AppConfig, StorageConfig
from .database import TournamentDatabaseManager
from .images import ImageProvider, NoImageProvider, StaticImageProvider
from .manager import TournamentManager
from .memory_store import InMemoryTournamentRepository
from .repository import TournamentRepository
from .roster import RosterService

logger = logging.getLogger(__name__)


def create_repository(storage_config: StorageConfig) -> TournamentRepository:
    """Factory function to create the configured storage backend."""
    if storage_config.backend == "memory":
        logger.info("Using in-memory tournament storage")
        return InMemoryTournamentRepository()

    logger.info(f"Using SQLite tournament storage at {storage_config.db_path}")
    return TournamentDatabaseManager(storage_config.db_path, storage_config.timeout)


def create_manager(
    config: AppConfig, repository: TournamentRepository | None = None
) -> TournamentManager:
    if repository is None:
        repository = create_repository(config.storage)
    rng = random.Random(config.engine.rng_seed)
    return TournamentManager(repository, rng, config.engine.rank_window)


def create_roster(config: AppConfig, repository: TournamentRepository) -> RosterService:
    return RosterService(
        repository,
        starting_points=config.roster.starting_points,
        default_nationality=config.roster.default_nationality,
    )


def create_image_provider(config: AppConfig) -> ImageProvider:
    if config.roster.images:
        return StaticImageProvider(config.roster.images)
    return NoImageProvider()
