"""
Repository Configuration and Factory

Provides factory functions returning the repository implementations for the
registry, signal and intent collections based on environment configuration.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from .base import (
    CompanyIntentRepositoryInterface,
    CompanyRegistryInterface,
    IntentSignalRepositoryInterface,
)

logger = logging.getLogger(__name__)


@dataclass
class RepositoryConfig:
    """
    Configuration for repository initialization.

    Loaded from environment variables with sensible defaults.
    """
    mongodb_uri: str

    # Database/collection names
    database: str = "company_intel"
    companies_collection: str = "companies"
    signals_collection: str = "intent_signals"
    intents_collection: str = "company_intents"

    @classmethod
    def from_env(cls) -> "RepositoryConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - MONGODB_URI (required): MongoDB connection string
        - MONGODB_DATABASE: Database name (default: company_intel)
        - INTENT_COMPANIES_COLLECTION / INTENT_SIGNALS_COLLECTION /
          INTENT_INTENTS_COLLECTION: Collection name overrides

        Raises:
            ValueError: If MONGODB_URI is not set
        """
        mongodb_uri = os.getenv("MONGODB_URI")
        if not mongodb_uri:
            raise ValueError("MONGODB_URI environment variable is required")

        return cls(
            mongodb_uri=mongodb_uri,
            database=os.getenv("MONGODB_DATABASE", "company_intel"),
            companies_collection=os.getenv("INTENT_COMPANIES_COLLECTION", "companies"),
            signals_collection=os.getenv("INTENT_SIGNALS_COLLECTION", "intent_signals"),
            intents_collection=os.getenv("INTENT_INTENTS_COLLECTION", "company_intents"),
        )


# Singleton instances
_registry_instance: Optional[CompanyRegistryInterface] = None
_signal_repository_instance: Optional[IntentSignalRepositoryInterface] = None
_intent_repository_instance: Optional[CompanyIntentRepositoryInterface] = None


def get_company_registry() -> CompanyRegistryInterface:
    """
    Get the company registry reader.

    Raises:
        ValueError: If MongoDB URI is not configured
    """
    global _registry_instance

    if _registry_instance is None:
        config = RepositoryConfig.from_env()
        from .atlas_repository import AtlasCompanyRegistry
        _registry_instance = AtlasCompanyRegistry(
            mongodb_uri=config.mongodb_uri,
            database=config.database,
            collection=config.companies_collection,
        )
        logger.info("Initialized Atlas company registry")

    return _registry_instance


def get_signal_repository() -> IntentSignalRepositoryInterface:
    """
    Get the intent signal repository instance.

    Raises:
        ValueError: If MongoDB URI is not configured
    """
    global _signal_repository_instance

    if _signal_repository_instance is None:
        config = RepositoryConfig.from_env()
        from .atlas_repository import AtlasIntentSignalRepository
        _signal_repository_instance = AtlasIntentSignalRepository(
            mongodb_uri=config.mongodb_uri,
            database=config.database,
            collection=config.signals_collection,
        )
        logger.info("Initialized Atlas intent signal repository")

    return _signal_repository_instance


def get_intent_repository() -> CompanyIntentRepositoryInterface:
    """
    Get the company intent repository instance.

    Raises:
        ValueError: If MongoDB URI is not configured
    """
    global _intent_repository_instance

    if _intent_repository_instance is None:
        config = RepositoryConfig.from_env()
        from .atlas_repository import AtlasCompanyIntentRepository
        _intent_repository_instance = AtlasCompanyIntentRepository(
            mongodb_uri=config.mongodb_uri,
            database=config.database,
            collection=config.intents_collection,
        )
        logger.info("Initialized Atlas company intent repository")

    return _intent_repository_instance


def reset_repositories() -> None:
    """
    Reset all repository singletons and the shared connection pool.

    Used for testing or when configuration changes.
    """
    global _registry_instance, _signal_repository_instance, _intent_repository_instance

    from .atlas_repository import _AtlasCollection
    _AtlasCollection.reset_connection()

    _registry_instance = None
    _signal_repository_instance = None
    _intent_repository_instance = None
    logger.info("Repository singletons reset")
