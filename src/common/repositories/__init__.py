"""
Repository Pattern for MongoDB Operations

Provides an abstraction layer over the three intent collections so the
pipelines can run against Atlas in production and in-memory fakes in tests.

Public API:
- get_company_registry(): Read-only companies registry
- get_signal_repository(): intent_signals (append-only evidence)
- get_intent_repository(): company_intents (one row per company/department)
- reset_repositories(): Drop singletons and the shared connection pool
- WriteResult: Result dataclass for write operations
- RegistryPage: One registry page plus the raw document count

Usage:
    from src.common.repositories import get_company_registry, get_intent_repository

    companies = get_company_registry().load_all(page_size=500)
    get_intent_repository().upsert(company.id, "it", {"intent_level": "hot"})
"""

from .base import (
    CompanyIntentRepositoryInterface,
    CompanyRegistryInterface,
    IntentSignalRepositoryInterface,
    RegistryPage,
    WriteResult,
)
from .config import (
    RepositoryConfig,
    get_company_registry,
    get_intent_repository,
    get_signal_repository,
    reset_repositories,
)

__all__ = [
    "CompanyRegistryInterface",
    "IntentSignalRepositoryInterface",
    "CompanyIntentRepositoryInterface",
    "RegistryPage",
    "WriteResult",
    "RepositoryConfig",
    "get_company_registry",
    "get_signal_repository",
    "get_intent_repository",
    "reset_repositories",
]
