"""
Repository Interface Definitions

Defines the abstract interfaces for the three collections the intent
pipeline touches:
- companies (read-only registry)
- intent_signals (append-only evidence)
- company_intents (one aggregate per company/department)

This enables swapping implementations (Atlas, in-memory fakes in tests)
without changing the persistence gateway.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from src.common.types import Company


@dataclass
class WriteResult:
    """
    Result of a write operation.

    Attributes:
        matched_count: Number of documents that matched the filter
        modified_count: Number of documents actually modified (or deleted)
        upserted_id: ID of the inserted/upserted document (if any)
    """
    matched_count: int
    modified_count: int
    upserted_id: Optional[str] = None


@dataclass
class RegistryPage:
    """
    One page of the company registry.

    Attributes:
        companies: Usable companies of the page (records without id or name dropped)
        fetched: Raw documents read for the page, usable or not
    """
    companies: List[Company]
    fetched: int


class CompanyRegistryInterface(ABC):
    """Read-only access to the company registry."""

    @abstractmethod
    def load_page(self, offset: int, limit: int) -> RegistryPage:
        """
        Load one page of companies ordered by name.

        Args:
            offset: Number of registry documents to skip
            limit: Page size

        Returns:
            RegistryPage; fetched is 0 past the end
        """
        pass

    @abstractmethod
    def count(self) -> int:
        """Total number of registry companies."""
        pass

    def load_all(self, page_size: int = 500) -> List[Company]:
        """
        Load the full registry in fixed-size pages.

        Paging works around the store's result-size cap; name ordering keeps
        pages stable. Stops at the first page that read fewer than page_size
        documents; records dropped inside a page do not end the paging.
        """
        if page_size <= 0:
            raise ValueError("page_size must be positive")

        companies: List[Company] = []
        offset = 0
        while True:
            page = self.load_page(offset, page_size)
            companies.extend(page.companies)
            if page.fetched < page_size:
                break
            offset += page_size
        return companies


class IntentSignalRepositoryInterface(ABC):
    """Append-only access to the intent_signals collection."""

    @abstractmethod
    def exists_by_source_url(self, source_url: str) -> bool:
        """Check whether a signal with this stable source identity exists."""
        pass

    @abstractmethod
    def insert(self, document: Dict[str, Any]) -> WriteResult:
        """Insert a single signal document."""
        pass

    @abstractmethod
    def count(self, filter: Optional[Dict[str, Any]] = None) -> int:
        """Count signals matching the filter (all when None)."""
        pass

    @abstractmethod
    def ensure_indexes(self) -> None:
        """Ensure lookup indexes exist."""
        pass


class CompanyIntentRepositoryInterface(ABC):
    """Access to the company_intents collection."""

    @abstractmethod
    def upsert(
        self,
        company_id: str,
        department_type: str,
        fields: Dict[str, Any],
    ) -> WriteResult:
        """
        Insert or overwrite the row keyed by (company_id, department_type).

        Args:
            company_id: Registry company ID
            department_type: Department tag (e.g. "it")
            fields: Fields to set unconditionally

        Returns:
            WriteResult
        """
        pass

    @abstractmethod
    def find(self, company_id: str, department_type: str) -> Optional[Dict[str, Any]]:
        """Find the intent row for a company/department."""
        pass

    @abstractmethod
    def delete_errored(self) -> WriteResult:
        """Delete rows with intent_level "none" and signal_count 0."""
        pass

    @abstractmethod
    def count(self, filter: Optional[Dict[str, Any]] = None) -> int:
        """Count intent rows matching the filter (all when None)."""
        pass

    @abstractmethod
    def count_by_level(self, department_type: Optional[str] = None) -> Dict[str, int]:
        """Count intent rows per intent_level, optionally for one department."""
        pass

    @abstractmethod
    def ensure_indexes(self) -> None:
        """Ensure the (company_id, department_type) unique index exists."""
        pass
