"""
Atlas MongoDB Repositories

Implements the registry, signal and intent interfaces over MongoDB.

Connection Management:
- One class-level MongoClient shared by all repositories (connection pooling)
- Client is created lazily on first collection access

Error Handling:
- Fail-fast: all errors propagate to the caller; the persistence gateway
  decides whether a failure is per-item or fatal
"""

import logging
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection

from src.common.types import Company
from .base import (
    CompanyIntentRepositoryInterface,
    CompanyRegistryInterface,
    IntentSignalRepositoryInterface,
    RegistryPage,
    WriteResult,
)

logger = logging.getLogger(__name__)


class _AtlasCollection:
    """Shared lazy MongoClient access."""

    _client: Optional[MongoClient] = None

    def __init__(self, mongodb_uri: str, database: str, collection: str):
        self._mongodb_uri = mongodb_uri
        self._database_name = database
        self._collection_name = collection

    def _get_collection(self) -> Collection:
        if _AtlasCollection._client is None:
            _AtlasCollection._client = MongoClient(self._mongodb_uri)
            logger.info(f"Atlas repository connected: {self._database_name}")
        return _AtlasCollection._client[self._database_name][self._collection_name]

    @classmethod
    def reset_connection(cls) -> None:
        """
        Reset the connection pool.

        Used for testing or connection recovery.
        """
        if _AtlasCollection._client is not None:
            _AtlasCollection._client.close()
        _AtlasCollection._client = None
        logger.info("Atlas repository connection reset")


class AtlasCompanyRegistry(_AtlasCollection, CompanyRegistryInterface):
    """Registry reader over the companies collection."""

    def __init__(self, mongodb_uri: str, database: str, collection: str = "companies"):
        super().__init__(mongodb_uri, database, collection)

    def load_page(self, offset: int, limit: int) -> RegistryPage:
        collection = self._get_collection()
        cursor = (
            collection.find({}, {"_id": 1, "id": 1, "name": 1})
            .sort([("name", ASCENDING), ("_id", ASCENDING)])
            .skip(offset)
            .limit(limit)
        )
        companies = []
        fetched = 0
        for doc in cursor:
            fetched += 1
            company_id = doc.get("id") or doc.get("_id")
            if company_id is None or not doc.get("name"):
                logger.warning(f"Skipping registry document without id or name: {doc.get('_id')}")
                continue
            companies.append(Company(id=str(company_id), name=str(doc["name"])))
        return RegistryPage(companies=companies, fetched=fetched)

    def count(self) -> int:
        return self._get_collection().count_documents({})


class AtlasIntentSignalRepository(_AtlasCollection, IntentSignalRepositoryInterface):
    """Signal store over the intent_signals collection."""

    def __init__(self, mongodb_uri: str, database: str, collection: str = "intent_signals"):
        super().__init__(mongodb_uri, database, collection)

    def exists_by_source_url(self, source_url: str) -> bool:
        collection = self._get_collection()
        return collection.count_documents({"source_url": source_url}, limit=1) > 0

    def insert(self, document: Dict[str, Any]) -> WriteResult:
        collection = self._get_collection()
        result = collection.insert_one(document)
        return WriteResult(
            matched_count=0,
            modified_count=0,
            upserted_id=str(result.inserted_id) if result.inserted_id else None,
        )

    def count(self, filter: Optional[Dict[str, Any]] = None) -> int:
        return self._get_collection().count_documents(filter or {})

    def ensure_indexes(self) -> None:
        collection = self._get_collection()
        collection.create_index("source_url", background=True)
        collection.create_index(
            [("company_id", ASCENDING), ("department_type", ASCENDING)],
            background=True,
        )
        logger.info("Intent signal indexes ensured")


class AtlasCompanyIntentRepository(_AtlasCollection, CompanyIntentRepositoryInterface):
    """Aggregate store over the company_intents collection."""

    def __init__(self, mongodb_uri: str, database: str, collection: str = "company_intents"):
        super().__init__(mongodb_uri, database, collection)

    def upsert(
        self,
        company_id: str,
        department_type: str,
        fields: Dict[str, Any],
    ) -> WriteResult:
        collection = self._get_collection()
        result = collection.update_one(
            {"company_id": company_id, "department_type": department_type},
            {"$set": fields},
            upsert=True,
        )
        return WriteResult(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
            upserted_id=str(result.upserted_id) if result.upserted_id else None,
        )

    def find(self, company_id: str, department_type: str) -> Optional[Dict[str, Any]]:
        collection = self._get_collection()
        return collection.find_one({"company_id": company_id, "department_type": department_type})

    def delete_errored(self) -> WriteResult:
        collection = self._get_collection()
        result = collection.delete_many({"intent_level": "none", "signal_count": 0})
        return WriteResult(
            matched_count=result.deleted_count,
            modified_count=result.deleted_count,
        )

    def count(self, filter: Optional[Dict[str, Any]] = None) -> int:
        return self._get_collection().count_documents(filter or {})

    def count_by_level(self, department_type: Optional[str] = None) -> Dict[str, int]:
        collection = self._get_collection()
        pipeline: List[Dict[str, Any]] = []
        if department_type:
            pipeline.append({"$match": {"department_type": department_type}})
        pipeline.append({"$group": {"_id": "$intent_level", "count": {"$sum": 1}}})
        return {str(doc["_id"]): doc["count"] for doc in collection.aggregate(pipeline)}

    def ensure_indexes(self) -> None:
        collection = self._get_collection()
        collection.create_index(
            [("company_id", ASCENDING), ("department_type", ASCENDING)],
            unique=True,
            background=True,
        )
        logger.info("Company intent indexes ensured")
