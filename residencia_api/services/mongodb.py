# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with connection pooling and the licensing repository.
"""

import os
import logging
from typing import List, Dict, Optional, Any
from pymongo import MongoClient, ASCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    OperationFailure,
    ServerSelectionTimeoutError,
    PyMongoError
)
from opentelemetry import trace

from residencia_api.domain.licenses import active_licenses
from residencia_api.models.entities import Contract, Invoice, License, LicenseLink, Order, TimezonedValue
from residencia_api.services.repository import (
    LicenseConflictError,
    LicensingRepository,
    RepositoryError,
    is_zero_invoice,
    require_single_scope
)

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

CONTRACTS = "contracts"
ORDERS = "orders"
INVOICES = "invoices"
LICENSES = "licenses"
LICENSE_LINKS = "license_links"
# One document per contract, bumped by every issuance transaction
ISSUANCE_GUARDS = "issuance_guards"

# (collection, ascending keys); invoiceId stays non-unique since free
# perpetual renewals share the zero-invoice id
LICENSING_INDEXES = [
    (ORDERS, ("contractId",)),
    (INVOICES, ("orderId", "issueDate.value")),
    (LICENSES, ("contractId",)),
    (LICENSES, ("orderId",)),
    (LICENSE_LINKS, ("orderId",)),
    (LICENSE_LINKS, ("contractId",)),
    (LICENSE_LINKS, ("invoiceId",)),
]


class MongoDBService:
    """MongoDB connection holder with pooling and index management."""

    def __init__(self, connection_string: str = None, database_name: str = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/residencia_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'residencia_dev')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    maxIdleTimeMS=self.max_idle_time_ms,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True
                )
                # Test connection
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                self._client = None
                raise RepositoryError(f"MongoDB unavailable: {e}") from e

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        """Get MongoDB collection."""
        return self.database[collection_name]

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            server_info = self.client.server_info()

            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'version': server_info.get('version'),
                'database': self.database_name,
                'connection_pool_size': self.max_pool_size
            }
        except (PyMongoError, RepositoryError) as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    # Index Management

    def create_indexes(self) -> List[str]:
        """Create the indexes the licensing queries rely on and return their names."""
        created = []
        try:
            logger.info("Creating MongoDB indexes...")
            for collection, keys in LICENSING_INDEXES:
                name = self.get_collection(collection).create_index([(key, ASCENDING) for key in keys])
                created.append(f"{collection}.{name}")
            logger.info("MongoDB indexes created successfully", extra={"indexes": created})
            return created

        except PyMongoError as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise RepositoryError(f"Index creation failed: {e}") from e


class MongoLicensingRepository(LicensingRepository):
    """Licensing repository on MongoDB collections with camelCase documents."""

    def __init__(self, mongodb: MongoDBService):
        self.mongodb = mongodb

    def _find_one(self, collection: str, doc_id: str) -> Optional[Dict]:
        with tracer.start_as_current_span(f"mongodb.{collection}.find_one") as span:
            span.set_attribute("db.mongodb.collection", collection)
            try:
                return self.mongodb.get_collection(collection).find_one({"_id": doc_id})
            except PyMongoError as e:
                span.record_exception(e)
                logger.error(f"Failed to find document {doc_id} in {collection}: {e}")
                raise RepositoryError(f"Failed to read {collection}") from e

    def _find(self, collection: str, query: Dict, session=None) -> List[Dict]:
        with tracer.start_as_current_span(f"mongodb.{collection}.find") as span:
            span.set_attribute("db.mongodb.collection", collection)
            try:
                documents = list(self.mongodb.get_collection(collection).find(query, session=session))
            except PyMongoError as e:
                span.record_exception(e)
                logger.error(f"Failed to find documents in {collection}: {e}")
                raise RepositoryError(f"Failed to read {collection}") from e
            span.set_attribute("db.result_count", len(documents))
            logger.debug(f"Found {len(documents)} documents in {collection}")
            return documents

    def health_check(self) -> Dict[str, Any]:
        return self.mongodb.health_check()

    def get_contract(self, contract_id: str) -> Optional[Contract]:
        return Contract.from_document(self._find_one(CONTRACTS, contract_id))

    def get_order(self, order_id: str) -> Optional[Order]:
        return Order.from_document(self._find_one(ORDERS, order_id))

    def list_licenses_by_contract(self, contract_id: str) -> List[License]:
        return [License.from_document(doc) for doc in self._find(LICENSES, {"contractId": contract_id})]

    def list_invoices_by_order(self, order_id: str) -> List[Invoice]:
        return [Invoice.from_document(doc) for doc in self._find(INVOICES, {"orderId": order_id})]

    def list_license_links(self, order_id: Optional[str] = None, contract_id: Optional[str] = None) -> List[LicenseLink]:
        require_single_scope(order_id, contract_id)
        query = {"orderId": order_id} if order_id is not None else {"contractId": contract_id}
        return [LicenseLink.from_document(doc) for doc in self._find(LICENSE_LINKS, query)]

    def create_license_and_link(self, license: License, link: LicenseLink, now: TimezonedValue) -> License:
        """Insert both documents in one transaction after re-checking conflicts."""
        with tracer.start_as_current_span("mongodb.create_license_and_link") as span:
            span.set_attributes({
                "license.contract_id": license.contract_id,
                "license.order_id": license.order_id
            })
            try:
                with self.mongodb.client.start_session() as session:
                    with session.start_transaction():
                        self._claim_contract(license.contract_id, session)
                        self._check_conflicts(license, link, now, session)
                        self.mongodb.get_collection(LICENSES).insert_one(license.to_document(), session=session)
                        self.mongodb.get_collection(LICENSE_LINKS).insert_one(link.to_document(), session=session)
            except LicenseConflictError:
                span.set_attribute("license.result", "conflict")
                raise
            except OperationFailure as e:
                if not e.has_error_label("TransientTransactionError"):
                    span.record_exception(e)
                    logger.error(f"Failed to create license for order {license.order_id}: {e}")
                    raise RepositoryError("Failed to create license") from e
                span.set_attribute("license.result", "conflict")
                logger.info(
                    "Concurrent issuance detected by the store",
                    extra={"contract_id": license.contract_id, "order_id": license.order_id}
                )
                raise LicenseConflictError(
                    f"Another issuance for contract {license.contract_id} is in progress"
                ) from e
            except PyMongoError as e:
                span.record_exception(e)
                logger.error(f"Failed to create license for order {license.order_id}: {e}")
                raise RepositoryError("Failed to create license") from e

            span.set_attribute("license.result", "created")
            logger.info(f"Created license {license.id} for order {license.order_id}")
            return license

    def _claim_contract(self, contract_id: str, session) -> None:
        """
        Write the contract's guard document inside the transaction.

        Concurrent issuers of one contract then collide on this document
        and all but one abort with a write conflict, even though their
        license inserts never touch the same document.
        """
        self.mongodb.get_collection(ISSUANCE_GUARDS).update_one(
            {"_id": contract_id},
            {"$inc": {"issuanceSeq": 1}},
            upsert=True,
            session=session
        )

    def _check_conflicts(self, license: License, link: LicenseLink, now: TimezonedValue, session) -> None:
        contract_licenses = [
            License.from_document(doc)
            for doc in self._find(LICENSES, {"contractId": license.contract_id}, session=session)
        ]
        active = active_licenses(contract_licenses, now)
        if any(lic.order_id != license.order_id for lic in active):
            raise LicenseConflictError(
                f"Contract {license.contract_id} already has an active license of another order"
            )

        if is_zero_invoice(link.invoice_id):
            return
        consumed = self._find(
            LICENSE_LINKS,
            {"invoiceId": link.invoice_id, "licenseId": {"$ne": None}},
            session=session
        )
        if consumed:
            raise LicenseConflictError(f"Invoice {link.invoice_id} already funds a license")


# Singleton instance for application use
_mongodb_service: Optional[MongoDBService] = None


def get_mongodb_service() -> MongoDBService:
    """Get singleton MongoDB service instance."""
    global _mongodb_service
    if _mongodb_service is None:
        _mongodb_service = MongoDBService()
    return _mongodb_service


def close_mongodb_connection() -> None:
    """Close MongoDB connection (for cleanup)."""
    global _mongodb_service
    if _mongodb_service:
        _mongodb_service.close_connection()
        _mongodb_service = None
