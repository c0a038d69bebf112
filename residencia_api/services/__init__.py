# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - External integrations and side effects.
"""

from .repository import LicensingRepository, LicenseConflictError, RepositoryError
from .memory_repository import InMemoryLicensingRepository
from .mongodb import MongoDBService, MongoLicensingRepository, get_mongodb_service, close_mongodb_connection
from .redis import RedisLockService, LockNotAcquiredError
from .licensing import LicensingService, LicenseValidationFailed, ContractNotFound

__all__ = [
    "LicensingRepository",
    "LicenseConflictError",
    "RepositoryError",
    "InMemoryLicensingRepository",
    "MongoDBService",
    "MongoLicensingRepository",
    "get_mongodb_service",
    "close_mongodb_connection",
    "RedisLockService",
    "LockNotAcquiredError",
    "LicensingService",
    "LicenseValidationFailed",
    "ContractNotFound"
]
