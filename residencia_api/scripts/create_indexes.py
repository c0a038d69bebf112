#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Create the MongoDB indexes used by the licensing queries.

Usage:
    MONGODB_URI=mongodb://... python -m residencia_api.scripts.create_indexes
"""

import sys
import logging

from residencia_api.services.mongodb import close_mongodb_connection, get_mongodb_service
from residencia_api.services.repository import RepositoryError

logger = logging.getLogger(__name__)


def main() -> int:
    """Create the licensing indexes; returns the process exit code."""
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    mongodb_service = get_mongodb_service()
    try:
        health = mongodb_service.health_check()
        if health['status'] != 'healthy':
            logger.error(f"Licensing store unreachable: {health.get('error', health)}")
            return 1

        for index in mongodb_service.create_indexes():
            logger.info(f"Index ready: {index}")
        return 0

    except RepositoryError as e:
        logger.error(f"Failed to create indexes in {mongodb_service.database_name}: {e}")
        return 1
    finally:
        close_mongodb_connection()


if __name__ == "__main__":
    sys.exit(main())
