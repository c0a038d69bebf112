# SPDX-License-Identifier: Apache-2.0

"""
Residencia licensing API.

Validates and issues software licenses for Residencia contracts, orders
and invoices.
"""

__version__ = "1.0.0"
