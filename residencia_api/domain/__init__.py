# SPDX-License-Identifier: Apache-2.0

"""
Domain logic package for the Residencia licensing platform.

This package contains pure business logic functions with no side effects:
timezone-aware date arithmetic, license validation and issuance rules.
"""
