# SPDX-License-Identifier: Apache-2.0

"""
Middleware package for request processing.

This package contains the error handling components that turn exceptions
into RFC 7807 responses with HAL links.
"""
