"""
studio.errors — Domain Exceptions
==================================

Each class maps to one caller-facing outcome so the (external) HTTP layer
can translate without string matching:

* :class:`TestRequiredError`      → 400, card needs a fresh successful test
* :class:`StudioValidationError`  → 400, malformed request
* :class:`NotFoundError`          → 404, missing or soft-deleted row
* :class:`AuthorizationError`     → 403, non-owner / non-admin mutation

A failed *test query* is not an error; it is reported as a
``CardTestResult`` with ``success=False``.
"""

from __future__ import annotations


class StudioError(Exception):
    """Base class for all Studio domain errors."""


class StudioValidationError(StudioError, ValueError):
    pass


class TestRequiredError(StudioValidationError):
    """Card configuration requires a matching, fresh test before saving."""

    __test__ = False  # not a pytest test class


class NotFoundError(StudioError, LookupError):
    def __init__(self, entity: str, entity_id: int | None = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found.")


class AuthorizationError(StudioError, PermissionError):
    def __init__(self, message: str = "Only the owner or a platform admin may modify this item."):
        super().__init__(message)
