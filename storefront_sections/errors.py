"""Exception taxonomy for the sections app.

Client errors map onto HTTP statuses in ``main.py``. Billing and theme API
failures are caught at the action boundary and turned into ``{ok: False}``
results. ``SectionSourceMissingError`` is a deployment defect and is left to
propagate.
"""

from typing import Any, Dict, List, Optional


class SectionsError(Exception):
    """Base class for all app errors."""
    status_code = 500


class SectionNotFoundError(SectionsError):
    status_code = 404

    def __init__(self, handle: str):
        super().__init__(f"Unknown section handle: {handle}")
        self.handle = handle


class BadRequestError(SectionsError):
    status_code = 400


class AuthError(SectionsError):
    status_code = 401


class SectionSourceMissingError(SectionsError):
    """The template file for a catalog section is not deployed."""

    def __init__(self, path: str):
        super().__init__(
            f"Missing section source file at {path}. "
            "Add it to SECTION_LIBRARY before installing."
        )
        self.path = path


class ShopifyApiError(SectionsError):
    """Transport or top-level GraphQL failure talking to the Admin API."""
    status_code = 502

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.status_code = status_code


class BillingError(SectionsError):
    """Any failure from the billing backend."""
    status_code = 502

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or [{"field": None, "message": message}]
