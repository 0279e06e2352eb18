"""Company domain exceptions."""

from __future__ import annotations


class CompanyNotFound(Exception):
    """The requested company does not exist or has been soft-deleted."""


class CompanyAlreadyExists(Exception):
    """A company with the same GST number is already registered."""
