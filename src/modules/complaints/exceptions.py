"""Complaint domain exceptions."""


class ComplaintNotFound(Exception):
    """The requested complaint does not exist."""


class ComplaintOrderMismatch(Exception):
    """The complaint's order does not belong to the complaining client."""
