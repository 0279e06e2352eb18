"""Order domain exceptions.

Raised by the timeline engine and the Service Layer when business rules
are violated.  The API layer (Views) catches these and translates them
into appropriate HTTP responses.
"""

from __future__ import annotations

from modules.companies.exceptions import CompanyNotFound

__all__ = [
    "ClientNotFound",
    "CompanyNotFound",
    "InvalidStageSequence",
    "OrderNotFound",
    "PaymentNotFound",
    "ProductNotFound",
    "UnknownStage",
]


class OrderNotFound(Exception):
    """The requested order does not exist."""


class UnknownStage(Exception):
    """A transition targeted a label that matches no stage or alias.

    Recoverable: the order is left untouched.
    """

    def __init__(self, stage: str | None) -> None:
        self.stage = stage
        super().__init__(f"Unknown timeline stage: {stage!r}.")


class InvalidStageSequence(ValueError):
    """The configured stage pipeline is empty or has ambiguous labels."""


class ClientNotFound(Exception):
    """The client referenced by the order does not exist."""


class ProductNotFound(Exception):
    """The product referenced by the order does not exist."""


class PaymentNotFound(Exception):
    """The payment does not exist on the given order."""
