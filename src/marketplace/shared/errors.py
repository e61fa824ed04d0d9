"""Error taxonomy shared across the marketplace domain.

Synchronous rejections are Protean ``ValidationError`` subclasses so they
surface to callers (and the HTTP layer) verbatim. Failures of external
collaborators are plain exceptions that the caller logs and absorbs.
"""

from protean.exceptions import ValidationError


class EmptyCartError(ValidationError):
    def __init__(self, message="Cannot place an order from an empty cart"):
        super().__init__({"cart": [message]})


class PaymentMissingError(ValidationError):
    def __init__(self, message="A payment reference is required to place an order"):
        super().__init__({"payment_id": [message]})


class ExternalServiceError(Exception):
    """An external collaborator failed or returned an unusable response."""


class LineBusyError(Exception):
    """Another writer currently holds the order line."""

    def __init__(self, secret_order_id: str):
        self.secret_order_id = secret_order_id
        super().__init__(f"Order line {secret_order_id} is being updated by another process")
