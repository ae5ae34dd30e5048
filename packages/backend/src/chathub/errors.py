"""Error taxonomy shared by the store, the hub and the API layer.

Learn: Store errors propagate up to the routes and become the HTTP
response. Delivery errors never leave the hub — the router catches them
and evicts the connection instead.
"""


class MessageNotFoundError(Exception):
    """Raised when an operation addresses a message that doesn't exist."""

    def __init__(self, message_id: int):
        super().__init__(f"Message {message_id} not found")
        self.message_id = message_id


class InvalidMessageError(Exception):
    """Raised when mutation input is malformed (e.g. empty content)."""


class GenerationError(Exception):
    """Raised when the text-completion provider fails. Safe to retry."""


class DeliveryError(Exception):
    """Raised when a push write to one connection fails."""
