"""Exception types raised by the batch image-edit core."""

from __future__ import annotations


class BatchEditError(Exception):
    """Base class for errors raised by this package."""


class InvalidImageDimensions(BatchEditError, ValueError):
    """Width/height are not finite positive numbers."""


class ImageDecodeError(BatchEditError, ValueError):
    """Source image bytes could not be decoded."""


class NoImageGenerated(BatchEditError):
    """The image-edit API answered without an image part."""

    def __init__(self, message: str = "No image generated.") -> None:
        super().__init__(message)


class ItemNotFoundError(BatchEditError, KeyError):
    def __init__(self, item_id: str) -> None:
        super().__init__(item_id)
        self.item_id = item_id

    def __str__(self) -> str:
        return f"Queue item not found: {self.item_id}"


class ItemLockedError(BatchEditError):
    """Instruction edits are rejected while an item is processing or done."""


class SingleFlightViolation(BatchEditError, RuntimeError):
    """A second item was about to enter processing."""


class QueueBusyError(BatchEditError):
    """The requested queue mutation is not allowed while a run is active."""
