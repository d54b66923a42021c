"""Image handling for JotBird Publisher."""

from jotbird_publisher.images.uploader import ImageUploader

__all__ = ["ImageUploader"]
