"""Data loaders for target services."""

from .base import BaseLoader
from .clerk_loader import ClerkLoader

__all__ = [
    "BaseLoader",
    "ClerkLoader",
]
