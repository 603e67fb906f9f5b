"""Core module for the codeduel application."""

from .types import FirestoreDocument

__all__ = ["FirestoreDocument"]
