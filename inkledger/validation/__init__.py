"""Draft validation package."""

from inkledger.validation.validator import DraftValidator

__all__ = ["DraftValidator"]
