"""Core domain types shared by the editor and AI layers."""

from .ranges import TextRange

__all__ = ["TextRange"]
