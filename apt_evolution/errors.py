"""
apt_evolution/errors.py - Exception types raised by the tree engine
"""
from typing import Optional


class AptError(Exception):
    """Base class for all apt_evolution errors"""


class ParseError(AptError, ValueError):
    """Malformed tree text. Terminal for the parse call that raised it."""

    def __init__(self, message: str, text: Optional[str] = None, position: Optional[int] = None):
        self.message = message
        self.text = text
        self.position = position
        super().__init__(str(self))

    def __str__(self):
        details = self.message
        if self.text is not None:
            details += f" (got {self.text!r})"
        if self.position is not None:
            details += f" at position {self.position}"
        return details


class ConstructionInvariantViolation(AptError, RuntimeError):
    """A tree was used in a state no complete tree can be in"""
