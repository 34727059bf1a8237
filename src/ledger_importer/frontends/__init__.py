"""Front-ends answering an import session's pending decisions."""

from .terminal import TerminalFrontend

__all__ = ["TerminalFrontend"]
