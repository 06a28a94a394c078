"""Exception types raised by datafitter.

Per-candidate failures (``FitError`` and its subclasses) are recoverable: the
search loop discards the candidate and moves on. ``DataFormatError`` is fatal
at startup since no search can run without data.
"""

from __future__ import annotations


class DataFitterError(Exception):
    """Base class for all datafitter errors."""


class ParseError(DataFitterError, ValueError):
    """Malformed expression text.

    Attributes:
        position: Zero-based offset of the offending token in the input
        fragment: The offending substring (empty at end of input)
    """

    def __init__(self, message: str, text: str = "", position: int = 0):
        self.text = text
        self.position = position
        self.fragment = text[position : position + 12]
        if text:
            where = repr(self.fragment) if self.fragment else "end of input"
            message = f"{message} at position {position} ({where})"
        super().__init__(message)


class DataFormatError(DataFitterError):
    """Dataset file could not be read or contains a malformed line."""

    def __init__(self, message: str, path: str | None = None, line_no: int | None = None):
        self.path = path
        self.line_no = line_no
        prefix = ""
        if path is not None:
            prefix = f"{path}:{line_no}: " if line_no is not None else f"{path}: "
        super().__init__(prefix + message)


class FitError(DataFitterError):
    """Parameter fitting failed for one candidate."""


class NoParametersError(FitError):
    """The candidate has no free parameters to optimize."""

    def __init__(self):
        super().__init__("candidate has no parameters to fit")


class NotConvergedError(FitError):
    """The iteration cap was reached before every step size shrank below min_step."""

    def __init__(self, residue: float, iterations: int):
        self.residue = residue
        self.iterations = iterations
        super().__init__(
            f"fit did not converge after {iterations} iterations (residue={residue:.6g})"
        )


class DivergedError(FitError):
    """The residual stayed non-finite for the whole fit."""

    def __init__(self, iterations: int):
        self.iterations = iterations
        super().__init__(f"residual never became finite ({iterations} iterations)")
