"""
Exception types raised by code_parity.

Per-file extraction problems are never raised; they are recorded as
AnalysisError entries on the resulting Analysis.
"""


class CodeParityError(Exception):
    """Base class for all code_parity errors."""


class UnsupportedLanguageError(CodeParityError, ValueError):
    """Raised when no extractor exists for the requested language."""

    def __init__(self, language: str):
        super().__init__(f"Unsupported language: {language}")
        self.language = language


class LanguageDetectionError(CodeParityError):
    """Raised when a directory contains no recognizable source files."""


class AnalysisFailedError(CodeParityError):
    """Raised when the analysis root itself cannot be read."""

    def __init__(self, path: str, reason: str = ""):
        message = f"Cannot analyze {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.path = path
