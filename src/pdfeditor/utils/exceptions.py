"""
pdfeditor - Custom Exceptions Module

This module defines the exception classes raised at the editor's
operation boundaries.
"""

from pdfeditor.utils.i18n import _


class PdfEditorError(Exception):
    """Base exception for all pdfeditor errors.

    All custom exceptions inherit from this class so callers can catch any
    editor failure in one place.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional technical details for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


class DocumentLoadError(PdfEditorError):
    """Raised when a source document cannot be parsed or rendered.

    No page collection exists for a document that failed to load.
    """

    def __init__(self, source_name: str, reason: str | None = None) -> None:
        """Initialize the exception.

        Args:
            source_name: Name or path of the document that failed to load
            reason: Optional reason why loading failed
        """
        self.source_name = source_name
        self.reason = reason
        msg = _("Could not open document: {name}").format(name=source_name)
        if reason:
            msg += f" - {reason}"
        super().__init__(msg, details=f"source={source_name}")


class ReconstructionError(PdfEditorError):
    """Raised when building the output document fails.

    The save is aborted as a whole and the live page collection is left
    untouched so the user can retry.
    """

    def __init__(
        self,
        reason: str,
        stage: str | None = None,
        original_index: int | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            reason: Reason for the failure
            stage: Pipeline step that failed (open, copy, rotate, append, serialize)
            original_index: Source page being processed when the failure happened
        """
        self.reason = reason
        self.stage = stage
        self.original_index = original_index

        msg = _("Could not build the edited document: {reason}").format(reason=reason)

        details = None
        if stage is not None:
            details = f"stage={stage}"
            if original_index is not None:
                details += f", page={original_index}"

        super().__init__(msg, details=details)


class SaveTargetError(PdfEditorError):
    """Raised when output bytes cannot be persisted."""

    def __init__(self, path: str, reason: str | None = None) -> None:
        """Initialize the exception.

        Args:
            path: Destination path that could not be written
            reason: Optional reason for the failure
        """
        self.path = path
        self.reason = reason
        msg = _("Could not save file: {path}").format(path=path)
        if reason:
            msg += f" - {reason}"
        super().__init__(msg, details=f"path={path}")


class ConfigurationError(PdfEditorError):
    """Raised when there's a configuration-related error."""

    def __init__(self, setting_name: str | None = None, reason: str | None = None) -> None:
        """Initialize the exception.

        Args:
            setting_name: Optional name of the problematic setting
            reason: Optional reason for the error
        """
        self.setting_name = setting_name
        self.reason = reason

        if setting_name:
            msg = f"Configuration error for '{setting_name}'"
        else:
            msg = "Configuration error"

        if reason:
            msg += f": {reason}"

        super().__init__(msg)


# Exception hierarchy summary:
# PdfEditorError (base)
# ├── DocumentLoadError
# ├── ReconstructionError
# ├── SaveTargetError
# └── ConfigurationError
