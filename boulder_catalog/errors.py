"""
Failures the boulder catalogue can surface.

Each one is caught at the boundary that produced it (codec read, form
submit, upload endpoint, listing) and turned into a log record plus a
flashed message or JSON error body. None of them should crash a request.
"""


class BoulderError(Exception):
    """Base class for catalogue errors."""


class MalformedStyleData(BoulderError):
    """Stored style text is not a JSON array of strings."""

    def __init__(self, raw, reason: str = ""):
        self.raw = raw
        msg = f"Malformed style data: {raw!r}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


class ValidationError(BoulderError):
    """Form state can't be submitted (e.g. empty name)."""


class ConversionError(BoulderError):
    """A HEIC image couldn't be converted to JPEG."""


class UploadError(BoulderError):
    """The upload endpoint rejected the image, or couldn't be reached."""


class UploadInProgress(UploadError):
    """A second upload was attempted while one is still pending."""


class FetchError(BoulderError):
    """Listing boulders from the store failed."""


class MissingIdentifier(BoulderError):
    """An update was requested for a record that has no id."""


class SaveError(BoulderError):
    """The store rejected an insert or update."""
