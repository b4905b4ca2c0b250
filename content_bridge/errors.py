"""
Error and warning types raised across the content bridge.

Fatal errors (ParseError, MissingFieldsError) abort a generation attempt.
Warnings are recorded per field and never abort.
"""

from typing import List


class ContentBridgeError(Exception):
    """Base class for content bridge errors"""


class InvalidFieldPathError(ContentBridgeError, ValueError):
    """A field path does not follow the path grammar"""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid field path {path!r}: {reason}")


class CatalogInferenceFailure(ContentBridgeError):
    """A schema source could not provide documents or type definitions"""


class ParseError(ContentBridgeError):
    """No parsing stage produced a JSON object from the provider output"""

    def __init__(self, message: str, original_excerpt: str = "", extracted_excerpt: str = ""):
        self.original_excerpt = original_excerpt
        self.extracted_excerpt = extracted_excerpt
        super().__init__(message)


class MissingFieldsError(ContentBridgeError):
    """The parsed object lacks enabled, non-virtual catalog fields"""

    def __init__(self, missing_fields: List[str]):
        self.missing_fields = list(missing_fields)
        super().__init__(f"Missing required fields: {', '.join(self.missing_fields)}")


class FieldNormalizationWarning(UserWarning):
    """Text cleanup failed for one field; the original value was kept"""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to normalize field {path!r}: {reason}")


class DateValidationWarning(UserWarning):
    """A date/datetime value could not be parsed and was dropped"""

    def __init__(self, path: str, value: str):
        self.path = path
        self.value = value
        super().__init__(f"Invalid date value for {path!r}: {value!r}")
