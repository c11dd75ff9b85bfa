"""Error kinds raised while handling a transformation request."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    VALIDATION = "validation"
    DECODE = "decode"
    TRANSFORMATION = "transformation"


class TransformerError(Exception):
    """Base class for every error rendered on the error page."""

    kind: ErrorKind
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TransformerError):
    """The uploaded file was missing, not an image, empty or too large."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, field: str = "image", limit: Optional[int] = None) -> None:
        super().__init__(message)
        self.field = field
        self.limit = limit


class MissingFileError(ValidationError):
    status_code = 400

    def __init__(self, field: str = "image") -> None:
        super().__init__("No image uploaded.", field=field)


class DecodeError(TransformerError):
    kind = ErrorKind.DECODE

    def __init__(self, message: str, source: Optional[str] = None) -> None:
        super().__init__(message)
        self.source = source


class TransformationError(TransformerError):
    """The upstream provider failed or answered with something unusable."""

    kind = ErrorKind.TRANSFORMATION

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body
