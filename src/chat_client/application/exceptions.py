from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class ConflictError(AppError):
    pass


class ValidationError(AppError):
    pass


class CollaboratorUnavailableError(AppError):
    """The store, upload endpoint or another external service rejected or failed a call."""


class UploadFailedError(CollaboratorUnavailableError):
    pass


class MalformedRecordError(AppError):
    """A record pulled from a snapshot is missing fields or carries garbage."""


class AuthenticationError(AppError):
    def __init__(self, detail: str = "", code: str = "") -> None:
        self.code = code
        super().__init__(detail)
