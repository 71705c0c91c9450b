from __future__ import annotations


class LinkDeckError(Exception):
    status_code = 400

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        payload.update(self.context)
        return payload


class ValidationError(LinkDeckError):
    status_code = 400


class ConflictError(ValidationError):
    status_code = 409


class NotFoundError(LinkDeckError):
    status_code = 404


class FormatError(LinkDeckError):
    status_code = 400


class StorageError(LinkDeckError):
    status_code = 500
