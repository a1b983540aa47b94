"""Domain errors raised by the service layer.

Each class carries the HTTP status the API answers with; the handler
registered in ``daansetu.main`` turns them into ``{"detail": ...}``.
"""


class DomainError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    status_code = 404


class InvalidTransitionError(DomainError):
    status_code = 409


class ConflictError(DomainError):
    status_code = 409


class PermissionDeniedError(DomainError):
    status_code = 403


class AuthError(DomainError):
    status_code = 401


class MalformedDocumentError(DomainError):
    status_code = 500


class SubscriptionTimeoutError(DomainError):
    status_code = 504


class InvalidUpdateError(DomainError):
    status_code = 422
