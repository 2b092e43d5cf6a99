class ApiError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class InvalidInputError(ApiError):
    status_code = 400


class AuthenticationError(ApiError):
    status_code = 401


class NotFoundError(ApiError):
    status_code = 404


class ConflictError(ApiError):
    status_code = 409


class StorageError(ApiError):
    """Raised by a store when the backing database rejects an operation."""

    status_code = 500
