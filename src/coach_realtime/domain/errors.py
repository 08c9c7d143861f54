"""Domain errors raised by application services."""


class NotFoundError(LookupError):
    """The requested entity does not exist."""


class PermissionDeniedError(PermissionError):
    """The acting user is not allowed to perform the operation."""
