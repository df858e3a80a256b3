"""Exception hierarchy for the mod-mail relay."""


class ModMailError(Exception):
    """Base class for all mod-mail errors."""


class ConflictError(ModMailError):
    """A link endpoint is already mapped to another conversation."""


class AlreadyOpenError(ConflictError):
    """A conversation is already open for the requested user."""


class NotFoundError(ModMailError):
    """No link or mirrored message exists for the given id."""


class TransportError(ModMailError):
    """A mirrored platform operation failed (network, permission, missing target)."""

    def __init__(self, operation: str, detail: object = None) -> None:
        self.operation = operation
        self.detail = detail
        message = f"{operation} failed"
        if detail is not None:
            message = f"{message}: {detail}"
        super().__init__(message)
