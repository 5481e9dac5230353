class DomainError(Exception):
    """Base class for business-rule failures recoverable by the request handler."""


class NotFoundError(DomainError):
    pass


class InsufficientCapacityError(DomainError):
    def __init__(self, requested: int, remaining: int) -> None:
        super().__init__(f"requested {requested} seats but only {remaining} remain")
        self.requested = requested
        self.remaining = remaining


class ValidationFailedError(DomainError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class InvalidStateError(DomainError):
    pass


class ExhaustedKeyspaceError(DomainError):
    pass
