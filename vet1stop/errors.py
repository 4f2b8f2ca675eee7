"""Error taxonomy for the resource engine."""


class Vet1StopError(Exception):
    """Base class for all engine errors."""


class InvalidFilterError(Vet1StopError):
    """Caller supplied a malformed filter option (bad limit, empty tag...)."""


class NotFoundError(Vet1StopError):
    """No resource exists for the requested id."""

    def __init__(self, resource_id: str):
        super().__init__(f"Resource not found: {resource_id}")
        self.resource_id = resource_id


class RepositoryError(Vet1StopError):
    """The underlying document store failed."""


class DuplicateKeyError(RepositoryError):
    """Insert collided with an existing id in the same partition."""
