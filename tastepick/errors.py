"""Exception hierarchy shared by the recommendation core and its collaborators."""


class RecommendationError(Exception):
    """Base class for recommendation errors."""


class NotFoundError(RecommendationError):
    """A user or content record is absent where presence was assumed."""

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier


class DataIntegrityError(RecommendationError):
    """Stored vectors are inconsistent (e.g. mixed embedding dimensions)."""


class ExternalServiceError(RecommendationError):
    """An external model or metadata call failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
