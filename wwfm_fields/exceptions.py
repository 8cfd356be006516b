"""Project-wide custom exception types."""


class InvalidDistributionShape(ValueError):
    """Raised when a distribution lacks a ``values`` array (upstream contract violation)."""

    def __init__(self, message: str) -> None:  # noqa: D401 – simple constructor
        super().__init__(message)


class DistributionGenerationError(RuntimeError):
    """Raised when an AI-generated distribution cannot be parsed or validated."""
