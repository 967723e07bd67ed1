# src/models/exceptions.py

"""Exception hierarchy for the ingestion pipeline."""


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class ListingValidationError(PipelineError):
    """A scraped listing is malformed or incomplete.

    Reported per listing and never retried.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__(
            "Validation failed: " + ", ".join(self.errors)
        )


class FatalPreconditionError(PipelineError):
    """An internal invariant was broken (e.g. creating an unnamed product).

    Distinct from :class:`ListingValidationError`: validation should
    already have rejected the input, so this is never recoverable.
    """


class DuplicateProductError(PipelineError):
    """The catalog already holds a product with this normalized name."""

    def __init__(self, normalized_name: str) -> None:
        self.normalized_name = normalized_name
        super().__init__(
            f"Product already exists: {normalized_name}"
        )


class ResolutionConflictError(PipelineError):
    """A create conflict could not be settled by the single retry."""
