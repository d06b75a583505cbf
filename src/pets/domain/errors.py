"""Typed errors for the shelter pets sync.

Only fatal conditions are exceptions. A missing pet detail is a `NoDetail`
value, see `src.pets.domain.models`.
"""


class PetsSyncError(RuntimeError):
    """Base class for run-aborting failures."""


class ListingFetchError(PetsSyncError):
    """The shelter listing could not be fetched or parsed."""


class ArtifactWriteError(PetsSyncError):
    """The output artifact could not be written."""


__all__ = ["ArtifactWriteError", "ListingFetchError", "PetsSyncError"]
