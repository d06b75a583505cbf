"""Domain records and pure normalization rules for the shelter pets sync."""

from src.pets.domain.errors import ArtifactWriteError, ListingFetchError, PetsSyncError
from src.pets.domain.models import (
    Detail,
    DetailResult,
    EnrichedListing,
    NoDetail,
    NormalizedPet,
    PetAttribute,
    PetImage,
    PetsArtifact,
    PhotoMetadata,
    RawDetail,
    RawListing,
    TypeBreakdown,
    UpdateSummary,
)
from src.pets.domain.rules import NormalizerConfig, normalize_pet

__all__ = [
    "ArtifactWriteError",
    "Detail",
    "DetailResult",
    "EnrichedListing",
    "ListingFetchError",
    "NoDetail",
    "NormalizedPet",
    "NormalizerConfig",
    "normalize_pet",
    "PetAttribute",
    "PetImage",
    "PetsArtifact",
    "PetsSyncError",
    "PhotoMetadata",
    "RawDetail",
    "RawListing",
    "TypeBreakdown",
    "UpdateSummary",
]
