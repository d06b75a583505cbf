from dataclasses import dataclass, field
from typing import Any, Union


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _require_str(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None or isinstance(value, (dict, list, bool)):
        raise ValueError(f"Missing or invalid '{key}' in pet record")
    text = str(value).strip()
    if not text:
        raise ValueError(f"Empty '{key}' in pet record")
    return text


@dataclass(frozen=True)
class RawListing:
    pet_id: str
    pet_name: str
    species: str | None = None
    primary_breed: str | None = None
    secondary_breed: str | None = None
    age: str | None = None
    sex: str | None = None
    size: str | None = None
    photo_url: str | None = None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "RawListing":
        """Build a listing from one pets_at_shelter record. Raises ValueError on bad shape."""
        if not isinstance(payload, dict):
            raise ValueError(f"Pet record must be an object, got {type(payload).__name__}")
        return cls(
            pet_id=_require_str(payload, "pet_id"),
            pet_name=_require_str(payload, "pet_name"),
            species=_optional_str(payload.get("species")),
            primary_breed=_optional_str(payload.get("primary_breed")),
            secondary_breed=_optional_str(payload.get("secondary_breed")),
            age=_optional_str(payload.get("age")),
            sex=_optional_str(payload.get("sex")),
            size=_optional_str(payload.get("size")),
            photo_url=_optional_str(payload.get("large_results_photo_url")),
        )


@dataclass(frozen=True)
class PetImage:
    original_url: str | None = None


@dataclass(frozen=True)
class RawDetail:
    pet_id: str
    pet_name: str
    pet_details_url: str | None = None
    description: str | None = None
    images: tuple[PetImage, ...] = field(default_factory=tuple)
    color: str | None = None
    good_with_cats: int | None = None
    good_with_dogs: int | None = None
    good_with_kids: int | None = None
    housetrained: int | None = None
    shots_current: int | None = None
    spayed_neutered: int | None = None
    special_needs: int | None = None
    declawed: int | None = None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "RawDetail":
        """Build a detail record from the `pet` object of a pet_details response."""
        if not isinstance(payload, dict):
            raise ValueError(f"Pet detail must be an object, got {type(payload).__name__}")
        raw_images = payload.get("images") or []
        if not isinstance(raw_images, list):
            raise ValueError("Pet detail 'images' must be a list")
        images = tuple(
            PetImage(original_url=_optional_str(image.get("original_url")))
            for image in raw_images
            if isinstance(image, dict)
        )
        return cls(
            pet_id=_require_str(payload, "pet_id"),
            pet_name=_require_str(payload, "pet_name"),
            pet_details_url=_optional_str(payload.get("pet_details_url")),
            description=_optional_str(payload.get("description")),
            images=images,
            color=_optional_str(payload.get("color")),
            good_with_cats=_flag(payload.get("good_with_cats")),
            good_with_dogs=_flag(payload.get("good_with_dogs")),
            good_with_kids=_flag(payload.get("good_with_kids")),
            housetrained=_flag(payload.get("housetrained")),
            shots_current=_flag(payload.get("shots_current")),
            spayed_neutered=_flag(payload.get("spayed_neutered")),
            special_needs=_flag(payload.get("special_needs")),
            declawed=_flag(payload.get("declawed")),
        )


def _flag(value: Any) -> int | None:
    # the API sends 0/1, sometimes as strings
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


@dataclass(frozen=True)
class Detail:
    value: RawDetail


@dataclass(frozen=True)
class NoDetail:
    reason: str


DetailResult = Union[Detail, NoDetail]


@dataclass(frozen=True)
class PhotoMetadata:
    original_url: str
    width: int
    height: int
    aspect_ratio: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "originalUrl": self.original_url,
            "width": self.width,
            "height": self.height,
            "aspectRatio": self.aspect_ratio,
        }


@dataclass(frozen=True)
class EnrichedListing:
    listing: RawListing
    detail: DetailResult
    photos: tuple[PhotoMetadata, ...] = field(default_factory=tuple)

    @property
    def raw_detail(self) -> RawDetail | None:
        if isinstance(self.detail, Detail):
            return self.detail.value
        return None


@dataclass(frozen=True)
class PetAttribute:
    key: str
    display: str

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "display": self.display}


@dataclass(frozen=True)
class NormalizedPet:
    id: str
    name: str
    type: str
    breed: str | None
    age: str | None
    sex: str | None
    size: str | None
    url: str
    photo_url: str | None
    description: str | None
    short_description: str | None
    description_html: str | None = None
    description_markdown: str | None = None
    color: str | None = None
    attributes: tuple[PetAttribute, ...] = field(default_factory=tuple)
    photos: tuple[PhotoMetadata, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "breed": self.breed,
            "age": self.age,
            "sex": self.sex,
            "size": self.size,
            "url": self.url,
            "photoUrl": self.photo_url,
            "description": self.description,
            "short_description": self.short_description,
        }
        # extras are only emitted when there is something to show
        if self.description_html is not None:
            payload["descriptionHtml"] = self.description_html
        if self.description_markdown is not None:
            payload["descriptionMarkdown"] = self.description_markdown
        if self.color is not None:
            payload["color"] = self.color
        if self.attributes:
            payload["attributes"] = [attr.to_dict() for attr in self.attributes]
        if self.photos:
            payload["photos"] = [photo.to_dict() for photo in self.photos]
        return payload


@dataclass(frozen=True)
class PetsArtifact:
    pets: tuple[NormalizedPet, ...]
    updated_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "pets": [pet.to_dict() for pet in self.pets],
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True)
class TypeBreakdown:
    dogs: int
    cats: int
    other: int


@dataclass(frozen=True)
class UpdateSummary:
    total: int
    with_photo: int
    without_photo: int
    without_photo_names: tuple[str, ...]
    by_type: TypeBreakdown
    detail_missing: int
    output_path: str
    updated_at: str
