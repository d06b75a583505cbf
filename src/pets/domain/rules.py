import html
import re
from dataclasses import dataclass
from typing import Iterable

from bs4 import BeautifulSoup
from markdownify import markdownify

from src.pets.domain.models import (
    NormalizedPet,
    PetAttribute,
    PetImage,
    PhotoMetadata,
    RawDetail,
    RawListing,
    TypeBreakdown,
)

_REFERENCE_CODE_RE = re.compile(r"##\d+##")
_WHITESPACE_RE = re.compile(r"\s+")
_BLANK_LINES_RE = re.compile(r"\n{2,}")

CLOUDINARY_ROOT = "https://media.adoptapet.com/image/upload"

TYPE_LABELS = {"dog": "Dog", "cat": "Cat"}
SEX_LABELS = {"m": "Male", "f": "Female"}

# (detail field, display name); output keeps this order
ATTRIBUTE_LABELS = (
    ("good_with_cats", "Good with cats"),
    ("good_with_dogs", "Good with dogs"),
    ("good_with_kids", "Good with kids"),
    ("housetrained", "Housetrained"),
    ("shots_current", "Shots current"),
    ("spayed_neutered", "Spayed/Neutered"),
    ("special_needs", "Special needs"),
    ("declawed", "Declawed"),
)


@dataclass(frozen=True)
class NormalizerConfig:
    # 800x600 keeps a 4:3 aspect for the gallery cards
    high_res_url_template: str = CLOUDINARY_ROOT + "/c_fill,w_800,h_600,g_auto/f_auto,q_auto/{image_id}"
    original_url_template: str = CLOUDINARY_ROOT + "/f_auto,q_auto/{image_id}"
    info_url_template: str = CLOUDINARY_ROOT + "/fl_getinfo/{image_id}"
    detail_url_template: str = "https://www.adoptapet.com/pet/{pet_id}"
    placeholder_marker: str = "/null"
    email_cutoff_marker: str = "Please email"
    short_description_limit: int = 200
    ellipsis: str = "..."
    default_type: str = "Other"
    breed_separator: str = " / "


DEFAULT_CONFIG = NormalizerConfig()


def extract_image_id(original_url: str | None) -> str | None:
    """Return the last path segment of `original_url` without its extension."""
    if original_url is None or not original_url.strip():
        return None
    image_id = original_url.strip().rsplit("/", 1)[-1].split(".", 1)[0]
    return image_id or None


def build_high_res_url(original_url: str | None, config: NormalizerConfig = DEFAULT_CONFIG) -> str | None:
    """Turn an Adoptapet original image URL into a fixed-size Cloudinary URL.

    https://media.adoptapet.com/image/upload/v123/1268757503
    -> https://media.adoptapet.com/image/upload/c_fill,w_800,h_600,g_auto/f_auto,q_auto/1268757503

    A URL without a usable id is returned verbatim; a blank one gives None.
    """
    if original_url is None or not original_url.strip():
        return None
    image_id = extract_image_id(original_url)
    if image_id is None:
        return original_url
    return config.high_res_url_template.format(image_id=image_id)


def build_image_info_url(original_url: str, config: NormalizerConfig = DEFAULT_CONFIG) -> str | None:
    image_id = extract_image_id(original_url)
    if image_id is None:
        return None
    return config.info_url_template.format(image_id=image_id)


def build_image_original_url(original_url: str, config: NormalizerConfig = DEFAULT_CONFIG) -> str | None:
    image_id = extract_image_id(original_url)
    if image_id is None:
        return None
    return config.original_url_template.format(image_id=image_id)


def usable_image_urls(images: Iterable[PetImage], config: NormalizerConfig = DEFAULT_CONFIG) -> list[str]:
    """Original image URLs that are non-blank and not placeholders, in order."""
    return [
        image.original_url.strip()
        for image in images
        if image.original_url
        and image.original_url.strip()
        and config.placeholder_marker not in image.original_url
    ]


def resolve_photo_url(
    listing: RawListing,
    detail: RawDetail | None,
    config: NormalizerConfig = DEFAULT_CONFIG,
) -> str | None:
    first_original = None
    if detail is not None:
        first_original = next(
            (image.original_url for image in detail.images if image.original_url and image.original_url.strip()),
            None,
        )
    candidate = build_high_res_url(first_original, config) or listing.photo_url
    if not candidate or config.placeholder_marker in candidate:
        return None
    return candidate


def map_type(species: str | None, config: NormalizerConfig = DEFAULT_CONFIG) -> str:
    if not species:
        return config.default_type
    return TYPE_LABELS.get(species.lower(), species)


def combine_breeds(
    primary: str | None,
    secondary: str | None,
    config: NormalizerConfig = DEFAULT_CONFIG,
) -> str | None:
    breeds = [breed for breed in (primary, secondary) if breed and breed.strip()]
    return config.breed_separator.join(breeds) or None


def map_sex(sex: str | None) -> str | None:
    if sex is None:
        return None
    return SEX_LABELS.get(sex.lower(), sex)


def capitalize_age(age: str | None) -> str | None:
    if age is None:
        return None
    return age[:1].upper() + age[1:]


def strip_reference_codes(text: str) -> str:
    return _REFERENCE_CODE_RE.sub("", text).strip()


def clean_description(raw: str | None) -> str | None:
    """Plain-text description: entities decoded, tags and ##123## codes removed."""
    if raw is None:
        return None
    text = html.unescape(raw)
    text = BeautifulSoup(text, "html.parser").get_text(" ")
    text = _REFERENCE_CODE_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text).strip()
    return text or None


def sanitize_description_html(raw: str | None) -> str | None:
    if raw is None:
        return None
    return strip_reference_codes(raw) or None


def convert_description_markdown(raw: str | None) -> str | None:
    """Markdown rendering of the description with one blank line between paragraphs."""
    if raw is None:
        return None
    text = markdownify(strip_reference_codes(raw), heading_style="ATX").strip()
    if not text:
        return None
    return _BLANK_LINES_RE.sub("\n", text).replace("\n", "\n\n")


def derive_short_description(
    description: str | None,
    config: NormalizerConfig = DEFAULT_CONFIG,
) -> str | None:
    if description is None:
        return None
    cutoff = re.search(re.escape(config.email_cutoff_marker), description, flags=re.IGNORECASE)
    if cutoff is not None and cutoff.start() > 0:
        return description[: cutoff.start()].strip()
    if len(description) > config.short_description_limit:
        return description[: config.short_description_limit].strip() + config.ellipsis
    return description


def build_detail_url(
    listing: RawListing,
    detail: RawDetail | None,
    config: NormalizerConfig = DEFAULT_CONFIG,
) -> str:
    if detail is not None and detail.pet_details_url:
        return detail.pet_details_url
    return config.detail_url_template.format(pet_id=listing.pet_id)


def build_attributes(detail: RawDetail | None) -> tuple[PetAttribute, ...]:
    if detail is None:
        return ()
    return tuple(
        PetAttribute(key=key, display=display)
        for key, display in ATTRIBUTE_LABELS
        if getattr(detail, key) == 1
    )


def normalize_pet(
    listing: RawListing,
    detail: RawDetail | None,
    photos: Iterable[PhotoMetadata] = (),
    config: NormalizerConfig = DEFAULT_CONFIG,
) -> NormalizedPet:
    description = clean_description(detail.description if detail is not None else None)
    return NormalizedPet(
        id=listing.pet_id,
        name=listing.pet_name,
        type=map_type(listing.species, config),
        breed=combine_breeds(listing.primary_breed, listing.secondary_breed, config),
        age=capitalize_age(listing.age),
        sex=map_sex(listing.sex),
        size=listing.size,
        url=build_detail_url(listing, detail, config),
        photo_url=resolve_photo_url(listing, detail, config),
        description=description,
        short_description=derive_short_description(description, config),
        description_html=sanitize_description_html(detail.description if detail is not None else None),
        description_markdown=convert_description_markdown(detail.description if detail is not None else None),
        color=detail.color if detail is not None else None,
        attributes=build_attributes(detail),
        photos=tuple(photos),
    )


def count_by_type(pets: Iterable[NormalizedPet]) -> TypeBreakdown:
    pets = list(pets)
    dogs = sum(1 for pet in pets if pet.type == TYPE_LABELS["dog"])
    cats = sum(1 for pet in pets if pet.type == TYPE_LABELS["cat"])
    return TypeBreakdown(dogs=dogs, cats=cats, other=len(pets) - dogs - cats)
