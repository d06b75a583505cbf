import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Sequence

import aiohttp
from tqdm import tqdm
from src.config.logger_config import logger

from src.pets.domain.models import (
    Detail,
    EnrichedListing,
    NormalizedPet,
    PetsArtifact,
    PhotoMetadata,
    RawListing,
    UpdateSummary,
)
from src.pets.domain.rules import DEFAULT_CONFIG, NormalizerConfig, count_by_type, normalize_pet, usable_image_urls
from src.pets.infrastructure.adoptapet_client import AdoptapetClient
from src.pets.infrastructure.fs_sink import PetsArtifactSink


@dataclass(frozen=True)
class UpdateWorkflowConfig:
    max_retries: int = 2
    backoff_base: float = 1.0
    request_timeout_seconds: float = 30
    connect_timeout_seconds: float = 10
    connector_limit: int = 100
    connector_limit_per_host: int = 0
    connector_ttl_dns_cache: int = 300
    fetch_photo_metadata: bool = False
    show_progress: bool = True


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class UpdatePetsWorkflow:
    def __init__(
        self,
        client: AdoptapetClient,
        sink: PetsArtifactSink,
        shelter_id: str,
        config: UpdateWorkflowConfig | None = None,
        normalizer_config: NormalizerConfig = DEFAULT_CONFIG,
        clock: Callable[[], str] = utc_timestamp,
    ) -> None:
        self.client = client
        self.sink = sink
        self.shelter_id = shelter_id
        self.config = config or UpdateWorkflowConfig()
        self.normalizer_config = normalizer_config
        self.clock = clock

    async def run(self) -> UpdateSummary:
        connector = aiohttp.TCPConnector(
            limit=self.config.connector_limit,
            limit_per_host=self.config.connector_limit_per_host,
            ttl_dns_cache=self.config.connector_ttl_dns_cache,
        )
        async with aiohttp.ClientSession(connector=connector) as session:
            return await self.run_with_session(session)

    async def run_with_session(self, session: aiohttp.ClientSession) -> UpdateSummary:
        logger.info("Fetching pets from Adoptapet for shelter {}...", self.shelter_id)
        listings = await self.client.fetch_pets_at_shelter(session, self.shelter_id)
        logger.debug("Fetched {} pets from listing", len(listings))

        logger.info("Fetching pet details for high-res images...")
        enriched = await self.enrich(session, listings)
        pets = [self.normalize(item) for item in enriched]

        artifact = PetsArtifact(pets=tuple(pets), updated_at=self.clock())
        output_path = self.sink.write(artifact)
        summary = self.summarize(pets, enriched, str(output_path), artifact.updated_at)
        logger.debug("Wrote {} pets to {}", summary.total, summary.output_path)
        return summary

    async def enrich(self, session: aiohttp.ClientSession, listings: Sequence[RawListing]) -> list[EnrichedListing]:
        """Fetch detail for every listing at once; results keep the listing order."""
        with tqdm(
            total=len(listings),
            desc="Pet details",
            unit=" pet",
            leave=True,
            disable=not self.config.show_progress,
        ) as progress:

            async def _enrich_one(listing: RawListing) -> EnrichedListing:
                detail = await self.client.fetch_pet_details(session, listing.pet_id)
                photos: tuple[PhotoMetadata, ...] = ()
                if self.config.fetch_photo_metadata and isinstance(detail, Detail):
                    photos = await self._fetch_photos(session, detail)
                progress.update(1)
                return EnrichedListing(listing=listing, detail=detail, photos=photos)

            return list(await asyncio.gather(*(_enrich_one(listing) for listing in listings)))

    async def _fetch_photos(self, session: aiohttp.ClientSession, detail: Detail) -> tuple[PhotoMetadata, ...]:
        urls = usable_image_urls(detail.value.images, self.normalizer_config)
        results = await asyncio.gather(*(self.client.fetch_image_metadata(session, url) for url in urls))
        return tuple(photo for photo in results if photo is not None)

    def normalize(self, item: EnrichedListing) -> NormalizedPet:
        return normalize_pet(item.listing, item.raw_detail, item.photos, self.normalizer_config)

    @staticmethod
    def summarize(
        pets: Sequence[NormalizedPet],
        enriched: Sequence[EnrichedListing],
        output_path: str,
        updated_at: str,
    ) -> UpdateSummary:
        without_photo = tuple(pet.name for pet in pets if pet.photo_url is None)
        for name in without_photo:
            logger.debug("{} had no photo", name)
        return UpdateSummary(
            total=len(pets),
            with_photo=len(pets) - len(without_photo),
            without_photo=len(without_photo),
            without_photo_names=without_photo,
            by_type=count_by_type(pets),
            detail_missing=sum(1 for item in enriched if item.raw_detail is None),
            output_path=output_path,
            updated_at=updated_at,
        )
