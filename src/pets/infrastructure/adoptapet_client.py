import asyncio
import json
from dataclasses import dataclass
from typing import Any

import aiohttp
from aiohttp import ClientConnectionError, ClientPayloadError, ClientResponseError, ContentTypeError
from src.config.logger_config import logger

from src.pets.domain.errors import ListingFetchError
from src.pets.domain.models import Detail, DetailResult, NoDetail, PhotoMetadata, RawDetail, RawListing
from src.pets.domain.rules import DEFAULT_CONFIG, NormalizerConfig, build_image_info_url, build_image_original_url

DEFAULT_BASE_URL = "https://api.adoptapet.com/search"
LISTING_WINDOW = 500


@dataclass(frozen=True)
class ApiResponse:
    data: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AdoptapetClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        max_retries: int = 2,
        backoff_base: float = 1.0,
        request_timeout_seconds: float = 30,
        connect_timeout_seconds: float = 10,
        normalizer_config: NormalizerConfig = DEFAULT_CONFIG,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.timeout = aiohttp.ClientTimeout(total=request_timeout_seconds, connect=connect_timeout_seconds)
        self.normalizer_config = normalizer_config

    async def fetch_pets_at_shelter(self, session: aiohttp.ClientSession, shelter_id: str) -> list[RawListing]:
        params = {
            "key": self.api_key,
            "shelter_id": shelter_id,
            "start_number": "1",
            "end_number": str(LISTING_WINDOW),
            "output": "json",
        }
        response = await self._fetch(session, f"{self.base_url}/pets_at_shelter", params, operation="pets_at_shelter")
        if not response.ok:
            raise ListingFetchError(f"Could not fetch pets for shelter {shelter_id}: {response.error}")

        data = response.data
        if not isinstance(data, dict):
            raise ListingFetchError(f"Unexpected listing payload for shelter {shelter_id}: {type(data).__name__}")
        raw_pets = data.get("pets") or []
        if not isinstance(raw_pets, list):
            raise ListingFetchError(f"Unexpected 'pets' value for shelter {shelter_id}: {type(raw_pets).__name__}")

        try:
            listings = [RawListing.from_api(pet) for pet in raw_pets]
        except ValueError as exc:
            raise ListingFetchError(f"Malformed pet record for shelter {shelter_id}: {exc}") from exc
        logger.info("Shelter {} listing returned {} pets", shelter_id, len(listings))
        return listings

    async def fetch_pet_details(self, session: aiohttp.ClientSession, pet_id: str) -> DetailResult:
        params = {"key": self.api_key, "pet_id": pet_id, "output": "json"}
        response = await self._fetch(session, f"{self.base_url}/pet_details", params, operation="pet_details")
        if not response.ok:
            logger.warning("No detail for pet {}: {}", pet_id, response.error)
            return NoDetail(reason=response.error or "request failed")

        data = response.data
        pet = data.get("pet") if isinstance(data, dict) else None
        if not pet:
            logger.debug("Detail payload for pet {} has no pet record", pet_id)
            return NoDetail(reason="not found")
        try:
            return Detail(RawDetail.from_api(pet))
        except Exception as exc:
            logger.warning("Malformed detail for pet {}: {}", pet_id, exc)
            return NoDetail(reason=f"malformed payload: {exc}")

    async def fetch_image_metadata(self, session: aiohttp.ClientSession, original_url: str) -> PhotoMetadata | None:
        """Ask Cloudinary (fl_getinfo) for the original dimensions of one image."""
        info_url = build_image_info_url(original_url, self.normalizer_config)
        cdn_url = build_image_original_url(original_url, self.normalizer_config)
        if info_url is None or cdn_url is None:
            return None

        response = await self._fetch(session, info_url, None, operation="image_info")
        if not response.ok:
            logger.debug("No image metadata for {}: {}", original_url, response.error)
            return None
        try:
            width = int(response.data["input"]["width"])
            height = int(response.data["input"]["height"])
        except (KeyError, TypeError, ValueError, OverflowError) as exc:
            logger.debug("Malformed image metadata for {}: {}", original_url, exc)
            return None
        if width <= 0 or height <= 0:
            return None
        return PhotoMetadata(original_url=cdn_url, width=width, height=height, aspect_ratio=width / height)

    async def _fetch(
        self,
        session: aiohttp.ClientSession,
        url: str,
        params: dict[str, Any] | None,
        *,
        operation: str,
    ) -> ApiResponse:
        attempts = self.max_retries + 1
        last_error = "no attempts made"
        for attempt in range(1, attempts + 1):
            try:
                async with session.get(url, params=params, timeout=self.timeout) as resp:
                    if resp.status >= 500 or resp.status == 429:
                        logger.warning(
                            "{} server error {}. Attempt {}/{}",
                            operation,
                            resp.status,
                            attempt,
                            attempts,
                        )
                        raise ClientResponseError(
                            resp.request_info,
                            resp.history,
                            status=resp.status,
                            message="Server Error",
                        )

                    if resp.status != 200:
                        body = await resp.text()
                        logger.error("{} HTTP {}: {}", operation, resp.status, body[:200])
                        return ApiResponse(error=f"HTTP {resp.status}")

                    try:
                        data = await resp.json(content_type=None)
                    except (ContentTypeError, json.JSONDecodeError, ValueError) as exc:
                        last_error = f"{type(exc).__name__}: {exc}"
                        if attempt == attempts:
                            logger.error("{} failed after {} attempts. Error: {}", operation, attempts, exc)
                            return ApiResponse(error=last_error)
                        wait_time = self._backoff(attempt)
                        logger.warning("{} returned invalid JSON ({}). Retrying in {}s...", operation, exc, wait_time)
                        await asyncio.sleep(wait_time)
                        continue

                    return ApiResponse(data=data)

            except (
                ClientResponseError,
                ClientConnectionError,
                asyncio.TimeoutError,
                ClientPayloadError,
            ) as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                if attempt == attempts:
                    logger.error("{} failed after {} attempts. Error: {}", operation, attempts, exc)
                    return ApiResponse(error=last_error)
                wait_time = self._backoff(attempt)
                logger.warning("{} connection unstable ({}). Retrying in {}s...", operation, exc, wait_time)
                await asyncio.sleep(wait_time)
            except Exception as exc:
                logger.error("Unexpected error during {}: {}", operation, exc)
                return ApiResponse(error=f"{type(exc).__name__}: {exc}")

        return ApiResponse(error=last_error)

    def _backoff(self, attempt: int) -> float:
        return self.backoff_base * 2 ** (attempt - 1)
