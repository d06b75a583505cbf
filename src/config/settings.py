# Runtime settings for the shelter sync, read from the environment / .env

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

DEFAULT_SHELTER_ID = "83349"
DEFAULT_OUTPUT_PATH = "data/pets.json"
DEFAULT_BASE_URL = "https://api.adoptapet.com/search"


@dataclass(frozen=True)
class PetsSettings:
    api_key: str | None
    shelter_id: str = DEFAULT_SHELTER_ID
    output_path: str = DEFAULT_OUTPUT_PATH
    base_url: str = DEFAULT_BASE_URL


def load_settings() -> PetsSettings:
    return PetsSettings(
        api_key=os.getenv("ADOPTAPET_API_KEY") or None,
        shelter_id=os.getenv("SHELTER_ID") or DEFAULT_SHELTER_ID,
        output_path=os.getenv("PETS_OUTPUT") or DEFAULT_OUTPUT_PATH,
        base_url=os.getenv("ADOPTAPET_BASE_URL") or DEFAULT_BASE_URL,
    )
