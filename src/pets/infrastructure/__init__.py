"""Infrastructure adapters for the shelter pets sync."""

from src.pets.infrastructure.adoptapet_client import AdoptapetClient
from src.pets.infrastructure.fs_sink import PetsArtifactSink

__all__ = ["AdoptapetClient", "PetsArtifactSink"]
