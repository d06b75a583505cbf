"""Shelter pets sync package."""

from src.pets.domain.models import UpdateSummary
from src.pets.update import run_update, run_update_async

__all__ = ["run_update", "run_update_async", "UpdateSummary"]
