from __future__ import annotations
import asyncio
from dataclasses import replace
from pathlib import Path

from src.config.settings import DEFAULT_BASE_URL, DEFAULT_OUTPUT_PATH, DEFAULT_SHELTER_ID
from src.pets.application.workflows.update_pets import UpdatePetsWorkflow, UpdateWorkflowConfig
from src.pets.domain.models import UpdateSummary
from src.pets.infrastructure.adoptapet_client import AdoptapetClient
from src.pets.infrastructure.fs_sink import PetsArtifactSink


async def run_update_async(
    *,
    api_key: str,
    shelter_id: str = DEFAULT_SHELTER_ID,
    output_path: str | Path = DEFAULT_OUTPUT_PATH,
    base_url: str = DEFAULT_BASE_URL,
    workflow_config: UpdateWorkflowConfig | None = None,
    show_progress: bool = True,
) -> UpdateSummary:
    config = (
        replace(workflow_config, show_progress=show_progress)
        if workflow_config is not None
        else UpdateWorkflowConfig(show_progress=show_progress)
    )
    client = AdoptapetClient(
        api_key=api_key,
        base_url=base_url,
        max_retries=config.max_retries,
        backoff_base=config.backoff_base,
        request_timeout_seconds=config.request_timeout_seconds,
        connect_timeout_seconds=config.connect_timeout_seconds,
    )
    workflow = UpdatePetsWorkflow(
        client=client,
        sink=PetsArtifactSink(output_path),
        shelter_id=shelter_id,
        config=config,
    )
    return await workflow.run()


def run_update(
    *,
    api_key: str,
    shelter_id: str = DEFAULT_SHELTER_ID,
    output_path: str | Path = DEFAULT_OUTPUT_PATH,
    base_url: str = DEFAULT_BASE_URL,
    workflow_config: UpdateWorkflowConfig | None = None,
    show_progress: bool = True,
) -> UpdateSummary:
    return asyncio.run(
        run_update_async(
            api_key=api_key,
            shelter_id=shelter_id,
            output_path=output_path,
            base_url=base_url,
            workflow_config=workflow_config,
            show_progress=show_progress,
        )
    )
