import asyncio
import json
import random
import unittest
from pathlib import Path
from unittest.mock import patch

from src.config.logger_config import logger
from src.pets.application.workflows.update_pets import UpdatePetsWorkflow, UpdateWorkflowConfig
from src.pets.domain.errors import ArtifactWriteError, ListingFetchError
from src.pets.domain.models import Detail, NoDetail, PetImage, PetsArtifact, PhotoMetadata, RawDetail, RawListing
from src.pets.infrastructure.adoptapet_client import AdoptapetClient
from src.pets.infrastructure.fs_sink import PetsArtifactSink
from tests.utils.fake_http import FakeResponse, FakeSession
from tests.utils.tempdir import managed_temp_dir

FIXED_NOW = "2026-10-17T08:30:00Z"


def make_listing(pet_id: str, species: str = "dog", photo_url: str | None = None) -> RawListing:
    return RawListing(pet_id=pet_id, pet_name=f"Pet {pet_id}", species=species, photo_url=photo_url)


class FakeClient:
    def __init__(
        self,
        listings: list[RawListing] | None = None,
        details: dict[str, RawDetail] | None = None,
        delays: dict[str, float] | None = None,
        listing_error: Exception | None = None,
        photos: dict[str, PhotoMetadata] | None = None,
    ) -> None:
        self.listings = listings or []
        self.details = details or {}
        self.delays = delays or {}
        self.listing_error = listing_error
        self.photos = photos or {}
        self.detail_calls: list[str] = []
        self.completed: list[str] = []
        self.photo_calls: list[str] = []

    async def fetch_pets_at_shelter(self, _session, shelter_id: str):
        if self.listing_error is not None:
            raise self.listing_error
        return list(self.listings)

    async def fetch_pet_details(self, _session, pet_id: str):
        self.detail_calls.append(pet_id)
        await asyncio.sleep(self.delays.get(pet_id, 0))
        self.completed.append(pet_id)
        detail = self.details.get(pet_id)
        return Detail(detail) if detail is not None else NoDetail("not found")

    async def fetch_image_metadata(self, _session, original_url: str):
        self.photo_calls.append(original_url)
        return self.photos.get(original_url)


class FakeSink:
    def __init__(self, should_fail: bool = False) -> None:
        self.should_fail = should_fail
        self.written: list[PetsArtifact] = []

    def write(self, artifact: PetsArtifact) -> Path:
        if self.should_fail:
            raise ArtifactWriteError("disk full")
        self.written.append(artifact)
        return Path("data/pets.json")


def make_workflow(client, sink, **config) -> UpdatePetsWorkflow:
    return UpdatePetsWorkflow(
        client=client,
        sink=sink,
        shelter_id="83349",
        config=UpdateWorkflowConfig(show_progress=False, **config),
        clock=lambda: FIXED_NOW,
    )


class EnrichmentTests(unittest.IsolatedAsyncioTestCase):
    async def test_order_is_preserved_under_random_latency(self):
        rng = random.Random(1234)
        ids = [str(i) for i in range(25)]
        client = FakeClient(
            listings=[make_listing(pet_id) for pet_id in ids],
            details={pet_id: RawDetail(pet_id=pet_id, pet_name=f"Pet {pet_id}") for pet_id in ids[::2]},
            delays={pet_id: rng.uniform(0, 0.03) for pet_id in ids},
        )
        workflow = make_workflow(client, FakeSink())

        enriched = await workflow.enrich(None, client.listings)

        self.assertEqual([item.listing.pet_id for item in enriched], ids)
        self.assertNotEqual(client.completed, ids)
        for item in enriched:
            self.assertEqual(item.raw_detail is not None, int(item.listing.pet_id) % 2 == 0)
            if item.raw_detail is not None:
                self.assertEqual(item.raw_detail.pet_id, item.listing.pet_id)

    async def test_all_details_are_outstanding_together(self):
        in_flight = 0
        peak = 0

        class TrackingClient(FakeClient):
            async def fetch_pet_details(self, _session, pet_id: str):
                nonlocal in_flight, peak
                in_flight += 1
                peak = max(peak, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1
                return NoDetail("not found")

        client = TrackingClient(listings=[make_listing(str(i)) for i in range(10)])
        await make_workflow(client, FakeSink()).enrich(None, client.listings)
        self.assertEqual(peak, 10)

    async def test_photo_metadata_is_fetched_only_when_enabled(self):
        detail = RawDetail(
            pet_id="1",
            pet_name="Pet 1",
            images=(PetImage("https://cdn.test/a.jpg"), PetImage("https://cdn.test/null"), PetImage("https://cdn.test/b")),
        )
        photo = PhotoMetadata("https://cdn.test/o/a", 400, 200, 2.0)
        client = FakeClient(
            listings=[make_listing("1")],
            details={"1": detail},
            photos={"https://cdn.test/a.jpg": photo},
        )

        disabled = await make_workflow(client, FakeSink()).enrich(None, client.listings)
        self.assertEqual(disabled[0].photos, ())
        self.assertEqual(client.photo_calls, [])

        enabled = await make_workflow(client, FakeSink(), fetch_photo_metadata=True).enrich(None, client.listings)
        self.assertEqual(enabled[0].photos, (photo,))
        self.assertEqual(client.photo_calls, ["https://cdn.test/a.jpg", "https://cdn.test/b"])


class UpdateWorkflowTests(unittest.IsolatedAsyncioTestCase):
    async def test_run_normalizes_writes_and_summarizes(self):
        client = FakeClient(
            listings=[
                make_listing("1", "dog", "http://x/1.jpg"),
                make_listing("2", "cat"),
                make_listing("3", "rabbit", "https://cdn.test/null"),
            ],
            details={"2": RawDetail(pet_id="2", pet_name="Pet 2", images=(PetImage("https://cdn.test/v/22.jpg"),))},
        )
        sink = FakeSink()

        summary = await make_workflow(client, sink).run_with_session(None)

        self.assertEqual(len(sink.written), 1)
        artifact = sink.written[0]
        self.assertEqual(artifact.updated_at, FIXED_NOW)
        self.assertEqual([pet.id for pet in artifact.pets], ["1", "2", "3"])
        self.assertEqual(summary.total, 3)
        self.assertEqual(summary.with_photo, 2)
        self.assertEqual(summary.without_photo, 1)
        self.assertEqual(summary.without_photo_names, ("Pet 3",))
        self.assertEqual((summary.by_type.dogs, summary.by_type.cats, summary.by_type.other), (1, 1, 1))
        self.assertEqual(summary.detail_missing, 2)
        self.assertEqual(summary.updated_at, FIXED_NOW)

    async def test_listing_failure_aborts_before_write(self):
        client = FakeClient(listing_error=ListingFetchError("HTTP 500"))
        sink = FakeSink()
        with self.assertRaises(ListingFetchError):
            await make_workflow(client, sink).run_with_session(None)
        self.assertEqual(sink.written, [])
        self.assertEqual(client.detail_calls, [])

    async def test_write_failure_propagates(self):
        client = FakeClient(listings=[make_listing("1")])
        with self.assertRaises(ArtifactWriteError):
            await make_workflow(client, FakeSink(should_fail=True)).run_with_session(None)

    async def test_empty_shelter_writes_empty_artifact(self):
        sink = FakeSink()
        summary = await make_workflow(FakeClient(), sink).run_with_session(None)
        self.assertEqual(summary.total, 0)
        self.assertEqual(sink.written[0].pets, ())


    async def test_run_opens_one_session_with_configured_connector(self):
        sink = FakeSink()
        fake_session = object()
        workflow = make_workflow(
            FakeClient(listings=[make_listing("1")]),
            sink,
            connector_limit=7,
            connector_limit_per_host=3,
            connector_ttl_dns_cache=60,
        )
        target = "src.pets.application.workflows.update_pets.aiohttp"

        with patch(f"{target}.TCPConnector") as connector_cls, patch(f"{target}.ClientSession") as session_cls:
            session_cls.return_value.__aenter__.return_value = fake_session
            with patch.object(workflow, "run_with_session", wraps=workflow.run_with_session) as run_with_session:
                summary = await workflow.run()

        connector_cls.assert_called_once_with(limit=7, limit_per_host=3, ttl_dns_cache=60)
        session_cls.assert_called_once_with(connector=connector_cls.return_value)
        run_with_session.assert_awaited_once_with(fake_session)
        session_cls.return_value.__aexit__.assert_awaited_once()
        self.assertEqual(summary.total, 1)
        self.assertEqual(len(sink.written), 1)

    async def test_summary_lines_are_logged_at_debug(self):
        records = []
        handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
        try:
            await make_workflow(FakeClient(listings=[make_listing("1")]), FakeSink()).run_with_session(None)
        finally:
            logger.remove(handler_id)

        levels = {record["message"]: record["level"].name for record in records}
        self.assertEqual(levels["Fetched 1 pets from listing"], "DEBUG")
        self.assertEqual(levels["Pet 1 had no photo"], "DEBUG")
        self.assertEqual(levels["Wrote 1 pets to data/pets.json"], "DEBUG")


class EndToEndTests(unittest.IsolatedAsyncioTestCase):
    async def _run_pipeline(self, tmp: Path, router) -> dict:
        client = AdoptapetClient(api_key="secret", base_url="http://unit.invalid/search", max_retries=0)
        target = tmp / "out" / "pets.json"
        workflow = make_workflow(client, PetsArtifactSink(target))
        await workflow.run_with_session(FakeSession(router=router))
        return json.loads(target.read_text(encoding="utf-8"))

    async def test_single_dog_without_detail(self):
        def router(url, params):
            if url.endswith("/pets_at_shelter"):
                return FakeResponse(
                    json_data={
                        "pets": [
                            {
                                "pet_id": "1",
                                "pet_name": "Rex",
                                "species": "dog",
                                "large_results_photo_url": "http://x/low.jpg",
                            }
                        ]
                    }
                )
            return FakeResponse(status=404, text_data="not found")

        with managed_temp_dir("pets_e2e_no_detail") as tmp:
            payload = await self._run_pipeline(tmp, router)

        self.assertEqual(payload["updatedAt"], FIXED_NOW)
        pet = payload["pets"][0]
        self.assertEqual(pet["type"], "Dog")
        self.assertEqual(pet["photoUrl"], "http://x/low.jpg")
        self.assertIsNone(pet["description"])
        self.assertEqual(pet["url"], "https://www.adoptapet.com/pet/1")

    async def test_detail_description_is_cleaned(self):
        def router(url, params):
            if url.endswith("/pets_at_shelter"):
                return FakeResponse(json_data={"pets": [{"pet_id": "5", "pet_name": "Mia", "species": "Cat"}]})
            return FakeResponse(
                json_data={
                    "pet": {
                        "pet_id": 5,
                        "pet_name": "Mia",
                        "description": "##123##  <b>Friendly!</b>\n",
                        "images": [],
                    }
                }
            )

        with managed_temp_dir("pets_e2e_detail") as tmp:
            payload = await self._run_pipeline(tmp, router)

        pet = payload["pets"][0]
        self.assertEqual(pet["description"], "Friendly!")
        self.assertEqual(pet["short_description"], "Friendly!")
        self.assertEqual(pet["type"], "Cat")
        self.assertIsNone(pet["photoUrl"])

    async def test_out_of_range_detail_value_does_not_abort_run(self):
        def router(url, params):
            if url.endswith("/pets_at_shelter"):
                return FakeResponse(
                    json_data={
                        "pets": [
                            {"pet_id": "1", "pet_name": "Rex", "species": "dog"},
                            {"pet_id": "2", "pet_name": "Tom", "species": "cat"},
                        ]
                    }
                )
            detail = {"pet_id": params["pet_id"], "pet_name": "Rex", "special_needs": 1}
            if params["pet_id"] == "2":
                detail = {"pet_id": "2", "pet_name": "Tom", "declawed": float("inf"), "special_needs": 1}
            return FakeResponse(json_data={"pet": detail})

        with managed_temp_dir("pets_e2e_overflow") as tmp:
            payload = await self._run_pipeline(tmp, router)

        self.assertEqual([pet["name"] for pet in payload["pets"]], ["Rex", "Tom"])
        self.assertEqual(payload["pets"][1]["attributes"], [{"key": "special_needs", "display": "Special needs"}])
