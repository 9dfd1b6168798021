"""
Mutation orchestrator tests.

Covers:
- refresh/create/update/delete/reorder happy paths against in-memory gateways
- all-or-nothing image uploads on create
- partial update reporting and store reconciliation
- reorder rollback and the filtered-list guard
- liveness tokens and duplicate in-flight mutations
- orphaned image cleanup
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from katalog.errors import (
    CleanupError,
    GatewayError,
    MutationInProgress,
    NotFound,
    PartialUpdateError,
    ReorderUnavailable,
    ValidationError,
)
from katalog.gateway import MemoryKataGateway, MemoryMediaSource, MemoryObjectStorage, MemoryRecordGateway
from katalog.orchestrator import KataOrchestrator, LivenessToken, RecordOrchestrator, gather_images
from katalog.store import EntityStore
from katalog.tests.conftest import make_katas
from katalog.types import ForumPost, Kata, KataChanges, KataDraft, MutationState


def _ids(items):
    return [item.id for item in items]


class _BlockingKataGateway(MemoryKataGateway):
    """Holds the operations named in `blocked` open until `release` is set."""

    def __init__(self, storage, blocked=("delete",)):
        super().__init__(storage)
        self.blocked = set(blocked)
        self.release = asyncio.Event()

    async def _hold(self, op):
        if op in self.blocked:
            await self.release.wait()

    async def create(self, fields):
        await self._hold("create")
        return await super().create(fields)

    async def delete(self, record_id):
        await self._hold("delete")
        await super().delete(record_id)

    async def save_order(self, mapping):
        await self._hold("save_order")
        await super().save_order(mapping)


def _blocking_orchestrator(storage, *blocked):
    gateway = _BlockingKataGateway(storage, blocked)
    gateway.seed(make_katas())
    return gateway, KataOrchestrator(gateway, storage, EntityStore[Kata](make_katas()))


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------


class TestRefresh:
    @pytest.mark.asyncio
    async def test_refresh_replaces_collection(self, gateway, storage):
        store = EntityStore[Kata]()
        orchestrator = KataOrchestrator(gateway, storage, store)

        items = await orchestrator.refresh()

        assert _ids(items) == [1, 2, 3]
        assert _ids(store.items) == [1, 2, 3]
        assert store.snapshot.loading is False
        assert orchestrator.state_of("refresh") == MutationState.SUCCESS

    @pytest.mark.asyncio
    async def test_refresh_failure_keeps_items_and_surfaces_message(self, orchestrator, gateway, store):
        gateway.errors["list"] = GatewayError("Network down")

        with pytest.raises(GatewayError, match="Network down"):
            await orchestrator.refresh()

        assert _ids(store.items) == [1, 2, 3]
        assert store.snapshot.error == "Network down"
        assert store.snapshot.loading is False
        assert orchestrator.state_of("refresh") == MutationState.FAILED

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate_untouched(self, orchestrator, gateway, store):
        gateway.errors["list"] = RuntimeError("adapter bug")

        with pytest.raises(RuntimeError, match="adapter bug"):
            await orchestrator.refresh()

        assert store.snapshot.error is None
        assert store.snapshot.loading is False
        assert orchestrator.state_of("refresh") == MutationState.FAILED


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_uploads_then_inserts(self, orchestrator, gateway, storage, store, images):
        kata = await orchestrator.create(KataDraft(name="Jion", style="Shotokan"), images)

        assert kata.id == 4
        assert kata.order == 3
        assert len(kata.image_urls) == 3
        assert all(url.startswith("memory://kata_images/uploads/") for url in kata.image_urls)
        assert set(storage.objects) == set(kata.image_urls)
        assert _ids(store.items) == [1, 2, 3, 4]
        assert store.snapshot.error is None
        assert store.snapshot.loading is False

    @pytest.mark.asyncio
    async def test_failed_upload_leaves_no_record_and_no_files(self, orchestrator, gateway, storage, store, images):
        storage.fail_uploads_at = {2}

        with pytest.raises(GatewayError, match="photo_1.jpg"):
            await orchestrator.create(KataDraft(name="Jion"), images)

        assert storage.objects == {}
        assert sorted(gateway.records) == [1, 2, 3]
        assert store.items == tuple(make_katas())
        assert store.snapshot.error == "Upload of photo_1.jpg failed"
        assert orchestrator.state_of("create", "jion") == MutationState.FAILED

    @pytest.mark.asyncio
    async def test_failed_insert_deletes_uploaded_images(self, orchestrator, gateway, storage, store, images):
        gateway.errors["create"] = GatewayError("duplicate key value")

        with pytest.raises(GatewayError):
            await orchestrator.create(KataDraft(name="Jion"), images)

        assert storage.objects == {}
        assert _ids(store.items) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_cleanup_failure_after_failed_insert_is_not_fatal(self, orchestrator, gateway, storage, images):
        gateway.errors["create"] = GatewayError("duplicate key value")
        storage.errors["delete"] = GatewayError("storage offline")

        with pytest.raises(GatewayError, match="duplicate key value"):
            await orchestrator.create(KataDraft(name="Jion"), images)

        # left behind for cleanup_orphaned_images
        assert len(storage.objects) == 3

    @pytest.mark.asyncio
    async def test_blank_name_rejected_before_any_gateway_call(self, orchestrator, gateway, storage, store):
        before = store.snapshot

        with pytest.raises(ValidationError):
            await orchestrator.create(KataDraft(name="   "))

        assert gateway.calls == []
        assert storage.calls == []
        assert store.snapshot is before

    @pytest.mark.asyncio
    async def test_invalid_video_url_rejected(self, orchestrator, gateway):
        with pytest.raises(ValidationError, match="not-a-url"):
            await orchestrator.create(KataDraft(name="Jion", video_urls=["not-a-url"]))
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_optimistic_entry_shown_then_confirmed(self, orchestrator, store):
        seen = []
        store.subscribe(seen.append)

        kata = await orchestrator.create(KataDraft(name="Jion"), optimistic=True)

        assert any(snap.pending_ids for snap in seen)
        assert store.snapshot.pending_ids == frozenset()
        assert _ids(store.items) == [1, 2, 3, kata.id]

    @pytest.mark.asyncio
    async def test_optimistic_entry_withdrawn_on_failure(self, orchestrator, gateway, store):
        gateway.errors["create"] = GatewayError("Network down")

        with pytest.raises(GatewayError):
            await orchestrator.create(KataDraft(name="Jion"), optimistic=True)

        assert _ids(store.items) == [1, 2, 3]
        assert store.snapshot.pending_ids == frozenset()
        assert store.snapshot.error == "Network down"

    @pytest.mark.asyncio
    async def test_overlong_name_rejected_before_upload(self, orchestrator, gateway, storage, store, images):
        with pytest.raises(ValidationError, match="at most 200"):
            await orchestrator.create(KataDraft(name="x" * 201), images)

        assert gateway.calls == []
        assert storage.calls == []
        assert storage.objects == {}

    @pytest.mark.asyncio
    async def test_overlong_style_rejected_before_upload(self, orchestrator, storage, images):
        with pytest.raises(ValidationError, match="at most 100"):
            await orchestrator.create(KataDraft(name="Jion", style="s" * 101), images)
        assert storage.calls == []

    @pytest.mark.asyncio
    async def test_validation_error_from_gateway_discards_uploads(self, orchestrator, gateway, storage, store, images):
        gateway.errors["create"] = ValidationError("name: String should have at most 200 characters")

        with pytest.raises(ValidationError):
            await orchestrator.create(KataDraft(name="Jion"), images, optimistic=True)

        assert storage.objects == {}
        assert _ids(store.items) == [1, 2, 3]
        assert store.snapshot.pending_ids == frozenset()
        assert store.snapshot.error == "name: String should have at most 200 characters"
        assert orchestrator.state_of("create", "jion") == MutationState.FAILED


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------


class TestUpdate:
    @pytest.mark.asyncio
    async def test_scalar_update(self, orchestrator, gateway, store):
        result = await orchestrator.update(1, KataChanges(name="Heian Shodan (rev)"))

        assert result.fields_updated is True
        assert result.failed_step is None
        assert store.get(1).name == "Heian Shodan (rev)"
        assert gateway.records[1].name == "Heian Shodan (rev)"

    @pytest.mark.asyncio
    async def test_new_images_are_appended(self, orchestrator, storage, store, images):
        result = await orchestrator.update(2, new_images=images[:2])

        assert result.fields_updated is False
        assert result.images_uploaded == [
            "memory://kata_images/2/photo_0.jpg",
            "memory://kata_images/2/photo_1.jpg",
        ]
        assert store.get(2).image_urls == result.images_uploaded

    @pytest.mark.asyncio
    async def test_image_order_saved(self, storage):
        gateway = MemoryKataGateway(storage)
        gateway.seed([Kata(id=1, name="Heian Shodan", image_urls=["u/a.jpg", "u/b.jpg"], order=0)])
        orchestrator = KataOrchestrator(gateway, storage)
        await orchestrator.refresh()

        result = await orchestrator.update(1, image_order=["u/b.jpg", "u/a.jpg"])

        assert result.image_order_saved is True
        assert orchestrator.store.get(1).image_urls == ["u/b.jpg", "u/a.jpg"]

    @pytest.mark.asyncio
    async def test_fields_saved_then_upload_fails_is_partial(self, orchestrator, storage, store, images):
        storage.errors["upload"] = GatewayError("Storage unavailable")

        with pytest.raises(PartialUpdateError) as exc_info:
            await orchestrator.update(1, KataChanges(name="Heian Shodan (rev)"), new_images=images[:1])

        result = exc_info.value.result
        assert result.fields_updated is True
        assert result.failed_step == "images"
        assert result.error == "Storage unavailable"
        assert result.is_partial

        # store reflects the gateway: new name, no new images
        assert store.get(1).name == "Heian Shodan (rev)"
        assert store.get(1).image_urls == []
        assert "images step failed" in store.snapshot.error

    @pytest.mark.asyncio
    async def test_image_order_failure_after_fields_is_partial(self, storage):
        gateway = MemoryKataGateway(storage)
        gateway.seed([Kata(id=1, name="Heian Shodan", image_urls=["u/a.jpg", "u/b.jpg"], order=0)])
        orchestrator = KataOrchestrator(gateway, storage)
        await orchestrator.refresh()

        renamed = Kata(id=1, name="Renamed", image_urls=["u/a.jpg", "u/b.jpg"], order=0)
        gateway.update = AsyncMock(side_effect=[renamed, GatewayError("timeout")])

        with pytest.raises(PartialUpdateError) as exc_info:
            await orchestrator.update(1, KataChanges(name="Renamed"), image_order=["u/b.jpg", "u/a.jpg"])

        assert exc_info.value.result.failed_step == "image_order"
        assert exc_info.value.result.image_order_saved is False

    @pytest.mark.asyncio
    async def test_first_step_failure_is_plain_failure(self, orchestrator, gateway, store):
        gateway.errors["update"] = GatewayError("Network down")

        with pytest.raises(GatewayError) as exc_info:
            await orchestrator.update(1, KataChanges(name="Other"))

        assert not isinstance(exc_info.value, PartialUpdateError)
        assert store.get(1).name == "Heian Shodan"
        assert store.snapshot.error == "Network down"

    @pytest.mark.asyncio
    async def test_reload_failure_falls_back_to_returned_record(self, orchestrator, gateway, store):
        gateway.errors["list"] = GatewayError("Network down")

        result = await orchestrator.update(3, KataChanges(description="Tear and smash"))

        assert result.failed_step is None
        assert store.get(3).description == "Tear and smash"
        assert store.snapshot.error == "Saved, but reloading katas failed: Network down"

    @pytest.mark.asyncio
    async def test_image_order_must_be_permutation(self, orchestrator, gateway):
        with pytest.raises(ValidationError):
            await orchestrator.update(1, image_order=["memory://elsewhere.jpg"])
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_unknown_kata_rejected(self, orchestrator):
        with pytest.raises(ValidationError):
            await orchestrator.update(99, KataChanges(name="Ghost"))

    @pytest.mark.asyncio
    async def test_overlong_changes_rejected_before_any_write(self, orchestrator, gateway, storage, images):
        with pytest.raises(ValidationError, match="at most 200"):
            await orchestrator.update(1, KataChanges(name="x" * 201), new_images=images[:1])
        with pytest.raises(ValidationError, match="at most 100"):
            await orchestrator.update(1, KataChanges(style="s" * 101))

        assert gateway.calls == []
        assert storage.calls == []

    @pytest.mark.asyncio
    async def test_validation_error_on_image_step_is_partial(self, orchestrator, gateway, storage, store, images):
        gateway.update = AsyncMock(
            side_effect=[
                Kata(id=1, name="Renamed", order=0),
                ValidationError("image_urls: Input should be a valid list"),
            ]
        )

        with pytest.raises(PartialUpdateError) as exc_info:
            await orchestrator.update(1, KataChanges(name="Renamed"), new_images=images[:1])

        assert exc_info.value.result.failed_step == "images"
        assert storage.objects == {}
        assert "images step failed" in store.snapshot.error


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_removes_record_and_images(self, storage):
        storage.objects["memory://kata_images/3/saifa.jpg"] = b"jpeg"
        gateway = MemoryKataGateway(storage)
        katas = make_katas()
        katas[2].image_urls = ["memory://kata_images/3/saifa.jpg"]
        gateway.seed(katas)
        store = EntityStore[Kata](katas)
        orchestrator = KataOrchestrator(gateway, storage, store)

        await orchestrator.delete(3)

        assert _ids(store.items) == [1, 2]
        assert 3 not in gateway.records
        assert storage.objects == {}

    @pytest.mark.asyncio
    async def test_delete_unknown_id_leaves_store_unchanged(self, orchestrator, store):
        with pytest.raises(NotFound):
            await orchestrator.delete(99)

        assert _ids(store.items) == [1, 2, 3]
        assert store.snapshot.error == "Record 99 not found"

    @pytest.mark.asyncio
    async def test_delete_keeps_order_gaps(self, orchestrator, store):
        await orchestrator.delete(2)
        assert [k.order for k in store.items] == [0, 2]


# ---------------------------------------------------------------------------
# Reorder
# ---------------------------------------------------------------------------


class TestReorder:
    @pytest.mark.asyncio
    async def test_reorder_persists_every_order(self, orchestrator, gateway, store):
        moved = await orchestrator.reorder(0, 2)

        assert _ids(moved) == [2, 3, 1]
        assert [k.order for k in store.items] == [0, 1, 2]
        assert ("save_order", {2: 0, 3: 1, 1: 2}) in gateway.calls
        assert gateway.records[1].order == 2

    @pytest.mark.asyncio
    async def test_drag_indices_are_adjusted(self, orchestrator, store):
        await orchestrator.reorder(0, 2, from_drag=True)
        assert _ids(store.items) == [2, 1, 3]

    @pytest.mark.asyncio
    async def test_failed_save_rolls_back(self, orchestrator, gateway, store):
        gateway.errors["save_order"] = GatewayError("Network down")

        with pytest.raises(GatewayError):
            await orchestrator.reorder(2, 0)

        assert _ids(store.items) == [1, 2, 3]
        assert [k.order for k in store.items] == [0, 1, 2]
        assert store.snapshot.error == "Network down"

    @pytest.mark.asyncio
    async def test_unavailable_while_filtered(self, orchestrator, gateway, store):
        store.apply_query("heian")

        with pytest.raises(ReorderUnavailable):
            await orchestrator.reorder(0, 1)

        assert not any(op == "save_order" for op, _ in gateway.calls)
        assert _ids(store.items) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_rollback_keeps_kata_deleted_while_saving(self, storage):
        gateway, orchestrator = _blocking_orchestrator(storage, "save_order")
        gateway.errors["save_order"] = GatewayError("Network down")

        moving = asyncio.create_task(orchestrator.reorder(0, 1))
        await asyncio.sleep(0)
        assert _ids(orchestrator.store.items) == [2, 1, 3]

        await orchestrator.delete(3)
        gateway.release.set()
        with pytest.raises(GatewayError):
            await moving

        assert _ids(orchestrator.store.items) == [1, 2]
        assert [k.order for k in orchestrator.store.items] == [0, 1]
        assert sorted(gateway.records) == [1, 2]
        assert orchestrator.store.snapshot.error == "Network down"

    @pytest.mark.asyncio
    async def test_rollback_keeps_kata_created_while_saving(self, storage):
        gateway, orchestrator = _blocking_orchestrator(storage, "save_order")
        gateway.errors["save_order"] = GatewayError("Network down")

        moving = asyncio.create_task(orchestrator.reorder(2, 0))
        await asyncio.sleep(0)
        kata = await orchestrator.create(KataDraft(name="Jion"))
        gateway.release.set()
        with pytest.raises(GatewayError):
            await moving

        assert _ids(orchestrator.store.items) == [1, 2, 3, kata.id]


# ---------------------------------------------------------------------------
# Liveness and concurrency
# ---------------------------------------------------------------------------


class TestLiveness:
    @pytest.mark.asyncio
    async def test_released_token_skips_store_but_keeps_gateway_work(self, orchestrator, gateway, store):
        token = LivenessToken()
        token.release()

        kata = await orchestrator.create(KataDraft(name="Jion"), token=token)

        assert kata.id in gateway.records
        assert _ids(store.items) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_released_token_suppresses_error(self, orchestrator, gateway, store):
        gateway.errors["delete"] = GatewayError("Network down")
        token = LivenessToken()
        token.release()

        with pytest.raises(GatewayError):
            await orchestrator.delete(1, token=token)

        assert store.snapshot.error is None

    @pytest.mark.asyncio
    async def test_reorder_rollback_happens_even_when_released(self, orchestrator, gateway, store):
        gateway.errors["save_order"] = GatewayError("Network down")
        token = LivenessToken()
        token.release()

        with pytest.raises(GatewayError):
            await orchestrator.reorder(0, 2, token=token)

        assert _ids(store.items) == [1, 2, 3]
        assert store.snapshot.error is None

    @pytest.mark.asyncio
    async def test_tentative_entry_withdrawn_when_released_mid_failure(self, storage):
        gateway, orchestrator = _blocking_orchestrator(storage, "create")
        gateway.errors["create"] = GatewayError("Network down")
        token = LivenessToken()

        creating = asyncio.create_task(orchestrator.create(KataDraft(name="Jion"), token=token, optimistic=True))
        await asyncio.sleep(0)
        assert len(orchestrator.store.snapshot.pending_ids) == 1

        token.release()
        gateway.release.set()
        with pytest.raises(GatewayError):
            await creating

        assert _ids(orchestrator.store.items) == [1, 2, 3]
        assert orchestrator.store.snapshot.pending_ids == frozenset()
        assert orchestrator.store.snapshot.error is None

    @pytest.mark.asyncio
    async def test_tentative_entry_withdrawn_when_released_mid_success(self, storage):
        gateway, orchestrator = _blocking_orchestrator(storage, "create")
        token = LivenessToken()

        creating = asyncio.create_task(orchestrator.create(KataDraft(name="Jion"), token=token, optimistic=True))
        await asyncio.sleep(0)
        token.release()
        gateway.release.set()
        kata = await creating

        assert kata.id in gateway.records
        assert _ids(orchestrator.store.items) == [1, 2, 3]
        assert orchestrator.store.snapshot.pending_ids == frozenset()


class TestInFlight:
    @pytest.mark.asyncio
    async def test_duplicate_delete_rejected_while_first_runs(self, storage):
        gateway = _BlockingKataGateway(storage)
        gateway.seed(make_katas())
        store = EntityStore[Kata](make_katas())
        orchestrator = KataOrchestrator(gateway, storage, store)

        first = asyncio.create_task(orchestrator.delete(1))
        await asyncio.sleep(0)

        assert orchestrator.is_in_flight("delete", 1)
        assert store.snapshot.loading is True
        with pytest.raises(MutationInProgress):
            await orchestrator.delete(1)

        gateway.release.set()
        await first

        assert _ids(store.items) == [2, 3]
        assert store.snapshot.loading is False
        assert orchestrator.state_of("delete", 1) == MutationState.SUCCESS

    @pytest.mark.asyncio
    async def test_unrelated_mutations_run_concurrently(self, storage):
        gateway = _BlockingKataGateway(storage)
        gateway.seed(make_katas())
        store = EntityStore[Kata](make_katas())
        orchestrator = KataOrchestrator(gateway, storage, store)

        first = asyncio.create_task(orchestrator.delete(1))
        await asyncio.sleep(0)
        await orchestrator.update(2, KataChanges(name="Heian Nidan (rev)"))

        # the delete is still running
        assert store.snapshot.loading is True
        gateway.release.set()
        await first
        assert store.snapshot.loading is False
        assert _ids(store.items) == [2, 3]


# ---------------------------------------------------------------------------
# Cleanup
# ---------------------------------------------------------------------------


class TestCleanup:
    @pytest.mark.asyncio
    async def test_deletes_only_unreferenced_images(self, storage):
        storage.objects = {
            "memory://kata_images/1/kept.jpg": b"",
            "memory://kata_images/1/stale.jpg": b"",
            "memory://kata_images/uploads/abc/lost.jpg": b"",
        }
        gateway = MemoryKataGateway(storage)
        gateway.seed([Kata(id=1, name="Heian Shodan", image_urls=["memory://kata_images/1/kept.jpg"])])
        orchestrator = KataOrchestrator(gateway, storage)

        report = await orchestrator.cleanup_orphaned_images()

        assert report.count == 2
        assert list(storage.objects) == ["memory://kata_images/1/kept.jpg"]

    @pytest.mark.asyncio
    async def test_failure_reports_what_was_deleted(self, storage):
        storage.objects = {
            "memory://kata_images/a.jpg": b"",
            "memory://kata_images/b.jpg": b"",
        }
        gateway = MemoryKataGateway(storage)
        orchestrator = KataOrchestrator(gateway, storage)
        storage.delete = AsyncMock(side_effect=[None, GatewayError("Access denied")])

        with pytest.raises(CleanupError) as exc_info:
            await orchestrator.cleanup_orphaned_images()

        assert exc_info.value.deleted == ["memory://kata_images/a.jpg"]
        assert "Access denied" in str(exc_info.value)


# ---------------------------------------------------------------------------
# Plain records and media
# ---------------------------------------------------------------------------


class TestRecordOrchestrator:
    @pytest.mark.asyncio
    async def test_forum_post_crud(self):
        gateway = MemoryRecordGateway(ForumPost.from_dict)
        orchestrator = RecordOrchestrator(gateway, EntityStore[ForumPost]())

        post = await orchestrator.create({"title": "Gasshuku dates", "content": "Summer camp"})
        assert _ids(orchestrator.store.items) == [post.id]

        await orchestrator.update(post.id, {"is_pinned": True})
        assert orchestrator.store.get(post.id).is_pinned is True

        await orchestrator.delete(post.id)
        assert orchestrator.store.items == ()

    @pytest.mark.asyncio
    async def test_failure_surfaces_message(self):
        gateway = MemoryRecordGateway(ForumPost.from_dict)
        gateway.errors["create"] = GatewayError("permission denied for table forum_posts")
        store = EntityStore[ForumPost]()
        orchestrator = RecordOrchestrator(gateway, store)

        with pytest.raises(GatewayError):
            await orchestrator.create({"title": "x", "content": "y"})
        assert store.snapshot.error == "permission denied for table forum_posts"

    @pytest.mark.asyncio
    async def test_rejected_payload_surfaces_message(self):
        gateway = MemoryRecordGateway(ForumPost.from_dict)
        gateway.errors["update"] = ValidationError("title: String should have at most 300 characters")
        store = EntityStore[ForumPost]()
        orchestrator = RecordOrchestrator(gateway, store)

        with pytest.raises(ValidationError):
            await orchestrator.update(1, {"title": "x" * 301})
        assert store.snapshot.error == "title: String should have at most 300 characters"


class TestGatherImages:
    @pytest.mark.asyncio
    async def test_gallery(self, images):
        assert await gather_images(MemoryMediaSource(gallery=images)) == images

    @pytest.mark.asyncio
    async def test_cancelled_capture_yields_nothing(self):
        assert await gather_images(MemoryMediaSource(camera=None), camera=True) == []

    @pytest.mark.asyncio
    async def test_capture(self, images):
        assert await gather_images(MemoryMediaSource(camera=images[0]), camera=True) == [images[0]]
