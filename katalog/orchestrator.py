"""
Katalog: Mutation Orchestrator

Runs create/update/delete/reorder flows against the gateways and is the
only writer of an EntityStore's collection. Each flow awaits its gateway
round trips in program order; nothing is dispatched fire-and-forget and
nothing is retried.

Per-mutation state: idle -> in_flight -> success | failed. The store's
`loading` flag is up while any mutation is in flight. A second identical
mutation for the same entity while the first is in flight raises
MutationInProgress; unrelated mutations are not serialized.

Callers may pass a LivenessToken. If it has been released by the time a
flow completes, the gateway work stands but the store is left alone,
apart from withdrawing a tentative entry the flow itself added.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generic, TypeVar
from uuid import uuid4

from katalog import reorder as reordering
from katalog.errors import (
    CatalogError,
    CleanupError,
    GatewayError,
    MutationInProgress,
    PartialUpdateError,
    ReorderUnavailable,
    ValidationError,
)
from katalog.gateway import KataGateway, MediaSource, ObjectStorage, RecordGateway
from katalog.store import EntityStore
from katalog.types import (
    KATA_NAME_MAX_LENGTH,
    KATA_STYLE_MAX_LENGTH,
    CleanupReport,
    Kata,
    KataChanges,
    KataDraft,
    MutationState,
    UpdateResult,
    is_valid_video_url,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LivenessToken:
    """Tells a flow whether whoever started it still wants the result."""

    def __init__(self) -> None:
        self._alive = True

    @property
    def alive(self) -> bool:
        return self._alive

    def release(self) -> None:
        self._alive = False


def is_alive(token: LivenessToken | None) -> bool:
    return token is None or token.alive


# ---------------------------------------------------------------------------
# Shared mutation bookkeeping
# ---------------------------------------------------------------------------


class _Orchestrator(Generic[T]):
    def __init__(self, gateway: RecordGateway[T], store: EntityStore[T]) -> None:
        self._gateway = gateway
        self.store = store
        self._in_flight: set[tuple[str, Any]] = set()
        self.states: dict[tuple[str, Any], MutationState] = {}

    def state_of(self, operation: str, entity_id: Any = None) -> MutationState:
        return self.states.get((operation, entity_id), MutationState.IDLE)

    def is_in_flight(self, operation: str, entity_id: Any = None) -> bool:
        return (operation, entity_id) in self._in_flight

    @contextmanager
    def _track(self, operation: str, entity_id: Any = None) -> Iterator[None]:
        key = (operation, entity_id)
        if key in self._in_flight:
            raise MutationInProgress(f"{operation} already running for {entity_id!r}")

        self._in_flight.add(key)
        self.states[key] = MutationState.IN_FLIGHT
        self.store.set_loading(True)
        try:
            yield
        except BaseException:
            self.states[key] = MutationState.FAILED
            raise
        else:
            self.states[key] = MutationState.SUCCESS
        finally:
            self._in_flight.discard(key)
            # set_all/set_error drop the flag; other flows may still be running
            busy = bool(self._in_flight)
            if self.store.snapshot.loading != busy:
                self.store.set_loading(busy)

    def _fail(self, message: str, token: LivenessToken | None) -> None:
        if not is_alive(token):
            return
        self.store.set_error(message)
        if len(self._in_flight) > 1:
            # other flows are still running
            self.store.set_loading(True)

    async def refresh(self, token: LivenessToken | None = None) -> list[T]:
        """Reload the full collection from the gateway."""
        with self._track("refresh"):
            try:
                items = await self._gateway.list()
            except GatewayError as exc:
                logger.warning("orchestrator: refresh failed: %s", exc)
                self._fail(str(exc), token)
                raise
            if is_alive(token):
                self.store.set_all(items)
            return items


class RecordOrchestrator(_Orchestrator[T]):
    """Plain CRUD for entities without images or ordering (forum posts, users)."""

    async def create(self, fields: dict[str, Any], token: LivenessToken | None = None) -> T:
        with self._track("create"):
            try:
                record = await self._gateway.create(fields)
            except CatalogError as exc:
                self._fail(str(exc), token)
                raise
            if is_alive(token):
                self.store.upsert_one(record)
                self.store.clear_error()
            return record

    async def update(self, record_id: Any, fields: dict[str, Any], token: LivenessToken | None = None) -> T:
        with self._track("update", record_id):
            try:
                record = await self._gateway.update(record_id, fields)
            except CatalogError as exc:
                self._fail(str(exc), token)
                raise
            if is_alive(token):
                self.store.upsert_one(record)
                self.store.clear_error()
            return record

    async def delete(self, record_id: Any, token: LivenessToken | None = None) -> None:
        with self._track("delete", record_id):
            try:
                await self._gateway.delete(record_id)
            except CatalogError as exc:
                self._fail(str(exc), token)
                raise
            if is_alive(token):
                self.store.remove_one(record_id)
                self.store.clear_error()


# ---------------------------------------------------------------------------
# Kata flows
# ---------------------------------------------------------------------------


def _validate_video_urls(urls: Sequence[str]) -> None:
    bad = [url for url in urls if not is_valid_video_url(url)]
    if bad:
        raise ValidationError(f"Invalid video URL: {bad[0]}")


def _validate_lengths(name: str | None, style: str | None) -> None:
    if name is not None and len(name) > KATA_NAME_MAX_LENGTH:
        raise ValidationError(f"Kata name must be at most {KATA_NAME_MAX_LENGTH} characters")
    if style is not None and len(style) > KATA_STYLE_MAX_LENGTH:
        raise ValidationError(f"Kata style must be at most {KATA_STYLE_MAX_LENGTH} characters")


def validate_draft(draft: KataDraft) -> None:
    if not draft.name.strip():
        raise ValidationError("Kata name is required")
    _validate_lengths(draft.name.strip(), draft.style)
    _validate_video_urls(draft.video_urls)


def validate_changes(changes: KataChanges) -> None:
    if changes.name is not None and not changes.name.strip():
        raise ValidationError("Kata name is required")
    _validate_lengths(changes.name, changes.style)
    if changes.video_urls is not None:
        _validate_video_urls(changes.video_urls)


async def gather_images(source: MediaSource, *, camera: bool = False) -> list[Path]:
    """Pick from the gallery or the camera. A cancelled capture yields nothing."""
    if camera:
        captured = await source.capture_image_with_camera()
        return [captured] if captured is not None else []
    return await source.pick_images_from_gallery()


class KataOrchestrator(_Orchestrator[Kata]):
    """Kata catalog flows: images, ordering and partial-failure reporting."""

    def __init__(
        self,
        gateway: KataGateway,
        storage: ObjectStorage,
        store: EntityStore[Kata] | None = None,
    ) -> None:
        super().__init__(gateway, store if store is not None else EntityStore[Kata]())
        self._katas = gateway
        self._storage = storage
        self._temp_ids = 0

    # -- images --

    async def _upload_all(self, images: Sequence[Path], path_hint: str) -> list[str]:
        """Upload every image or none: on failure, already-uploaded ones are deleted."""
        uploaded: list[str] = []
        try:
            for image in images:
                uploaded.append(await self._storage.upload(Path(image), path_hint))
        except GatewayError:
            await self._discard_uploads(uploaded)
            raise
        return uploaded

    async def _discard_uploads(self, urls: Sequence[str]) -> None:
        for url in urls:
            try:
                await self._storage.delete(url)
            except GatewayError as exc:
                # left for cleanup_orphaned_images
                logger.warning("orchestrator: could not remove uploaded image %s: %s", url, exc)

    # -- create --

    async def create(
        self,
        draft: KataDraft,
        images: Sequence[Path] = (),
        token: LivenessToken | None = None,
        optimistic: bool = False,
    ) -> Kata:
        """
        Upload images, then create the record.

        Any failure leaves the store's collection as it was and surfaces the
        collaborator's message. With `optimistic=True` a tentative entry is
        shown while the flow runs. It is promoted on success, and withdrawn on
        failure or when the token was released meanwhile.
        """
        validate_draft(draft)

        with self._track("create", draft.name.strip().casefold()):
            order = self.store.next_order()
            temp_id = None
            if optimistic and is_alive(token):
                self._temp_ids -= 1
                temp_id = self._temp_ids
                self.store.add_pending(
                    Kata(
                        id=temp_id,
                        name=draft.name.strip(),
                        description=draft.description,
                        style=draft.style,
                        video_urls=list(draft.video_urls),
                        order=order,
                    )
                )

            uploaded: list[str] = []
            try:
                uploaded = await self._upload_all(images, f"uploads/{uuid4().hex}")
                kata = await self._katas.create(
                    {
                        "name": draft.name.strip(),
                        "description": draft.description,
                        "style": draft.style,
                        "image_urls": uploaded,
                        "video_urls": list(draft.video_urls),
                        "order": order,
                    }
                )
            except CatalogError as exc:
                logger.warning("orchestrator: create %r failed: %s", draft.name, exc)
                await self._discard_uploads(uploaded)
                if temp_id is not None:
                    self.store.discard_pending(temp_id)
                self._fail(str(exc), token)
                raise

            if is_alive(token):
                if temp_id is not None:
                    self.store.confirm_pending(temp_id, kata)
                else:
                    self.store.upsert_one(kata)
                self.store.clear_error()
            elif temp_id is not None:
                self.store.discard_pending(temp_id)
            logger.info("orchestrator: created kata %s with %d images", kata.id, len(uploaded))
            return kata

    # -- update --

    async def update(
        self,
        kata_id: int,
        changes: KataChanges | None = None,
        new_images: Sequence[Path] = (),
        image_order: Sequence[str] | None = None,
        token: LivenessToken | None = None,
    ) -> UpdateResult:
        """
        Three separate round trips: scalar fields, new images, image order.

        A failure in the first step is a plain failure. A failure after an
        earlier step succeeded raises PartialUpdateError carrying the
        UpdateResult; earlier steps are not rolled back. Whenever anything
        was written the collection is reloaded from the gateway.
        """
        changes = changes or KataChanges()
        validate_changes(changes)
        current = self.store.get(kata_id)
        if current is None:
            raise ValidationError(f"Kata {kata_id} is not loaded")
        if image_order is not None and sorted(image_order) != sorted(current.image_urls):
            raise ValidationError("Image order must contain exactly the kata's current images")

        result = UpdateResult(kata_id=kata_id)
        last_written: Kata | None = None

        with self._track("update", kata_id):
            try:
                fields = changes.to_fields()
                if fields:
                    result.failed_step = "fields"
                    last_written = await self._katas.update(kata_id, fields)
                    result.fields_updated = True

                if new_images:
                    result.failed_step = "images"
                    uploaded = await self._upload_all(new_images, str(kata_id))
                    try:
                        last_written = await self._katas.update(
                            kata_id, {"image_urls": [*current.image_urls, *uploaded]}
                        )
                    except CatalogError:
                        await self._discard_uploads(uploaded)
                        raise
                    result.images_uploaded = uploaded

                if image_order is not None and list(image_order) != current.image_urls:
                    result.failed_step = "image_order"
                    last_written = await self._katas.update(
                        kata_id, {"image_urls": [*image_order, *result.images_uploaded]}
                    )
                    result.image_order_saved = True

                result.failed_step = None
            except CatalogError as exc:
                result.error = str(exc)
                logger.warning("orchestrator: update of kata %s failed at %s: %s", kata_id, result.failed_step, exc)
                if not result.is_partial:
                    self._fail(str(exc), token)
                    raise
                partial = PartialUpdateError(result)
                await self._reconcile(last_written, token)
                self._fail(str(partial), token)
                raise partial from exc

            await self._reconcile(last_written, token)
            logger.info("orchestrator: updated kata %s", kata_id)
            return result

    async def _reconcile(self, last_written: Kata | None, token: LivenessToken | None) -> None:
        """Reload the collection; fall back to the last record the gateway returned."""
        if not is_alive(token):
            return
        try:
            items = await self._katas.list()
        except GatewayError as exc:
            logger.warning("orchestrator: refresh after update failed: %s", exc)
            if last_written is not None:
                self.store.upsert_one(last_written)
            self.store.set_error(f"Saved, but reloading katas failed: {exc}")
            return
        self.store.set_all(items)

    # -- delete --

    async def delete(self, kata_id: int, token: LivenessToken | None = None) -> None:
        """Delete the record; the gateway removes its stored images."""
        with self._track("delete", kata_id):
            try:
                await self._katas.delete(kata_id)
            except GatewayError as exc:
                logger.warning("orchestrator: delete of kata %s failed: %s", kata_id, exc)
                self._fail(str(exc), token)
                raise
            if is_alive(token):
                self.store.remove_one(kata_id)
                self.store.clear_error()
            logger.info("orchestrator: deleted kata %s", kata_id)

    # -- reorder --

    async def reorder(
        self,
        old_index: int,
        new_index: int,
        from_drag: bool = False,
        token: LivenessToken | None = None,
    ) -> list[Kata]:
        """
        Move one kata within the full collection and persist every order value.

        `new_index` is the final position; pass `from_drag=True` for
        drag-callback indices. The local move is rolled back if persisting
        fails.
        """
        if self.store.snapshot.is_filtered:
            raise ReorderUnavailable("Clear the search before reordering katas")
        if from_drag:
            new_index = reordering.drop_target(old_index, new_index)

        previous = list(self.store.items)
        moved = reordering.reorder(previous, old_index, new_index)

        with self._track("reorder"):
            self.store.replace_items(moved)
            try:
                await self._katas.save_order(reordering.order_mapping(moved))
            except CatalogError as exc:
                logger.warning("orchestrator: reorder failed, restoring previous order: %s", exc)
                self.store.replace_items(reordering.restore_orders(self.store.items, previous))
                self._fail(str(exc), token)
                raise
            if is_alive(token):
                self.store.clear_error()
            return moved

    # -- maintenance --

    async def cleanup_orphaned_images(self) -> CleanupReport:
        """
        Delete stored images no kata references.

        Either every deletion performed is reported, or CleanupError is
        raised carrying the paths deleted before the failure.
        """
        deleted: list[str] = []
        with self._track("cleanup"):
            try:
                katas = await self._katas.list()
                references = {url for kata in katas for url in kata.image_urls}
                orphans = await self._storage.list_orphaned(references)
                for url in orphans:
                    await self._storage.delete(url)
                    deleted.append(url)
            except GatewayError as exc:
                logger.warning("orchestrator: cleanup aborted after %d deletions: %s", len(deleted), exc)
                raise CleanupError(str(exc), deleted) from exc

        logger.info("orchestrator: cleanup removed %d orphaned images", len(deleted))
        return CleanupReport(deleted=deleted)
