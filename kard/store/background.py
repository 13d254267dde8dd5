"""Background writes for the card store.

Disk work runs on a worker pool; the change to the collection (and so the
notification of observers) happens back on the event loop once the write
has finished. Observers therefore never see a new card before its record
is on disk, and the collection is only ever mutated from the loop thread.

Cancelling an awaiting task does not stop a write that is already running
on the pool.
"""

import asyncio
import functools
from concurrent.futures import Executor, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Union

from ..core.naming import is_record_path
from ..core.types import Card
from ..utils import config
from ..utils.error_handler import DuplicateCardError, KardError
from ..utils.log import LoggerMixin, card_context
from .card_store import CardStore
from .files import ImagePayload
from .transfer import ImportReport


class BackgroundCardWriter(LoggerMixin):
    """Runs ``CardStore`` disk work off the event loop and commits on it."""

    def __init__(
        self,
        store: CardStore,
        executor: Optional[Executor] = None,
        max_workers: Optional[int] = None,
    ):
        self.store = store
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers or config.settings.BACKGROUND_WORKERS,
            thread_name_prefix="kard-writer",
        )

    def log_bindings(self) -> Dict[str, Any]:
        return {"directory": str(self.store.directory)}

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(func, *args))

    async def persist_new(self, card: Card, image: Optional[ImagePayload] = None) -> Card:
        """Write image and record on the pool, then insert on the loop.

        Raises:
            DuplicateCardError: If the id is already in the collection
            StorageError: If a write fails (nothing is inserted)
        """
        if card.id in self.store:
            raise DuplicateCardError(
                f"Card {card.id} is already in the collection",
                details={"card_id": card.id}
            )
        context = self.log_start("Background persist", **card_context(card))
        try:
            stored = await self._run(self.store.write_new, card, image)
        except KardError as e:
            self.log_error(context, e)
            raise
        self.store.add(stored)
        self.log_success(context)
        return stored

    async def import_card(self, source: Union[str, Path]) -> Card:
        """Resolve and write an imported record on the pool, then insert on the loop."""
        # the pool only sees snapshots taken on the loop
        taken = self.store.ids()
        images = self.store.image_filenames()
        card = await self._run(self.store.resolve_import, Path(source), taken, images)
        self.store.add(card)
        return card

    async def import_cards(self, paths: Iterable[Union[str, Path]]) -> ImportReport:
        report = ImportReport()
        for raw_path in paths:
            path = Path(raw_path)
            if not is_record_path(path):
                report.skipped.append(path)
                continue
            try:
                report.imported.append(await self.import_card(path))
            except KardError as e:
                report.failures.append((path, e))
        return report

    async def update(self, card: Card) -> Optional[Card]:
        """Write the record on the pool and replace the entry on the loop.

        Unknown ids are ignored (see ``CardStore.update``).
        """
        if card.id not in self.store:
            self.store.report_missing(card, "update")
            return None
        updated = await self._run(self.store.write_with_image, card, None)
        self.store.replace(updated)
        return updated

    async def update_with_image(self, card: Card, new_image: Optional[ImagePayload] = None) -> Card:
        """Best-effort image and record write on the pool, then replace on the loop."""
        updated = await self._run(self.store.write_with_image, card, new_image)
        self.store.replace(updated)
        return updated

    async def remove(self, card: Card) -> None:
        """Drop the card on the loop, then delete its files on the pool."""
        removed = self.store.discard(card)
        if removed is None:
            self.store.report_missing(card, "remove")
        await self._run(self.store.delete_files, removed or card)

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    async def __aenter__(self) -> "BackgroundCardWriter":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.shutdown(wait=True)
