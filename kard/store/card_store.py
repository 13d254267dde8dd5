"""Card store: the in-memory card collection and its one-file-per-card storage.

Each card is kept as ``<id>.json`` in the storage directory, with an optional
image beside it named by the card's ``image_filename``. The store is the
single owner of the collection: observers get an immutable snapshot after
every change, and changes are expected to come from one thread (see
``BackgroundCardWriter`` for the asyncio hand-off).

Operations come in two layers. Disk-only methods (``write``, ``write_new``,
``write_with_image``, ``resolve_import``, ``delete_files``) never touch the
collection. Memory-only methods (``add``, ``replace``, ``discard``) never
touch the disk. The composite operations (``update``, ``persist_new``,
``import_card``, ...) run one after the other.
"""

from dataclasses import replace as replace_fields
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, List, Optional, Set, Tuple, Union

from ..core.constants import PALETTE_FILENAME, RECORD_EXTENSION, SEED_CARDS
from ..core.naming import image_filename_for, record_filename, sibling_image_path
from ..core.types import Card, new_card_id, utc_now
from ..utils import config
from ..utils.error_handler import (
    CardNotFoundError,
    DecodeError,
    DuplicateCardError,
    ErrorContext,
    KardError,
    StorageError,
    safe_execute,
)
from ..utils.log import LoggerMixin, card_context
from .files import (
    ImagePayload,
    copy_atomic,
    decode_image,
    delete_quietly,
    encode_png,
    ensure_directory,
    read_bytes,
    read_bytes_or_none,
    write_atomic,
)

Snapshot = Tuple[Card, ...]
Observer = Callable[[Snapshot], None]


def _is_plain_filename(filename: str) -> bool:
    return bool(filename) and Path(filename).name == filename and filename not in (".", "..")


def _image_name_available(filename: str, taken_images: Set[str]) -> bool:
    """An imported image filename must be plain and not used by another card."""
    return _is_plain_filename(filename) and filename not in taken_images


class CardStore(LoggerMixin):
    """Authoritative owner of the card collection."""

    def __init__(
        self,
        directory: Optional[Union[str, Path]] = None,
        seed: bool = True,
        strict: bool = False,
    ):
        """
        Args:
            directory: Storage directory (defaults to the configured one)
            seed: Populate two default cards in memory when nothing is stored
            strict: Raise CardNotFoundError from update/remove on unknown ids
                instead of logging and ignoring them
        """
        if directory is None:
            directory = config.resolve_storage_dir()
        self.directory = Path(directory).expanduser()
        self.strict = strict
        self._cards: List[Card] = []
        self._observers: List[Observer] = []

        self._load_from_disk()
        if not self._cards and seed:
            self._seed()

    # ------------------------------------------------------------------ reads

    @property
    def cards(self) -> Snapshot:
        return tuple(self._cards)

    @property
    def my_card(self) -> Optional[Card]:
        """The owner's card: first in the collection by convention."""
        return self._cards[0] if self._cards else None

    @property
    def contacts(self) -> Snapshot:
        return tuple(self._cards[1:])

    def get(self, card_id: str) -> Optional[Card]:
        for card in self._cards:
            if card.id == card_id:
                return card
        return None

    def ids(self) -> Set[str]:
        return {card.id for card in self._cards}

    def image_filenames(self) -> Set[str]:
        """Image filenames referenced by cards in the collection."""
        return {card.image_filename for card in self._cards if card.image_filename}

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(tuple(self._cards))

    def __contains__(self, item: Any) -> bool:
        card_id = item.id if isinstance(item, Card) else item
        return any(card.id == card_id for card in self._cards)

    def record_path(self, card: Card) -> Path:
        return self.directory / record_filename(card.id)

    def image_path(self, card: Card) -> Optional[Path]:
        """Path of the card's image, None when it has none (or an unsafe name)."""
        if not _is_plain_filename(card.image_filename):
            return None
        return self.directory / card.image_filename

    def image_for(self, card: Card) -> Optional[bytes]:
        """Best-effort read of the card's image bytes."""
        path = self.image_path(card)
        if path is None:
            return None
        return read_bytes_or_none(path)

    def image_array_for(self, card: Card) -> Optional[Any]:
        """The card's image decoded with OpenCV, or None."""
        data = self.image_for(card)
        if data is None:
            return None
        return decode_image(data)

    # -------------------------------------------------------------- observers

    def subscribe(self, callback: Observer, emit_current: bool = False) -> Callable[[], None]:
        """Register ``callback`` for snapshots; returns an unsubscribe function."""
        self._observers.append(callback)
        if emit_current:
            self._notify(callback, self.cards)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def _publish(self) -> None:
        snapshot = self.cards
        for observer in list(self._observers):
            self._notify(observer, snapshot)

    def _notify(self, observer: Observer, snapshot: Snapshot) -> None:
        try:
            observer(snapshot)
        except Exception as e:
            self.logger.error(
                "Card observer failed", observer=repr(observer), error=str(e), exc_info=True
            )

    # ---------------------------------------------------- memory-only changes

    def add(self, card: Card) -> None:
        """Insert into the collection without writing (already persisted elsewhere)."""
        if card.id in self:
            raise DuplicateCardError(
                f"Card {card.id} is already in the collection",
                details={"card_id": card.id}
            )
        self._cards.append(card)
        self._publish()

    def replace(self, card: Card) -> bool:
        """Swap the entry with the same id. Returns False if there is none."""
        for index, current in enumerate(self._cards):
            if current.id == card.id:
                self._cards[index] = card
                self._publish()
                return True
        return False

    def discard(self, card: Card) -> Optional[Card]:
        """Drop the entry with the card's id and return it (None if absent)."""
        for index, current in enumerate(self._cards):
            if current.id == card.id:
                del self._cards[index]
                self._publish()
                return current
        return None

    # ------------------------------------------------------- disk-only writes

    def write(self, card: Card) -> Card:
        """Stamp ``updated_at`` and atomically write the card's record.

        Returns the stamped card.
        """
        stamped = card.touched()
        self._write_record(stamped)
        return stamped

    def _write_record(self, card: Card) -> None:
        ensure_directory(self.directory)
        write_atomic(self.record_path(card), card.to_json().encode("utf-8"))

    def _write_image(self, filename: str, image: ImagePayload) -> bool:
        if not _is_plain_filename(filename):
            raise StorageError(
                f"Invalid image filename: {filename!r}",
                details={"image_filename": filename}
            )
        ensure_directory(self.directory)
        write_atomic(self.directory / filename, encode_png(image))
        return True

    def write_new(self, card: Card, image: Optional[ImagePayload] = None) -> Card:
        """Write the image (if any) to the card's filename, then the record.

        Raises:
            StorageError: If either write fails
        """
        ensure_directory(self.directory)
        if image is not None:
            if not card.image_filename:
                raise StorageError(
                    "Card has an image but no image filename",
                    details={"card_id": card.id}
                )
            self._write_image(card.image_filename, image)
        return self.write(card)

    def write_with_image(self, card: Card, new_image: Optional[ImagePayload] = None) -> Card:
        """Best-effort write of an optional new image and the record.

        The image keeps the card's existing filename or gets the id-based one.
        Failures are logged, never raised. Returns the card as it should now
        be held in memory.
        """
        updated = card.touched()
        if new_image is not None:
            filename = card.image_filename
            if not _is_plain_filename(filename):
                filename = image_filename_for(card.id)
            written = safe_execute(
                self._write_image, filename, new_image,
                context=self._context("write image", "write_with_image", card),
                logger=self.logger,
                default_return=False,
            )
            if written:
                updated = updated.with_image(filename)
        safe_execute(
            self._write_record, updated,
            context=self._context("write record", "write_with_image", updated),
            logger=self.logger,
        )
        return updated

    def delete_files(self, card: Card) -> None:
        """Best-effort removal of the card's record and image files."""
        delete_quietly(self.record_path(card))
        image_path = self.image_path(card)
        if image_path is not None:
            delete_quietly(image_path)

    def resolve_import(
        self,
        source: Union[str, Path],
        taken_ids: Optional[Iterable[str]] = None,
        taken_images: Optional[Iterable[str]] = None,
    ) -> Card:
        """Decode a standalone record, settle its id and image, and write it.

        ``taken_ids`` and ``taken_images`` default to the ids and image
        filenames currently in the collection; callers off the owning thread
        pass snapshots. The card is not inserted; see ``import_card``.

        Raises:
            DecodeError: If the record cannot be decoded
            StorageError: If reading, copying or writing fails
        """
        source = Path(source)
        context = self.log_start("Card import", source=str(source))
        try:
            card = Card.from_json(read_bytes(source))
            taken = set(taken_ids) if taken_ids is not None else self.ids()
            images = set(taken_images) if taken_images is not None else self.image_filenames()

            if card.id in taken:
                original_id = card.id
                new_id = new_card_id()
                while new_id in taken:
                    new_id = new_card_id()
                card = replace_fields(
                    card,
                    id=new_id,
                    image_filename=image_filename_for(new_id) if card.image_filename else "",
                )
                self.logger.info("Imported card id reassigned", original_id=original_id, card_id=new_id)
            elif card.image_filename and not _image_name_available(card.image_filename, images):
                card = card.with_image(image_filename_for(card.id))

            if card.image_filename:
                sibling = sibling_image_path(source)
                if sibling.is_file():
                    ensure_directory(self.directory)
                    copy_atomic(sibling, self.directory / card.image_filename)
                else:
                    self.logger.info("Imported card has no image beside it", source=str(source))
                    card = card.with_image("")

            stored = self.write(card)
        except KardError as e:
            self.log_error(context, e)
            raise

        self.log_success(context, **card_context(stored))
        return stored

    # ---------------------------------------------------- composite operations

    def update(self, card: Card) -> Optional[Card]:
        """Replace the matching entry and write its record (image untouched).

        Unknown ids leave the collection unchanged and write nothing. Write
        failures are logged and swallowed. Returns the stored card or None.
        """
        if card.id not in self:
            self.report_missing(card, "update")
            return None
        stored = card.touched()
        self.replace(stored)
        safe_execute(
            self._write_record, stored,
            context=self._context("write record", "update", stored),
            logger=self.logger,
        )
        return stored

    def update_with_image(self, card: Card, new_image: Optional[ImagePayload] = None) -> Card:
        """Write an optional new image and always write the record.

        The in-memory entry is replaced when present. Never raises I/O errors.
        """
        updated = self.write_with_image(card, new_image)
        self.replace(updated)
        return updated

    def remove(self, card: Card) -> None:
        """Drop the card from the collection and delete its files (best-effort)."""
        removed = self.discard(card)
        if removed is None:
            self.report_missing(card, "remove")
        self.delete_files(removed or card)

    def persist_new(self, card: Card, image: Optional[ImagePayload] = None) -> Card:
        """Write image and record, then insert. Nothing is inserted on failure.

        Raises:
            DuplicateCardError: If the id is already in the collection
            StorageError: If a write fails
        """
        if card.id in self:
            raise DuplicateCardError(
                f"Card {card.id} is already in the collection",
                details={"card_id": card.id}
            )
        context = self.log_start("Card persist", **card_context(card))
        try:
            stored = self.write_new(card, image)
        except KardError as e:
            self.log_error(context, e)
            raise
        self.add(stored)
        self.log_success(context)
        return stored

    def import_card(self, source: Union[str, Path]) -> Card:
        """Import a standalone record (and same-stem PNG) into the store.

        Raises:
            DecodeError: If the record cannot be decoded
            StorageError: If reading, copying or writing fails
        """
        card = self.resolve_import(source)
        self.add(card)
        return card

    # ---------------------------------------------------------------- helpers

    def report_missing(self, card: Card, operation: str) -> None:
        """Log (or in strict mode raise) an operation aimed at an unknown id."""
        if self.strict:
            raise CardNotFoundError(
                f"Card {card.id} is not in the collection",
                details={"card_id": card.id, "operation": operation}
            )
        self.logger.warning("Card not in collection, ignored", card_id=card.id, operation=operation)

    def _context(self, operation: str, function: str, card: Card) -> ErrorContext:
        return ErrorContext(
            operation=operation,
            module=__name__,
            function=function,
            input_data={"card_id": card.id, "image_filename": card.image_filename},
            timestamp=utc_now().isoformat(),
        )

    def _load_from_disk(self) -> None:
        context = self.log_start("Card load")
        try:
            ensure_directory(self.directory)
            paths = sorted(self.directory.glob(f"*.{RECORD_EXTENSION}"))
        except (StorageError, OSError) as e:
            self.log_error(context, e)
            return

        loaded: List[Card] = []
        skipped = 0
        for path in paths:
            if path.name == PALETTE_FILENAME:
                continue
            try:
                loaded.append(Card.from_json(read_bytes(path)))
            except (DecodeError, StorageError) as e:
                skipped += 1
                self.logger.debug("Skipping unreadable record", path=str(path), error=str(e))

        loaded.sort(key=lambda card: card.created_at)

        seen: Set[str] = set()
        for card in loaded:
            if card.id in seen:
                skipped += 1
                self.logger.warning("Skipping duplicate card id", card_id=card.id)
                continue
            seen.add(card.id)
            self._cards.append(card)

        self.log_success(context, loaded=len(self._cards), skipped=skipped)

    def _seed(self) -> None:
        """Owner card plus one sample contact, in memory only."""
        now = utc_now()
        self._cards = [
            Card.new(created_at=now + timedelta(seconds=offset), **fields)
            for offset, fields in enumerate(SEED_CARDS)
        ]
        self.logger.info("Seeded default cards", count=len(self._cards))
