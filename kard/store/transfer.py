"""Export bundles and batch import of card files.

An export bundle is ``<slug>.json`` plus ``<slug>.png`` when the card has an
image, written into a freshly cleared staging directory. Importing reverses
it: the record is decoded by the card store and the image is looked up next
to it under the same stem.
"""

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from ..core.constants import IMAGE_EXTENSION, RECORD_EXTENSION
from ..core.naming import export_stem, is_record_path
from ..core.types import Card
from ..utils import config
from ..utils.error_handler import ExportError, KardError, StorageError
from ..utils.log import card_context, get_logger
from .card_store import CardStore
from .files import write_atomic

logger = get_logger(__name__)


@dataclass
class ImportReport:
    """Outcome of importing a batch of picked files."""
    imported: List[Card] = field(default_factory=list)
    failures: List[Tuple[Path, KardError]] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def count(self) -> int:
        return len(self.imported)


def _clear_staging(staging: Path) -> None:
    if staging.is_dir() and not staging.is_symlink():
        shutil.rmtree(staging)
    elif staging.exists() or staging.is_symlink():
        staging.unlink()
    staging.mkdir(parents=True)


def export_card(card: Card, store: CardStore, staging_dir: Optional[Union[str, Path]] = None) -> List[Path]:
    """Write a share bundle for ``card`` and return the written paths (record first).

    Raises:
        ExportError: If the staging directory or a file cannot be written
    """
    staging = Path(staging_dir).expanduser() if staging_dir is not None else config.resolve_export_dir()
    stem = export_stem(card)

    try:
        _clear_staging(staging)

        record_path = staging / f"{stem}.{RECORD_EXTENSION}"
        write_atomic(record_path, card.touched().to_json().encode("utf-8"))
        paths = [record_path]

        image = store.image_for(card)
        if image is not None:
            image_path = staging / f"{stem}.{IMAGE_EXTENSION}"
            write_atomic(image_path, image)
            paths.append(image_path)
    except (OSError, StorageError) as e:
        logger.error("Card export failed", **card_context(card), staging=str(staging), error=str(e))
        raise ExportError(
            f"Cannot export card {card.id}",
            details={"card_id": card.id, "staging": str(staging), "error": str(e)}
        ) from e

    logger.info("Card exported", **card_context(card), files=[p.name for p in paths])
    return paths


def import_cards(store: CardStore, paths: Iterable[Union[str, Path]]) -> ImportReport:
    """Import every picked record file; other files are skipped.

    A failing file is recorded in the report and does not stop the batch.
    """
    report = ImportReport()
    for raw_path in paths:
        path = Path(raw_path)
        if not is_record_path(path):
            report.skipped.append(path)
            continue
        try:
            report.imported.append(store.import_card(path))
        except KardError as e:
            report.failures.append((path, e))

    logger.info(
        "Card batch import finished",
        imported=report.count,
        failed=len(report.failures),
        skipped=len(report.skipped),
    )
    return report
