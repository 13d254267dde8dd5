"""Filename derivation for records, images and export bundles.

Storage names derive from the card id, export names from the card's name.
The link between a record and its image is always the ``image_filename``
field; these functions are only used when a name has to be chosen.
"""

from pathlib import Path
from typing import Union

from .constants import IMAGE_EXTENSION, RECORD_EXTENSION


def record_filename(card_id: str) -> str:
    return f"{card_id}.{RECORD_EXTENSION}"


def image_filename_for(card_id: str) -> str:
    """Storage image filename assigned when a card gets its first image."""
    return f"{card_id}.{IMAGE_EXTENSION}"


def slugify(text: str) -> str:
    """Keep letters, digits, ``-`` and ``_``; every other character becomes ``_``."""
    return "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in text)


def export_stem(card) -> str:
    """Filename stem of an export bundle, falling back to the card id."""
    trimmed = card.name.strip()
    if not trimmed:
        return card.id
    return slugify(trimmed) or card.id


def sibling_image_path(record_path: Union[str, Path]) -> Path:
    """Image expected next to a record: same directory and stem, image extension."""
    return Path(record_path).with_suffix(f".{IMAGE_EXTENSION}")


def is_record_path(path: Union[str, Path]) -> bool:
    return Path(path).suffix.lower() == f".{RECORD_EXTENSION}"
