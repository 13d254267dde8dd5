"""Card record model and naming rules."""

from .naming import export_stem, image_filename_for, record_filename, sibling_image_path, slugify
from .types import Card, new_card_id, utc_now

__all__ = [
    "Card",
    "new_card_id",
    "utc_now",
    "record_filename",
    "image_filename_for",
    "slugify",
    "export_stem",
    "sibling_image_path",
]
