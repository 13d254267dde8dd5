"""Storage package: card store, palette, import/export and background writes."""

from .background import BackgroundCardWriter
from .card_store import CardStore
from .palette import ColorPalette, shared_palette
from .transfer import ImportReport, export_card, import_cards

__all__ = [
    "CardStore",
    "BackgroundCardWriter",
    "ColorPalette",
    "shared_palette",
    "ImportReport",
    "export_card",
    "import_cards",
]
