"""Kard - personal business cards stored as JSON records with optional images."""

__version__ = "1.0.0"
__author__ = "Kard Team"
__description__ = "Card persistence layer: one JSON record and optional PNG per card, with import/export bundles"

from .core.types import Card
from .store.background import BackgroundCardWriter
from .store.card_store import CardStore
from .store.palette import ColorPalette, shared_palette
from .store.transfer import ImportReport, export_card, import_cards
from .utils.config import settings
from .utils.error_handler import (
    CardNotFoundError,
    DecodeError,
    DuplicateCardError,
    ExportError,
    KardError,
    PaletteError,
    StorageError,
)

# Core functionality imports
from .utils.log import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__description__",
    # Core components
    "configure_logging",
    "get_logger",
    "settings",
    "Card",
    "CardStore",
    "BackgroundCardWriter",
    "ColorPalette",
    "shared_palette",
    "ImportReport",
    "export_card",
    "import_cards",
    # Errors
    "KardError",
    "DecodeError",
    "StorageError",
    "ExportError",
    "CardNotFoundError",
    "DuplicateCardError",
    "PaletteError",
]
