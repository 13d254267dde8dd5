from typing import Dict, Final, List, Tuple

RECORD_EXTENSION: Final[str] = "json"
IMAGE_EXTENSION: Final[str] = "png"
PALETTE_FILENAME: Final[str] = "palette.json"

DEFAULT_BACKGROUND_COLOR: Final[str] = "#0F1720"

# JSON field order of a card record
RECORD_FIELDS: Final[List[str]] = [
    "id", "name", "title", "company", "phone", "email", "notes",
    "backgroundColor", "imageFilename", "createdAt", "updatedAt",
]

# Seed cards used when the storage directory holds no records (owner first)
SEED_CARDS: Final[Tuple[Dict[str, str], ...]] = (
    {
        "name": "My Name",
        "title": "iOS Engineer",
        "company": "Kard",
        "phone": "+1 (555) 000-0000",
        "email": "me@example.com",
        "notes": "Owner",
    },
    {
        "name": "Ava Stone",
        "title": "Product Manager",
        "company": "Nimbus Labs",
        "phone": "+1 (555) 741-2233",
        "email": "ava@nimbuslabs.com",
        "notes": "Met at WWDC",
    },
)

# Palette: gold and copper are mandatory members
DEFAULT_PALETTE: Final[List[str]] = [
    "#0F1720", "#0A84FF", "#1E3A5F", "#22363F", "#D4AF37", "#B87333",
]
REQUIRED_PALETTE: Final[List[str]] = ["#D4AF37", "#B87333"]
