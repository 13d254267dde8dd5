"""Persisted preset background colours for cards."""

import json
from functools import lru_cache
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from ..core.constants import DEFAULT_PALETTE, PALETTE_FILENAME, REQUIRED_PALETTE
from ..utils import config
from ..utils.error_handler import ErrorContext, PaletteError, safe_execute
from ..utils.log import LoggerMixin
from ..utils.validation import normalize_hex_color
from .files import ensure_directory, write_atomic


class ColorPalette(LoggerMixin):
    """Ordered, duplicate-free list of ``#RRGGBB`` colours stored as ``palette.json``.

    Loading adds the required colours (gold and copper) when a stored palette
    lacks them and rewrites the file only in that case.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory).expanduser()
        self.path = self.directory / PALETTE_FILENAME
        self._colors: List[str] = []
        self.load()

    @property
    def colors(self) -> Tuple[str, ...]:
        return tuple(self._colors)

    def __contains__(self, color: object) -> bool:
        return color in self._colors

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._colors))

    def __len__(self) -> int:
        return len(self._colors)

    def load(self) -> None:
        stored = self._read()
        if not stored:
            self._colors = list(DEFAULT_PALETTE)
            self.logger.info("Palette initialised with defaults", path=str(self.path))
            self.persist()
            return

        loaded = list(stored)
        for color in REQUIRED_PALETTE:
            if color not in loaded:
                loaded.append(color)
        self._colors = loaded

        if loaded != stored:
            self.logger.info("Palette migrated", added=[c for c in loaded if c not in stored])
            self.persist()

    def _read(self) -> Optional[List[str]]:
        """Stored colours with non-strings and repeats dropped, None if unusable."""
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            self.logger.warning("Palette file unreadable", path=str(self.path), error=str(e))
            return None

        raw = payload.get("colors") if isinstance(payload, dict) else None
        if not isinstance(raw, list):
            return None

        colors: List[str] = []
        for value in raw:
            if isinstance(value, str) and value not in colors:
                colors.append(value)
        return colors

    def persist(self) -> bool:
        """Write the palette; failures are logged and reported as False."""
        payload = json.dumps({"colors": self._colors}, ensure_ascii=False, indent=2)

        def write() -> bool:
            ensure_directory(self.directory)
            write_atomic(self.path, payload.encode("utf-8"))
            return True

        return safe_execute(
            write,
            context=ErrorContext(
                operation="persist palette",
                module=__name__,
                function="persist",
                input_data={"path": str(self.path), "count": len(self._colors)},
            ),
            logger=self.logger,
            default_return=False,
        )

    def add(self, color: str) -> str:
        """Append a colour (normalised to ``#RRGGBB``) if it is not present yet."""
        normalized = normalize_hex_color(color)
        if normalized not in self._colors:
            self._colors.append(normalized)
            self.persist()
        return normalized

    def remove(self, color: str) -> bool:
        """Remove a colour. Required colours cannot be removed."""
        normalized = normalize_hex_color(color)
        if normalized in REQUIRED_PALETTE:
            raise PaletteError(
                f"{normalized} is a required palette colour",
                details={"color": normalized, "required": list(REQUIRED_PALETTE)}
            )
        if normalized not in self._colors:
            return False
        self._colors.remove(normalized)
        self.persist()
        return True

    def reset(self) -> None:
        self._colors = list(DEFAULT_PALETTE)
        self.persist()


@lru_cache(maxsize=None)
def shared_palette() -> ColorPalette:
    """Process-wide palette for the configured storage directory.

    Created on first call and loaded immediately; later calls return the
    same instance. ``shared_palette.cache_clear()`` drops it.
    """
    return ColorPalette(config.resolve_storage_dir())
