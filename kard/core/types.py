import json
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Union

from .constants import DEFAULT_BACKGROUND_COLOR, RECORD_FIELDS
from ..utils.error_handler import DecodeError
from ..utils.validation import parse_hex_color


def utc_now() -> datetime:
    """Current UTC time at whole-second precision (the record precision)."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def new_card_id() -> str:
    """Fresh card identifier: canonical upper-case UUID string."""
    return str(uuid.uuid4()).upper()


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with a ``Z`` suffix and no fractional seconds."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    # isoformat pads years below 1000 to four digits, strftime does not
    utc = value.astimezone(timezone.utc).replace(tzinfo=None, microsecond=0)
    return utc.isoformat(timespec="seconds") + "Z"


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Accepts a ``Z`` suffix or an explicit offset and optional fractional
    seconds. Naive values are read as UTC. Raises ValueError for text that
    is not ISO-8601 and OverflowError when the UTC value is out of range.
    """
    text = value.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class Card:
    """A single business card.

    Cards are immutable values; edits go through ``dataclasses.replace``
    and reach disk through the card store.
    """
    id: str = field(default_factory=new_card_id)
    name: str = ""
    title: str = ""
    company: str = ""
    phone: str = ""
    email: str = ""
    notes: str = ""
    background_color: str = DEFAULT_BACKGROUND_COLOR
    image_filename: str = ""  # relative to the storage directory, "" means no image
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def new(cls, **fields: Any) -> "Card":
        """Build a card with a fresh id and matching created/updated stamps."""
        now = utc_now()
        fields.setdefault("created_at", now)
        fields.setdefault("updated_at", fields["created_at"])
        return cls(**fields)

    @property
    def has_image(self) -> bool:
        return bool(self.image_filename)

    @property
    def background_rgb(self) -> Optional[Tuple[float, float, float]]:
        return parse_hex_color(self.background_color)

    def with_image(self, filename: str) -> "Card":
        return replace(self, image_filename=filename)

    def touched(self, at: Optional[datetime] = None) -> "Card":
        """Copy with ``updated_at`` bumped to ``at`` (default: now)."""
        return replace(self, updated_at=at or utc_now())

    def to_dict(self) -> Dict[str, Any]:
        values = {
            "id": self.id,
            "name": self.name,
            "title": self.title,
            "company": self.company,
            "phone": self.phone,
            "email": self.email,
            "notes": self.notes,
            "backgroundColor": self.background_color,
            "imageFilename": self.image_filename,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }
        return {key: values[key] for key in RECORD_FIELDS}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2)

    @classmethod
    def from_dict(cls, data: Any) -> "Card":
        """Decode a record dictionary.

        Raises:
            DecodeError: If required keys are missing or a value has the wrong type
        """
        if not isinstance(data, dict):
            raise DecodeError(
                "Card record must be a JSON object",
                details={"type": type(data).__name__}
            )

        missing = [key for key in ("id", "name", "createdAt", "updatedAt") if key not in data]
        if missing:
            raise DecodeError(
                f"Card record is missing fields: {missing}",
                details={"missing_fields": missing, "available_fields": list(data.keys())}
            )

        def text(key: str, default: str = "") -> str:
            value = data.get(key, default)
            if not isinstance(value, str):
                raise DecodeError(
                    f"Field {key!r} must be a string",
                    details={"field": key, "type": type(value).__name__}
                )
            return value

        def timestamp(key: str) -> datetime:
            raw = text(key)
            try:
                return parse_timestamp(raw)
            except (ValueError, OverflowError) as e:
                raise DecodeError(
                    f"Field {key!r} is not an ISO-8601 timestamp",
                    details={"field": key, "value": raw}
                ) from e

        raw_id = text("id")
        try:
            card_id = str(uuid.UUID(raw_id)).upper()
        except ValueError as e:
            raise DecodeError(
                "Field 'id' is not a UUID",
                details={"field": "id", "value": raw_id}
            ) from e

        return cls(
            id=card_id,
            name=text("name"),
            title=text("title"),
            company=text("company"),
            phone=text("phone"),
            email=text("email"),
            notes=text("notes"),
            background_color=text("backgroundColor", DEFAULT_BACKGROUND_COLOR),
            image_filename=text("imageFilename"),
            created_at=timestamp("createdAt"),
            updated_at=timestamp("updatedAt"),
        )

    @classmethod
    def from_json(cls, payload: Union[str, bytes]) -> "Card":
        try:
            data = json.loads(payload)
        except (ValueError, UnicodeDecodeError) as e:
            raise DecodeError("Card record is not valid JSON", details={"error": str(e)}) from e
        return cls.from_dict(data)
