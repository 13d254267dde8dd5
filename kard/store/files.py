"""File primitives shared by the card and palette stores.

Every write goes through ``write_atomic``: the payload lands in a temporary
file in the destination directory and is moved over the target with
``os.replace``, so readers only ever see the old or the new content.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

import cv2
import numpy as np

from ..utils.error_handler import StorageError
from ..utils.log import get_logger

logger = get_logger(__name__)

# Raw encoded bytes, or a decoded image array (BGR/BGRA/grayscale, as OpenCV uses)
ImagePayload = Union[bytes, bytearray, memoryview, np.ndarray]


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


# mkstemp creates 0600 files; replaced files get the mode a plain open() would give
DEFAULT_FILE_MODE = 0o666 & ~_current_umask()


def ensure_directory(directory: Path) -> Path:
    """Create ``directory`` (with parents) if missing."""
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(
            f"Cannot create directory: {directory}",
            details={"directory": str(directory), "error": str(e)}
        ) from e
    if not directory.is_dir():
        raise StorageError(
            f"Path is not a directory: {directory}",
            details={"directory": str(directory)}
        )
    return directory


def _replace_from_temp(target: Path, fill) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            fill(f)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, DEFAULT_FILE_MODE)
        os.replace(tmp_path, target)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def write_atomic(path: Path, data: bytes) -> None:
    """Replace ``path`` with ``data`` atomically."""
    try:
        _replace_from_temp(path, lambda f: f.write(data))
    except OSError as e:
        raise StorageError(
            f"Cannot write file: {path}",
            details={"path": str(path), "error": str(e)}
        ) from e
    logger.debug("File written", path=str(path), size=len(data))


def copy_atomic(source: Path, destination: Path) -> None:
    """Copy ``source`` over ``destination`` atomically, overwriting it."""
    try:
        with open(source, "rb") as src:
            _replace_from_temp(destination, lambda f: shutil.copyfileobj(src, f))
    except OSError as e:
        raise StorageError(
            f"Cannot copy {source} to {destination}",
            details={"source": str(source), "destination": str(destination), "error": str(e)}
        ) from e
    logger.debug("File copied", source=str(source), destination=str(destination))


def read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise StorageError(
            f"Cannot read file: {path}",
            details={"path": str(path), "error": str(e)}
        ) from e


def read_bytes_or_none(path: Path) -> Optional[bytes]:
    """Best-effort read: None when the file is missing or unreadable."""
    try:
        return path.read_bytes()
    except OSError as e:
        logger.debug("File not readable", path=str(path), error=str(e))
        return None


def delete_quietly(path: Path) -> bool:
    """Best-effort delete. Returns True if a file was removed."""
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning("File could not be deleted", path=str(path), error=str(e))
        return False


def encode_png(image: Any) -> bytes:
    """Bytes of an image payload.

    Encoded bytes pass through unchanged; image arrays are encoded to PNG.
    """
    if isinstance(image, (bytes, bytearray, memoryview)):
        return bytes(image)

    if hasattr(image, "shape"):  # numpy array
        ok, buffer = cv2.imencode(".png", image)
        if not ok:
            raise StorageError(
                "PNG encoding failed",
                details={"shape": tuple(image.shape)}
            )
        return buffer.tobytes()

    raise StorageError(
        "Unsupported image payload",
        details={"type": type(image).__name__}
    )


def decode_image(data: bytes) -> Optional[np.ndarray]:
    """Decode image bytes into an array, None if OpenCV cannot read them."""
    if not data:
        return None
    array = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    return array
