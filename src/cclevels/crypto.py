"""Transform chain for save containers and embedded level strings.

A save file on disk is ``xor(base64url(gzip(markup)), 11)``. Level strings
stored inside a save (the ``k4`` field) use the same chain without the XOR
step. Some saves in the wild are plain markup, and some tools write the
container without the XOR layer; both are accepted on read.
"""
from __future__ import annotations

import base64
import binascii
import gzip
import logging
import zlib
from pathlib import Path
from typing import Any

from .errors import DecodeError, IOFailure, SaveFileNotFound
from .utils.fs import atomic_write_bytes

logger = logging.getLogger(__name__)

SAVE_XOR_KEY = 11

# base64 of a gzip header with no optional flags set
ENCODED_BLOB_PREFIX = "H4sIA"

# gzip or zlib framing, detected from the header
_AUTO_WBITS = 32 + zlib.MAX_WBITS


def xor_transform(data: bytes, key: int) -> bytes:
    """XOR every byte of *data* with the single-byte *key*. Applying it twice is a no-op."""
    key &= 0xFF
    return data.translate(bytes(b ^ key for b in range(256)))


def urlsafe_b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def urlsafe_b64decode(text: str | bytes) -> bytes:
    if isinstance(text, bytes):
        text = text.decode("ascii", errors="ignore")
    text = "".join(text.split()).rstrip("=")
    text += "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(text)


def compress(data: bytes) -> bytes:
    return gzip.compress(data, mtime=0)


def decompress(data: bytes) -> bytes:
    return zlib.decompress(data, _AUTO_WBITS)


def _unwrap(data: bytes | str, errors: str = "strict") -> str:
    return decompress(urlsafe_b64decode(data)).decode("utf-8", errors=errors)


def decrypt_container(data: bytes) -> str:
    """Decode the raw bytes of a save file into markup text.

    Plain markup is returned unchanged. Otherwise the XOR-masked layout is
    tried first and the unmasked layout second; the order matters for
    compatibility with existing files.

    Raises DecodeError when neither layout decodes.
    """
    if data.lstrip().startswith(b"<"):
        logger.debug("Save data is plain markup; no decoding needed")
        return data.decode("utf-8", errors="replace")

    try:
        return _unwrap(xor_transform(data, SAVE_XOR_KEY), errors="replace")
    except (binascii.Error, zlib.error, ValueError) as first:
        logger.debug("XOR-masked decode failed: %s", first)

    try:
        text = _unwrap(data, errors="replace")
    except (binascii.Error, zlib.error, ValueError) as exc:
        raise DecodeError(f"Save data could not be decoded: {exc}") from exc
    logger.warning("Save data had no XOR layer; decoded without it")
    return text


def encrypt_container(text: str) -> bytes:
    """Encode markup text into the fully wrapped on-disk form."""
    encoded = urlsafe_b64encode(compress(text.encode("utf-8")))
    return xor_transform(encoded.encode("ascii"), SAVE_XOR_KEY)


def decrypt_blob(text: Any) -> str:
    """Decode an embedded level string.

    Never raises. Empty input gives an empty string, and input that does not
    decode is returned unchanged since it is assumed to already be plain.
    Non-string field values are read as their string form.
    """
    if text is None:
        return ""
    text = str(text)
    if not text:
        return ""
    try:
        return _unwrap(text)
    except (binascii.Error, zlib.error, UnicodeDecodeError, ValueError):
        logger.debug("Level string is not encoded; returning it as-is")
        return text


def encrypt_blob(text: Any) -> str:
    """Encode a level string for storage inside a save.

    Never raises. Empty input, or input that cannot be encoded, gives an
    empty string.
    """
    if text is None:
        return ""
    text = str(text)
    if not text:
        return ""
    try:
        return urlsafe_b64encode(compress(text.encode("utf-8")))
    except (UnicodeEncodeError, zlib.error) as exc:
        logger.warning("Could not encode level string: %s", exc)
        return ""


def looks_encoded(text: str) -> bool:
    """True when *text* already looks like an encoded level string."""
    return text.startswith(ENCODED_BLOB_PREFIX)


def read_container(path: Path) -> str:
    """Read and decode a save file."""
    try:
        data = path.read_bytes()
    except FileNotFoundError as exc:
        raise SaveFileNotFound(f"Save file not found: {path}", path) from exc
    except OSError as exc:
        raise IOFailure(f"Failed to read save file {path}: {exc}", path) from exc
    logger.debug("Read %d bytes from %s", len(data), path)
    return decrypt_container(data)


def write_container(path: Path, text: str) -> None:
    """Encode markup text and write it atomically to *path*."""
    data = encrypt_container(text)
    try:
        atomic_write_bytes(path, data)
    except OSError as exc:
        raise IOFailure(f"Failed to write save file {path}: {exc}", path) from exc
    logger.debug("Wrote %d bytes to %s", len(data), path)
