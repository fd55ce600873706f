"""
Image intake for the boulder form.

One selected file per form. HEIC photos (iPhone default) get converted to
JPEG before upload and have no inline preview. Everything else is sent as
is. The upload itself is a JSON POST of a base64 data URL to the storage
endpoint (/api/boulders by default), which answers with the public URL.

States:
    EMPTY -> SELECTED -> (CONVERTING) -> ENCODING -> UPLOADING -> RESOLVED
                                                              \\-> FAILED
"""

import asyncio
import base64
import binascii
import enum
import logging
import re
from dataclasses import dataclass
from io import BytesIO
from typing import Callable, Optional

import aiohttp
import pillow_heif
from PIL import Image

from boulder_catalog.errors import ConversionError, UploadError, UploadInProgress

logger = logging.getLogger(__name__)

pillow_heif.register_heif_opener()

HEIC_TYPES = ("image/heic", "image/heif")
HEIC_EXTENSIONS = (".heic", ".heif")

JPEG_TYPE = "image/jpeg"
JPEG_QUALITY = 100

NEW_ROUTE_ID = "new"

DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?;base64,(?P<data>.*)$", re.DOTALL)


class IntakeState(str, enum.Enum):
    EMPTY = "empty"
    SELECTED = "selected"
    CONVERTING = "converting"
    ENCODING = "encoding"
    UPLOADING = "uploading"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass
class SelectedImage:
    filename: str
    content_type: str
    data: bytes

    @property
    def needs_conversion(self) -> bool:
        ctype = (self.content_type or "").lower()
        name = (self.filename or "").lower()
        return ctype in HEIC_TYPES or name.endswith(HEIC_EXTENSIONS)

    @classmethod
    def from_upload(cls, storage) -> Optional["SelectedImage"]:
        """From a werkzeug FileStorage; None when the input was left empty."""
        if storage is None or not storage.filename:
            return None
        data = storage.read()
        if not data:
            return None
        return cls(
            filename=storage.filename,
            content_type=storage.mimetype or "",
            data=data,
        )


def encode_data_url(data: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(text: str) -> tuple[Optional[str], bytes]:
    """
    "data:image/jpeg;base64,...." -> ("image/jpeg", b"...")
    Bare base64 (no data: prefix) is accepted with mime None.
    Raises ValueError on anything else.
    """
    text = (text or "").strip()
    if not text:
        raise ValueError("empty image data")

    m = DATA_URL_RE.match(text)
    mime, payload = (m.group("mime"), m.group("data")) if m else (None, text)

    try:
        return mime, base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"invalid base64 image data: {e}") from e


def convert_heic_to_jpeg(data: bytes) -> bytes:
    """HEIC/HEIF bytes -> JPEG bytes at maximum quality."""
    with Image.open(BytesIO(data)) as img:
        out = BytesIO()
        img.convert("RGB").save(out, format="JPEG", quality=JPEG_QUALITY)
    return out.getvalue()


def _verify_image(data: bytes) -> None:
    with Image.open(BytesIO(data)) as img:
        img.verify()


class ImageIntake:
    """Selected-image state for a single form session."""

    def __init__(
        self,
        route_id: Optional[str],
        endpoint: str,
        existing_image: Optional[str] = None,
        converter: Optional[Callable[[bytes], bytes]] = None,
        timeout: float = 30.0,
    ):
        self.route_id = route_id or NEW_ROUTE_ID
        self.endpoint = endpoint
        self.existing_image = existing_image
        self.converter = converter or convert_heic_to_jpeg
        self.timeout = timeout

        self.file: Optional[SelectedImage] = None
        self.state = IntakeState.EMPTY
        self.preview: Optional[str] = existing_image
        self.uploading = False
        self.error: Optional[Exception] = None

    def select(self, file: Optional[SelectedImage]) -> IntakeState:
        if file is None:
            return self.state

        self.file = file
        self.error = None
        self.state = IntakeState.SELECTED

        if file.needs_conversion:
            # No preview for HEIC; it gets converted on save
            self.preview = None

        return self.state

    async def load_preview(self) -> Optional[str]:
        """
        Data URL preview of a standard image, decoded off the event loop.

        A file Pillow can't read just doesn't get a preview; upload still
        goes ahead with the original bytes.
        """
        file = self.file
        if file is None or file.needs_conversion:
            return self.preview

        try:
            await asyncio.to_thread(_verify_image, file.data)
        except Exception as e:
            logger.warning("No preview for %s: %s", file.filename, e)
            return self.preview

        # a newer select() wins
        if self.file is file:
            self.preview = encode_data_url(file.data, file.content_type or "application/octet-stream")
        return self.preview

    async def upload(self, session: Optional[aiohttp.ClientSession] = None) -> Optional[str]:
        """
        Send the selected image and return its public URL.

        With nothing selected this returns the record's current image URL
        without touching the network.
        """
        if self.file is None:
            return self.existing_image

        if self.uploading:
            raise UploadInProgress("Ya hay una imagen subiéndose.")

        self.uploading = True
        try:
            data, mime = await self._convert(self.file)

            self.state = IntakeState.ENCODING
            payload = {
                "imageData": encode_data_url(data, mime),
                "routeId": self.route_id,
                "imageFormat": mime,
            }

            self.state = IntakeState.UPLOADING
            url = await self._post(payload, session)
        except (ConversionError, UploadError) as e:
            self.state = IntakeState.FAILED
            self.error = e
            logger.error("Image upload for %s failed: %s", self.route_id, e)
            raise
        finally:
            self.uploading = False

        self.state = IntakeState.RESOLVED
        self.existing_image = url
        self.preview = url
        self.file = None
        return url

    async def _convert(self, file: SelectedImage) -> tuple[bytes, str]:
        if not file.needs_conversion:
            return file.data, file.content_type or "application/octet-stream"

        self.state = IntakeState.CONVERTING
        try:
            data = await asyncio.to_thread(self.converter, file.data)
        except Exception as e:
            raise ConversionError(
                "No se pudo convertir la imagen HEIC. Prueba con otro formato."
            ) from e
        return data, JPEG_TYPE

    async def _post(self, payload: dict, session: Optional[aiohttp.ClientSession]) -> str:
        if session is None:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as own_session:
                return await self._post_with(own_session, payload)
        return await self._post_with(session, payload)

    async def _post_with(self, session, payload: dict) -> str:
        try:
            async with session.post(self.endpoint, json=payload) as resp:
                result = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise UploadError("Error al subir la imagen.") from e

        if not isinstance(result, dict):
            raise UploadError("Error al subir la imagen.")

        if result.get("success") and result.get("url"):
            return result["url"]

        raise UploadError(result.get("error") or "Failed to upload image")
