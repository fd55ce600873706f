import json
import logging
import mimetypes
import os
import re
import secrets
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from flask import current_app, url_for

from boulder_catalog.helpers.image_intake import SelectedImage, decode_data_url

logger = logging.getLogger(__name__)

BOULDER_IMAGE_DIR = "boulders"
PENDING_DIR = "pending"

# secrets.token_urlsafe alphabet; anything else never touches the filesystem
PENDING_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]{16,64}$")

# mimetypes gives odd picks for some of these (.jpe, .jfif)
IMAGE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "image/heic": ".heic",
    "image/heif": ".heif",
}


def image_extension(mime: str):
    """".jpg" for "image/jpeg"; None for anything that isn't an image."""
    mime = (mime or "").strip().lower()
    if not mime.startswith("image/"):
        return None
    return IMAGE_EXTENSIONS.get(mime) or mimetypes.guess_extension(mime)


def _stamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")


def _sanitise(name: str, max_len: int = 60) -> str:
    return re.sub(r"[^\w\-]", "_", name)[:max_len].strip("_") or "new"


def store_boulder_image(upload_dir: str, route_id: str, data: bytes, ext: str) -> str:
    """
    Write image bytes to <upload_dir>/boulders/<route_id>_<stamp><ext>.
    Returns the path relative to upload_dir (forward slashes), for URLs.
    """
    folder = os.path.join(upload_dir, BOULDER_IMAGE_DIR)
    os.makedirs(folder, exist_ok=True)

    filename = f"{_sanitise(route_id)}_{_stamp()}{ext}"
    with open(os.path.join(folder, filename), "wb") as fh:
        fh.write(data)

    logger.info("Stored boulder image %s (%d bytes)", filename, len(data))
    return f"{BOULDER_IMAGE_DIR}/{filename}"


def save_image_payload(data) -> tuple[dict, int]:
    """
    Handle an upload payload {imageData, routeId, imageFormat}.

    Returns (response body, HTTP status). Needs an app + request context
    for config and the public URL.
    """
    if not isinstance(data, dict):
        return {"success": False, "error": "Invalid payload"}, 400

    image_data = data.get("imageData")
    route_id = data.get("routeId") or "new"
    image_format = data.get("imageFormat") or ""

    if not image_data or not isinstance(image_data, str):
        return {"success": False, "error": "Missing imageData"}, 400

    if not isinstance(route_id, str) or not isinstance(image_format, str):
        return {"success": False, "error": "Invalid payload"}, 400

    route_id = route_id.strip() or "new"
    image_format = image_format.strip()

    try:
        data_mime, raw = decode_data_url(image_data)
    except ValueError as e:
        current_app.logger.warning("Rejected upload for %s: %s", route_id, e)
        return {"success": False, "error": str(e)}, 400

    mime = image_format or data_mime
    ext = image_extension(mime)
    if not ext:
        return {"success": False, "error": f"Unsupported image format: {mime or 'unknown'}"}, 415

    if len(raw) > current_app.config["MAX_IMAGE_BYTES"]:
        return {"success": False, "error": "Image too large"}, 413

    try:
        rel_path = store_boulder_image(current_app.config["UPLOAD_DIR"], route_id, raw, ext)
    except OSError as e:
        current_app.logger.error("Could not store image for %s: %s", route_id, e)
        return {"success": False, "error": "Could not store image"}, 500

    url = url_for("api.uploaded_file", filename=rel_path, _external=True)
    return {"success": True, "url": url}, 200


class _LocalResponse:
    def __init__(self, body: dict, status: int):
        self.status = status
        self._body = body

    async def json(self, content_type="application/json"):
        return self._body


class LocalUploadSession:
    """
    Same post()/json() surface as aiohttp.ClientSession, but hands the
    payload straight to save_image_payload in this process. Used when no
    UPLOAD_ENDPOINT is configured so a request never POSTs to its own server.
    """

    @asynccontextmanager
    async def _respond(self, payload):
        body, status = save_image_payload(payload)
        yield _LocalResponse(body, status)

    def post(self, url, json=None, **kwargs):
        return self._respond(json)


# --- images kept between a failed save and the retry ---

def _pending_paths(upload_dir: str, token: str) -> tuple[str, str]:
    folder = os.path.join(upload_dir, PENDING_DIR)
    return os.path.join(folder, f"{token}.bin"), os.path.join(folder, f"{token}.json")


def stash_pending_image(upload_dir: str, image: SelectedImage) -> str:
    """Keep a selected image on disk; returns the token for the form."""
    token = secrets.token_urlsafe(24)
    data_path, meta_path = _pending_paths(upload_dir, token)
    os.makedirs(os.path.dirname(data_path), exist_ok=True)

    with open(data_path, "wb") as fh:
        fh.write(image.data)
    with open(meta_path, "w", encoding="utf-8") as fh:
        json.dump({"filename": image.filename, "content_type": image.content_type}, fh)

    return token


def load_pending_image(upload_dir: str, token: Optional[str]) -> Optional[SelectedImage]:
    if not token or not PENDING_TOKEN_RE.match(token):
        return None

    data_path, meta_path = _pending_paths(upload_dir, token)
    try:
        with open(meta_path, encoding="utf-8") as fh:
            meta = json.load(fh)
        with open(data_path, "rb") as fh:
            data = fh.read()
    except (OSError, ValueError) as e:
        logger.warning("Pending image %s unavailable: %s", token, e)
        return None

    return SelectedImage(
        filename=meta.get("filename") or "imagen",
        content_type=meta.get("content_type") or "",
        data=data,
    )


def discard_pending_image(upload_dir: str, token: Optional[str]) -> None:
    if not token or not PENDING_TOKEN_RE.match(token):
        return
    for path in _pending_paths(upload_dir, token):
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
