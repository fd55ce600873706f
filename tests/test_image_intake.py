"""Image intake: selection, HEIC conversion, encoding and the upload call."""

import asyncio
import base64
from io import BytesIO

import aiohttp
import pytest
from PIL import Image

from boulder_catalog.errors import ConversionError, UploadError, UploadInProgress
from boulder_catalog.helpers.image_intake import (
    ImageIntake,
    IntakeState,
    SelectedImage,
    decode_data_url,
    encode_data_url,
)

from conftest import UPLOAD_ENDPOINT, FakeSession


def _png_bytes() -> bytes:
    buf = BytesIO()
    Image.new("RGB", (4, 4), (200, 10, 10)).save(buf, format="PNG")
    return buf.getvalue()


def _intake(route_id="abc-123", existing="https://cdn.test/old.jpg", **kwargs) -> ImageIntake:
    return ImageIntake(route_id=route_id, endpoint=UPLOAD_ENDPOINT, existing_image=existing, **kwargs)


def test_needs_conversion():
    assert SelectedImage("IMG_0001.HEIC", "", b"x").needs_conversion
    assert SelectedImage("photo", "image/heic", b"x").needs_conversion
    assert not SelectedImage("photo.jpg", "image/jpeg", b"x").needs_conversion


def test_select_heic_suppresses_preview():
    intake = _intake()
    assert intake.preview == "https://cdn.test/old.jpg"

    state = intake.select(SelectedImage("IMG_0001.heic", "image/heic", b"heic"))

    assert state is IntakeState.SELECTED
    assert intake.preview is None


def test_select_nothing_keeps_empty():
    intake = _intake()
    assert intake.select(None) is IntakeState.EMPTY
    assert intake.file is None


@pytest.mark.asyncio
async def test_load_preview_standard_image():
    data = _png_bytes()
    intake = _intake()
    intake.select(SelectedImage("a.png", "image/png", data))

    preview = await intake.load_preview()

    assert preview == "data:image/png;base64," + base64.b64encode(data).decode()


@pytest.mark.asyncio
async def test_load_preview_unreadable_image_leaves_submission_alone():
    intake = _intake()
    intake.select(SelectedImage("a.png", "image/png", b"not an image"))

    preview = await intake.load_preview()

    assert preview == "https://cdn.test/old.jpg"
    assert intake.state is IntakeState.SELECTED
    assert intake.file is not None


@pytest.mark.asyncio
async def test_upload_without_new_file_returns_existing_image():
    session = FakeSession(payload={"success": True, "url": "https://cdn.test/new.jpg"})

    assert await _intake().upload(session=session) == "https://cdn.test/old.jpg"
    assert await _intake(existing=None).upload(session=session) is None
    assert session.calls == []


@pytest.mark.asyncio
async def test_upload_posts_data_url_and_returns_url():
    data = _png_bytes()
    session = FakeSession(payload={"success": True, "url": "https://cdn.test/new.png"})
    intake = _intake()
    intake.select(SelectedImage("a.png", "image/png", data))

    url = await intake.upload(session=session)

    assert url == "https://cdn.test/new.png"
    assert intake.state is IntakeState.RESOLVED
    assert intake.file is None

    (endpoint, payload), = session.calls
    assert endpoint == UPLOAD_ENDPOINT
    assert payload["routeId"] == "abc-123"
    assert payload["imageFormat"] == "image/png"
    assert payload["imageData"] == encode_data_url(data, "image/png")


@pytest.mark.asyncio
async def test_draft_uploads_as_new():
    session = FakeSession(payload={"success": True, "url": "https://cdn.test/n.jpg"})
    intake = _intake(route_id=None, existing=None)
    intake.select(SelectedImage("a.jpg", "image/jpeg", b"\xff\xd8jpeg"))

    await intake.upload(session=session)

    assert session.calls[0][1]["routeId"] == "new"


@pytest.mark.asyncio
async def test_heic_is_converted_to_jpeg_before_upload():
    session = FakeSession(payload={"success": True, "url": "https://cdn.test/c.jpg"})
    seen = []

    def fake_convert(data):
        seen.append(data)
        return b"\xff\xd8converted"

    intake = _intake(converter=fake_convert)
    intake.select(SelectedImage("IMG_1.HEIC", "image/heic", b"heic-bytes"))

    await intake.upload(session=session)

    assert seen == [b"heic-bytes"]
    payload = session.calls[0][1]
    assert payload["imageFormat"] == "image/jpeg"
    assert decode_data_url(payload["imageData"]) == ("image/jpeg", b"\xff\xd8converted")


@pytest.mark.asyncio
async def test_conversion_failure_never_calls_endpoint():
    session = FakeSession(payload={"success": True, "url": "https://cdn.test/c.jpg"})
    intake = _intake()
    heic = SelectedImage("IMG_2.heic", "image/heic", b"definitely not heic")
    intake.select(heic)

    with pytest.raises(ConversionError):
        await intake.upload(session=session)

    assert session.calls == []
    assert intake.state is IntakeState.FAILED
    assert intake.file is heic
    assert intake.uploading is False


@pytest.mark.asyncio
async def test_endpoint_reported_failure_carries_message():
    session = FakeSession(payload={"success": False, "error": "Bucket full"})
    intake = _intake()
    intake.select(SelectedImage("a.jpg", "image/jpeg", b"jpeg"))

    with pytest.raises(UploadError, match="Bucket full"):
        await intake.upload(session=session)

    assert intake.state is IntakeState.FAILED
    assert intake.file is not None


@pytest.mark.asyncio
@pytest.mark.parametrize("session", [
    FakeSession(transport_exc=aiohttp.ClientConnectionError("refused")),
    FakeSession(transport_exc=asyncio.TimeoutError()),
    FakeSession(body_exc=ValueError("not json")),
])
async def test_transport_failure_is_generic_upload_error(session):
    intake = _intake()
    intake.select(SelectedImage("a.jpg", "image/jpeg", b"jpeg"))

    with pytest.raises(UploadError, match="Error al subir la imagen"):
        await intake.upload(session=session)


@pytest.mark.asyncio
async def test_second_upload_while_pending_is_rejected():
    release = asyncio.Event()
    session = FakeSession(payload={"success": True, "url": "https://cdn.test/slow.jpg"})

    def slow_convert(data):
        return data

    intake = _intake(converter=slow_convert)
    intake.select(SelectedImage("a.heic", "image/heic", b"heic"))

    original_post = intake._post

    async def held_post(payload, s):
        await release.wait()
        return await original_post(payload, s)

    intake._post = held_post

    first = asyncio.create_task(intake.upload(session=session))
    while not intake.uploading:
        await asyncio.sleep(0)

    with pytest.raises(UploadInProgress):
        await intake.upload(session=session)

    release.set()
    assert await first == "https://cdn.test/slow.jpg"
    assert len(session.calls) == 1


def test_decode_data_url():
    assert decode_data_url("data:image/png;base64,aGVsbG8=") == ("image/png", b"hello")
    assert decode_data_url("aGVsbG8=") == (None, b"hello")
    with pytest.raises(ValueError):
        decode_data_url("data:image/png;base64,@@@")
    with pytest.raises(ValueError):
        decode_data_url("")
