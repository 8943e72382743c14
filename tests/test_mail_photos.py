"""Tests for mail rendering/sending and photo handling."""

import base64
import json
from pathlib import Path

import httpx
import pytest

from storedir.services import mail
from storedir.services.errors import MailError
from storedir.services.photos import (
    MAX_PHOTO_BYTES,
    PhotoUpload,
    detect_image_type,
    discard_photo,
    photo_from_data_url,
    save_photo,
)
from storedir.settings import get_settings

RESET_URL = "http://test/account/reset/abc123"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def mail_api(monkeypatch: pytest.MonkeyPatch):
    """Point the mailer at a mock HTTP API; yields the recorded requests."""
    monkeypatch.setenv("MAIL_API_URL", "https://mail.example.com/send")
    monkeypatch.setenv("MAIL_API_KEY", "key-123")
    get_settings.cache_clear()

    requests: list[httpx.Request] = []
    state = {"status": 200}

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(state["status"], json={"id": "msg-1"})

    real_client = httpx.AsyncClient
    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(mail.httpx, "AsyncClient", lambda **kw: real_client(transport=transport, **kw))
    yield requests, state


def test_render_template_fills_name_and_link() -> None:
    text, body = mail.render_template("password-reset", name="Ana <3", reset_url=RESET_URL)
    assert "Hello Ana <3" in text
    assert RESET_URL in text
    assert "Ana &lt;3" in body
    assert f'href="{RESET_URL}"' in body


def test_render_unknown_template_raises() -> None:
    with pytest.raises(MailError):
        mail.render_template("welcome", name="x", reset_url=RESET_URL)


@pytest.mark.asyncio
async def test_send_mail_without_api_url_is_a_no_op() -> None:
    await mail.send_mail(
        recipient="a@example.com",
        subject="Password Reset",
        template="password-reset",
        reset_url=RESET_URL,
    )


@pytest.mark.asyncio
async def test_send_mail_posts_to_api(mail_api) -> None:
    requests, _ = mail_api

    await mail.send_mail(
        recipient="a@example.com",
        subject="Password Reset",
        template="password-reset",
        reset_url=RESET_URL,
        name="Ana",
    )

    assert len(requests) == 1
    sent = requests[0]
    assert str(sent.url) == "https://mail.example.com/send"
    assert sent.headers["Authorization"] == "Bearer key-123"
    payload = json.loads(sent.content)
    assert payload["to"] == "a@example.com"
    assert payload["subject"] == "Password Reset"
    assert RESET_URL in payload["text"]


@pytest.mark.asyncio
async def test_send_mail_rejected_raises_mail_error(mail_api) -> None:
    _, state = mail_api
    state["status"] = 503

    with pytest.raises(MailError) as exc_info:
        await mail.send_mail(
            recipient="a@example.com",
            subject="Password Reset",
            template="password-reset",
            reset_url=RESET_URL,
        )
    assert exc_info.value.detail == {"status": 503}


def test_photo_from_data_url() -> None:
    encoded = base64.b64encode(b"\x89PNG-data").decode()
    upload = photo_from_data_url(f"data:image/PNG;base64,{encoded}")
    assert upload == PhotoUpload(data=b"\x89PNG-data", content_type="image/png")

    assert photo_from_data_url("https://example.com/photo.png") is None
    assert photo_from_data_url("data:image/png;base64,not base64!!") is None


def test_save_photo_rejects_non_images_and_oversize() -> None:
    assert save_photo(PhotoUpload(data=b"text", content_type="text/plain")) is None
    assert save_photo(PhotoUpload(data=b"", content_type="image/png")) is None
    assert save_photo(PhotoUpload(data=b"x" * (MAX_PHOTO_BYTES + 1), content_type="image/jpeg")) is None


def test_save_photo_names_file_after_detected_format() -> None:
    # Declared type is ignored; the bytes decide the extension
    reference = save_photo(PhotoUpload(data=PNG_BYTES, content_type="image/jpeg"))
    assert reference is not None
    assert reference.endswith(".png")
    assert (Path(get_settings().uploads_dir) / reference).read_bytes() == PNG_BYTES


@pytest.mark.parametrize(
    "data",
    [
        b'<svg xmlns="http://www.w3.org/2000/svg"><script>alert(1)</script></svg>',
        b"<html><body>not an image</body></html>",
        b"\x00\x01\x02\x03 random bytes",
    ],
)
def test_save_photo_rejects_non_raster_payloads(data: bytes) -> None:
    assert save_photo(PhotoUpload(data=data, content_type="image/svg+xml")) is None
    assert save_photo(PhotoUpload(data=data, content_type="image/png")) is None
    uploads = Path(get_settings().uploads_dir)
    assert not uploads.exists() or not any(uploads.iterdir())


@pytest.mark.parametrize(
    "data, extension",
    [
        (b"\xff\xd8\xff\xe0\x00\x10JFIF", "jpg"),
        (PNG_BYTES, "png"),
        (b"GIF89a\x01\x00\x01\x00", "gif"),
        (b"GIF87a\x01\x00\x01\x00", "gif"),
        (b"RIFF\x24\x00\x00\x00WEBPVP8 ", "webp"),
        (b"RIFF\x24\x00\x00\x00WAVEfmt ", None),
        (b"<svg/>", None),
        (b"", None),
    ],
)
def test_detect_image_type(data: bytes, extension: str | None) -> None:
    assert detect_image_type(data) == extension


def test_discard_photo_removes_file() -> None:
    reference = save_photo(PhotoUpload(data=PNG_BYTES, content_type="image/png"))
    assert reference is not None
    path = Path(get_settings().uploads_dir) / reference
    assert path.exists()

    discard_photo(reference)
    assert not path.exists()

    # Already gone is fine
    discard_photo(reference)
