"""
Media stores: validation, size limit, local writes and Cloudinary signed upload
"""
import hashlib
import io

import httpx
import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from config import Settings
from services.media import (
    CloudinaryMediaStore,
    LocalMediaStore,
    create_media_store,
)
from utils.errors import InternalServerError, UploadTooLargeError, ValidationError
from fakes import JPEG_BYTES, PNG_BYTES


def make_upload(filename="dish.png", content=PNG_BYTES):
    return UploadFile(io.BytesIO(content), filename=filename,
                      headers=Headers({"content-type": "application/octet-stream"}))


def cloudinary_store(handler, **overrides):
    options = dict(cloud_name="demo", api_key="key-123", api_secret="shh", folder="recipe-images",
                   max_bytes=1024, max_label="1KB")
    options.update(overrides)
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CloudinaryMediaStore(http_client=http_client, **options)


def form_fields(request: httpx.Request) -> dict:
    """Text fields of a multipart request body"""
    content_type = request.headers["content-type"]
    boundary = content_type.split("boundary=")[1].encode()
    fields = {}
    for part in request.content.split(b"--" + boundary):
        if b'name="' not in part or b"filename=" in part:
            continue
        head, _, value = part.partition(b"\r\n\r\n")
        name = head.split(b'name="')[1].split(b'"')[0].decode()
        fields[name] = value.rstrip(b"\r\n").decode()
    return fields


class TestLocalMediaStore:
    @pytest.mark.asyncio
    async def test_save_writes_file(self, tmp_path):
        store = LocalMediaStore(str(tmp_path), max_bytes=1024, max_label="1KB")

        url = await store.save(make_upload("My Dish!.png"))

        assert url.startswith("/uploads/")
        assert url.endswith(".png")
        assert "-My_Dish_-" in url
        stored = tmp_path / url.rsplit("/", 1)[1]
        assert stored.read_bytes() == PNG_BYTES

    @pytest.mark.asyncio
    async def test_jpeg_extension_normalized(self, tmp_path):
        store = LocalMediaStore(str(tmp_path), max_bytes=1024, max_label="1KB")

        url = await store.save(make_upload("photo.JPEG", JPEG_BYTES))
        assert url.endswith(".jpg")

    @pytest.mark.asyncio
    async def test_too_large(self, tmp_path):
        store = LocalMediaStore(str(tmp_path), max_bytes=16, max_label="16B")

        with pytest.raises(UploadTooLargeError) as exc:
            await store.save(make_upload(content=PNG_BYTES))

        assert exc.value.status_code == 413
        assert exc.value.to_body() == {"success": False, "message": "File too large", "maxSize": "16B"}
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("filename,content", [
        ("notes.txt", PNG_BYTES),
        ("dish.jpg", PNG_BYTES),
        ("dish.png", b""),
        ("noextension", PNG_BYTES),
    ])
    async def test_invalid_images_rejected(self, tmp_path, filename, content):
        store = LocalMediaStore(str(tmp_path), max_bytes=1024, max_label="1KB")

        with pytest.raises(ValidationError):
            await store.save(make_upload(filename, content))


    @pytest.mark.asyncio
    async def test_discard_removes_file_and_tolerates_missing(self, tmp_path):
        store = LocalMediaStore(str(tmp_path), max_bytes=1024, max_label="1KB")
        url = await store.save(make_upload())

        await store.discard(url)
        await store.discard(url)

        assert list(tmp_path.iterdir()) == []


class TestCloudinaryMediaStore:
    def test_signature_over_sorted_params(self):
        store = cloudinary_store(lambda request: httpx.Response(200))

        signature = store.sign({"timestamp": "100", "folder": "recipe-images"})

        expected = hashlib.sha1(b"folder=recipe-images&timestamp=100shh").hexdigest()
        assert signature == expected

    @pytest.mark.asyncio
    async def test_signed_upload_returns_secure_url(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["fields"] = form_fields(request)
            return httpx.Response(200, json={"secure_url": "https://res.cloudinary.com/demo/x.png"})

        store = cloudinary_store(handler)
        url = await store.save(make_upload("pasta.png"))

        assert url == "https://res.cloudinary.com/demo/x.png"
        assert seen["url"] == "https://api.cloudinary.com/v1_1/demo/image/upload"
        fields = seen["fields"]
        assert fields["api_key"] == "key-123"
        assert fields["folder"] == "recipe-images"
        assert fields["public_id"].split("-")[1] == "pasta"
        signed = {k: fields[k] for k in ("folder", "format", "public_id", "timestamp")}
        assert fields["signature"] == store.sign(signed)

    @pytest.mark.asyncio
    async def test_rejected_upload_is_internal_error(self):
        store = cloudinary_store(lambda request: httpx.Response(401, json={"error": {"message": "bad"}}))

        with pytest.raises(InternalServerError):
            await store.save(make_upload())

    @pytest.mark.asyncio
    async def test_network_failure_is_internal_error(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(InternalServerError):
            await cloudinary_store(handler).save(make_upload())

    @pytest.mark.asyncio
    async def test_size_checked_before_upload(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"secure_url": "https://x"})

        with pytest.raises(UploadTooLargeError):
            await cloudinary_store(handler, max_bytes=8).save(make_upload())
        assert calls == []


class TestFactory:
    def test_local_by_default(self, monkeypatch):
        monkeypatch.delenv("MEDIA_BACKEND", raising=False)
        store = create_media_store(Settings(), httpx.AsyncClient())
        assert isinstance(store, LocalMediaStore)

    def test_cloudinary_when_configured(self, monkeypatch):
        monkeypatch.setenv("MEDIA_BACKEND", "cloudinary")
        monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "demo")
        monkeypatch.setenv("CLOUDINARY_API_KEY", "key")
        monkeypatch.setenv("CLOUDINARY_API_SECRET", "secret")

        store = create_media_store(Settings(), httpx.AsyncClient())

        assert isinstance(store, CloudinaryMediaStore)
        assert store.folder == "recipe-images"
        assert store.max_label == "5MB"

    def test_incomplete_cloudinary_falls_back_to_local(self, monkeypatch):
        monkeypatch.setenv("MEDIA_BACKEND", "cloudinary")
        monkeypatch.delenv("CLOUDINARY_CLOUD_NAME", raising=False)

        store = create_media_store(Settings(), httpx.AsyncClient())
        assert isinstance(store, LocalMediaStore)


class TestUploadEndpoint:
    def test_oversized_image_is_413(self, client, app, register, tmp_path):
        from dependencies import get_media_store
        app.dependency_overrides[get_media_store] = lambda: LocalMediaStore(
            str(tmp_path), max_bytes=16, max_label="16B"
        )
        headers, _ = register("alice")

        response = client.post(
            "/recipes", headers=headers,
            data={"name": "Cake", "ingredients": "eggs", "timeToCook": "1h", "steps": "Bake."},
            files={"image": ("cake.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 413
        assert response.json() == {"success": False, "message": "File too large", "maxSize": "16B"}

    @pytest.mark.parametrize("filename", ["..%2Fconfig.py", ".hidden", "missing.png"])
    def test_unsafe_or_missing_upload_names(self, client, filename):
        response = client.get(f"/uploads/{filename}")
        assert response.status_code == 404
