import asyncio
import io
import re
from datetime import datetime

import pytest
from fastapi import UploadFile

from app.core.config import settings
from app.core.exceptions import AccountServiceError, PhotoStorageError
from app.storage.local_storage import generate_photo_filename


def upload(filename, content=b"\x89PNG"):
    return UploadFile(file=io.BytesIO(content), filename=filename)


def test_generated_name_is_millisecond_timestamp():
    now = datetime(2021, 3, 13, 7, 9, 45, 123456)

    assert generate_photo_filename(".png", now) == "20210313070945123.png"


def test_save_photo_writes_under_generated_name(photo_storage):
    filename = asyncio.run(photo_storage.save_photo(upload("me.PNG", b"data")))

    assert re.fullmatch(r"\d{17}\.png", filename)
    assert photo_storage.get_photo_path(filename).read_bytes() == b"data"


@pytest.mark.parametrize("filename", ["notes.txt", "noextension", ""])
def test_save_photo_rejects_unsupported_files(photo_storage, filename):
    with pytest.raises(PhotoStorageError):
        asyncio.run(photo_storage.save_photo(upload(filename)))

    assert photo_storage.list_photos() == []


def test_save_photo_rejects_oversized_files(photo_storage, monkeypatch):
    monkeypatch.setattr(settings, "MAX_FILE_SIZE", 3)

    with pytest.raises(AccountServiceError) as excinfo:
        asyncio.run(photo_storage.save_photo(upload("big.png", b"0123")))

    assert isinstance(excinfo.value, PhotoStorageError)


def test_save_photo_never_overwrites(photo_storage, monkeypatch):
    monkeypatch.setattr(
        "app.storage.local_storage.generate_photo_filename", lambda ext: "fixed" + ext)
    asyncio.run(photo_storage.save_photo(upload("a.png", b"first")))

    with pytest.raises(PhotoStorageError):
        asyncio.run(photo_storage.save_photo(upload("b.png", b"second")))

    assert photo_storage.get_photo_path("fixed.png").read_bytes() == b"first"


def test_photo_path_is_confined_to_photo_dir(photo_storage):
    path = photo_storage.get_photo_path("../../etc/passwd")

    assert path.parent == photo_storage.photo_dir


def test_delete_photo(photo_storage):
    photo_storage.get_photo_path("p.png").write_bytes(b"x")

    assert photo_storage.delete_photo("p.png") is True
    assert photo_storage.delete_photo("p.png") is False
    assert not photo_storage.photo_exists("p.png")


def test_delete_photo_skips_default(photo_storage):
    photo_storage.get_photo_path("Anonymous.png").write_bytes(b"x")

    assert photo_storage.delete_photo("Anonymous.png") is False
    assert photo_storage.photo_exists("Anonymous.png")
