import re
import shutil

import pytest

from wastewatch import config, storage


def test_list_buckets():
    assert storage.list_buckets() == ["Complaints", "recyclable-items"]


def test_bucket_name_resolves_case_insensitively():
    assert storage.resolve_bucket("complaints") == "Complaints"
    assert storage.resolve_bucket("RECYCLABLE-ITEMS") == "recyclable-items"
    assert storage.resolve_bucket("avatars") is None


def test_check_bucket_warns_when_missing(caplog):
    assert storage.check_bucket("complaints") is True
    assert storage.check_bucket("avatars") is False
    assert "Create it manually" in caplog.text


def test_upload_uses_actual_bucket_name():
    url = storage.upload_file("complaints", "a/photo.jpg", b"jpeg-bytes")

    assert url == "/storage/Complaints/a/photo.jpg"
    assert (config.STORAGE_DIR / "Complaints" / "a" / "photo.jpg").read_bytes() == b"jpeg-bytes"


def test_upload_overwrites():
    storage.upload_file("complaints", "photo.jpg", b"old")
    storage.upload_file("complaints", "photo.jpg", b"new")
    assert (config.STORAGE_DIR / "Complaints" / "photo.jpg").read_bytes() == b"new"


def test_upload_to_missing_bucket_fails():
    shutil.rmtree(config.STORAGE_DIR / "recyclable-items")
    assert storage.upload_file("recyclable-items", "x.png", b"data") is None
    # Buckets are never created by the application
    assert not (config.STORAGE_DIR / "recyclable-items").exists()


def test_upload_rejects_path_escape():
    assert storage.upload_file("complaints", "../recyclable-items/x.png", b"data") is None
    assert not (config.STORAGE_DIR / "recyclable-items" / "x.png").exists()


def test_object_path_escape_raises():
    with pytest.raises(ValueError):
        storage._object_path("Complaints", "../../etc/passwd")


def test_delete_file():
    storage.upload_file("complaints", "gone.jpg", b"x")
    assert storage.delete_file("Complaints", "gone.jpg") is True
    assert storage.delete_file("complaints", "gone.jpg") is False
    assert storage.delete_file("avatars", "gone.jpg") is False


def test_unique_filename_keeps_extension():
    name = storage.unique_filename("IMG_0042.JPG")
    assert re.fullmatch(r"\d+_\d{1,3}\.JPG", name)
    assert storage.unique_filename("noext").endswith(".bin")
    assert storage.unique_filename(None).endswith(".bin")
