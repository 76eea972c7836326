"""
Tests for the local video store.
"""

import io
import re

import pytest

from caliquest.core.exceptions import UploadRejected
from caliquest.core.storage import LocalBlobStorage, generate_key


@pytest.fixture
def store(tmp_path):
    return LocalBlobStorage(tmp_path, "/media/", allowed_extensions=["mp4", ".WEBM"], max_size=16)


def test_generated_key_format():
    key = generate_key("Clip.MP4", "exercises")
    assert re.fullmatch(r"exercises/\d{13}_[a-z0-9]{7}\.mp4", key)


def test_generated_keys_differ():
    assert generate_key("a.mp4", "exercises") != generate_key("a.mp4", "exercises")


def test_upload_and_delete(store):
    blob = store.upload(io.BytesIO(b"0123456789"), "clip.webm", "exercises")

    assert blob.url == f"/media/{blob.key}"
    assert store.exists(blob.key)
    assert store.path_for(blob.key).read_bytes() == b"0123456789"

    assert store.delete(blob.key) is True
    assert not store.exists(blob.key)
    assert store.delete(blob.key) is False


def test_extension_is_checked_case_insensitively(store):
    blob = store.upload(io.BytesIO(b"data"), "CLIP.MP4", "exercises")
    assert blob.key.endswith(".mp4")

    with pytest.raises(UploadRejected):
        store.upload(io.BytesIO(b"data"), "clip.avi", "exercises")


def test_oversized_upload_leaves_no_file(store, tmp_path):
    with pytest.raises(UploadRejected):
        store.upload(io.BytesIO(b"x" * 17), "clip.mp4", "exercises")

    assert list((tmp_path / "exercises").iterdir()) == []


def test_keys_cannot_escape_root(store):
    with pytest.raises(UploadRejected):
        store.path_for("../outside.mp4")
