import pytest

from app.errors import NotFound, StorageError, ValidationError
from app.storage.supabase_storage import (
    delete_file,
    download_file,
    get_public_url,
    get_signed_url,
    upload_file,
)
from app.utils.storage import (
    content_type_for,
    format_file_size,
    generate_file_path,
    is_valid_file_size,
    is_valid_file_type,
    parse_tags,
    sanitize_search_query,
    validate_upload,
)

from fakes import FakeStorageException

TEN_MIB = 10 * 1024 * 1024


def test_upload_then_download(fake_db):
    stored = upload_file(fake_db, "user-1/1.pdf", b"%PDF-1.7", "application/pdf")
    assert stored.data == "user-1/1.pdf"
    assert fake_db.buckets["lecture-notes"]["user-1/1.pdf"] == b"%PDF-1.7"
    assert fake_db.content_types["user-1/1.pdf"] == "application/pdf"

    assert download_file(fake_db, "user-1/1.pdf").data == b"%PDF-1.7"


def test_upload_failure_is_storage_error(fake_db):
    fake_db.fail(
        "storage",
        "upload",
        FakeStorageException({"statusCode": "413", "error": "Payload too large", "message": "quota"}),
    )
    result = upload_file(fake_db, "user-1/1.pdf", b"data")
    assert isinstance(result.error, StorageError)


def test_download_missing_object_is_not_found(fake_db):
    result = download_file(fake_db, "user-1/missing.pdf")
    assert isinstance(result.error, NotFound)


def test_download_network_failure_is_storage_error(fake_db):
    fake_db.fail("storage", "download", ConnectionError("connection reset"))
    result = download_file(fake_db, "user-1/1.pdf")
    assert isinstance(result.error, StorageError)


def test_delete_file(fake_db):
    upload_file(fake_db, "user-1/1.pdf", b"data")
    assert delete_file(fake_db, "user-1/1.pdf").data is True
    assert "user-1/1.pdf" not in fake_db.buckets["lecture-notes"]


def test_delete_failure_is_reported(fake_db):
    fake_db.fail("storage", "remove", FakeStorageException({"statusCode": "403", "message": "denied"}))
    result = delete_file(fake_db, "user-1/1.pdf")
    assert isinstance(result.error, StorageError)


def test_signed_url_carries_ttl(fake_db):
    upload_file(fake_db, "user-1/1.pdf", b"data")
    result = get_signed_url(fake_db, "user-1/1.pdf", 120)
    assert "user-1/1.pdf" in result.data
    assert "ttl=120" in result.data


def test_signed_url_defaults_to_one_hour(fake_db):
    upload_file(fake_db, "user-1/1.pdf", b"data")
    assert "ttl=3600" in get_signed_url(fake_db, "user-1/1.pdf").data


def test_public_url(fake_db):
    assert get_public_url(fake_db, "user-1/1.pdf").data.endswith("/lecture-notes/user-1/1.pdf")


def test_file_path_uses_owner_timestamp_and_extension():
    assert generate_file_path("user-1", "lecture.notes.PDF", 1700000000123) == (
        "user-1/1700000000123.PDF"
    )
    other = generate_file_path("user-2", "scan.png", 1700000000123)
    assert other.startswith("user-2/")


@pytest.mark.parametrize(
    "content_type,allowed",
    [
        ("application/pdf", True),
        ("image/jpeg", True),
        ("image/jpg", True),
        ("image/png", True),
        ("image/gif", False),
        ("application/msword", False),
        (None, False),
    ],
)
def test_allowed_content_types(content_type, allowed):
    assert is_valid_file_type(content_type) is allowed


def test_size_limit_is_inclusive():
    assert is_valid_file_size(TEN_MIB)
    assert not is_valid_file_size(TEN_MIB + 1)
    validate_upload("application/pdf", TEN_MIB)
    with pytest.raises(ValidationError):
        validate_upload("application/pdf", TEN_MIB + 1)


def test_validate_upload_rejects_type_first():
    with pytest.raises(ValidationError, match="Unsupported file type"):
        validate_upload("text/plain", 10)


def test_parse_tags():
    assert parse_tags(" ml, , regression ,ml") == ["ml", "regression", "ml"]
    assert parse_tags("") == []
    assert parse_tags(None) == []


def test_sanitize_search_query_escapes_wildcards():
    assert sanitize_search_query("  100%_done ") == "100\\%\\_done"


def test_format_file_size():
    assert format_file_size(0) == "0 Bytes"
    assert format_file_size(512) == "512 Bytes"
    assert format_file_size(1536) == "1.5 KB"
    assert format_file_size(TEN_MIB) == "10 MB"


def test_content_type_follows_the_stored_extension():
    assert content_type_for("user-1/1.pdf") == "application/pdf"
    assert content_type_for("user-1/2.PNG") == "image/png"
    assert content_type_for("user-1/3.jpeg") == "image/jpeg"
    assert content_type_for("user-1/4.bin") == "application/octet-stream"
