import logging
from typing import Optional

from supabase import Client

from ..config import get_settings
from ..errors import DatabaseResult, NotFound, StorageError

logger = logging.getLogger(__name__)


def _bucket(db: Client, bucket_name: Optional[str] = None):
    return db.storage.from_(bucket_name or get_settings().notes_bucket)


def _is_missing_object(error: Exception) -> bool:
    # storage3 wraps the JSON error body in the exception's first argument
    details = error.args[0] if error.args else None
    if isinstance(details, dict):
        status = str(details.get("statusCode") or details.get("status") or "")
        if status == "404" or details.get("error") == "not_found":
            return True
    return "not found" in str(error).lower()


def upload_file(
    db: Client,
    file_path: str,
    data: bytes,
    content_type: Optional[str] = None,
    bucket_name: Optional[str] = None,
) -> DatabaseResult[str]:
    """
    Upload raw bytes to the notes bucket under ``file_path``.

    Content is not inspected here; type and size checks happen before this
    call. Returns the stored path.
    """
    file_options = {"content-type": content_type} if content_type else None
    try:
        logger.info(f"Uploading {len(data)} bytes to storage path {file_path}")
        _bucket(db, bucket_name).upload(file_path, data, file_options)
        return DatabaseResult.success(file_path)
    except Exception as e:
        logger.error(f"Error uploading file to Supabase: {e}")
        return DatabaseResult.failure(StorageError(f"Failed to upload file: {e}"))


def download_file(
    db: Client, file_path: str, bucket_name: Optional[str] = None
) -> DatabaseResult[bytes]:
    try:
        logger.info(f"Downloading file from storage path {file_path}")
        return DatabaseResult.success(_bucket(db, bucket_name).download(file_path))
    except Exception as e:
        if _is_missing_object(e):
            logger.warning(f"File not found in storage: {file_path}")
            return DatabaseResult.failure(NotFound(f"File not found: {file_path}"))
        logger.error(f"Error downloading file from Supabase: {e}")
        return DatabaseResult.failure(StorageError(f"Failed to download file: {e}"))


def delete_file(
    db: Client, file_path: str, bucket_name: Optional[str] = None
) -> DatabaseResult[bool]:
    try:
        _bucket(db, bucket_name).remove([file_path])
        logger.info(f"Deleted storage object {file_path}")
        return DatabaseResult.success(True)
    except Exception as e:
        logger.error(f"Error deleting file from Supabase: {e}")
        return DatabaseResult.failure(StorageError(f"Failed to delete file: {e}"))


def get_signed_url(
    db: Client,
    file_path: str,
    expires_in: Optional[int] = None,
    bucket_name: Optional[str] = None,
) -> DatabaseResult[str]:
    """Issue a time-limited URL; issued URLs are not tracked."""
    if expires_in is None:
        expires_in = get_settings().signed_url_ttl
    try:
        response = _bucket(db, bucket_name).create_signed_url(file_path, expires_in)
        url = response.get("signedURL") or response.get("signedUrl")
        if not url:
            return DatabaseResult.failure(
                StorageError(f"No signed URL returned for {file_path}")
            )
        return DatabaseResult.success(url)
    except Exception as e:
        if _is_missing_object(e):
            return DatabaseResult.failure(NotFound(f"File not found: {file_path}"))
        logger.error(f"Error creating signed URL: {e}")
        return DatabaseResult.failure(
            StorageError(f"Failed to generate signed URL: {e}")
        )


def get_public_url(
    db: Client, file_path: str, bucket_name: Optional[str] = None
) -> DatabaseResult[str]:
    try:
        return DatabaseResult.success(_bucket(db, bucket_name).get_public_url(file_path))
    except Exception as e:
        logger.error(f"Error building public URL: {e}")
        return DatabaseResult.failure(StorageError(f"Failed to get public URL: {e}"))
