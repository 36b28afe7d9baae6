"""Bucket-style object storage on the local filesystem.

A bucket is a directory directly under STORAGE_DIR. Buckets are created by
the operator, never by the application; uploads resolve the configured
bucket name case-insensitively against what actually exists.
"""
import logging
import random
import time
from pathlib import Path

from . import config

logger = logging.getLogger(__name__)


def _root() -> Path:
    return Path(config.STORAGE_DIR)


def list_buckets() -> list[str]:
    root = _root()
    if not root.is_dir():
        return []
    return sorted(p.name for p in root.iterdir() if p.is_dir())


def resolve_bucket(name: str) -> str | None:
    wanted = name.lower()
    for bucket in list_buckets():
        if bucket.lower() == wanted:
            return bucket
    return None


def check_bucket(name: str) -> bool:
    actual = resolve_bucket(name)
    if actual is None:
        logger.warning(f"Bucket '{name}' not found under {_root()}. Create it manually: mkdir {_root() / name}")
        return False
    logger.info(f"Bucket found with name: '{actual}'")
    return True


def _object_path(bucket: str, path: str) -> Path:
    base = (_root() / bucket).resolve()
    target = (base / path).resolve()
    if base != target and base not in target.parents:
        raise ValueError(f"Path '{path}' escapes bucket '{bucket}'")
    return target


def public_url(bucket: str, path: str) -> str:
    return f"/storage/{bucket}/{path}"


def unique_filename(original_name: str) -> str:
    ext = Path(original_name or "").suffix.lstrip(".") or "bin"
    return f"{int(time.time() * 1000)}_{random.randint(0, 999)}.{ext}"


def upload_file(bucket: str, path: str, content: bytes) -> str | None:
    """Write ``content`` to ``bucket/path`` (overwriting) and return its public URL."""
    try:
        actual = resolve_bucket(bucket)
        if actual is None:
            logger.error(f"Bucket '{bucket}' not found. Available buckets: {list_buckets()}")
            return None

        target = _object_path(actual, path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        url = public_url(actual, path)
        logger.info(f"File uploaded successfully, URL: {url}")
        return url
    except Exception as e:
        logger.error(f"Error uploading {path} to bucket '{bucket}': {e}")
        return None


def delete_file(bucket: str, path: str) -> bool:
    try:
        actual = resolve_bucket(bucket)
        if actual is None:
            logger.error(f"Bucket '{bucket}' not found")
            return False
        _object_path(actual, path).unlink()
        logger.info(f"File deleted successfully from {actual}/{path}")
        return True
    except Exception as e:
        logger.error(f"Error deleting {path} from bucket '{bucket}': {e}")
        return False
