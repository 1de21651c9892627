"""
Object storage for uploaded PGN files.

Two backends share the ``ObjectStorage`` protocol: S3 (via boto3) for deployed
environments and a local directory for development and tests. Files are
addressed by references of the form ``s3://<bucket>/<key>`` or
``local://<key>``; the bulk analysis endpoint only accepts these. Keys are
grouped per uploader as ``uploads/<user id or "anonymous">/<uuid>/<filename>``.
"""

import asyncio
import logging
from pathlib import Path
from typing import Protocol
import uuid

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from blueolive.core.ownership import ANONYMOUS_OWNER_KEY, Owner, RegisteredOwner

logger = logging.getLogger(__name__)

S3_SCHEME = "s3://"
LOCAL_SCHEME = "local://"
SUPPORTED_REFERENCE_PREFIXES = (S3_SCHEME, LOCAL_SCHEME)

UPLOAD_PREFIX = "uploads"


class StorageError(Exception):
    """A stored file could not be read or written."""


class StorageReferenceError(StorageError):
    """The reference is malformed or belongs to another backend."""


class StorageNotFoundError(StorageError):
    """The reference is well-formed but nothing is stored there."""


class ObjectStorage(Protocol):
    async def save(self, filename: str, content: bytes, owner: Owner) -> str: ...

    async def read_text(self, reference: str) -> str: ...


def owner_namespace(owner: Owner) -> str:
    """Key segment grouping an owner's uploads: the user id, or "anonymous"."""
    if isinstance(owner, RegisteredOwner):
        return str(owner.user_id)
    return ANONYMOUS_OWNER_KEY


def build_object_key(filename: str, owner: Owner) -> str:
    safe_name = Path(filename or "upload.pgn").name or "upload.pgn"
    return f"{UPLOAD_PREFIX}/{owner_namespace(owner)}/{uuid.uuid4()}/{safe_name}"


def decode_text(content: bytes, reference: str) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        # PGN exports from older tools are commonly Latin-1
        logger.warning(f"{reference} is not valid UTF-8, decoding as latin-1")
        return content.decode("latin-1")


class LocalStorage:
    """Stores files under a base directory; used by default outside production."""

    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir).resolve()

    def _path_for(self, reference: str) -> Path:
        if not reference.startswith(LOCAL_SCHEME):
            raise StorageReferenceError(f"Not a local storage reference: {reference}")
        key = reference[len(LOCAL_SCHEME) :]
        if not key:
            raise StorageReferenceError(f"Empty local storage reference: {reference}")
        path = (self.base_dir / key).resolve()
        if not path.is_relative_to(self.base_dir):
            raise StorageReferenceError(f"Reference escapes storage root: {reference}")
        return path

    async def save(self, filename: str, content: bytes, owner: Owner) -> str:
        key = build_object_key(filename, owner)
        path = self.base_dir / key

        def _write():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise StorageError(f"Failed to store {filename}: {e}") from e
        return f"{LOCAL_SCHEME}{key}"

    async def read_text(self, reference: str) -> str:
        path = self._path_for(reference)
        try:
            content = await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as e:
            raise StorageNotFoundError(f"File not found: {reference}") from e
        except OSError as e:
            raise StorageError(f"Failed to read {reference}: {e}") from e
        return decode_text(content, reference)


class S3Storage:
    """Stores files in an S3 bucket. The boto3 client is passed in by the caller."""

    def __init__(self, client, bucket: str):
        if not bucket:
            raise ValueError("S3 storage requires a bucket name")
        self.client = client
        self.bucket = bucket

    @staticmethod
    def split_reference(reference: str) -> tuple[str, str]:
        if not reference.startswith(S3_SCHEME):
            raise StorageReferenceError(f"Not an S3 reference: {reference}")
        bucket, _, key = reference[len(S3_SCHEME) :].partition("/")
        if not bucket or not key:
            raise StorageReferenceError(f"Malformed S3 reference: {reference}")
        return bucket, key

    async def save(self, filename: str, content: bytes, owner: Owner) -> str:
        key = build_object_key(filename, owner)
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=content,
                ContentType="application/x-chess-pgn",
                Metadata={"uploaded-by": owner.key},
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to upload {filename}: {e}") from e
        return f"{S3_SCHEME}{self.bucket}/{key}"

    async def read_text(self, reference: str) -> str:
        bucket, key = self.split_reference(reference)
        if bucket != self.bucket:
            raise StorageReferenceError(
                f"Reference points outside the upload bucket {self.bucket}: {reference}"
            )
        try:
            response = await asyncio.to_thread(
                self.client.get_object, Bucket=bucket, Key=key
            )
            content = await asyncio.to_thread(response["Body"].read)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in ("NoSuchKey", "404", "NoSuchBucket"):
                raise StorageNotFoundError(f"File not found: {reference}") from e
            raise StorageError(f"Failed to read {reference}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to read {reference}: {e}") from e
        return decode_text(content, reference)


def build_storage(settings) -> ObjectStorage:
    """Create the configured storage backend. Called once at startup."""
    backend = settings.storage_backend.lower()
    if backend == "s3":
        client = boto3.client("s3", region_name=settings.aws_region)
        logger.info(f"Using S3 storage (bucket={settings.storage_bucket})")
        return S3Storage(client, settings.storage_bucket)
    if backend == "local":
        logger.info(f"Using local storage at {settings.local_storage_dir}")
        return LocalStorage(settings.local_storage_dir)
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
