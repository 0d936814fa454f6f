"""Object storage gateway for uploaded course material.

The gateway owns every interaction with one configured container (bucket)
of an S3-compatible store. It talks to the store through the small
`ObjectStore` protocol so tests can hand in an in-memory fake; the
production implementation, `MinioObjectStore`, wraps the `minio` client.

Provider rejections surface as `StoreRequestFailed` (carrying the HTTP
status and the provider error code) and transport failures as
`StoreUnavailable`. No call is retried in-process; the HTTP pool used by
the client enforces a bounded per-call timeout instead.
"""

from __future__ import annotations

import io
import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from itertools import islice
from typing import BinaryIO, Dict, Iterator, List, Optional, Protocol
from urllib.parse import quote

import urllib3
from minio import Minio
from minio.error import InvalidResponseError, S3Error, ServerError

from .config import Settings
from .errors import (
    MisconfiguredStore,
    StoreError,
    StoreRequestFailed,
    StoreUnavailable,
    UploadVerificationFailed,
)

logger = logging.getLogger("edusync.storage")

SAMPLE_LIMIT = 10
_MISSING_OBJECT_CODES = {"NoSuchKey", "NoSuchObject", "ResourceNotFound"}
_EXISTING_BUCKET_CODES = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}


@dataclass(frozen=True)
class StoreConfig:
    """Connection settings for the object store."""
    endpoint: str
    access_key: str
    secret_key: str
    container: str
    secure: bool = True
    public_url: str = ""
    timeout_seconds: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "StoreConfig":
        return cls(
            endpoint=settings.STORE_ENDPOINT,
            access_key=settings.STORE_ACCESS_KEY,
            secret_key=settings.STORE_SECRET_KEY,
            container=settings.STORE_CONTAINER,
            secure=settings.STORE_SECURE,
            public_url=settings.STORE_PUBLIC_URL,
            timeout_seconds=settings.STORE_TIMEOUT_SECONDS,
        )

    @property
    def credential_present(self) -> bool:
        return bool(self.endpoint and self.access_key and self.secret_key)

    @property
    def base_url(self) -> str:
        if self.public_url:
            return self.public_url.rstrip("/")
        scheme = "https" if self.secure else "http"
        return f"{scheme}://{self.endpoint}"


class ObjectStore(Protocol):
    """Primitives the gateway needs from a blob store."""

    def container_exists(self) -> bool: ...

    def create_container(self, public_read: bool) -> None: ...

    def container_properties(self) -> Dict[str, str]: ...

    def put_object(self, name: str, stream: BinaryIO, length: int, content_type: str, metadata: Dict[str, str]) -> None: ...

    def object_exists(self, name: str) -> bool: ...

    def delete_object(self, name: str) -> None: ...

    def list_names(self, limit: int) -> List[str]: ...

    def object_url(self, name: str) -> str: ...

    def container_url(self) -> str: ...


def public_read_policy(container: str) -> str:
    """Bucket policy granting anonymous read access to every object."""
    return json.dumps({
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"AWS": ["*"]},
                "Action": ["s3:GetObject"],
                "Resource": [f"arn:aws:s3:::{container}/*"],
            }
        ],
    })


def encode_metadata(metadata: Dict[str, str]) -> Dict[str, str]:
    """Percent-encode (UTF-8) metadata values that are not plain ASCII.

    Object metadata travels as HTTP headers, which only carry US-ASCII.
    """
    return {key: value if value.isascii() else quote(value, safe="") for key, value in metadata.items()}


def classify_store_error(exc: Exception) -> StoreError:
    """Translate a client exception into the gateway's failure taxonomy."""
    if isinstance(exc, StoreError):
        return exc
    if isinstance(exc, S3Error):
        status = getattr(exc.response, "status", None) if exc.response is not None else None
        return StoreRequestFailed(f"Object store rejected the request: {exc.message}", status, exc.code)
    if isinstance(exc, ServerError):
        return StoreRequestFailed(f"Object store server error: {exc}", getattr(exc, "status_code", None), None)
    if isinstance(exc, InvalidResponseError):
        return StoreRequestFailed(f"Object store sent an invalid response: {exc}")
    if isinstance(exc, (urllib3.exceptions.HTTPError, OSError)):
        return StoreUnavailable(f"Object store unreachable: {exc}")
    if isinstance(exc, ValueError):
        # raised by the client while building the request, before any I/O
        return StoreRequestFailed(f"Object store client rejected the request: {exc}")
    return StoreError(f"Object store error: {exc}")


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    try:
        yield
    except StoreError:
        raise
    except (S3Error, ServerError, InvalidResponseError, urllib3.exceptions.HTTPError, OSError, ValueError) as exc:
        err = classify_store_error(exc)
        logger.error("store %s failed: %s", action, err)
        raise err from exc


class MinioObjectStore:
    """`ObjectStore` implementation backed by the `minio` client."""

    def __init__(self, config: StoreConfig, client: Optional[Minio] = None):
        self.config = config
        self.container = config.container
        if client is None:
            http_client = urllib3.PoolManager(
                timeout=urllib3.Timeout(connect=min(10.0, config.timeout_seconds), read=config.timeout_seconds),
                retries=urllib3.Retry(total=0, redirect=0),
            )
            client = Minio(
                config.endpoint,
                access_key=config.access_key,
                secret_key=config.secret_key,
                secure=config.secure,
                http_client=http_client,
            )
        self.client = client

    def container_exists(self) -> bool:
        with _translate_errors("container_exists"):
            return self.client.bucket_exists(self.container)

    def create_container(self, public_read: bool) -> None:
        with _translate_errors("create_container"):
            try:
                self.client.make_bucket(self.container)
            except S3Error as exc:
                # another request created it first
                if exc.code not in _EXISTING_BUCKET_CODES:
                    raise
            if public_read:
                self.client.set_bucket_policy(self.container, public_read_policy(self.container))

    def container_properties(self) -> Dict[str, str]:
        with _translate_errors("container_properties"):
            versioning = self.client.get_bucket_versioning(self.container)
        return {"name": self.container, "versioning": str(versioning.status)}

    def put_object(self, name: str, stream: BinaryIO, length: int, content_type: str, metadata: Dict[str, str]) -> None:
        with _translate_errors("put_object"):
            self.client.put_object(
                self.container,
                name,
                stream,
                length,
                content_type=content_type,
                metadata=encode_metadata(metadata),
            )

    def object_exists(self, name: str) -> bool:
        with _translate_errors("object_exists"):
            try:
                self.client.stat_object(self.container, name)
            except S3Error as exc:
                if exc.code in _MISSING_OBJECT_CODES:
                    return False
                raise
        return True

    def delete_object(self, name: str) -> None:
        with _translate_errors("delete_object"):
            self.client.remove_object(self.container, name)

    def list_names(self, limit: int) -> List[str]:
        with _translate_errors("list_names"):
            objects = self.client.list_objects(self.container, recursive=True)
            return [o.object_name for o in islice(objects, limit)]

    def object_url(self, name: str) -> str:
        return f"{self.container_url()}/{quote(name)}"

    def container_url(self) -> str:
        return f"{self.config.base_url}/{self.container}"


class ObjectStoreGateway:
    """All object store I/O for the configured container.

    Construction validates the configuration and raises
    `MisconfiguredStore` when the endpoint, credentials or container name
    are missing; callers treat that as fatal at startup.
    """

    def __init__(self, config: StoreConfig, store: Optional[ObjectStore] = None):
        logger.info("initialising object store gateway for container %r", config.container)
        if not config.credential_present:
            logger.error("object store endpoint or credentials are missing")
            raise MisconfiguredStore("Object store connection credential is not configured")
        if not config.container:
            logger.error("object store container name is missing")
            raise MisconfiguredStore("Object store container name is not configured")
        self.config = config
        self.store = store if store is not None else MinioObjectStore(config)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ObjectStoreGateway":
        return cls(StoreConfig.from_settings(settings))

    def ensure_container(self) -> None:
        """Create the container with public read access if it is missing."""
        if self.store.container_exists():
            return
        logger.info("container %r missing, creating it", self.config.container)
        self.store.create_container(public_read=True)

    def put_object(self, name: str, stream: BinaryIO, content_type: str, length: int, metadata: Dict[str, str]) -> str:
        """Upload `stream` as `name` (overwriting) and return its public URL.

        The object is looked up again after the write; if the store
        acknowledged the upload but the object is absent the call fails
        with `UploadVerificationFailed`.
        """
        logger.info("uploading %s (%d bytes, %s)", name, length, content_type)
        self.store.put_object(name, stream, length, content_type, metadata)
        if not self.store.object_exists(name):
            logger.error("object %s missing after acknowledged upload", name)
            raise UploadVerificationFailed("Upload appeared successful but the stored object does not exist")
        url = self.store.object_url(name)
        logger.info("uploaded %s -> %s", name, url)
        return url

    def test_connectivity(self) -> bool:
        """Run an end-to-end self check against the store.

        Ensures the container, reads its properties, writes a throwaway
        object, checks it exists and deletes it again. Never raises; any
        failure is logged and reported as `False`.
        """
        logger.info("starting object store connectivity test")
        probe_name = f"test-connection-{datetime.now(timezone.utc):%Y%m%d%H%M%S}.txt"
        payload = b"Connection test successful"
        try:
            self.ensure_container()
            props = self.store.container_properties()
            logger.info("container properties: %s", props)
            self.store.put_object(probe_name, io.BytesIO(payload), len(payload), "text/plain", {})
            exists = self.store.object_exists(probe_name)
            logger.info("probe object %s exists: %s", probe_name, exists)
            self.store.delete_object(probe_name)
            return exists
        except StoreRequestFailed as exc:
            logger.exception(
                "connectivity test rejected by store: status=%s code=%s",
                exc.provider_status,
                exc.provider_error_code,
            )
            return False
        except Exception:
            logger.exception("connectivity test failed")
            return False

    def diagnostics(self) -> dict:
        """Read-only report used for operational troubleshooting."""
        report = {
            "containerName": self.config.container,
            "endpointConfigured": bool(self.config.endpoint),
            "credentialConfigured": bool(self.config.access_key and self.config.secret_key),
            "containerExists": None,
            "containerUrl": self.store.container_url(),
            "sampleObjects": [],
        }
        try:
            report["containerExists"] = self.store.container_exists()
            if report["containerExists"]:
                report["sampleObjects"] = self.store.list_names(SAMPLE_LIMIT)
        except StoreError as exc:
            logger.exception("diagnostics failed")
            report["error"] = str(exc)
            report["errorType"] = exc.error_type
        return report
