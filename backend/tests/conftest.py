from pathlib import Path
from urllib.parse import quote
import os
import tempfile

import pytest
import urllib3
from minio.error import S3Error

# Point the app at a throwaway SQLite file before `edusync.main` is imported.
_DB_DIR = Path(tempfile.mkdtemp(prefix="edusync-tests-"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_DB_DIR / 'app.db'}")

from fastapi.testclient import TestClient  # noqa: E402

from edusync.errors import StoreRequestFailed  # noqa: E402
from edusync.storage import ObjectStoreGateway, StoreConfig  # noqa: E402


class InMemoryObjectStore:
    """ObjectStore fake; `failures` maps a method name to the error it raises."""

    def __init__(self, container_present=False):
        self.container_present = container_present
        self.public_read = None
        self.objects = {}
        self.deleted = []
        self.calls = []
        self.failures = {}
        self.drop_writes = False

    def _call(self, name):
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    def container_exists(self):
        self._call("container_exists")
        return self.container_present

    def create_container(self, public_read):
        self._call("create_container")
        self.container_present = True
        self.public_read = public_read

    def container_properties(self):
        self._call("container_properties")
        if not self.container_present:
            raise StoreRequestFailed("no such bucket", 404, "NoSuchBucket")
        return {"name": "edusync", "versioning": "Off"}

    def put_object(self, name, stream, length, content_type, metadata):
        self._call("put_object")
        data = stream.read()
        if not self.drop_writes:
            self.objects[name] = {
                "data": data,
                "length": length,
                "content_type": content_type,
                "metadata": dict(metadata),
            }

    def object_exists(self, name):
        self._call("object_exists")
        return name in self.objects

    def delete_object(self, name):
        self._call("delete_object")
        self.objects.pop(name, None)
        self.deleted.append(name)

    def list_names(self, limit):
        self._call("list_names")
        return sorted(self.objects)[:limit]

    def object_url(self, name):
        return f"{self.container_url()}/{quote(name)}"

    def container_url(self):
        return "http://store.test:9000/edusync"



def make_s3_error(code, status):
    return S3Error(
        code=code,
        message=f"{code} raised by test",
        resource="/edusync",
        request_id="req-1",
        host_id="host-1",
        response=urllib3.HTTPResponse(body=b"", status=status),
    )


class FakeMinioClient:
    """Stand-in for `minio.Minio`; `errors` maps a method name to the exception it raises."""

    def __init__(self):
        self.errors = {}
        self.objects = {}
        self.policy = None

    def _maybe_raise(self, method):
        if method in self.errors:
            raise self.errors[method]

    def bucket_exists(self, bucket):
        self._maybe_raise("bucket_exists")
        return True

    def make_bucket(self, bucket):
        self._maybe_raise("make_bucket")

    def set_bucket_policy(self, bucket, policy):
        self.policy = policy

    def put_object(self, bucket, name, data, length, content_type=None, metadata=None):
        self._maybe_raise("put_object")
        for value in (metadata or {}).values():
            # minio refuses header values it cannot send as US-ASCII
            if not value.isascii():
                raise ValueError(f"unsupported metadata value {value}; only US-ASCII encoded characters are supported")
        self.objects[name] = {"data": data.read(), "metadata": dict(metadata or {})}

    def stat_object(self, bucket, name):
        self._maybe_raise("stat_object")
        if name not in self.objects:
            raise make_s3_error("NoSuchKey", 404)
        return object()


@pytest.fixture
def store():
    return InMemoryObjectStore()


@pytest.fixture
def store_config():
    return StoreConfig(
        endpoint="store.test:9000",
        access_key="access",
        secret_key="secret",
        container="edusync",
        secure=False,
    )


@pytest.fixture
def minio_client():
    return FakeMinioClient()


@pytest.fixture
def s3_error():
    return make_s3_error


@pytest.fixture
def gateway(store, store_config):
    return ObjectStoreGateway(store_config, store=store)


@pytest.fixture
def upload_client(gateway):
    """TestClient whose upload routes talk to the in-memory store."""
    from edusync.main import app, get_gateway
    app.dependency_overrides[get_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()
