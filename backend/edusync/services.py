"""Business logic services used by HTTP controllers.

This module holds the service classes that coordinate repositories and
the object store gateway. Services are intentionally thin: they perform
validation, execute domain logic and hand persistence or remote I/O to
the layer below.
"""

import io
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import BinaryIO, Dict, Optional

from sqlmodel import Session

from . import models, repositories
from .storage import ObjectStoreGateway
from .utils.content_types import resolve_content_type
from .utils.upload_validation import sanitize_file_name, validate_upload

logger = logging.getLogger("edusync.uploads")


class AuthService:
    """Credential checks for the login endpoint."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def authenticate(self, email: str, secret: str) -> Optional[models.User]:
        """Return the user whose stored hash matches `secret`, else `None`.

        Unknown emails and wrong secrets are indistinguishable to the
        caller; a dummy verification keeps their timing similar.
        """
        user = self.user_repo.get_by_email(email)
        if not user:
            repositories.PWD_CTX.dummy_verify()
            return None
        if not repositories.PWD_CTX.verify(secret, user.password_hash):
            return None
        return user


@dataclass
class UploadResult:
    url: str
    file_name: str
    stored_name: str
    file_size: int
    content_type: str


class UploadService:
    """Validate an upload and forward it to the object store.

    One pass, no retries: the first failing step ends the call and its
    error propagates unchanged. With the default `timestamp` naming two
    uploads of the same file name within one second map to the same
    stored name and the second overwrites the first; `uuid` naming
    avoids that.
    """
    def __init__(self, gateway: ObjectStoreGateway, naming: str = "timestamp"):
        self.gateway = gateway
        self.naming = naming

    def stored_name(self, file_name: str, now: datetime) -> str:
        """Derive the object name for `file_name` uploaded at `now`."""
        if self.naming == "uuid":
            return f"{uuid.uuid4().hex}_{file_name}"
        return f"{now:%Y%m%d%H%M%S}_{file_name}"

    @staticmethod
    def build_metadata(file_name: str, now: datetime, length: int) -> Dict[str, str]:
        return {
            "original-file-name": file_name,
            "uploaded-at": now.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "file-size": str(length),
        }

    def upload(self, stream: Optional[BinaryIO], file_name: Optional[str], length: int, now: Optional[datetime] = None) -> UploadResult:
        """Store `stream` and return where it can be fetched from.

        Validation happens before any call to the store, so an empty or
        oversized payload never reaches the network.
        """
        stream = validate_upload(stream, length)
        file_name = sanitize_file_name(file_name)
        now = now or datetime.now(timezone.utc)
        name = self.stored_name(file_name, now)
        content_type = resolve_content_type(file_name)
        metadata = self.build_metadata(file_name, now, length)
        logger.info("upload %s stored as %s (%d bytes)", file_name, name, length)

        self.gateway.ensure_container()
        url = self.gateway.put_object(name, stream, content_type, length, metadata)
        return UploadResult(
            url=url,
            file_name=file_name,
            stored_name=name,
            file_size=length,
            content_type=content_type,
        )

    def upload_test_file(self, now: Optional[datetime] = None):
        """Upload a small generated text file; returns `(result, content)`."""
        now = now or datetime.now(timezone.utc)
        content = f"Test file created at {now:%Y-%m-%d %H:%M:%S} UTC"
        payload = content.encode("utf-8")
        result = self.upload(io.BytesIO(payload), f"test-{now:%Y%m%d%H%M%S}.txt", len(payload), now=now)
        return result, content
