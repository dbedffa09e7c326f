"""Attachment classification and the single pending-attachment slot.

Files are classified by declared media type into an image (encoded as a
base64 data URI) or a plain-text document (decoded as UTF-8). Only the most
recently requested read may become the pending attachment.
"""

from __future__ import annotations

import base64
import logging
import mimetypes
from pathlib import Path

import aiofiles
import aiofiles.os

from ..exceptions import AttachmentTooLargeError, FileReadError, UnsupportedTypeError
from ..models import PendingAttachment, build_data_uri

LOGGER = logging.getLogger(__name__)

IMAGE_MEDIA_TYPES: frozenset[str] = frozenset(
    {"image/jpeg", "image/png", "image/webp", "image/gif"}
)
DOCUMENT_MEDIA_TYPES: frozenset[str] = frozenset({"text/plain"})

DEFAULT_MEDIA_TYPE = "application/octet-stream"


class AttachmentManager:
    """Classifies files into pending attachments and holds the current one.

    Responsibilities:
    - Media-type classification (image / document / rejected)
    - Async file reads and payload encoding
    - Size limits
    - Last-write-wins tracking of in-flight reads
    """

    def __init__(
        self,
        *,
        max_image_bytes: int = 10 * 1024 * 1024,  # 10 MB
        max_document_bytes: int = 2 * 1024 * 1024,  # 2 MB
    ) -> None:
        self.max_image_bytes = max_image_bytes
        self.max_document_bytes = max_document_bytes
        self._pending: PendingAttachment | None = None
        self._ticket = 0

    @property
    def pending(self) -> PendingAttachment | None:
        """Return the attachment waiting for the next submission, if any."""
        return self._pending

    def next_ticket(self) -> int:
        """Start a new read; any read started earlier is superseded."""
        self._ticket += 1
        return self._ticket

    def is_latest(self, ticket: int) -> bool:
        """Return True when no read was started or cleared after ``ticket``."""
        return ticket == self._ticket

    def set_pending(self, attachment: PendingAttachment) -> None:
        """Replace the pending attachment, whatever its kind."""
        self._pending = attachment
        LOGGER.info(
            "attachment.pending.set",
            extra={
                "event": "attachment.pending.set",
                "kind": attachment.kind,
                "media_type": attachment.media_type,
            },
        )

    def clear(self) -> None:
        """Drop the pending attachment and invalidate reads still in flight."""
        self._pending = None
        self._ticket += 1

    @staticmethod
    def declared_type_for(path: str | Path) -> str:
        """Guess the declared media type of a file from its name."""
        guessed, _ = mimetypes.guess_type(str(path))
        return guessed or DEFAULT_MEDIA_TYPE

    @staticmethod
    def is_accepted_type(declared_type: str) -> bool:
        return (
            declared_type in IMAGE_MEDIA_TYPES or declared_type in DOCUMENT_MEDIA_TYPES
        )

    def _limit_for(self, declared_type: str) -> int:
        if declared_type in IMAGE_MEDIA_TYPES:
            return self.max_image_bytes
        return self.max_document_bytes

    def _check_size(self, name: str, normalized_type: str, size: int) -> None:
        limit = self._limit_for(normalized_type)
        if size > limit:
            kind = "Image" if normalized_type in IMAGE_MEDIA_TYPES else "Document"
            raise AttachmentTooLargeError(
                f"{kind} too large (max {limit / (1024 * 1024):.1f}MB): {name}"
            )

    def normalize(
        self, name: str, declared_type: str, data: bytes
    ) -> PendingAttachment:
        """Classify in-memory file content into a pending attachment.

        Raises:
            UnsupportedTypeError: declared type is outside the allow-list
            AttachmentTooLargeError: content exceeds the size limit for its kind
            FileReadError: document content is not valid UTF-8
        """
        normalized_type = declared_type.strip().lower()
        if not self.is_accepted_type(normalized_type):
            raise UnsupportedTypeError(declared_type)

        self._check_size(name, normalized_type, len(data))

        if normalized_type in IMAGE_MEDIA_TYPES:
            encoded = base64.b64encode(data).decode("ascii")
            return PendingAttachment(
                name=name,
                kind="image",
                payload=build_data_uri(normalized_type, encoded),
                media_type=normalized_type,
            )

        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FileReadError(f"Could not read text file {name}: {exc}") from exc
        return PendingAttachment(
            name=name, kind="document", payload=text, media_type=normalized_type
        )

    async def classify(
        self, path: str | Path, declared_type: str | None = None
    ) -> PendingAttachment:
        """Read a file asynchronously and classify it.

        Args:
            path: File to read
            declared_type: Media type reported for the file; guessed from the
                file name when omitted

        Returns:
            The classified attachment (not yet pending)
        """
        resolved = Path(path).expanduser()
        media_type = declared_type or self.declared_type_for(resolved)
        normalized_type = media_type.strip().lower()

        # Reject before touching the file.
        if not self.is_accepted_type(normalized_type):
            LOGGER.warning(
                "attachment.rejected",
                extra={"event": "attachment.rejected", "media_type": media_type},
            )
            raise UnsupportedTypeError(media_type)

        try:
            stat_result = await aiofiles.os.stat(resolved)
            # Oversized files are rejected without being loaded.
            self._check_size(resolved.name, normalized_type, stat_result.st_size)
            async with aiofiles.open(resolved, "rb") as handle:
                data = await handle.read()
        except OSError as exc:
            LOGGER.warning(
                "attachment.read.failed",
                extra={"event": "attachment.read.failed", "error": str(exc)},
            )
            raise FileReadError(f"Could not read file {resolved.name}: {exc}") from exc

        return self.normalize(resolved.name, media_type, data)
