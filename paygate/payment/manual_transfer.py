"""
Manual transfer: payment proof submission for one invoice.

The user picks an image, it is checked and previewed locally, uploaded to
object storage, and a long-lived signed URL is issued for it. Nothing is handed
to the invoice owner until the user explicitly confirms; after that the
pipeline is finished and cannot be reset.

Only one upload is pending at a time. Selecting a new file while an upload is
pending drops the pipeline's handle on it; the object stays in storage,
orphaned. That trade-off is intentional and logged as
``proof.pending_discarded``.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from paygate.config import settings
from paygate.errors import ConstraintViolation, InvalidTransition, NoPendingUpload, StorageFailure
from paygate.payment.proof_states import (
    Confirmed,
    Confirming,
    Empty,
    Previewing,
    ProofArtifact,
    ProofFile,
    ProofStage,
    ProofState,
    Uploaded,
    Uploading,
    artifact_of,
    is_transition_valid,
)
from paygate.storage.client import ObjectStorage
from paygate.utils.correlation import correlation_scope
from paygate.utils.preview import make_preview
from paygate.utils.time import to_unix_ms, utc_now


logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")
_EXT_BY_TYPE = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}
_EXT_RE = re.compile(r"^[a-z0-9]{1,8}$")

MSG_BAD_TYPE = "Invalid file type. Please upload JPG, PNG, WebP, or GIF."
MSG_TOO_LARGE = "File too large. Maximum size is 5MB."
MSG_EMPTY = "File is empty."
MSG_UPLOAD_FAILED = "Failed to upload payment proof"
MSG_NOTHING_STAGED = "No file staged for upload"
MSG_NOTHING_PENDING = "Please upload an image first"

ProofSink = Callable[[str], Awaitable[None]]


def _extension(file: ProofFile) -> str:
    if "." in file.name:
        ext = file.name.rsplit(".", 1)[1].lower()
        if _EXT_RE.match(ext):
            return ext
    return _EXT_BY_TYPE.get(file.content_type, "bin")


class ProofSubmissionPipeline:
    def __init__(
        self,
        owner_id: str,
        invoice_id: str,
        storage: ObjectStorage,
        on_proof_ready: ProofSink,
        *,
        path_prefix: Optional[str] = None,
        file_stem: Optional[str] = None,
        owner_folder: bool = True,
        max_bytes: Optional[int] = None,
        signed_url_ttl: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if not str(owner_id or "").strip():
            raise ValueError("owner_id is required")
        if not str(invoice_id or "").strip():
            raise ValueError("invoice_id is required")
        self.owner_id = str(owner_id)
        self.invoice_id = str(invoice_id)
        self._storage = storage
        self._on_proof_ready = on_proof_ready
        self._path_prefix = (path_prefix if path_prefix is not None else settings.proof_path_prefix).strip("/")
        self._file_stem = file_stem or f"invoice-{self.invoice_id}"
        self._owner_folder = owner_folder
        self._max_bytes = max_bytes if max_bytes is not None else settings.proof_max_bytes
        self._ttl = signed_url_ttl if signed_url_ttl is not None else settings.proof_signed_url_ttl
        self._clock = clock
        self._state: ProofState = Empty()

    @classmethod
    def for_subscriber(
        cls,
        project_id: str,
        subscriber_id: str,
        record_id: str,
        storage: ObjectStorage,
        on_proof_ready: ProofSink,
        **kwargs: Any,
    ) -> "ProofSubmissionPipeline":
        """Subscriber-side proof, stored as ``{project_id}/{subscriber_id}-{ms}.{ext}``.

        ``storage`` should point at the subscriber proof bucket
        (``get_storage(settings.subscriber_proof_bucket)``).
        """
        if not str(project_id or "").strip():
            raise ValueError("project_id is required")
        return cls(
            subscriber_id,
            record_id,
            storage,
            on_proof_ready,
            path_prefix=str(project_id),
            file_stem=str(subscriber_id),
            owner_folder=False,
            **kwargs,
        )

    @property
    def state(self) -> ProofState:
        return self._state

    @property
    def stage(self) -> ProofStage:
        return self._state.stage

    @property
    def artifact(self) -> Optional[ProofArtifact]:
        return artifact_of(self.invoice_id, self._state)

    def _move(self, target: ProofState) -> None:
        source = self._state.stage
        if not is_transition_valid(source, target.stage):
            raise InvalidTransition(f"Cannot go from {source} to {target.stage}")
        self._state = target
        logger.debug(
            "proof.transition",
            extra={"extra": {"invoice_id": self.invoice_id, "from": source.value, "to": target.stage.value}},
        )

    def _storage_path(self, file: ProofFile) -> str:
        ms = to_unix_ms(self._clock())
        name = f"{self._file_stem}-{ms}.{_extension(file)}"
        owner = self.owner_id if self._owner_folder else ""
        parts = [p for p in (self._path_prefix, owner, name) if p]
        return "/".join(parts)

    def select(self, file: ProofFile) -> Previewing:
        """Stage a file. Rejected files leave the current state untouched."""
        stage = self.stage
        if stage in (ProofStage.UPLOADING, ProofStage.CONFIRMING, ProofStage.CONFIRMED):
            raise InvalidTransition(f"Cannot select a file while {stage}")
        if file.content_type not in ALLOWED_CONTENT_TYPES:
            raise ConstraintViolation(MSG_BAD_TYPE)
        if file.size > self._max_bytes:
            raise ConstraintViolation(MSG_TOO_LARGE)
        if file.size == 0:
            raise ConstraintViolation(MSG_EMPTY)

        previous = self._state
        if isinstance(previous, Uploaded):
            logger.warning(
                "proof.pending_discarded",
                extra={"extra": {"invoice_id": self.invoice_id, "storage_path": previous.storage_path}},
            )
        staged = Previewing(file=file, preview=make_preview(file.data, file.content_type))
        self._move(staged)
        return staged

    async def upload(self) -> Uploaded:
        staged = self._state
        if not isinstance(staged, Previewing):
            raise InvalidTransition(MSG_NOTHING_STAGED)

        path = self._storage_path(staged.file)
        self._move(Uploading(file=staged.file, preview=staged.preview, storage_path=path))
        with correlation_scope():
            try:
                await self._storage.put(path, staged.file.data, content_type=staged.file.content_type, overwrite=True)
                url = await self._storage.signed_url(path, self._ttl)
                if not url:
                    raise ValueError("storage returned an empty signed URL")
            except asyncio.CancelledError:
                self._move(staged)
                raise
            except Exception as e:
                self._move(Empty())
                logger.warning(
                    "proof.upload_failed",
                    extra={"extra": {"invoice_id": self.invoice_id, "storage_path": path, "err": str(e)}},
                )
                raise StorageFailure(MSG_UPLOAD_FAILED) from e

            uploaded = Uploaded(storage_path=path, retrieval_url=url, preview=staged.preview)
            self._move(uploaded)
            logger.info(
                "proof.uploaded",
                extra={"extra": {"invoice_id": self.invoice_id, "storage_path": path, "bytes": staged.file.size}},
            )
            return uploaded

    async def confirm(self) -> Confirmed:
        pending = self._state
        if not isinstance(pending, Uploaded):
            raise NoPendingUpload(MSG_NOTHING_PENDING)

        self._move(Confirming(storage_path=pending.storage_path, retrieval_url=pending.retrieval_url, preview=pending.preview))
        with correlation_scope():
            try:
                await self._on_proof_ready(pending.retrieval_url)
            except BaseException:
                # Not acknowledged: the upload stays pending and confirm() may be retried
                self._move(pending)
                logger.warning(
                    "proof.confirm_failed",
                    extra={"extra": {"invoice_id": self.invoice_id, "storage_path": pending.storage_path}},
                    exc_info=True,
                )
                raise

            done = Confirmed(storage_path=pending.storage_path, retrieval_url=pending.retrieval_url)
            self._move(done)
            logger.info(
                "proof.confirmed",
                extra={"extra": {"invoice_id": self.invoice_id, "storage_path": pending.storage_path}},
            )
            return done

    def clear(self) -> None:
        """Drop the staged or pending file. Not allowed once an upload or confirmation is in flight."""
        current = self._state
        if isinstance(current, Empty):
            return
        if not isinstance(current, (Previewing, Uploaded)):
            raise InvalidTransition(f"Cannot clear while {current.stage}")
        if isinstance(current, Uploaded):
            logger.info(
                "proof.pending_discarded",
                extra={"extra": {"invoice_id": self.invoice_id, "storage_path": current.storage_path}},
            )
        self._move(Empty())
