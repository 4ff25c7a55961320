"""
States of the manual payment proof workflow.

One frozen dataclass per stage, so a stage only carries the data that exists
at that point (no retrieval URL before a storage path, nothing to confirm
before a retrieval URL). ``VALID_TRANSITIONS`` is the complete edge list.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Optional, Union


class ProofStage(str, Enum):
    EMPTY = "empty"
    PREVIEWING = "previewing"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ProofFile:
    name: str
    content_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class Empty:
    stage: ClassVar[ProofStage] = ProofStage.EMPTY


@dataclass(frozen=True)
class Previewing:
    stage: ClassVar[ProofStage] = ProofStage.PREVIEWING
    file: ProofFile
    preview: str = field(repr=False)


@dataclass(frozen=True)
class Uploading:
    stage: ClassVar[ProofStage] = ProofStage.UPLOADING
    file: ProofFile
    preview: str = field(repr=False)
    storage_path: str


@dataclass(frozen=True)
class Uploaded:
    stage: ClassVar[ProofStage] = ProofStage.UPLOADED
    storage_path: str
    retrieval_url: str
    preview: str = field(repr=False)


@dataclass(frozen=True)
class Confirming:
    stage: ClassVar[ProofStage] = ProofStage.CONFIRMING
    storage_path: str
    retrieval_url: str
    preview: str = field(repr=False)


@dataclass(frozen=True)
class Confirmed:
    stage: ClassVar[ProofStage] = ProofStage.CONFIRMED
    storage_path: str
    retrieval_url: str


ProofState = Union[Empty, Previewing, Uploading, Uploaded, Confirming, Confirmed]


VALID_TRANSITIONS: dict[ProofStage, frozenset[ProofStage]] = {
    ProofStage.EMPTY: frozenset({ProofStage.PREVIEWING}),
    # re-select replaces the staged file; clear() returns to EMPTY
    ProofStage.PREVIEWING: frozenset({ProofStage.PREVIEWING, ProofStage.UPLOADING, ProofStage.EMPTY}),
    # storage failure drops the preview and forces re-selection;
    # an abandoned (cancelled) upload keeps the staged file
    ProofStage.UPLOADING: frozenset({ProofStage.UPLOADED, ProofStage.EMPTY, ProofStage.PREVIEWING}),
    # re-select orphans the pending upload
    ProofStage.UPLOADED: frozenset({ProofStage.CONFIRMING, ProofStage.PREVIEWING, ProofStage.EMPTY}),
    # the invoice owner may refuse the hand-off; the upload stays pending
    ProofStage.CONFIRMING: frozenset({ProofStage.CONFIRMED, ProofStage.UPLOADED}),
    ProofStage.CONFIRMED: frozenset(),
}


def is_transition_valid(source: ProofStage, target: ProofStage) -> bool:
    return target in VALID_TRANSITIONS.get(source, frozenset())


@dataclass(frozen=True)
class ProofArtifact:
    """Read-only view of the artifact tracked by a pipeline."""

    invoice_id: str
    local_preview: Optional[str] = field(default=None, repr=False)
    storage_path: Optional[str] = None
    retrieval_url: Optional[str] = None
    confirmed: bool = False


def artifact_of(invoice_id: str, state: ProofState) -> Optional[ProofArtifact]:
    if isinstance(state, Empty):
        return None
    if isinstance(state, Previewing):
        return ProofArtifact(invoice_id=invoice_id, local_preview=state.preview)
    if isinstance(state, Uploading):
        # storage_path is reserved but not yet written
        return ProofArtifact(invoice_id=invoice_id, local_preview=state.preview)
    if isinstance(state, (Uploaded, Confirming)):
        return ProofArtifact(
            invoice_id=invoice_id,
            local_preview=state.preview,
            storage_path=state.storage_path,
            retrieval_url=state.retrieval_url,
        )
    return ProofArtifact(
        invoice_id=invoice_id,
        storage_path=state.storage_path,
        retrieval_url=state.retrieval_url,
        confirmed=True,
    )
