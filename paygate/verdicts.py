"""Request and verdict types shared by the credential and key validators.

A verdict is produced once per validation call and never merged with another.
``kind`` is kept for logs and callers that branch on it; the wire form from
``as_wire()`` only carries ``valid``, the optional human-readable ``error`` and
the identity fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from paygate.errors import FailureKind


@dataclass(frozen=True)
class ValidationRequest:
    bot_token: str = field(repr=False)
    channel_id: str


@dataclass(frozen=True)
class ValidationSubject:
    bot_username: str
    channel_title: str


@dataclass(frozen=True)
class ValidationVerdict:
    valid: bool
    error: Optional[str] = None
    subject: Optional[ValidationSubject] = None
    kind: Optional[FailureKind] = None

    @classmethod
    def ok(cls, subject: ValidationSubject) -> "ValidationVerdict":
        return cls(valid=True, subject=subject)

    @classmethod
    def failed(cls, error: str, kind: FailureKind) -> "ValidationVerdict":
        return cls(valid=False, error=error, kind=kind)

    def as_wire(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"valid": self.valid}
        if self.error is not None:
            out["error"] = self.error
        if self.subject is not None:
            out["bot"] = {"username": self.subject.bot_username}
            out["channel"] = {"title": self.subject.channel_title}
        return out


@dataclass(frozen=True)
class KeyCheckRequest:
    secret_key: str = field(repr=False)


@dataclass(frozen=True)
class KeyCheckVerdict:
    valid: bool
    error: Optional[str] = None
    account_name: Optional[str] = None
    account_id: Optional[str] = None
    live_mode: Optional[bool] = None
    kind: Optional[FailureKind] = None

    @classmethod
    def failed(cls, error: str, kind: FailureKind) -> "KeyCheckVerdict":
        return cls(valid=False, error=error, kind=kind)

    def as_wire(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"valid": self.valid}
        if self.error is not None:
            out["error"] = self.error
        if self.valid:
            out["account_name"] = self.account_name
            out["account_id"] = self.account_id
            out["livemode"] = bool(self.live_mode)
        return out
