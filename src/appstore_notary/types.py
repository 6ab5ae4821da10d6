"""Shared datatypes for App Store Connect tokens and the Notary API."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePrivateKey

from appstore_notary.errors import (
    SubmissionIncompleteError,
    SubmissionInvalidError,
    SubmissionRejectedError,
    SubmissionStatusUnknownError,
)

# A JWT for use with the App Store Connect API.
AppStoreConnectToken = str


@dataclass(frozen=True)
class SigningIdentity:
    key_id: str
    issuer_id: str
    private_key: EllipticCurvePrivateKey = field(repr=False, compare=False)


@dataclass(frozen=True)
class VerifyTokenResult:
    valid: bool
    key_id: str | None = None
    issuer_id: str | None = None
    issued_at: int | None = None
    expires_at: int | None = None
    reason: str | None = None


@dataclass(frozen=True)
class SubmissionNotification:
    """Where the notary service reports completion, e.g. channel="webhook"."""

    channel: str
    target: str


@dataclass(frozen=True)
class NewSubmissionRequest:
    sha256: str
    submission_name: str
    notifications: tuple[SubmissionNotification, ...] = ()


@dataclass(frozen=True)
class UploadCredentials:
    """Temporary S3 credentials for uploading the artifact of a new submission."""

    access_key: str
    secret_key: str = field(repr=False)
    session_token: str = field(repr=False)
    bucket: str
    object_key: str


@dataclass(frozen=True)
class NewSubmissionResponseData:
    id: str
    type: str
    attributes: UploadCredentials


@dataclass(frozen=True)
class NewSubmissionResponse:
    data: NewSubmissionResponseData
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def upload_credentials(self) -> UploadCredentials:
        return self.data.attributes


class SubmissionStatus(enum.Enum):
    ACCEPTED = "Accepted"
    IN_PROGRESS = "In Progress"
    INVALID = "Invalid"
    REJECTED = "Rejected"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, raw: str) -> SubmissionStatus:
        for status in cls:
            if status is not cls.UNKNOWN and status.value == raw:
                return status
        return cls.UNKNOWN

    @property
    def is_terminal(self) -> bool:
        return self is not SubmissionStatus.IN_PROGRESS

    @property
    def is_success(self) -> bool:
        return self is SubmissionStatus.ACCEPTED


@dataclass(frozen=True)
class SubmissionAttributes:
    created_date: str
    name: str
    status: SubmissionStatus
    raw_status: str


@dataclass(frozen=True)
class SubmissionResponseData:
    id: str
    type: str
    attributes: SubmissionAttributes


@dataclass(frozen=True)
class SubmissionResponse:
    data: SubmissionResponseData
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def status(self) -> SubmissionStatus:
        return self.data.attributes.status

    def into_result(self) -> SubmissionResponse:
        """Return self if accepted, otherwise raise the error matching the status.

        In Progress raises SubmissionIncompleteError, which is not a
        SubmissionFailedError: callers may poll again. Every other non-accepted
        status is terminal.
        """
        status = self.data.attributes.status
        if status is SubmissionStatus.ACCEPTED:
            return self
        if status is SubmissionStatus.IN_PROGRESS:
            raise SubmissionIncompleteError(self)
        if status is SubmissionStatus.INVALID:
            raise SubmissionInvalidError(self)
        if status is SubmissionStatus.REJECTED:
            raise SubmissionRejectedError(response=self)
        raise SubmissionStatusUnknownError(self.data.attributes.raw_status, self)


@dataclass(frozen=True)
class SubmissionLogResponseData:
    id: str
    type: str
    developer_log_url: str


@dataclass(frozen=True)
class SubmissionLogResponse:
    data: SubmissionLogResponseData
    meta: dict[str, Any] = field(default_factory=dict)


class JsonDict(dict[str, Any]):
    """Typed alias for JSON dictionaries used in internal serialization."""
