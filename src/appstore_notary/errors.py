"""Exception hierarchy for the App Store Connect notary SDK."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from appstore_notary.types import SubmissionResponse


class AppStoreConnectError(Exception):
    """Base class for every error raised by this SDK."""


class ApiKeyNotFoundError(AppStoreConnectError):
    """No AuthKey_<id>.p8 file was found in any search location."""

    def __init__(self, key_id: str, searched: Sequence[str] = ()):
        self.key_id = key_id
        self.searched = list(searched)
        locations = ", ".join(self.searched) or "<none>"
        super().__init__(f"App Store Connect API key {key_id} not found (searched: {locations})")


class TokenEncodingError(AppStoreConnectError):
    """Private key material is unusable or JWT signing failed."""


class NotaryServerError(AppStoreConnectError):
    """The Notary API answered with an unexpected HTTP status."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Notary API rejected the request (HTTP {status_code})")


class ResponseFormatError(AppStoreConnectError):
    """A response body did not match the expected JSON envelope."""


class SubmissionStatusError(AppStoreConnectError):
    """A submission is not in the Accepted state."""

    def __init__(self, message: str, response: SubmissionResponse | None = None):
        self.response = response
        super().__init__(message)

    @property
    def submission_id(self) -> str | None:
        return self.response.data.id if self.response is not None else None


class SubmissionIncompleteError(SubmissionStatusError):
    """Submission is still in progress; polling again may succeed."""

    def __init__(self, response: SubmissionResponse | None = None):
        super().__init__("notarization is still in progress", response)


class SubmissionFailedError(SubmissionStatusError):
    """Submission reached a terminal, non-successful status."""


class SubmissionInvalidError(SubmissionFailedError):
    def __init__(self, response: SubmissionResponse | None = None):
        super().__init__("notarization submission is invalid", response)


class SubmissionRejectedError(SubmissionFailedError):
    def __init__(
        self,
        status_code: int = 0,
        reason: str = "Notarization error",
        response: SubmissionResponse | None = None,
    ):
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"notarization rejected ({status_code}): {reason}", response)


class SubmissionStatusUnknownError(SubmissionFailedError):
    """The service reported a status this SDK does not recognize."""

    def __init__(self, status: str, response: SubmissionResponse | None = None):
        self.status = status
        super().__init__(f"notarization ended with unrecognized status {status!r}", response)
