"""Notary API client: submission creation, status polling and developer logs.

Endpoints are documented at https://developer.apple.com/documentation/notaryapi.
The client does not poll or retry; callers decide how often to call
get_submission() and when to give up.
"""

from __future__ import annotations

import logging
import os
import re
import threading
from typing import Any, Callable, Sequence

import httpx

from appstore_notary.connect_token import ConnectTokenEncoder, unix_now
from appstore_notary.errors import (
    AppStoreConnectError,
    NotaryServerError,
    ResponseFormatError,
    SubmissionRejectedError,
)
from appstore_notary.types import (
    AppStoreConnectToken,
    JsonDict,
    NewSubmissionRequest,
    NewSubmissionResponse,
    NewSubmissionResponseData,
    SubmissionAttributes,
    SubmissionLogResponse,
    SubmissionLogResponseData,
    SubmissionNotification,
    SubmissionResponse,
    SubmissionResponseData,
    SubmissionStatus,
    UploadCredentials,
)

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://appstoreconnect.apple.com/notary/v2"
DEFAULT_TOKEN_DURATION = 300
DEFAULT_REFRESH_MARGIN = 30
DEFAULT_TIMEOUT_SECONDS = 30.0

_SHA256_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")


def _resolve_api_base_url(explicit: str | None) -> str:
    return (explicit or os.environ.get("APPSTORE_NOTARY_API_URL") or DEFAULT_API_BASE_URL).rstrip("/")


def resolve_token_duration(explicit: int | None) -> int:
    if explicit is not None:
        value = explicit
    else:
        raw = os.environ.get("APPSTORE_NOTARY_TOKEN_TTL")
        if not raw:
            return DEFAULT_TOKEN_DURATION
        try:
            value = int(raw)
        except ValueError:
            raise ValueError(f"APPSTORE_NOTARY_TOKEN_TTL must be an integer, got {raw!r}")
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError("Token duration must be a non-negative integer")
    return value


def _normalize_sha256(raw: str) -> str:
    value = raw.strip()
    if not _SHA256_PATTERN.match(value):
        raise ValueError("sha256 must be a SHA-256 digest as 64 hex characters")
    return value.lower()


def _submission_request_to_dict(request: NewSubmissionRequest) -> JsonDict:
    return JsonDict({
        "notifications": [
            {"channel": notification.channel, "target": notification.target}
            for notification in request.notifications
        ],
        "sha256": request.sha256,
        "submissionName": request.submission_name,
    })


def _envelope(raw: Any, what: str) -> tuple[JsonDict, JsonDict, JsonDict]:
    if not isinstance(raw, dict):
        raise ResponseFormatError(f"{what} is not a JSON object")
    data = raw.get("data")
    if not isinstance(data, dict):
        raise ResponseFormatError(f"{what} has no data object")
    attributes = data.get("attributes")
    if not isinstance(attributes, dict):
        raise ResponseFormatError(f"{what} has no data.attributes object")
    meta = raw.get("meta")
    return JsonDict(data), JsonDict(attributes), JsonDict(meta if isinstance(meta, dict) else {})


def _required(values: JsonDict, key: str, what: str) -> str:
    value = values.get(key)
    if not isinstance(value, str):
        raise ResponseFormatError(f"{what} is missing {key}")
    return value


def _new_submission_response_from_dict(raw: Any) -> NewSubmissionResponse:
    what = "NewSubmissionResponse"
    data, attributes, meta = _envelope(raw, what)
    credentials = UploadCredentials(
        access_key=_required(attributes, "awsAccessKeyId", what),
        secret_key=_required(attributes, "awsSecretAccessKey", what),
        session_token=_required(attributes, "awsSessionToken", what),
        bucket=_required(attributes, "bucket", what),
        object_key=_required(attributes, "object", what),
    )
    return NewSubmissionResponse(
        data=NewSubmissionResponseData(
            id=_required(data, "id", what),
            type=_required(data, "type", what),
            attributes=credentials,
        ),
        meta=meta,
    )


def _submission_response_from_dict(raw: Any) -> SubmissionResponse:
    what = "SubmissionResponse"
    data, attributes, meta = _envelope(raw, what)
    raw_status = _required(attributes, "status", what)
    return SubmissionResponse(
        data=SubmissionResponseData(
            id=_required(data, "id", what),
            type=_required(data, "type", what),
            attributes=SubmissionAttributes(
                created_date=str(attributes.get("createdDate", "")),
                name=str(attributes.get("name", "")),
                status=SubmissionStatus.parse(raw_status),
                raw_status=raw_status,
            ),
        ),
        meta=meta,
    )


def _submission_log_response_from_dict(raw: Any) -> SubmissionLogResponse:
    what = "SubmissionLogResponse"
    data, attributes, meta = _envelope(raw, what)
    return SubmissionLogResponse(
        data=SubmissionLogResponseData(
            id=_required(data, "id", what),
            type=_required(data, "type", what),
            developer_log_url=_required(attributes, "developerLogUrl", what),
        ),
        meta=meta,
    )


def _json_body(response: httpx.Response, what: str) -> Any:
    try:
        return response.json()
    except ValueError as error:
        raise ResponseFormatError(f"{what} is not valid JSON: {error}") from error


def _rejection_from_log(log: Any, response: SubmissionResponse) -> SubmissionRejectedError:
    if not isinstance(log, dict):
        return SubmissionRejectedError(response=response)

    status_code = log.get("statusCode")
    summary = log.get("statusSummary")
    return SubmissionRejectedError(
        status_code=status_code if isinstance(status_code, int) else 0,
        reason=summary if isinstance(summary, str) and summary else "Notarization error",
        response=response,
    )


class NotaryClient:
    """A client for the App Store Connect Notary API.

    One token is cached per client and shared by every call. It is minted on
    first use and re-minted only once it is within ``refresh_margin`` seconds
    of its expiry. Instances are safe to share between threads.
    """

    def __init__(
        self,
        encoder: ConnectTokenEncoder,
        *,
        base_url: str | None = None,
        http_client: httpx.Client | None = None,
        token_duration: int | None = None,
        refresh_margin: int = DEFAULT_REFRESH_MARGIN,
        clock: Callable[[], int] = unix_now,
    ):
        if refresh_margin < 0:
            raise ValueError("refresh_margin must not be negative")

        self._encoder = encoder
        self._base_url = _resolve_api_base_url(base_url)
        self._token_duration = resolve_token_duration(token_duration)
        self._refresh_margin = min(refresh_margin, self._token_duration // 2)
        self._clock = clock

        self._owns_http = http_client is None
        self._http = http_client if http_client is not None else httpx.Client(timeout=DEFAULT_TIMEOUT_SECONDS)

        self._token_lock = threading.Lock()
        self._token: AppStoreConnectToken | None = None
        self._token_expires_at = 0

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def token_duration(self) -> int:
        return self._token_duration

    def get_token(self) -> AppStoreConnectToken:
        with self._token_lock:
            now = self._clock()
            if self._token is None or now >= self._token_expires_at - self._refresh_margin:
                self._token = self._encoder.new_token(self._token_duration, now=now)
                self._token_expires_at = now + self._token_duration
            return self._token

    def _request(
        self,
        method: str,
        url: str,
        *,
        authenticate: bool = True,
        json: JsonDict | None = None,
    ) -> httpx.Response:
        headers = {"Accept": "application/json"}
        if json is not None:
            headers["Content-Type"] = "application/json"
        if authenticate:
            headers["Authorization"] = f"Bearer {self.get_token()}"

        logger.debug("Notary request: %s %s", method, url)
        return self._http.request(method, url, headers=headers, json=json)

    def _submission_url(self, submission_id: str) -> str:
        if not submission_id:
            raise ValueError("submission id is required")
        return f"{self._base_url}/submissions/{submission_id}"

    def create_submission(
        self,
        sha256: str,
        submission_name: str,
        notifications: Sequence[SubmissionNotification] = (),
    ) -> NewSubmissionResponse:
        """Register a new submission and obtain credentials for uploading it."""
        request = NewSubmissionRequest(
            sha256=_normalize_sha256(sha256),
            submission_name=submission_name,
            notifications=tuple(notifications),
        )

        response = self._request(
            "POST",
            f"{self._base_url}/submissions",
            json=_submission_request_to_dict(request),
        )

        if response.status_code != 200:
            logger.error("non-200 from Notary API NewSubmissionRequest")
            logger.error("%s", response.text)
            raise NotaryServerError(response.status_code, response.text)

        return _new_submission_response_from_dict(_json_body(response, "NewSubmissionResponse"))

    def get_submission(self, submission_id: str) -> SubmissionResponse:
        """Fetch the status of a submission. Use into_result() to interpret it."""
        response = self._request("GET", self._submission_url(submission_id))
        if not response.is_success:
            raise NotaryServerError(response.status_code, response.text)
        return _submission_response_from_dict(_json_body(response, "SubmissionResponse"))

    def check_submission(self, submission_id: str) -> SubmissionResponse:
        """Fetch a submission and raise unless it was accepted.

        Rejections are reported with the status code and summary from the
        developer log when it can be fetched.
        """
        return self.submission_result(self.get_submission(submission_id))

    def submission_result(self, submission: SubmissionResponse) -> SubmissionResponse:
        """Like SubmissionResponse.into_result(), with rejection details from the log."""
        if submission.status is not SubmissionStatus.REJECTED:
            return submission.into_result()

        try:
            log = self.get_submission_log(submission.data.id)
        except (AppStoreConnectError, httpx.HTTPError) as error:
            logger.warning("could not fetch developer log for rejected submission %s: %s", submission.data.id, error)
            raise SubmissionRejectedError(response=submission) from error

        raise _rejection_from_log(log, submission)

    def get_submission_log(self, submission_id: str) -> Any:
        """Fetch the developer log of a completed submission.

        The log URL is pre-signed, so the second request is sent without the
        bearer token. The log document is returned as decoded JSON, untouched.
        """
        response = self._request("GET", f"{self._submission_url(submission_id)}/logs")
        if not response.is_success:
            raise NotaryServerError(response.status_code, response.text)
        reference = _submission_log_response_from_dict(_json_body(response, "SubmissionLogResponse"))

        response = self._request("GET", reference.data.developer_log_url, authenticate=False)
        if not response.is_success:
            raise NotaryServerError(response.status_code, response.text)
        return _json_body(response, "developer log")

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> NotaryClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
