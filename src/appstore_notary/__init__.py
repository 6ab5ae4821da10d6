"""App Store Connect API tokens and a Notary API submission client."""

from appstore_notary.client import DEFAULT_API_BASE_URL, NotaryClient
from appstore_notary.errors import (
    ApiKeyNotFoundError,
    AppStoreConnectError,
    NotaryServerError,
    ResponseFormatError,
    SubmissionFailedError,
    SubmissionIncompleteError,
    SubmissionInvalidError,
    SubmissionRejectedError,
    SubmissionStatusError,
    SubmissionStatusUnknownError,
    TokenEncodingError,
)
from appstore_notary.key_store import default_key_search_paths, find_api_key_path
from appstore_notary.connect_token import TOKEN_AUDIENCE, ConnectTokenEncoder, verify_token
from appstore_notary.types import (
    AppStoreConnectToken,
    NewSubmissionRequest,
    NewSubmissionResponse,
    SigningIdentity,
    SubmissionLogResponse,
    SubmissionNotification,
    SubmissionResponse,
    SubmissionStatus,
    UploadCredentials,
    VerifyTokenResult,
)

__all__ = [
    "DEFAULT_API_BASE_URL",
    "TOKEN_AUDIENCE",
    "ApiKeyNotFoundError",
    "AppStoreConnectError",
    "AppStoreConnectToken",
    "ConnectTokenEncoder",
    "NewSubmissionRequest",
    "NewSubmissionResponse",
    "NotaryClient",
    "NotaryServerError",
    "ResponseFormatError",
    "SigningIdentity",
    "SubmissionFailedError",
    "SubmissionIncompleteError",
    "SubmissionInvalidError",
    "SubmissionLogResponse",
    "SubmissionNotification",
    "SubmissionRejectedError",
    "SubmissionResponse",
    "SubmissionStatus",
    "SubmissionStatusError",
    "SubmissionStatusUnknownError",
    "TokenEncodingError",
    "UploadCredentials",
    "VerifyTokenResult",
    "default_key_search_paths",
    "find_api_key_path",
    "verify_token",
]

__version__ = "0.0.1"
