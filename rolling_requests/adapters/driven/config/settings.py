"""Configuration loading from environment variables and files."""

import json
import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, HttpUrl, TypeAdapter, ValidationError, field_validator

from rolling_requests.builder import DEFAULT_SIMULTANEOUS_LIMIT
from rolling_requests.ports.http import Method, Request

__all__ = ["RequestSpec", "Settings", "load_settings"]

load_dotenv()

logger = logging.getLogger(__name__)
_http_url_adapter = TypeAdapter(HttpUrl)

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


class RequestSpec(BaseModel):
    """One entry of the requests file.

    Attributes:
        url: Target http(s) URL.
        method: HTTP verb (case-insensitive).
        headers: Request headers.
        body: Optional text body, sent UTF-8 encoded.
        extra_info: Optional tag echoed in the outcome log.
    """

    url: str = Field(..., description="Target http(s) URL.")
    method: str = Field(default="GET", description="HTTP verb.")
    headers: dict[str, str] = Field(default_factory=dict, description="Request headers.")
    body: str | None = Field(default=None, description="Optional text body.")
    extra_info: str | None = Field(default=None, description="Caller tag.")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate that url is a valid HTTP(S) URL.

        Raises:
            ValueError: If URL is invalid or not http(s).
        """
        try:
            url = _http_url_adapter.validate_python(v)
        except ValidationError as e:
            raise ValueError(f"Invalid request url: {e}") from e
        if url.scheme not in ("http", "https"):
            raise ValueError("Only http:// and https:// urls allowed")
        return v

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        return Method.parse(v).value

    def to_request(self) -> Request:
        """Build the immutable Request for this entry."""
        return Request(
            url=self.url,
            method=Method.parse(self.method),
            headers=self.headers,
            body=self.body,
            extra_info=self.extra_info,
        )


class Settings(BaseModel):
    """Runtime configuration for a batch run.

    Attributes:
        simultaneous_limit: Maximum requests in flight (must be positive).
        timeout_sec: Optional per-request timeout in seconds.
        fail_on_status: Report status >= 400 as failures.
        requests_file_path: Path to JSON file with the requests to send.
        requests: Request entries (loaded from file).
    """

    simultaneous_limit: int = Field(
        default=DEFAULT_SIMULTANEOUS_LIMIT, gt=0, description="Maximum requests in flight."
    )
    timeout_sec: float | None = Field(default=None, gt=0, description="Per-request timeout.")
    fail_on_status: bool = Field(default=False, description="Treat status >= 400 as failure.")
    requests_file_path: str = Field(..., description="Path to JSON file containing requests.")
    requests: list[RequestSpec] = Field(
        default_factory=list,
        description="Request entries (populated from file).",
    )

    def load_requests(self) -> None:
        """Load and validate request entries from JSON file.

        Raises:
            ValueError: If file not found, invalid JSON, wrong format, or empty.
        """
        try:
            with open(self.requests_file_path) as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ValueError(f"Requests file not found: {self.requests_file_path}") from e
        except json.JSONDecodeError as e:
            raise ValueError(
                f"Requests file contains invalid JSON: {self.requests_file_path}"
            ) from e

        if not isinstance(data, list):
            raise ValueError("Requests file must be a JSON array")
        if not data:
            raise ValueError("Requests file is empty")
        if not all(isinstance(x, dict) for x in data):
            raise ValueError("Each request must be a JSON object")

        try:
            self.requests = [RequestSpec.model_validate(x) for x in data]
        except ValidationError as e:
            raise ValueError(f"Invalid request entry: {e}") from e
        logger.debug(f"Loaded {len(data)} requests from {self.requests_file_path}")

    def build_requests(self) -> list[Request]:
        return [spec.to_request() for spec in self.requests]


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise RuntimeError(f"{name} must be a boolean (got: {raw})")


def load_settings() -> Settings:
    """Load and validate settings from environment and files.

    Required environment variables:
    - REQUESTS_FILE_PATH: Path to JSON file with the requests to send.

    Optional:
    - SIMULTANEOUS_LIMIT: Positive integer, default 10.
    - REQUEST_TIMEOUT_SECONDS: Positive number, no timeout when unset.
    - FAIL_ON_STATUS: Boolean, default false.

    Returns:
        Validated Settings object.

    Raises:
        RuntimeError: If required env vars missing or invalid.
        ValueError: If configuration is invalid.
    """
    try:
        requests_path = os.environ["REQUESTS_FILE_PATH"]
    except KeyError as e:
        raise RuntimeError(f"Missing required environment variable: {e.args[0]}") from e

    limit_raw = os.getenv("SIMULTANEOUS_LIMIT", str(DEFAULT_SIMULTANEOUS_LIMIT))
    try:
        simultaneous_limit = int(limit_raw)
        if simultaneous_limit <= 0:
            raise ValueError("Must be positive")
    except ValueError as e:
        raise RuntimeError(
            f"SIMULTANEOUS_LIMIT must be a positive integer (got: {limit_raw})"
        ) from e

    timeout_raw = os.getenv("REQUEST_TIMEOUT_SECONDS")
    timeout_sec: float | None = None
    if timeout_raw:
        try:
            timeout_sec = float(timeout_raw)
            if timeout_sec <= 0:
                raise ValueError("Must be positive")
        except ValueError as e:
            raise RuntimeError(
                f"REQUEST_TIMEOUT_SECONDS must be a positive number (got: {timeout_raw})"
            ) from e

    fail_on_status = _parse_bool("FAIL_ON_STATUS", os.getenv("FAIL_ON_STATUS", "false"))

    settings = Settings(
        simultaneous_limit=simultaneous_limit,
        timeout_sec=timeout_sec,
        fail_on_status=fail_on_status,
        requests_file_path=requests_path,
    )

    settings.load_requests()

    logger.info(
        f"Batch configured: limit={settings.simultaneous_limit}, "
        f"timeout={settings.timeout_sec or '<none>'}, "
        f"fail_on_status={settings.fail_on_status}, "
        f"requests={len(settings.requests)}"
    )

    return settings
