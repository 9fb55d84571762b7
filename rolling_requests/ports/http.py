"""HTTP port definitions (DTOs)."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Union

from multidict import CIMultiDict, CIMultiDictProxy

from rolling_requests.ports.errors import ErrorKind

__all__ = [
    "Method",
    "FormField",
    "Request",
    "HttpResponse",
    "Failure",
    "Outcome",
    "freeze_headers",
]

HeadersLike = Union[Mapping[str, str], Iterable[tuple[str, str]]]


class Method(str, Enum):
    """HTTP verb of a request."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"

    @classmethod
    def parse(cls, value: str | Method) -> Method:
        """Return the Method for a (case-insensitive) verb name.

        Raises:
            ValueError: If the verb is not supported.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError as e:
            raise ValueError(f"Unsupported HTTP method: {value!r}") from e


def freeze_headers(headers: HeadersLike | None) -> CIMultiDictProxy[str]:
    """Build a read-only, case-insensitive header mapping.

    A repeated name keeps the last value written.
    """
    merged: CIMultiDict[str] = CIMultiDict()
    if headers is not None:
        items = headers.items() if isinstance(headers, Mapping) else headers
        for name, value in items:
            merged[name] = value
    return CIMultiDictProxy(merged)


@dataclass(slots=True, frozen=True)
class FormField:
    """One part of a multipart form.

    Attributes:
        name: Form field name.
        value: Text value, or file content for file parts.
        filename: Set for file parts only.
    """

    name: str
    value: str | bytes
    filename: str | None = None


@dataclass(slots=True, frozen=True, eq=False)
class Request:
    """Descriptor of one HTTP call to make.

    Immutable once constructed. Equality is identity: two requests with the
    same fields are still distinct entries of a batch.

    Attributes:
        url: Target URL (non-empty).
        method: HTTP verb.
        headers: Case-insensitive, read-only header mapping.
        body: Raw request body.
        form: Multipart form parts; exclusive with body.
        extra_info: Caller tag, returned untouched on the outcome.
    """

    url: str
    method: Method = Method.GET
    headers: CIMultiDictProxy[str] = field(default_factory=lambda: freeze_headers(None))
    body: bytes | None = None
    form: tuple[FormField, ...] = ()
    extra_info: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.url, str) or not self.url.strip():
            raise ValueError("Request url must be a non-empty string")
        object.__setattr__(self, "method", Method.parse(self.method))
        if not isinstance(self.headers, CIMultiDictProxy):
            object.__setattr__(self, "headers", freeze_headers(self.headers))
        if isinstance(self.body, str):
            object.__setattr__(self, "body", self.body.encode("utf-8"))
        object.__setattr__(self, "form", tuple(self.form))
        if self.body is not None and self.form:
            raise ValueError("Request cannot carry both a body and form data")

    def with_headers(self, headers: HeadersLike) -> Request:
        """Return a copy with headers merged over the current ones."""
        merged = CIMultiDict(self.headers)
        merged.update(freeze_headers(headers))
        return replace(self, headers=CIMultiDictProxy(merged))

    def with_body(self, body: bytes | str | None) -> Request:
        """Return a copy carrying the given body."""
        return replace(self, body=body)

    def with_form_text(self, name: str, value: str) -> Request:
        """Return a copy with one more text form field."""
        return replace(self, form=(*self.form, FormField(name=name, value=value)))

    def with_form_file(self, name: str, path: str | Path) -> Request:
        """Return a copy with one more file form field.

        The file is read immediately.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        file_path = Path(path)
        part = FormField(name=name, value=file_path.read_bytes(), filename=file_path.name)
        return replace(self, form=(*self.form, part))


@dataclass(slots=True, frozen=True)
class HttpResponse:
    """Response received for a request.

    Attributes:
        status: HTTP status code.
        headers: Case-insensitive response headers.
        body: Full response body.
    """

    status: int
    headers: CIMultiDictProxy[str] = field(default_factory=lambda: freeze_headers(None))
    body: bytes = b""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding, errors="replace")


@dataclass(slots=True, frozen=True)
class Failure:
    """Why a request produced no usable response."""

    kind: ErrorKind
    message: str


@dataclass(slots=True, frozen=True)
class Outcome:
    """Result of dispatching one request of a batch.

    Exactly one of response / failure is set.

    Attributes:
        index: Position of the request in the drained batch.
        request: The request dispatched.
        response: Response, when the dispatch succeeded.
        failure: Failure descriptor, when it did not.
    """

    index: int
    request: Request
    response: HttpResponse | None = None
    failure: Failure | None = None

    def __post_init__(self) -> None:
        if (self.response is None) == (self.failure is None):
            raise ValueError("Outcome needs exactly one of response or failure")

    @property
    def ok(self) -> bool:
        return self.response is not None
