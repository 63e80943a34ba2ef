"""WARC hooks for recording and replaying HTTP traffic.

- WarcCaptureHooks records every settled response to a WARC file
- WarcReplayFetch is a fetch capability serving responses from a WARC file
- Compressed WARC files (.warc.gz) are supported for both

Recording real traffic once through an interceptor and replaying it as the
original fetch of a test scope makes hook behavior testable without network
access.
"""

import hashlib
import logging
from http import HTTPStatus
from io import BytesIO
from pathlib import Path
from typing import Any, BinaryIO

from warcio.archiveiterator import ArchiveIterator
from warcio.statusandheaders import StatusAndHeaders
from warcio.warcwriter import WARCWriter

from fetch_intercept.common.abort import AbortController
from fetch_intercept.common.exceptions import TransportException
from fetch_intercept.common.normalizer import coerce_request
from fetch_intercept.data_types import Request, Response

logger = logging.getLogger(__name__)

# Custom WARC headers written alongside each response record
METHOD_HEADER = "X-HTTP-Method"
CACHE_KEY_HEADER = "X-Cache-Key"

# Response content is stored decoded, so these no longer describe it
_DROPPED_HEADERS = frozenset(
    {"content-encoding", "content-length", "transfer-encoding"}
)


def cache_key(method: str, url: str, body: bytes | str | None = None) -> str:
    """Build the replay key for a request.

    The key is a SHA256 hash of the HTTP method, the full URL (including
    query parameters) and the request body, so the same request always maps
    to the same recorded response.
    """
    if body is None:
        payload = b""
    elif isinstance(body, str):
        payload = body.encode("utf-8")
    else:
        payload = body
    combined = f"{method}|{url}|".encode() + payload
    return hashlib.sha256(combined).hexdigest()


def _status_line(response: Response) -> str:
    reason = response.reason_phrase
    if not reason:
        try:
            reason = HTTPStatus(response.status_code).phrase
        except ValueError:
            reason = "Unknown"
    return f"{response.status_code} {reason}"


class WarcCaptureHooks:
    """Hook set that records responses to a WARC file.

    Both ok and non-ok responses are recorded. Errors raised by the
    underlying call have no response and are skipped.

    Example:
        with WarcCaptureHooks(Path("traffic.warc.gz")) as capture:
            with fetch_intercept.intercepted(capture):
                await fetch_intercept.fetch("https://example.com/cases")
    """

    def __init__(self, warc_path: Path) -> None:
        """Initialize capture hooks.

        Args:
            warc_path: Path to WARC file to write to.
        """
        self.warc_path = warc_path
        self.record_count = 0
        self._file: BinaryIO | None = None
        self._writer: WARCWriter | None = None

        warc_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_writer(self) -> WARCWriter:
        if self._writer is None:
            gzip = str(self.warc_path).endswith(".gz")
            self._file = self.warc_path.open("wb")
            self._writer = WARCWriter(self._file, gzip=gzip)
            logger.info(f"Opened WARC file for writing: {self.warc_path}")

        return self._writer

    def on_request_success(
        self, response: Response, request: Request, controller: AbortController
    ) -> None:
        self.record(response, request)

    def on_request_failure(
        self,
        failure: Response | BaseException,
        request: Request,
        controller: AbortController,
    ) -> None:
        if isinstance(failure, Response):
            self.record(failure, request)

    def record(self, response: Response, request: Request) -> None:
        """Write one response record.

        Args:
            response: The response to record.
            request: The canonical request that produced it.
        """
        writer = self._get_writer()

        http_headers = StatusAndHeaders(
            statusline=_status_line(response),
            headers=[
                (name, value)
                for name, value in response.headers.items()
                if name.lower() not in _DROPPED_HEADERS
            ],
            protocol="HTTP/1.1",
        )

        # warcio expects a file-like object for payload
        record = writer.create_warc_record(
            uri=response.url,
            record_type="response",
            payload=BytesIO(response.content),
            http_headers=http_headers,
            warc_headers_dict={
                METHOD_HEADER: request.method,
                CACHE_KEY_HEADER: cache_key(
                    request.method, request.url, request.body
                ),
            },
        )

        writer.write_record(record)
        self.record_count += 1
        logger.debug(f"Recorded response to WARC: {response.url}")

    def close(self) -> None:
        """Close WARC file."""
        if self._file:
            self._file.close()
            self._file = None
            self._writer = None
            logger.info(f"Closed WARC file: {self.warc_path}")

    def __enter__(self) -> "WarcCaptureHooks":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __del__(self) -> None:
        """Ensure file is closed on deletion."""
        self.close()


class WarcReplayFetch:
    """Fetch capability that serves responses from a WARC file.

    Records written by WarcCaptureHooks are keyed by their X-Cache-Key
    header. Other WARC files are keyed by method (X-HTTP-Method, defaulting
    to GET) and target URI with an empty body.
    """

    def __init__(self, warc_path: Path) -> None:
        """Initialize the replay fetch.

        Args:
            warc_path: Path to WARC file to read from.
        """
        self.warc_path = warc_path
        self.cache_hits = 0
        self.cache_misses = 0
        self._cache: dict[str, Response] = {}
        if warc_path.exists():
            self._load_warc()
        else:
            logger.warning(
                f"WARC file not found: {warc_path}, cache will be empty"
            )

    def _load_warc(self) -> None:
        logger.info(f"Loading WARC cache from {self.warc_path}")
        with self.warc_path.open("rb") as stream:
            for record in ArchiveIterator(stream):
                if record.rec_type != "response":
                    continue

                url = record.rec_headers.get_header("WARC-Target-URI")
                if not url:
                    continue

                key = record.rec_headers.get_header(CACHE_KEY_HEADER)
                if not key:
                    method = (
                        record.rec_headers.get_header(METHOD_HEADER) or "GET"
                    )
                    key = cache_key(method, url)

                content = record.content_stream().read()
                try:
                    text = content.decode("utf-8")
                except UnicodeDecodeError:
                    text = content.decode("latin-1")

                http_headers = record.http_headers
                status_code = 200
                reason_phrase = ""
                headers: dict[str, str] = {}
                if http_headers is not None:
                    status_code = int(http_headers.get_statuscode() or 200)
                    _, _, reason_phrase = http_headers.statusline.partition(
                        " "
                    )
                    headers = dict(http_headers.headers)

                self._cache[key] = Response(
                    status_code=status_code,
                    headers=headers,
                    content=content,
                    text=text,
                    url=url,
                    reason_phrase=reason_phrase,
                )

        logger.info(f"Loaded {len(self._cache)} responses from WARC cache")

    async def __call__(self, *args: Any, **kwargs: Any) -> Response:
        """Return the recorded response for the request.

        Raises:
            RequestAbortedException: If the request's signal is aborted.
            TransportException: If nothing was recorded for the request.
        """
        request = coerce_request(*args, **kwargs)
        if request.signal is not None:
            request.signal.throw_if_aborted(request.url)

        cached = self._cache.get(
            cache_key(request.method, request.url, request.body)
        )
        if cached is None:
            self.cache_misses += 1
            logger.debug(f"WARC cache miss for {request.url}")
            raise TransportException(
                url=request.url,
                message=f"No recorded response for {request.method} {request.url}",
            )

        self.cache_hits += 1
        logger.debug(f"WARC cache hit for {request.url}")
        return Response(
            status_code=cached.status_code,
            headers=dict(cached.headers),
            content=cached.content,
            text=cached.text,
            url=cached.url,
            request=request,
            reason_phrase=cached.reason_phrase,
        )
