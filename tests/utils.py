"""Helpers shared by the test modules."""

from fetch_intercept.data_types import Request, Response


def make_response(
    status_code: int = 200,
    url: str = "http://x/y",
    text: str = "",
    headers: dict[str, str] | None = None,
) -> Response:
    """Build a Response without going through a transport."""
    return Response(
        status_code=status_code,
        headers=headers or {},
        content=text.encode("utf-8"),
        text=text,
        url=url,
    )


class StubFetch:
    """Fetch capability that records its requests and returns a fixed outcome.

    It does not look at the request's signal, so tests can observe the
    signal state the pipeline handed to the transport.
    """

    def __init__(
        self,
        response: Response | None = None,
        error: BaseException | None = None,
    ) -> None:
        self.response = response or make_response()
        self.error = error
        self.calls: list[Request] = []

    async def __call__(self, request: Request) -> Response:
        self.calls.append(request)
        if self.error is not None:
            raise self.error
        return self.response
