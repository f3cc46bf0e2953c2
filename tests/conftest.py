"""Shared fixtures for webintel tests."""

import httpx
import pytest

from webintel.dedup.url_normalizer import normalize_url
from webintel.persistence import InMemorySessionRepository


def _html(body: str) -> str:
    return f"<html><head><title>t</title></head><body>{body}</body></html>"


@pytest.fixture
def html_page():
    """Wrap a body fragment in a minimal HTML document."""
    return _html


@pytest.fixture
def make_client():
    """
    Build an httpx.AsyncClient serving canned pages.

    ``pages`` maps URL -> body HTML, or URL -> (status, body HTML), or
    URL -> Exception instance to raise, or URL -> httpx.Response served as
    is (for non-HTML bodies such as XML). Unknown URLs return 404. The
    returned client records every requested URL in ``client.requested``.
    """
    def factory(pages):
        routes = {normalize_url(url): value for url, value in pages.items()}
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            key = normalize_url(str(request.url))
            requested.append(key)
            value = routes.get(key)
            if value is None:
                return httpx.Response(404, text="not found")
            if isinstance(value, Exception):
                raise value
            if isinstance(value, httpx.Response):
                return httpx.Response(value.status_code, headers=value.headers, content=value.content)
            if isinstance(value, tuple):
                status, body = value
                return httpx.Response(status, text=_html(body), headers={"content-type": "text/html"})
            return httpx.Response(200, text=_html(value), headers={"content-type": "text/html"})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client.requested = requested
        return client

    return factory


@pytest.fixture
def repository():
    """In-memory session repository with one session 'sess-1'."""
    repo = InMemorySessionRepository()
    repo.create_session("example.com", session_id="sess-1")
    return repo
