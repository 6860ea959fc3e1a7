"""
Shared fixtures: a fake HTTP session and small form-table pages.

The fake session stands in for requests.Session in the prober so no test
touches the network; it records every call for assertions.
"""

import threading

import pytest


class FakeResponse:
    def __init__(self, status_code: int):
        self.status_code = status_code
        self.closed = False

    def close(self):
        self.closed = True


class FakeSession:
    """
    requests-style session answering from lookup tables.

    statuses:       url -> status for both HEAD and GET
    head_statuses:  url -> status for HEAD only (overrides statuses)
    errors:         (method, url) -> exception to raise
    default:        status for anything not listed
    """

    def __init__(self, statuses=None, head_statuses=None, errors=None, default=200):
        self.statuses = statuses or {}
        self.head_statuses = head_statuses or {}
        self.errors = errors or {}
        self.default = default
        self.calls = []
        self._lock = threading.Lock()

    def _respond(self, method, url, kwargs):
        with self._lock:
            self.calls.append((method, url, kwargs))
        error = self.errors.get((method, url))
        if error is not None:
            raise error
        if method == "HEAD" and url in self.head_statuses:
            return FakeResponse(self.head_statuses[url])
        return FakeResponse(self.statuses.get(url, self.default))

    def head(self, url, **kwargs):
        return self._respond("HEAD", url, kwargs)

    def get(self, url, **kwargs):
        return self._respond("GET", url, kwargs)

    def urls(self, method=None):
        return [url for m, url, _ in self.calls if method is None or m == method]


def build_page(rows, lang="en", charset="utf-8", title="Schedule 2"):
    """
    A form table page with one <tbody>; rows are lists of cell inner markup.
    """
    body = "".join(
        "\n    <tr>" + "".join(f"\n      <td>{cell}</td>" for cell in row) + "\n    </tr>"
        for row in rows
    )
    return (
        f'<!DOCTYPE html>\n<html lang="{lang}">\n<head>\n'
        f'<meta charset="{charset}">\n<title>{title}</title>\n</head>\n<body>\n'
        f'<table class="table table-bordered">\n'
        f'  <thead><tr><th>Year</th><th>PDF</th><th>Fillable PDF</th></tr></thead>\n'
        f'  <tbody>{body}\n  </tbody>\n</table>\n'
        f'<p><a href="https://ex/outside.pdf">Other forms</a></p>\n</body>\n</html>\n'
    )


EN_NA = '<span class="small text-muted">Not available</span>'
FR_NA = '<span class="small text-muted">Pas disponible</span>'


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def sample_page():
    """Two data rows with mixed markup inside the cells."""
    return build_page([
        ["2023",
         '<a href="https://ex/5000-s2-23e.pdf">5000-S2 <em>(2023)</em></a>',
         EN_NA],
        ["<strong>2022</strong>",
         '<a href=" https://ex/5000-s2-22e.pdf ">PDF <span class="wb-inv">2022</span></a>',
         "<a class=\"btn\" href='https://ex/5000-s2-fill-22e.pdf'>Fill</a>"],
    ])
