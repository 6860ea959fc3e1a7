"""Tests for the URL prober and its per-run cache."""

import requests

from conftest import FakeSession
from form_tables.config import Settings
from form_tables.prober import ProbeCache, URLProber
from form_tables.schemas import ProbeMethod, ProbeResult

URL = "https://ex/5000-s2-23e.pdf"


class TestProbe:
    def test_blank_url_makes_no_request(self, fake_session):
        prober = URLProber(session=fake_session)
        for blank in ("", "   "):
            result = prober.probe(blank)
            assert result.is_live is False
            assert result.error == "empty URL"
            assert result.method is None
        assert fake_session.calls == []

    def test_head_success(self, fake_session):
        result = URLProber(session=fake_session).probe(URL)
        assert result.is_live is True
        assert result.status_code == 200
        assert result.method is ProbeMethod.HEAD
        assert fake_session.urls() == [URL]

    def test_redirect_status_is_live(self):
        session = FakeSession(statuses={URL: 301})
        assert URLProber(session=session).probe(URL).is_live is True

    def test_head_rejected_falls_back_to_get(self):
        session = FakeSession(head_statuses={URL: 405}, statuses={URL: 200})
        result = URLProber(session=session).probe(URL)
        assert result.is_live is True
        assert result.method is ProbeMethod.GET
        assert [m for m, _, _ in session.calls] == ["HEAD", "GET"]

    def test_get_reads_headers_only(self):
        session = FakeSession(head_statuses={URL: 403})
        prober = URLProber(Settings(timeout=7), session=session)
        prober.probe(URL)
        _, _, kwargs = session.calls[1]
        assert kwargs["stream"] is True
        assert kwargs["timeout"] == 7
        assert kwargs["allow_redirects"] is True

    def test_not_found(self):
        session = FakeSession(statuses={URL: 404})
        result = URLProber(session=session).probe(URL)
        assert result.is_live is False
        assert result.status_code == 404
        assert result.is_not_found
        assert result.error == "HTTP 404"
        assert len(session.calls) == 2

    def test_transport_errors_never_raise(self):
        session = FakeSession(errors={
            ("HEAD", URL): requests.ConnectionError("refused"),
            ("GET", URL): requests.Timeout("slow"),
        })
        result = URLProber(Settings(timeout=10), session=session).probe(URL)
        assert result.is_live is False
        assert result.status_code is None
        assert "timeout" in result.error
        assert len(session.calls) == 2

    def test_unexpected_session_error_never_raises(self):
        session = FakeSession(errors={("HEAD", URL): RuntimeError("boom")})
        prober = URLProber(session=session)
        result = prober.probe(URL)
        assert result.is_live is False
        assert "boom" in result.error
        assert prober.probe(URL) is result

    def test_head_error_then_get_success(self):
        session = FakeSession(errors={("HEAD", URL): requests.ConnectionError("reset")})
        result = URLProber(session=session).probe(URL)
        assert result.is_live is True
        assert result.method is ProbeMethod.GET

    def test_server_error_is_dead_but_not_404(self):
        session = FakeSession(statuses={URL: 503})
        result = URLProber(session=session).probe(URL)
        assert result.is_live is False
        assert not result.is_not_found


class TestResolution:
    def test_relative_without_base(self, fake_session):
        result = URLProber(session=fake_session).probe("/content/dam/5000-s2-23e.pdf")
        assert result.is_live is False
        assert "base_url" in result.error
        assert fake_session.calls == []

    def test_relative_with_base(self, fake_session):
        prober = URLProber(Settings(base_url="https://www.ex.ca/forms/"), session=fake_session)
        result = prober.probe("pdf/5000-s2-23e.pdf")
        assert result.is_live is True
        # The cache and result keep the href as written
        assert result.url == "pdf/5000-s2-23e.pdf"
        assert fake_session.urls() == ["https://www.ex.ca/forms/pdf/5000-s2-23e.pdf"]

    def test_malformed_url_is_recovered(self, fake_session):
        result = URLProber(session=fake_session).probe("http://[bad/5000-x.pdf")
        assert result.is_live is False
        assert "malformed URL" in result.error
        assert fake_session.calls == []

    def test_unsupported_scheme(self, fake_session):
        result = URLProber(session=fake_session).probe("mailto:forms@ex.ca")
        assert result.is_live is False
        assert "scheme" in result.error
        assert fake_session.calls == []


class TestCache:
    def test_second_probe_served_from_cache(self):
        session = FakeSession(statuses={URL: 404})
        prober = URLProber(session=session)
        first = prober.probe(URL)
        calls = len(session.calls)
        second = prober.probe(URL)
        assert second is first
        assert len(session.calls) == calls
        assert prober.requests_sent == calls

    def test_cache_is_keyed_by_exact_string(self, fake_session):
        prober = URLProber(session=fake_session)
        prober.probe(URL)
        prober.probe(URL + "?v=2")
        assert len(prober.cache) == 2

    def test_shared_cache_between_probers(self, fake_session):
        cache = ProbeCache()
        URLProber(session=fake_session, cache=cache).probe(URL)
        other = FakeSession()
        URLProber(session=other, cache=cache).probe(URL)
        assert other.calls == []

    def test_first_stored_result_wins(self):
        cache = ProbeCache()
        session = FakeSession()
        a = URLProber(session=session, cache=cache).probe(URL)
        stored = cache.put(URL, ProbeResult(url=URL, is_live=False))
        assert stored is a

    def test_probe_many_deduplicates(self):
        urls = [f"https://ex/{n}.pdf" for n in range(6)]
        session = FakeSession(statuses={urls[2]: 404})
        prober = URLProber(Settings(max_workers=4), session=session)
        results = prober.probe_many(urls + urls[:3])
        assert list(results) == urls
        assert results[urls[2]].is_live is False
        assert sorted(session.urls("HEAD")) == sorted(urls)
        assert session.urls("GET") == [urls[2]]

    def test_probe_many_sequential(self, fake_session):
        prober = URLProber(session=fake_session)
        prober.probe_many([URL, URL])
        assert fake_session.urls() == [URL]
