"""Unit tests for URL normalization and domain matching."""

import pytest

from webintel.dedup.url_normalizer import (
    bare_domain,
    is_same_domain,
    normalize_url,
    to_absolute_url,
)


class TestNormalizeUrl:
    """Tests for normalize_url."""

    def test_parameter_order_fragment_and_trailing_slash_are_ignored(self):
        """URLs differing only in param order, fragment and slash are equal."""
        assert normalize_url("https://a.com/x/?b=2&a=1") == normalize_url("https://a.com/x?a=1&b=2#frag")

    def test_forces_https(self):
        assert normalize_url("http://example.com/about") == "https://example.com/about"

    def test_root_path_becomes_slash(self):
        assert normalize_url("https://example.com") == "https://example.com/"
        assert normalize_url("https://example.com/") == "https://example.com/"

    def test_sorts_query_parameters(self):
        assert normalize_url("https://example.com/s?z=1&a=2&m=3") == "https://example.com/s?a=2&m=3&z=1"

    def test_repeated_keys_keep_their_order(self):
        assert normalize_url("https://example.com/s?b=1&a=2&a=1") == "https://example.com/s?a=2&a=1&b=1"

    def test_host_is_lowercased(self):
        assert normalize_url("https://Example.COM/Path") == "https://example.com/Path"

    def test_different_paths_stay_different(self):
        assert normalize_url("https://a.com/x") != normalize_url("https://a.com/y")
        assert normalize_url("https://a.com/x") != normalize_url("https://a.com/x/y")

    @pytest.mark.parametrize("url", [
        "https://a.com/x/?b=2&a=1#top",
        "http://A.com//double//",
        "https://a.com/?q",
        "https://a.com:8443/p?x=1&&y=2",
        "not a url/#frag",
        "",
    ])
    def test_idempotent(self, url):
        """Normalizing twice gives the same result as normalizing once."""
        once = normalize_url(url)
        assert normalize_url(once) == once

    def test_malformed_input_never_raises(self):
        """Unparseable input gets string-level normalization."""
        assert normalize_url("http://[::1/broken/#x") == "https://[::1/broken"
        assert normalize_url("relative/path/#section") == "relative/path"


class TestDomainHelpers:
    """Tests for is_same_domain, bare_domain and to_absolute_url."""

    def test_exact_and_www_match(self):
        assert is_same_domain("https://example.com/a", "example.com")
        assert is_same_domain("https://www.example.com/a", "example.com")
        assert is_same_domain("https://example.com/a", "www.example.com")

    def test_subdomain_match(self):
        assert is_same_domain("https://blog.example.com/post", "example.com")

    def test_lookalike_domains_do_not_match(self):
        assert not is_same_domain("https://notexample.com/", "example.com")
        assert not is_same_domain("https://other-domain.com/x", "example.com")
        assert not is_same_domain("https://example.com.evil.net/", "example.com")

    def test_bare_domain(self):
        assert bare_domain("https://www.Example.com/path") == "example.com"
        assert bare_domain("example.com") == "example.com"

    def test_to_absolute_url(self):
        assert to_absolute_url("/about", "https://example.com/team/") == "https://example.com/about"
        assert to_absolute_url("//cdn.example.com/x", "https://example.com") == "https://cdn.example.com/x"
