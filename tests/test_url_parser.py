"""Tests for URL extraction and domain normalization."""

import pytest

from phishshield.utils.url_parser import (
    domain_key,
    extract_urls,
    first_url,
    host_of,
    is_ip_literal,
    normalize_domain,
    sender_domain,
)


@pytest.mark.parametrize("url", [
    "HTTPS://WWW.Example.COM/path?x=1",
    "http://example.com",
    "example.com",
    "www.example.com/",
    "https://example.com#top",
    "example.com?ref=mail",
])
def test_normalize_domain_variants(url):
    assert normalize_domain(url) == "example.com"


def test_normalize_domain_keeps_subdomains():
    assert normalize_domain("https://login.bank.example.com/a") == "login.bank.example.com"


def test_host_of_drops_port_and_userinfo():
    assert host_of("http://user:pw@example.com:8080/x") == "example.com"
    assert host_of("http://192.168.1.1:443/login") == "192.168.1.1"


def test_is_ip_literal():
    assert is_ip_literal("10.0.0.1")
    assert not is_ip_literal("example.com")
    assert not is_ip_literal("1.2.3")


def test_extract_urls_in_order_without_duplicates():
    text = (
        "Go to https://a.example/login, then http://b.example/x. "
        "Again: https://a.example/login!"
    )
    assert extract_urls(text) == ["https://a.example/login", "http://b.example/x"]


def test_extract_urls_respects_limit():
    text = " ".join(f"http://host{i}.example" for i in range(5))
    assert len(extract_urls(text, limit=3)) == 3
    assert extract_urls("") == []


def test_first_url():
    assert first_url("see (https://bit.ly/abc) now") == "https://bit.ly/abc"
    assert first_url("no links here") is None


def test_sender_domain():
    assert sender_domain("Alice@Example.COM") == "example.com"
    assert sender_domain("no-at-sign") == ""


def test_host_of_keeps_www_and_accepts_bare_hosts():
    assert host_of("https://www.login.example.com/a") == "www.login.example.com"
    assert host_of("Example.COM/path") == "example.com"
    assert host_of("http://[::1") == "[::1"


@pytest.mark.parametrize("url", [
    "HTTPS://WWW.Example.COM/path?x=1",
    "example.com",
    "http://user@example.com:8443/login",
    "www.example.com:80",
])
def test_domain_key_variants(url):
    assert domain_key(url) == "example.com"
