import pytest

from surfex.utils import extract_hosts, is_ip, normalize_path, parse_title, sanitize_segment


@pytest.mark.parametrize("entry,want", [
    ("example.com", ["example.com"]),
    ("example.com:8080", ["example.com"]),
    ("http://example.com", ["example.com"]),
    ("https://example.com", ["example.com"]),
    ("ftp://example.com", ["example.com"]),
    ("example.com/10", ["example.com"]),
    ("example.com/path", ["example.com"]),
    ("sub.example.com", ["sub.example.com"]),
    ("sub.example.com:8080", ["sub.example.com"]),
    ("ftp://sub.example.com", ["sub.example.com"]),
    ("x.x.x.com", ["x.x.x.com"]),
    ("111.111.111.111", ["111.111.111.111"]),
    ("222.222.222.222", ["222.222.222.222"]),
    ("10.0.0.0/29", ["10.0.0.1", "10.0.0.2", "10.0.0.3", "10.0.0.4", "10.0.0.5", "10.0.0.6"]),
    ("http://17.0.0.0/10", ["17.0.0.0"]),
    ("17.0.0.0/10/10", ["17.0.0.0"]),
    ("http://17.0.0.0/10/10", ["17.0.0.0"]),
    ("as1111", ["as1111"]),
    ("foo", ["foo"]),
    ("x@x", ["x"]),
    ("x@x.com", ["x.com"]),
    ("x!x", []),
    ("under_score.com", []),
    ("a..b", []),
    ("", []),
    ("http://[::1]:8080/", ["::1"]),
])
def test_extract_hosts(entry, want):
    assert extract_hosts(entry) == want


@pytest.mark.parametrize("prefix", [24, 25, 28, 29, 30])
def test_cidr_expansion_drops_network_and_broadcast(prefix):
    hosts = extract_hosts(f"192.168.10.0/{prefix}")
    assert len(hosts) == 2 ** (32 - prefix) - 2
    assert "192.168.10.0" not in hosts
    assert hosts[0] == "192.168.10.1"


def test_cidr_with_host_bits_set_uses_its_network():
    assert extract_hosts("10.0.0.5/30") == ["10.0.0.5", "10.0.0.6"]


def test_extract_hosts_rejects_overlong_label():
    assert extract_hosts("a" * 64 + ".com") == []
    assert extract_hosts("a" * 63 + ".com") == ["a" * 63 + ".com"]


def test_is_ip():
    assert is_ip("10.1.2.3")
    assert is_ip("2001:db8::1")
    assert not is_ip("example.com")


def test_normalize_path():
    assert normalize_path("") == "/"
    assert normalize_path("/") == "/"
    assert normalize_path("/a%20b/c") == "/a_b/c"
    assert normalize_path("/%2e%2e/etc/passwd") == "/_/etc/passwd"
    assert normalize_path("/x/../y") == "/x/_/y"
    assert normalize_path("/what?*") == "/what__"


def test_sanitize_segment_truncates():
    assert len(sanitize_segment("a" * 300)) == 255
    assert sanitize_segment("a\x00b|c") == "a_b_c"


def test_parse_title():
    assert parse_title(b"<html><head><title>\n  Hello  </title></head></html>") == "Hello"
    assert parse_title(b"<title>first</title><title>second</title>") == "first"
    assert parse_title(b"<p>no title</p>") == ""
    assert parse_title(b"") == ""
