from multidict import CIMultiDict

from surfex.tech import fingerprint


def test_fingerprint_headers_and_html():
    headers = {"Server": "nginx/1.25", "X-Powered-By": "PHP/8.2.1"}
    body = (b'<html><head><meta name="generator" content="WordPress 6.4">'
            b'<script src="/wp-includes/js/jquery/jquery.min.js"></script></head></html>')
    techs = fingerprint(headers, body)
    assert {"Nginx", "PHP", "WordPress", "jQuery"} <= techs


def test_fingerprint_cookies_from_multidict():
    headers = CIMultiDict()
    headers.add("Set-Cookie", "csrftoken=abc; Path=/")
    headers.add("Set-Cookie", "JSESSIONID=xyz; Path=/")
    assert {"Django", "Java"} <= fingerprint(headers, b"")


def test_fingerprint_nothing():
    assert fingerprint({}, b"<html><body>plain</body></html>") == set()
