from __future__ import annotations

import re
from typing import Iterable, List, Mapping, Set, Tuple, Union

from bs4 import BeautifulSoup

# (header, substring in its lowercased value, technology)
HEADER_HINTS: List[Tuple[str, str, str]] = [
    ("server", "nginx", "Nginx"),
    ("server", "apache", "Apache"),
    ("server", "coyote", "Tomcat"),
    ("server", "litespeed", "LiteSpeed"),
    ("server", "microsoft-iis", "IIS"),
    ("server", "gunicorn", "Gunicorn"),
    ("server", "uwsgi", "uWSGI"),
    ("server", "cloudflare", "Cloudflare"),
    ("server", "akamai", "Akamai"),
    ("server", "vercel", "Vercel"),
    ("server", "netlify", "Netlify"),
    ("via", "cloudfront", "CloudFront"),
    ("via", "varnish", "Varnish"),
    ("x-powered-by", "express", "Express"),
    ("x-powered-by", "php", "PHP"),
    ("x-powered-by", "asp.net", "ASP.NET"),
    ("x-powered-by", "next.js", "Next.js"),
    ("x-generator", "drupal", "Drupal"),
]

# headers whose mere presence is telling
HEADER_PRESENCE = {
    "x-aspnet-version": "ASP.NET",
    "x-drupal-cache": "Drupal",
    "x-magento-tags": "Magento",
    "x-shopify-stage": "Shopify",
    "x-vercel-id": "Vercel",
    "x-nf-request-id": "Netlify",
    "x-amz-cf-id": "CloudFront",
    "cf-ray": "Cloudflare",
}

COOKIE_HINTS = {
    "PHPSESSID": "PHP",
    "ASP.NET_SessionId": "ASP.NET",
    "JSESSIONID": "Java",
    "laravel_session": "Laravel",
    "wordpress_logged_in": "WordPress",
    "wp-settings": "WordPress",
    "csrftoken": "Django",
}

GENERATOR_HINTS = ["WordPress", "Drupal", "Joomla", "Ghost", "Shopify", "Wix", "Squarespace", "Webflow", "Hugo", "Jekyll"]

BODY_HINTS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"wp-(content|includes|json)"), "WordPress"),
    (re.compile(r"drupal(settings|\.js)|/sites/default/"), "Drupal"),
    (re.compile(r"/components/com_|media/jui/"), "Joomla"),
    (re.compile(r"/_next/|__next_data__"), "Next.js"),
    (re.compile(r"/_nuxt/|window\.\$nuxt"), "Nuxt.js"),
    (re.compile(r"data-reactroot|react(-dom)?(\.production)?(\.min)?\.js"), "React"),
    (re.compile(r"data-v-[0-9a-f]{6,}|vue(\.runtime)?(\.global)?(\.min)?\.js"), "Vue.js"),
    (re.compile(r"ng-version="), "Angular"),
    (re.compile(r"jquery([.-]\d[\d.]*)?(\.min)?\.js"), "jQuery"),
    (re.compile(r"bootstrap(\.bundle)?(\.min)?\.(css|js)"), "Bootstrap"),
    (re.compile(r"cdn\.shopify\.com"), "Shopify"),
    (re.compile(r"googletagmanager\.com|google-analytics\.com"), "Google Analytics"),
    (re.compile(r"static\.hotjar\.com"), "Hotjar"),
]


def _header_values(headers: Mapping[str, str], name: str) -> Iterable[str]:
    getall = getattr(headers, "getall", None)
    if getall is not None:
        return getall(name, [])
    lowered = {k.lower(): v for k, v in headers.items()}
    v = lowered.get(name)
    if v is None:
        return []
    return v if isinstance(v, list) else [v]


def fingerprint(headers: Mapping[str, str], body: Union[bytes, str]) -> Set[str]:
    """Guess technologies from response headers and an HTML body."""
    techs: Set[str] = set()
    lowered = {k.lower(): v for k, v in headers.items()}

    for name, needle, tech in HEADER_HINTS:
        if needle in (lowered.get(name) or "").lower():
            techs.add(tech)
    for name, tech in HEADER_PRESENCE.items():
        if name in lowered:
            techs.add(tech)

    cookie_names = set()
    for c in _header_values(headers, "set-cookie"):
        cookie_names.add(c.split("=", 1)[0].strip())
    for cookie, tech in COOKIE_HINTS.items():
        if any(n.startswith(cookie) for n in cookie_names):
            techs.add(tech)

    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="ignore")
    if not body:
        return techs

    html_l = body.lower()
    for pattern, tech in BODY_HINTS:
        if pattern.search(html_l):
            techs.add(tech)

    soup = BeautifulSoup(body, "html.parser")
    gen = soup.find("meta", attrs={"name": re.compile("^generator$", re.I)})
    if gen and gen.get("content"):
        g = gen["content"].lower()
        for tech in GENERATOR_HINTS:
            if tech.lower() in g:
                techs.add(tech)

    return techs
