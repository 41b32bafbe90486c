import pytest

from surfex.classify import (
    BODY_FILTERS,
    CONTENT_FILTERS,
    HEADER_FILTERS,
    FetchedResponse,
    apply_filters,
    check_rate_limit,
    first_match,
)
from surfex.errors import IrrelevantResult, TooManyRequests


def fetched(**kw):
    base = dict(target_host="example.com", port=80, final_host="example.com", final_path="/", status=200)
    base.update(kw)
    return FetchedResponse(**base)


@pytest.mark.parametrize("status", [301, 302, 399, 404, 408, 410, 460, 521, 522, 523, 524, 598])
def test_irrelevant_statuses(status):
    assert first_match(fetched(status=status), HEADER_FILTERS) == "irrelevant-status"


@pytest.mark.parametrize("status", [200, 204, 401, 403, 500, 503])
def test_kept_statuses(status):
    assert first_match(fetched(status=status), HEADER_FILTERS) is None


def test_cross_domain_redirect():
    assert first_match(fetched(final_host="evil.example.net"), HEADER_FILTERS) == "cross-domain"
    assert first_match(fetched(final_host="EXAMPLE.com"), HEADER_FILTERS) is None


def test_status_is_checked_before_host():
    resp = fetched(status=404, final_host="elsewhere.com")
    assert first_match(resp, HEADER_FILTERS) == "irrelevant-status"


def test_content_type_allow_list():
    assert first_match(fetched(content_type="image/png"), CONTENT_FILTERS) == "content-type"
    assert first_match(fetched(content_type="application/json"), CONTENT_FILTERS) is None
    assert first_match(fetched(content_type=""), CONTENT_FILTERS) is None


@pytest.mark.parametrize("title,blocked", [
    ("Attention Required! | Cloudflare", True),
    ("Please verify you are a human", True),
    ("Verify your email", False),
    ("Human resources", False),
    ("Example", False),
])
def test_waf_challenge_titles(title, blocked):
    assert (first_match(fetched(title=title), BODY_FILTERS) == "waf-challenge") is blocked


def test_apply_filters_raises_with_reason():
    with pytest.raises(IrrelevantResult) as exc:
        apply_filters(fetched(status=404), HEADER_FILTERS)
    assert exc.value.reason == "irrelevant-status"
    apply_filters(fetched(), HEADER_FILTERS)


def test_rate_limit_is_not_irrelevant():
    with pytest.raises(TooManyRequests) as exc:
        check_rate_limit(fetched(status=429))
    assert not isinstance(exc.value, IrrelevantResult)
    assert (exc.value.host, exc.value.port) == ("example.com", 80)
    check_rate_limit(fetched(status=200))
