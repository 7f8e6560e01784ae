import json
import threading

import httpx
import pytest

from websearch_orchestrator.core import QuotaLedger
from websearch_orchestrator.models import SearchOptions, SearchResult, TimeRange
from websearch_orchestrator.search import (
    BraveSearchProvider,
    ProviderChain,
    SearchProvider,
    SearxngProvider,
    build_provider_query,
    filter_by_domains,
    validate_instance_url,
)
from websearch_orchestrator.utils import (
    AuthenticationError,
    ConfigurationError,
    MalformedResponseError,
    RateLimitError,
)

from conftest import brave_payload, searxng_payload

BRAVE_HOST = "api.search.brave.com"

HIT = SearchResult(title="Hit", url="https://example.com/hit", snippet="snippet")


def _chain(client, ledger, api_key="brave-test-key-123", instances=("https://searx.one", "https://searx.two")):
    providers = [BraveSearchProvider(api_key, ledger, monthly_limit=10, client=client)]
    providers += [SearxngProvider(url, ledger=ledger, client=client) for url in instances]
    return ProviderChain(providers)


def test_brave_request_and_parsing(make_client, store, clock):
    client = make_client(lambda request: httpx.Response(200, json=brave_payload(HIT)))
    ledger = QuotaLedger(store, clock=clock)
    provider = BraveSearchProvider("brave-test-key-123", ledger, client=client)

    results = provider.execute("wetter berlin", SearchOptions(max_results=30, time_range=TimeRange.WEEK))

    assert results == [HIT]
    request = client.requests[0]
    assert request.url.host == BRAVE_HOST
    assert request.headers["X-Subscription-Token"] == "brave-test-key-123"
    assert request.url.params["q"] == "wetter berlin"
    assert request.url.params["count"] == "20"
    assert request.url.params["search_lang"] == "de"
    assert request.url.params["country"] == "de"
    assert request.url.params["freshness"] == "pw"
    assert ledger.count("brave") == 1


def test_brave_empty_results_not_counted(make_client, store, clock):
    client = make_client(lambda request: httpx.Response(200, json={"web": {"results": []}}))
    ledger = QuotaLedger(store, clock=clock)

    assert BraveSearchProvider("key-123456789", ledger, client=client).execute("q", SearchOptions()) == []
    assert ledger.count("brave") == 0


def test_brave_unavailable_without_key_or_quota(make_client, store, clock):
    client = make_client(lambda request: httpx.Response(200, json=brave_payload(HIT)))
    ledger = QuotaLedger(store, clock=clock)

    assert not BraveSearchProvider("", ledger, client=client).is_available()

    provider = BraveSearchProvider("key-123456789", ledger, monthly_limit=1, client=client)
    assert provider.is_available()
    provider.execute("q", SearchOptions())
    assert not provider.is_available()


def test_brave_status_mapping(make_client, store, clock):
    ledger = QuotaLedger(store, clock=clock)

    client = make_client(lambda request: httpx.Response(401))
    with pytest.raises(AuthenticationError):
        BraveSearchProvider("key-123456789", ledger, client=client).execute("q", SearchOptions())

    client = make_client(lambda request: httpx.Response(429, headers={"retry-after": "3"}))
    with pytest.raises(RateLimitError) as excinfo:
        BraveSearchProvider("key-123456789", ledger, client=client).execute("q", SearchOptions())
    assert excinfo.value.retry_after == 3.0
    assert len(client.requests) == 1

    client = make_client(lambda request: httpx.Response(200, text="not json"))
    with pytest.raises(MalformedResponseError):
        BraveSearchProvider("key-123456789", ledger, client=client).execute("q", SearchOptions())


def test_searxng_request_returns_every_hit(make_client, store, clock):
    many = [SearchResult(title=f"r{i}", url=f"https://example.com/{i}") for i in range(5)]
    client = make_client(lambda request: httpx.Response(200, json=searxng_payload(*many)))
    ledger = QuotaLedger(store, clock=clock)
    provider = SearxngProvider("https://searx.one/", ledger=ledger, client=client)

    results = provider.execute("q", SearchOptions(max_results=3, time_range=TimeRange.DAY))

    assert [r.url for r in results] == [r.url for r in many]
    request = client.requests[0]
    assert str(request.url).startswith("https://searx.one/search?")
    assert request.url.params["format"] == "json"
    assert request.url.params["language"] == "de"
    assert request.url.params["time_range"] == "day"
    assert "Mozilla" in request.headers["User-Agent"]
    assert request.headers["Accept"] == "application/json"
    assert ledger.count("searxng") == 1
    assert provider.name == "searxng(https://searx.one)"


def test_searxng_bot_protection_page_is_rate_limit(make_client):
    client = make_client(lambda request: httpx.Response(200, text="<!DOCTYPE html><html>captcha</html>"))
    with pytest.raises(RateLimitError):
        SearxngProvider("https://searx.one", client=client).execute("q", SearchOptions())

    client = make_client(lambda request: httpx.Response(200, text="Too Many Requests"))
    with pytest.raises(RateLimitError):
        SearxngProvider("https://searx.one", client=client).execute("q", SearchOptions())


def test_searxng_skips_items_that_are_not_objects(make_client):
    payload = {"results": ["oops", None, 7, {"title": "no url"}, searxng_payload(HIT)["results"][0]]}
    client = make_client(lambda request: httpx.Response(200, json=payload))

    assert SearxngProvider("https://searx.one", client=client).execute("q", SearchOptions()) == [HIT]


@pytest.mark.parametrize("payload", [
    ["not", "an", "object"],
    {"results": {"title": "x"}},
    {"results": [{"title": 42, "url": "https://example.com"}]},
    {"results": [{"title": "x", "url": ["https://example.com"]}]},
])
def test_searxng_unusable_payload_is_malformed(make_client, payload):
    client = make_client(lambda request: httpx.Response(200, json=payload))
    with pytest.raises(MalformedResponseError):
        SearxngProvider("https://searx.one", client=client).execute("q", SearchOptions())


def test_chain_moves_past_instance_with_garbage_items(make_client, store, clock):
    def handler(request):
        if request.url.host == "searx.one":
            return httpx.Response(200, json={"results": [{"title": 42, "url": "https://x.example"}]})
        return httpx.Response(200, json=searxng_payload(HIT))

    client = make_client(handler)
    chain = _chain(client, QuotaLedger(store, clock=clock), api_key="")

    assert chain.execute("q", SearchOptions()) == [HIT]
    assert [r.url.host for r in client.requests] == ["searx.one", "searx.two"]


def test_brave_skips_items_that_are_not_objects(make_client, store, clock):
    client = make_client(lambda request: httpx.Response(200, json={"web": {"results": [42, "x", None]}}))
    ledger = QuotaLedger(store, clock=clock)

    assert BraveSearchProvider("key-123456789", ledger, client=client).execute("q", SearchOptions()) == []
    assert ledger.count("brave") == 0


@pytest.mark.parametrize("payload", [
    [1, 2, 3],
    {"web": ["results"]},
    {"web": {"results": "none"}},
    {"web": {"results": [{"title": None, "url": "https://example.com"}, {"title": 3, "url": "https://a.example"}]}},
])
def test_brave_unusable_payload_is_malformed(make_client, store, clock, payload):
    client = make_client(lambda request: httpx.Response(200, json=payload))
    ledger = QuotaLedger(store, clock=clock)

    with pytest.raises(MalformedResponseError):
        BraveSearchProvider("key-123456789", ledger, client=client).execute("q", SearchOptions())
    assert ledger.count("brave") == 0
    assert ledger.total("brave") == 0


def test_chain_moves_past_brave_garbage_to_searxng(make_client, store, clock):
    def handler(request):
        if request.url.host == BRAVE_HOST:
            return httpx.Response(200, json={"web": {"results": [{"title": 42, "url": "https://x.example"}]}})
        return httpx.Response(200, json=searxng_payload(HIT))

    client = make_client(handler)
    assert _chain(client, QuotaLedger(store, clock=clock)).execute("q", SearchOptions()) == [HIT]


def test_brave_concurrent_searches_stay_within_quota(make_client, store, clock):
    client = make_client(lambda request: httpx.Response(200, json=brave_payload(HIT)))
    ledger = QuotaLedger(store, clock=clock)
    provider = BraveSearchProvider("key-123456789", ledger, monthly_limit=3, client=client)
    outcomes = []

    def worker():
        try:
            outcomes.append(provider.execute("q", SearchOptions()))
        except RateLimitError:
            outcomes.append(None)

    threads = [threading.Thread(target=worker) for _ in range(12)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(outcomes) == 12
    assert sum(1 for outcome in outcomes if outcome) == 3
    assert len(client.requests) == 3
    assert ledger.count("brave") == 3


def test_brave_429_moves_to_first_searxng_without_retry(make_client, store, clock):
    def handler(request):
        if request.url.host == BRAVE_HOST:
            return httpx.Response(429)
        return httpx.Response(200, json=searxng_payload(HIT))

    client = make_client(handler)
    chain = _chain(client, QuotaLedger(store, clock=clock))

    assert chain.execute("q", SearchOptions()) == [HIT]
    hosts = [r.url.host for r in client.requests]
    assert hosts == [BRAVE_HOST, "searx.one"]


def test_brave_401_skipped(make_client, store, clock):
    def handler(request):
        if request.url.host == BRAVE_HOST:
            return httpx.Response(401)
        return httpx.Response(200, json=searxng_payload(HIT))

    client = make_client(handler)
    assert _chain(client, QuotaLedger(store, clock=clock)).execute("q", SearchOptions()) == [HIT]


def test_chain_skips_bot_page_and_empty_instance(make_client, store, clock):
    def handler(request):
        if request.url.host == "searx.one":
            return httpx.Response(200, text="<!DOCTYPE html>")
        if request.url.host == "searx.two":
            return httpx.Response(200, json={"results": []})
        return httpx.Response(200, json=searxng_payload(HIT))

    client = make_client(handler)
    chain = _chain(
        client, QuotaLedger(store, clock=clock), api_key="",
        instances=("https://searx.one", "https://searx.two", "https://searx.three"),
    )

    assert chain.execute("q", SearchOptions()) == [HIT]
    assert [r.url.host for r in client.requests] == ["searx.one", "searx.two", "searx.three"]


def test_chain_exhausted_returns_empty(make_client, store, clock):
    client = make_client(lambda request: httpx.Response(503))
    chain = _chain(client, QuotaLedger(store, clock=clock), api_key="")
    assert chain.execute("q", SearchOptions()) == []


def test_domain_filter_keeps_exactly_matching(make_client, store, clock):
    results = [
        SearchResult(title=f"r{i}", url=f"https://noise{i}.example/page") for i in range(8)
    ] + [
        SearchResult(title="doc a", url="https://docs.python.org/3/library/asyncio.html"),
        SearchResult(title="doc b", url="https://docs.python.org/3/tutorial/"),
    ]
    client = make_client(lambda request: httpx.Response(200, json=searxng_payload(*results)))
    chain = _chain(client, QuotaLedger(store, clock=clock), api_key="")

    options = SearchOptions(max_results=10, include_domains=["docs.python.org"])
    found = chain.execute("asyncio", options)

    assert [r.title for r in found] == ["doc a", "doc b"]
    assert client.requests[0].url.params["q"] == "asyncio (site:docs.python.org)"


def test_domain_filter_runs_before_result_cap(make_client, store, clock):
    noise = [SearchResult(title=f"n{i}", url=f"https://noise{i}.example/") for i in range(8)]
    wanted = [
        SearchResult(title="a", url="https://example.org/a"),
        SearchResult(title="b", url="https://www.example.org/b"),
    ]
    client = make_client(lambda request: httpx.Response(200, json=searxng_payload(*(noise + wanted))))
    chain = _chain(client, QuotaLedger(store, clock=clock), api_key="")

    options = SearchOptions(include_domains=["example.org"])
    assert options.max_results < len(noise) + len(wanted)

    found = chain.execute("q", options)
    assert [r.title for r in found] == ["a", "b"]


def test_chain_caps_results_at_max_results(make_client, store, clock):
    many = [SearchResult(title=f"r{i}", url=f"https://example.com/{i}") for i in range(9)]
    client = make_client(lambda request: httpx.Response(200, json=searxng_payload(*many)))
    chain = _chain(client, QuotaLedger(store, clock=clock), api_key="")

    found = chain.execute("q", SearchOptions(max_results=3))
    assert [r.title for r in found] == ["r0", "r1", "r2"]


def test_domain_filter_empty_result_falls_through(make_client, store, clock):
    def handler(request):
        if request.url.host == "searx.one":
            return httpx.Response(200, json=searxng_payload(HIT))
        return httpx.Response(200, json=searxng_payload(
            SearchResult(title="gh", url="https://github.com/python/cpython")
        ))

    client = make_client(handler)
    chain = _chain(client, QuotaLedger(store, clock=clock), api_key="")

    found = chain.execute("cpython", SearchOptions(include_domains=["github.com"]))
    assert [r.title for r in found] == ["gh"]


def test_brave_results_not_filtered_locally(make_client, store, clock):
    client = make_client(lambda request: httpx.Response(200, json=brave_payload(HIT)))
    chain = _chain(client, QuotaLedger(store, clock=clock))

    assert chain.execute("q", SearchOptions(include_domains=["github.com"])) == [HIT]


def test_unavailable_provider_never_called():
    class Recording(SearchProvider):
        provider_id = "recording"

        def __init__(self, available, results):
            self.available = available
            self.results = results
            self.calls = 0

        def is_available(self):
            return self.available

        def execute(self, query, options):
            self.calls += 1
            return self.results

    skipped = Recording(False, [HIT])
    used = Recording(True, [HIT])
    assert ProviderChain([skipped, used]).execute("q", SearchOptions()) == [HIT]
    assert skipped.calls == 0
    assert used.calls == 1


def test_provider_query_operators():
    options = SearchOptions(include_domains=["a.com", "b.org"], exclude_domains=["pinterest.com"])
    assert build_provider_query("rezept", options) == "rezept (site:a.com OR site:b.org) -site:pinterest.com"
    assert build_provider_query("rezept", SearchOptions()) == "rezept"


def test_filter_by_domains_exclude_and_case():
    results = [
        SearchResult(title="a", url="https://GitHub.com/x"),
        SearchResult(title="b", url="https://www.pinterest.com/y"),
    ]
    assert [r.title for r in filter_by_domains(results, ["github.com"])] == ["a"]
    assert [r.title for r in filter_by_domains(results, [], ["pinterest.com"])] == ["a"]
    assert filter_by_domains(results, []) == results


@pytest.mark.parametrize("url", ["", "searx.example", "ftp://searx.example", "https://"])
def test_invalid_instance_urls(url):
    with pytest.raises(ConfigurationError):
        validate_instance_url(url)


def test_instance_url_normalized():
    assert validate_instance_url(" https://searx.example/ ") == "https://searx.example"
