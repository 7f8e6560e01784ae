"""
Top-level coordinator for web searches.

A search runs through these steps:
1. Language detection
2. Optional LLM query optimization
3. Result cache lookup
4. Single or multi-query dispatch through the provider fallback chain
5. Optional relevance re-ranking
6. Optional full-content enrichment
7. Result cache population
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import logging

import httpx
import structlog

from ..config import Settings
from ..models import SearchOptions, SearchQuery, SearchResult
from ..search import (
    BraveSearchProvider,
    DualTierCache,
    ProviderChain,
    SearchProvider,
    SearxngProvider,
    WebFetcher,
    build_search_key,
    query_terms_from,
    rank,
)
from ..synthesis import ChatCapability, ClaudeChatClient, QueryOptimizer
from .query_analysis import detect_language, should_auto_search
from .quota_ledger import QuotaLedger
from .search_config import SearchConfig, SearchPreferences, mask_api_key
from .settings_store import JsonFileSettingsStore, SettingsStore

logger = logging.getLogger(__name__)


class SearchOrchestrator:
    """
    Turns a free-text query into a ranked, optionally enriched result list.

    Owns the shared state every concurrent search touches: the dual-tier
    cache, the quota ledger, the provider chain and the worker pools.
    Provider failures never reach the caller; the worst outcome of a
    search is an empty list.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[SettingsStore] = None,
        chat: Optional[ChatCapability] = None,
        http_client: Optional[httpx.Client] = None,
        clock: Callable[[], datetime] = datetime.now,
        timer: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the orchestrator.

        Args:
            settings: Process settings (defaults to environment)
            store: Settings store for configuration and quota counters
            chat: Chat capability for query optimization; built from the
                Anthropic key in ``settings`` when omitted
            http_client: Optional shared HTTP client for providers and page fetches
            clock: Wall clock for quota months
            timer: Monotonic timer for cache expiry

        Raises:
            ConfigurationError: If the stored configuration is unusable
        """
        self.settings = settings or Settings()
        self.store = store or JsonFileSettingsStore(self.settings.settings_file)
        self.events = structlog.get_logger(__name__)

        self.ledger = QuotaLedger(self.store, providers=("brave", "searxng"), clock=clock)
        self.ledger.load()

        self.config = SearchConfig(
            self.store,
            defaults=SearchPreferences(
                brave_api_key=self.settings.brave_api_key or "",
                optimization_model=self.settings.optimization_model,
            )
        )
        prefs = self.config.reload()

        self.cache = DualTierCache(
            search_max_entries=self.settings.search_cache_size,
            search_ttl_minutes=self.settings.search_cache_ttl_minutes,
            content_max_entries=self.settings.content_cache_size,
            content_ttl_minutes=self.settings.content_cache_ttl_minutes,
            timer=timer
        )

        self._owns_http_client = http_client is None
        self._http_client = http_client or httpx.Client(
            timeout=self.settings.provider_timeout_seconds,
            follow_redirects=True
        )

        self.fetcher = WebFetcher(
            cache=self.cache.content,
            timeout=self.settings.fetch_timeout_seconds,
            max_workers=self.settings.enrichment_workers,
            client=http_client
        )

        if chat is None and self.settings.anthropic_api_key:
            chat = ClaudeChatClient(api_key=self.settings.anthropic_api_key)
        self.optimizer = QueryOptimizer(chat, prefs.optimization_model)

        self._chain_lock = threading.Lock()
        self._chain = self._build_chain(prefs)
        self.config.add_listener(self._on_config_changed)

        self._executor = ThreadPoolExecutor(
            max_workers=self.settings.multi_query_workers,
            thread_name_prefix="multi-query"
        )

    # ---- assembly --------------------------------------------------------

    def _build_chain(self, prefs: SearchPreferences) -> ProviderChain:
        providers: List[SearchProvider] = [
            BraveSearchProvider(
                api_key=prefs.brave_api_key,
                ledger=self.ledger,
                monthly_limit=self.settings.brave_monthly_limit,
                client=self._http_client
            )
        ]
        for instance in prefs.effective_instances:
            providers.append(SearxngProvider(
                instance_url=instance,
                ledger=self.ledger,
                client=self._http_client
            ))

        logger.info(
            f"Provider chain: brave ({'configured' if prefs.brave_configured else 'no key'}) "
            f"+ {len(providers) - 1} self-hosted instances"
        )
        return ProviderChain(providers)

    def _on_config_changed(self, prefs: SearchPreferences) -> None:
        chain = self._build_chain(prefs)
        with self._chain_lock:
            self._chain = chain
        if prefs.optimization_model != self.optimizer.configured_model:
            self.optimizer.set_model(prefs.optimization_model)

    @property
    def chain(self) -> ProviderChain:
        with self._chain_lock:
            return self._chain

    # ---- searching -------------------------------------------------------

    def search(self, user_query: str, options: Optional[SearchOptions] = None) -> List[SearchResult]:
        """
        Run a full search.

        Args:
            user_query: Free-text query as typed by the user
            options: Per-call options (defaults apply when omitted)

        Returns:
            Ranked result list, possibly empty
        """
        options = options or SearchOptions()
        if not user_query or not user_query.strip():
            logger.warning("Ignoring empty search query")
            return []

        start_time = time.time()
        effective = self._effective_options(options)
        self.events.info(
            "search_started",
            query=user_query,
            max_results=effective.max_results,
            optimize=effective.optimize_query,
            multi_query=effective.multi_query,
            full_content=effective.fetch_full_content,
        )

        # 1. Language
        language = detect_language(user_query, default=self.settings.default_language)
        logger.debug(f"Detected language: {language}")

        # 2. Optimization
        optimized = user_query
        if effective.optimize_query:
            optimized = self.optimizer.optimize(user_query, language, effective.expert_context)
            logger.info(f"Optimized query: '{optimized}'")
        query = SearchQuery(raw=user_query, language=language, optimized=optimized)

        # 3. Cache
        cache_key = build_search_key(query.optimized, effective)
        cached = self.cache.search.get(cache_key)
        if cached is not None:
            self.events.info("search_cache_hit", cache_key=cache_key, result_count=len(cached))
            return list(cached)

        # 4. Dispatch
        if effective.multi_query:
            results = self._execute_multi_query(query, effective)
        else:
            results = self.chain.execute(query.optimized, effective)

        # 5. Re-ranking on the user's own words
        if effective.rerank and len(results) > 1:
            results = rank(results, query_terms_from(query.raw))
            logger.debug("Results re-ranked")

        # 6. Enrichment
        if effective.fetch_full_content and results:
            results = self._enrich(results, effective.max_content_length)

        # 7. Cache
        if results:
            self.cache.search.put(cache_key, list(results))

        self.events.info(
            "search_completed",
            query=user_query,
            optimized_query=query.optimized,
            language=language,
            result_count=len(results),
            duration_ms=int((time.time() - start_time) * 1000),
        )
        return results

    def simple_search(
        self,
        query: str,
        max_results: int = 7,
        domains: Optional[List[str]] = None
    ) -> List[SearchResult]:
        """Search with the configured feature flags, snippets only."""
        prefs = self.config.current
        options = SearchOptions(
            max_results=max_results,
            include_domains=domains or [],
            optimize_query=prefs.query_optimization_enabled,
            fetch_full_content=False,
            rerank=prefs.reranking_enabled,
        )
        return self.search(query, options)

    def _effective_options(self, options: SearchOptions) -> SearchOptions:
        """Per-call flags only take effect when the feature is enabled globally."""
        prefs = self.config.current
        return options.model_copy(update={
            "optimize_query": options.optimize_query and prefs.query_optimization_enabled,
            "fetch_full_content": options.fetch_full_content and prefs.content_scraping_enabled,
            "multi_query": options.multi_query and prefs.multi_query_enabled,
            "rerank": options.rerank and prefs.reranking_enabled,
        })

    def _execute_multi_query(self, query: SearchQuery, options: SearchOptions) -> List[SearchResult]:
        """
        Run the optimized and the original query in parallel and merge by URL.

        Each variant walks the whole fallback chain on its own. Variants
        that miss the deadline are abandoned; the merge keeps the first
        entry seen for every URL, in dispatch order.
        """
        variants = [query.optimized]
        if query.raw != query.optimized:
            variants.append(query.raw)
        logger.info(f"Multi-query with {len(variants)} variants")

        chain = self.chain
        futures = [self._executor.submit(chain.execute, variant, options) for variant in variants]
        done, not_done = wait(futures, timeout=self.settings.multi_query_timeout_seconds)

        for future in not_done:
            future.cancel()
        if not_done:
            logger.warning(
                f"Multi-query: {len(not_done)} variant(s) exceeded "
                f"{self.settings.multi_query_timeout_seconds}s and were dropped"
            )

        seen_urls = set()
        merged: List[SearchResult] = []
        for variant, future in zip(variants, futures):
            if future not in done:
                continue
            try:
                results = future.result()
            except Exception as e:
                logger.warning(f"Multi-query variant '{variant}' failed: {e}")
                continue
            for result in results:
                if result.url not in seen_urls:
                    seen_urls.add(result.url)
                    merged.append(result)

        return merged[:options.max_results]

    def _enrich(self, results: List[SearchResult], max_length: int) -> List[SearchResult]:
        contents = self.fetcher.fetch_many([r.url for r in results], max_length)

        enriched = []
        fetched = 0
        for result, content in zip(results, contents):
            if content and content.strip():
                enriched.append(result.model_copy(update={"snippet": content}))
                fetched += 1
            else:
                enriched.append(result)

        logger.info(f"Full content fetched for {fetched}/{len(results)} results")
        return enriched

    # ---- helpers for callers ---------------------------------------------

    def fetch_page_content(self, url: str, max_length: int = 1000) -> Optional[str]:
        """Text of a single page, via the content cache."""
        return self.fetcher.fetch(url, max_length)

    def should_auto_search(self, message: str) -> bool:
        return should_auto_search(message)

    def clear_cache(self) -> int:
        """Drop every cached result list and page."""
        return self.cache.clear()

    def get_status(self) -> Dict[str, Any]:
        """Quota counters and configuration, safe to show to users."""
        prefs = self.config.current
        brave = self.ledger.get_quota("brave")
        searxng = self.ledger.get_quota("searxng")
        limit = self.settings.brave_monthly_limit

        return {
            "brave_configured": prefs.brave_configured,
            "brave_api_key": mask_api_key(prefs.brave_api_key),
            "search_count": brave.count_this_month,
            "search_limit": limit,
            "remaining_searches": self.ledger.remaining("brave", limit),
            "current_month": brave.current_month,
            "searxng_total_count": searxng.total_count,
            "searxng_month_count": searxng.count_this_month,
            "custom_searxng_instance": prefs.custom_instance,
            "searxng_instances": prefs.effective_instances,
            "query_optimization_enabled": prefs.query_optimization_enabled,
            "content_scraping_enabled": prefs.content_scraping_enabled,
            "multi_query_enabled": prefs.multi_query_enabled,
            "reranking_enabled": prefs.reranking_enabled,
            "optimization_model": prefs.optimization_model,
            "effective_optimization_model": self.optimizer.effective_model,
        }

    def close(self) -> None:
        """Shut down worker pools and HTTP clients."""
        self._executor.shutdown(wait=False, cancel_futures=True)
        self.fetcher.close()
        self.chain.close()
        if self._owns_http_client:
            self._http_client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
