"""
Persisted runtime configuration for web search.
"""

import json
import threading
from typing import Callable, List, Optional
import logging

from pydantic import BaseModel, Field

from ..search.providers import validate_instance_url
from ..utils import PersistenceError
from .settings_store import SettingsStore

logger = logging.getLogger(__name__)


KEY_BRAVE_API_KEY = "websearch.brave.apikey"
KEY_CUSTOM_INSTANCE = "websearch.searxng.custom"
KEY_INSTANCES = "websearch.searxng.instances"
KEY_QUERY_OPTIMIZATION = "websearch.feature.queryOptimization"
KEY_CONTENT_SCRAPING = "websearch.feature.contentScraping"
KEY_MULTI_QUERY = "websearch.feature.multiQuery"
KEY_RERANKING = "websearch.feature.reRanking"
KEY_OPTIMIZATION_MODEL = "websearch.feature.optimizationModel"

DEFAULT_SEARXNG_INSTANCES = [
    "https://search.sapti.me",
    "https://searx.tiekoetter.com",
    "https://priv.au",
    "https://search.ononoki.org",
    "https://search.bus-hit.me",
    "https://paulgo.io",
]


def build_instance_list(custom_instance: str, instances: List[str]) -> List[str]:
    """
    Custom instance first, then the configured list without duplicates.

    Falls back to the built-in defaults when nothing is configured.
    """
    ordered: List[str] = []
    if custom_instance:
        ordered.append(custom_instance)
    for instance in instances:
        if instance and instance not in ordered:
            ordered.append(instance)
    if not ordered:
        ordered = list(DEFAULT_SEARXNG_INSTANCES)
    return ordered


class SearchPreferences(BaseModel):
    """Snapshot of the runtime search configuration."""

    brave_api_key: str = Field(default="")
    custom_instance: str = Field(default="")
    instances: List[str] = Field(default_factory=lambda: list(DEFAULT_SEARXNG_INSTANCES))

    query_optimization_enabled: bool = Field(default=True)
    content_scraping_enabled: bool = Field(default=True)
    multi_query_enabled: bool = Field(default=False)
    reranking_enabled: bool = Field(default=True)
    optimization_model: str = Field(default="claude-3-5-haiku-latest")

    @property
    def brave_configured(self) -> bool:
        return bool(self.brave_api_key.strip())

    @property
    def effective_instances(self) -> List[str]:
        return build_instance_list(self.custom_instance, self.instances)


def mask_api_key(api_key: str) -> str:
    """Show only the first 8 characters of a key."""
    if not api_key or not api_key.strip():
        return ""
    if len(api_key) <= 8:
        return "****"
    return api_key[:8] + "****"


class SearchConfig:
    """
    Runtime search configuration backed by the settings store.

    Values are read once by ``reload()``; every setter updates the
    in-memory snapshot and writes through to the store. Registered
    listeners are notified after each change so dependants (provider
    chain, optimizer) can rebuild themselves.
    """

    def __init__(
        self,
        store: SettingsStore,
        defaults: Optional[SearchPreferences] = None
    ):
        self.store = store
        self._defaults = defaults or SearchPreferences()
        self._lock = threading.RLock()
        self._prefs = self._defaults.model_copy(deep=True)
        self._listeners: List[Callable[[SearchPreferences], None]] = []

    @property
    def current(self) -> SearchPreferences:
        with self._lock:
            return self._prefs.model_copy(deep=True)

    def add_listener(self, listener: Callable[[SearchPreferences], None]) -> None:
        self._listeners.append(listener)

    def reload(self) -> SearchPreferences:
        """Re-read every value from the store, keeping defaults for missing keys."""
        with self._lock:
            prefs = self._defaults.model_copy(deep=True)

            api_key = self.store.get(KEY_BRAVE_API_KEY)
            if api_key is not None:
                prefs.brave_api_key = api_key.strip()
            logger.info(f"Brave API key: {'(configured)' if prefs.brave_configured else '(empty)'}")

            custom = self.store.get(KEY_CUSTOM_INSTANCE)
            if custom is not None:
                prefs.custom_instance = custom.strip()
                if prefs.custom_instance:
                    logger.info(f"Custom search instance: {prefs.custom_instance}")

            raw_instances = self.store.get(KEY_INSTANCES)
            if raw_instances and raw_instances.strip():
                try:
                    instances = json.loads(raw_instances)
                    if isinstance(instances, list) and instances:
                        prefs.instances = [str(i).strip() for i in instances if str(i).strip()]
                        logger.info(f"Loaded {len(prefs.instances)} search instances")
                except json.JSONDecodeError as e:
                    logger.warning(f"Could not parse stored search instances: {e}")

            prefs.query_optimization_enabled = self._read_flag(
                KEY_QUERY_OPTIMIZATION, prefs.query_optimization_enabled)
            prefs.content_scraping_enabled = self._read_flag(
                KEY_CONTENT_SCRAPING, prefs.content_scraping_enabled)
            prefs.multi_query_enabled = self._read_flag(
                KEY_MULTI_QUERY, prefs.multi_query_enabled)
            prefs.reranking_enabled = self._read_flag(
                KEY_RERANKING, prefs.reranking_enabled)

            model = self.store.get(KEY_OPTIMIZATION_MODEL)
            if model and model.strip():
                prefs.optimization_model = model.strip()

            self._prefs = prefs

        self._notify()
        return self.current

    def _read_flag(self, key: str, default: bool) -> bool:
        raw = self.store.get(key)
        if raw is None:
            return default
        return raw.strip().lower() == "true"

    # ---- setters -------------------------------------------------------

    def set_brave_api_key(self, api_key: Optional[str]) -> None:
        value = (api_key or "").strip()
        self._update(KEY_BRAVE_API_KEY, value, brave_api_key=value)
        logger.info("Brave API key saved")

    def set_custom_instance(self, instance: Optional[str]) -> None:
        value = validate_instance_url(instance) if instance and instance.strip() else ""
        self._update(KEY_CUSTOM_INSTANCE, value, custom_instance=value)
        logger.info(f"Custom search instance saved: {value or '(none)'}")

    def set_instances(self, instances: List[str]) -> None:
        cleaned = [validate_instance_url(i) for i in instances if i and i.strip()]
        if not cleaned:
            cleaned = list(DEFAULT_SEARXNG_INSTANCES)
        self._update(KEY_INSTANCES, json.dumps(cleaned), instances=cleaned)
        logger.info(f"Saved {len(cleaned)} search instances")

    def set_query_optimization_enabled(self, enabled: bool) -> None:
        self._update(KEY_QUERY_OPTIMIZATION, str(enabled).lower(), query_optimization_enabled=enabled)

    def set_content_scraping_enabled(self, enabled: bool) -> None:
        self._update(KEY_CONTENT_SCRAPING, str(enabled).lower(), content_scraping_enabled=enabled)

    def set_multi_query_enabled(self, enabled: bool) -> None:
        self._update(KEY_MULTI_QUERY, str(enabled).lower(), multi_query_enabled=enabled)

    def set_reranking_enabled(self, enabled: bool) -> None:
        self._update(KEY_RERANKING, str(enabled).lower(), reranking_enabled=enabled)

    def set_optimization_model(self, model: Optional[str]) -> None:
        value = (model or "").strip() or self._defaults.optimization_model
        self._update(KEY_OPTIMIZATION_MODEL, value, optimization_model=value)

    def _update(self, key: str, stored_value: str, **changes) -> None:
        with self._lock:
            self._prefs = self._prefs.model_copy(update=changes)
            try:
                self.store.set(key, stored_value)
            except PersistenceError as e:
                # in-memory value stays authoritative for this process
                logger.error(f"Failed to persist setting {key}: {e}")
        self._notify()

    def _notify(self) -> None:
        snapshot = self.current
        for listener in self._listeners:
            listener(snapshot)
