"""
Core orchestration components.
"""

from .settings_store import SettingsStore, InMemorySettingsStore, JsonFileSettingsStore
from .quota_ledger import QuotaLedger, month_stamp
from .search_config import SearchConfig, SearchPreferences, mask_api_key
from .query_analysis import detect_language, should_auto_search
from .orchestrator import SearchOrchestrator

__all__ = [
    "SettingsStore",
    "InMemorySettingsStore",
    "JsonFileSettingsStore",
    "QuotaLedger",
    "month_stamp",
    "SearchConfig",
    "SearchPreferences",
    "mask_api_key",
    "detect_language",
    "should_auto_search",
    "SearchOrchestrator",
]
