"""
Output renderers for search results.
"""

from .context_formatter import format_for_context, format_sources_footer
from .json_exporter import results_to_dict, export_to_json

__all__ = [
    "format_for_context",
    "format_sources_footer",
    "results_to_dict",
    "export_to_json",
]
