"""
JSON exporter for search results.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

from ..models import SearchResult

logger = logging.getLogger(__name__)


def results_to_dict(
    query: str,
    results: List[SearchResult],
    optimized_query: Optional[str] = None,
    generated_at: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Convert a result list with its query metadata to a JSON-ready dict.

    Args:
        query: Query as typed by the user
        results: Search results
        optimized_query: Rewritten query, if different from ``query``
        generated_at: Timestamp of the search (defaults to now)

    Returns:
        Serializable dictionary
    """
    data = {
        "query": query,
        "generated_at": (generated_at or datetime.now()).isoformat(timespec="seconds"),
        "result_count": len(results),
        "results": [result.model_dump(mode='json') for result in results],
    }
    if optimized_query and optimized_query != query:
        data["optimized_query"] = optimized_query
    return data


def export_to_json(
    query: str,
    results: List[SearchResult],
    output_path: Union[str, Path],
    indent: int = 2
) -> Path:
    """
    Export search results to a JSON file.

    Args:
        query: Query the results belong to
        results: Results to export
        output_path: Path for output file
        indent: JSON indentation level

    Returns:
        Path to exported file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    data = results_to_dict(query, results)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=False, default=str)

    logger.info(f"Exported JSON: {output_path}")
    return output_path
