"""Export analysis result sets for reporting tools.

Each result set becomes one file: CSV for spreadsheet and BI imports, JSON
for dashboards that read structured payloads.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping

from sales_insights.pandas.facts import rows_to_dataframe
from sales_insights.runner import AnalysisResult

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("csv", "json")


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def result_to_payload(result: AnalysisResult) -> dict[str, Any]:
    """Return a JSON-serialisable dict for one result set."""
    return json.loads(json.dumps(result.model_dump(), default=_json_default))


def export_result_csv(result: AnalysisResult, output_path: str | Path) -> Path:
    """Export one result set to CSV.

    Parameters
    ----------
    result:
        Result set returned by the runner
    output_path:
        Path where the CSV file will be saved

    Examples
    --------
    >>> result = run_analysis(AnalysisRequest(analysis="monthly_revenue"), facts)  # doctest: +SKIP
    >>> export_result_csv(result, "exports/monthly_revenue.csv")  # doctest: +SKIP
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    df = rows_to_dataframe(result.rows, columns=result.columns)
    df.to_csv(output_path, index=False)

    logger.info(f"Exported {result.row_count} rows of {result.analysis} to {output_path}")
    return output_path


def export_result_json(
    result: AnalysisResult,
    output_path: str | Path,
    metadata: Mapping[str, Any] | None = None,
) -> Path:
    """Export one result set to JSON.

    The payload carries the column list, the rows, the generation timestamp
    and optional metadata (e.g. reference date, data source).
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    payload = result_to_payload(result)
    payload["metadata"] = dict(metadata or {})
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, default=_json_default)

    logger.info(f"Exported {result.row_count} rows of {result.analysis} to {output_path}")
    return output_path


def export_results(
    results: Mapping[str, AnalysisResult],
    output_dir: str | Path,
    fmt: str = "csv",
    metadata: Mapping[str, Any] | None = None,
) -> list[Path]:
    """Export several result sets, one ``<analysis>.<fmt>`` file each."""
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format '{fmt}'. Use one of {EXPORT_FORMATS}")

    output_dir = Path(output_dir)
    paths = []
    for name, result in results.items():
        path = output_dir / f"{name}.{fmt}"
        if fmt == "csv":
            paths.append(export_result_csv(result, path))
        else:
            paths.append(export_result_json(result, path, metadata=metadata))
    return paths
