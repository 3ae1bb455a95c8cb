"""
Match reporting for BatchMatch.

Turns classification results into tables for review screens, audit exports
and offline threshold tuning.
"""

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from ..match.classifier import get_classification_statistics
from ..match.results import ClassificationResult

logger = logging.getLogger(__name__)


REPORT_COLUMNS = [
    "rank", "tier", "identifier", "product_name", "expiry_date", "expiry_status",
    "similarity", "similarity_percent", "expiry_valid", "auto_confirmable"
]


def results_to_dataframe(result: ClassificationResult, today: Optional[date] = None) -> pd.DataFrame:
    """
    Flatten a classification result into a table.

    Args:
        result: Classification outcome
        today: Reference date for expiry status (defaults to today)

    Returns:
        DataFrame with one row per returned match, best first
    """
    tier = result.match_type
    rows = []

    for rank, match in enumerate(result.matches, start=1):
        rows.append({
            "rank": rank,
            "tier": tier,
            "identifier": match.batch.identifier,
            "product_name": match.batch.product_name,
            "expiry_date": match.batch.expiry_date,
            "expiry_status": match.batch.expiry_status(today),
            "similarity": match.similarity,
            "similarity_percent": int(match.similarity * 100),
            "expiry_valid": match.expiry_valid,
            "auto_confirmable": tier == "exact"
        })

    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def build_match_report(result: ClassificationResult,
                       extracted_text: Optional[str] = None,
                       label_fields: Optional[Dict[str, Optional[str]]] = None) -> Dict[str, Any]:
    """
    Build a JSON-serializable report of one capture.

    Args:
        result: Classification outcome
        extracted_text: Raw OCR text
        label_fields: Labelled fields extracted from the text

    Returns:
        Report dictionary
    """
    return {
        "statistics": get_classification_statistics(result),
        "label_fields": label_fields or {},
        "extracted_text": extracted_text,
        **result.to_dict()
    }


def save_match_report(result: ClassificationResult, output_path: str,
                      extracted_text: Optional[str] = None,
                      label_fields: Optional[Dict[str, Optional[str]]] = None) -> Path:
    """
    Save a match report as CSV (table) or JSON (full report).

    Args:
        result: Classification outcome
        output_path: Destination ending in .csv or .json
        extracted_text: Raw OCR text (JSON only)
        label_fields: Extracted label fields (JSON only)

    Returns:
        Path written

    Raises:
        ValueError: For unsupported output formats
    """
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if path.suffix == ".csv":
        results_to_dataframe(result).to_csv(path, index=False)
    elif path.suffix == ".json":
        with open(path, 'w') as f:
            json.dump(build_match_report(result, extracted_text, label_fields), f, indent=2)
    else:
        raise ValueError(f"Unsupported report format: {output_path}")

    logger.info(f"Match report saved to {output_path}")
    return path


def summarize_reports(reports: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Aggregate statistics from many saved JSON reports.

    Args:
        reports: Report dictionaries produced by build_match_report

    Returns:
        Dictionary with tier distribution and similarity statistics
    """
    if not reports:
        return {"total_captures": 0}

    stats_df = pd.DataFrame([r["statistics"] for r in reports])
    matched = stats_df[stats_df["match_type"] != "none"]

    return {
        "total_captures": len(stats_df),
        "match_type_distribution": stats_df["match_type"].value_counts().to_dict(),
        "auto_confirm_rate": float(stats_df["auto_confirmable"].mean()),
        "mean_best_similarity": float(matched["best_similarity"].mean()) if len(matched) else 0.0,
        "median_best_similarity": float(matched["best_similarity"].median()) if len(matched) else 0.0
    }
