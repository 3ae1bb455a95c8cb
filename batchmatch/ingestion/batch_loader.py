"""
Batch list loader for BatchMatch.

Loads the session's candidate batches from CSV, JSON record lists or the
session API payload ({"session_id": ..., "batches": {batch_id: {...}}})
and converts them to BatchRecord objects.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from .batch_record import BatchRecord, IDENTIFIER_KEYS

logger = logging.getLogger(__name__)


def _identifier_column(df: pd.DataFrame) -> Optional[str]:
    for column in IDENTIFIER_KEYS:
        if column in df.columns:
            return column
    return None


def validate_batch_frame(df: pd.DataFrame) -> pd.DataFrame:
    """
    Validate a loaded batch table.

    Rows without an identifier are kept (the matcher skips them) but
    reported.

    Args:
        df: Batch table

    Returns:
        The same table

    Raises:
        ValueError: If no identifier column is present
    """
    column = _identifier_column(df)
    if column is None:
        raise ValueError(f"Batch list has no identifier column (expected one of {IDENTIFIER_KEYS})")

    identifiers = df[column].fillna("").astype(str).str.strip()
    missing = int((identifiers == "").sum())
    if missing:
        logger.warning(f"{missing} of {len(df)} batches have no identifier and will be skipped")

    duplicated = int(identifiers[identifiers != ""].duplicated().sum())
    if duplicated:
        logger.warning(f"{duplicated} duplicate batch identifiers in batch list")

    if "expiry_date" not in df.columns and "expiryDate" not in df.columns:
        logger.warning("Batch list has no expiry column; expiry checks will pass vacuously")

    return df


def records_from_dataframe(df: pd.DataFrame, session_id: Optional[str] = None) -> List[BatchRecord]:
    """
    Convert a batch table to BatchRecords.

    Args:
        df: Batch table
        session_id: Session the batches belong to

    Returns:
        List of BatchRecords in table order (empty for an empty table)
    """
    if df.empty:
        logger.warning("Batch list is empty")
        return []

    validate_batch_frame(df)
    return [BatchRecord.from_dict(row, session_id) for row in df.to_dict(orient="records")]


def records_from_api_payload(payload: Dict[str, Any]) -> List[BatchRecord]:
    """
    Convert a session API payload to BatchRecords.

    Args:
        payload: {"session_id": ..., "batches": {batch_id: {...fields}}}

    Returns:
        List of BatchRecords (empty if the payload has no batches)
    """
    session_id = payload.get("session_id")
    batches = payload.get("batches") or {}

    records = []
    for batch_id, fields in batches.items():
        data = dict(fields or {})
        data["batch_id"] = batch_id
        records.append(BatchRecord.from_dict(data, session_id))

    logger.info(f"Loaded {len(records)} batches for session {session_id}")
    return records


def load_batch_records(input_path: str, session_id: Optional[str] = None) -> List[BatchRecord]:
    """
    Load candidate batches from a file.

    Args:
        input_path: CSV file, JSON record list, or JSON session payload
        session_id: Session label for file formats that do not carry one

    Returns:
        List of BatchRecords

    Raises:
        ValueError: For unsupported file formats or malformed content
    """
    path = Path(input_path)

    if path.suffix == ".csv":
        df = pd.read_csv(path, dtype=str, keep_default_na=True)
        records = records_from_dataframe(df, session_id)
    elif path.suffix == ".json":
        with open(path, 'r') as f:
            payload = json.load(f)

        if isinstance(payload, dict) and isinstance(payload.get("batches"), dict):
            records = records_from_api_payload(payload)
        elif isinstance(payload, list):
            records = records_from_dataframe(pd.DataFrame(payload, dtype=object), session_id)
        else:
            raise ValueError(f"Unrecognized batch JSON structure in {input_path}")
    else:
        raise ValueError(f"Unsupported file format: {input_path}")

    logger.info(f"Loaded {len(records)} batches from {input_path}")
    return records
