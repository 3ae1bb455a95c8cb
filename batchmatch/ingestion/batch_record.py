"""
Batch record type for BatchMatch.

The candidate batch list is owned by the session collaborator; the
matching engine only reads identifier and expiry date.
"""

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Optional

import pandas as pd

from ..match.expiry_matcher import parse_expiry_date

logger = logging.getLogger(__name__)


IDENTIFIER_KEYS = ["identifier", "batch_number", "batchNumber", "batch_id", "batchId"]
EXPIRY_KEYS = ["expiry_date", "expiryDate"]

EXPIRING_SOON_DAYS = 30


def _clean_value(value: Any) -> Optional[str]:
    """Convert a payload value to a stripped string, or None if missing."""
    if value is None:
        return None
    if not isinstance(value, (dict, list)) and pd.isna(value):
        return None
    value = str(value).strip()
    return value or None


def _first_present(data: Dict[str, Any], keys) -> Optional[str]:
    for key in keys:
        value = _clean_value(data.get(key))
        if value:
            return value
    return None


@dataclass
class BatchRecord:
    """
    Candidate pharmaceutical batch.

    Attributes:
        identifier: Batch/lot number printed on the label (primary key).
        expiry_date: Declared expiry date, free-form; None if not declared.
    """
    identifier: str
    expiry_date: Optional[str] = None
    batch_id: Optional[str] = None
    session_id: Optional[str] = None
    product_name: Optional[str] = None
    lot_number: Optional[str] = None
    manufacturing_date: Optional[str] = None
    manufacturer: Optional[str] = None
    additional_info: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], session_id: Optional[str] = None) -> "BatchRecord":
        """
        Build a record from an API payload or a loaded table row.

        Args:
            data: Batch fields; the identifier may arrive as identifier,
                batch_number or batch_id depending on the source
            session_id: Session the batch list belongs to

        Returns:
            BatchRecord (identifier may be empty; such batches are skipped
            by the matcher)
        """
        additional_info = data.get("additional_info")
        if not isinstance(additional_info, dict):
            additional_info = {}

        return cls(
            identifier=_first_present(data, IDENTIFIER_KEYS) or "",
            expiry_date=_first_present(data, EXPIRY_KEYS),
            batch_id=_clean_value(data.get("batch_id")),
            session_id=_clean_value(session_id) or _clean_value(data.get("session_id")),
            product_name=_clean_value(data.get("product_name")),
            lot_number=_clean_value(data.get("lot_number")),
            manufacturing_date=_clean_value(data.get("manufacturing_date")),
            manufacturer=_clean_value(data.get("manufacturer")),
            additional_info=additional_info
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "expiry_date": self.expiry_date,
            "batch_id": self.batch_id,
            "session_id": self.session_id,
            "product_name": self.product_name,
            "lot_number": self.lot_number,
            "manufacturing_date": self.manufacturing_date,
            "manufacturer": self.manufacturer,
            "additional_info": self.additional_info
        }

    @property
    def display_name(self) -> str:
        if self.product_name:
            return self.product_name
        if self.lot_number:
            return f"Lot: {self.lot_number}"
        return f"Batch: {self.identifier}"

    def days_until_expiry(self, today: Optional[date] = None) -> Optional[int]:
        """
        Days from today until the declared expiry date.

        Returns:
            Number of days (negative once expired), or None if the expiry
            date is missing or unparseable
        """
        parsed = parse_expiry_date(self.expiry_date)
        if parsed is None:
            return None

        expiry = parsed.value
        if not parsed.has_day:
            # Month-only expiry runs to the end of the month
            last_day = calendar.monthrange(expiry.year, expiry.month)[1]
            expiry = expiry.replace(day=last_day)

        today = today or date.today()
        return (expiry - today).days

    def is_expired(self, today: Optional[date] = None) -> bool:
        days = self.days_until_expiry(today)
        return days is not None and days < 0

    def expiry_status(self, today: Optional[date] = None) -> str:
        """Human-readable expiry status for display next to a match."""
        days = self.days_until_expiry(today)
        if days is None:
            return "Unknown"
        if days < 0:
            return "Expired"
        if days == 0:
            return "Expires Today"
        if days <= EXPIRING_SOON_DAYS:
            return f"Expires in {days} days"
        return "Valid"
