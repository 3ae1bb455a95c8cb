"""
BatchMatch - Batch-Text Matching Engine

Decides whether a pharmaceutical batch record is present in noisy OCR text
read off a medicine label, using fuzzy identifier matching, exhaustive
expiry-date format generation and a two-tier confirmation policy.
"""

__version__ = "1.0.0"
__author__ = "BatchMatch Team"
