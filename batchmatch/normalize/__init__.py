"""
Text normalization for BatchMatch.

Prepares raw OCR text for identifier matching and extracts labelled
fields (batch, lot, expiry, manufacturing date) from label text.
"""
