"""
Matching engine for BatchMatch.

Implements identifier similarity search, expiry-date format matching and
the two-tier classification of candidate batches.
"""
