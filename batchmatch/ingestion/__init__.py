"""
Batch list ingestion for BatchMatch.

Defines the batch record type and loads candidate batch lists from files
and session API payloads.
"""
