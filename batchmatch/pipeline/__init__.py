"""
Command-line entry points for BatchMatch.
"""
