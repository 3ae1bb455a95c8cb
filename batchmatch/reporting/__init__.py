"""
Match reporting for BatchMatch.
"""
