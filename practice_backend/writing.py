"""
Text statistics for submitted writing practice.
"""

from __future__ import annotations


def count_characters(content: str) -> int:
    """Number of Unicode code points, so "héllo" is 5 whatever its byte length."""
    return len(content)


def count_words(content: str) -> int:
    return len(content.split())
