"""
Backend package for the practice tracker API.

This package provides a FastAPI application that merges live contribution
and submission activity with persisted writing practice into one record per
day.
"""
