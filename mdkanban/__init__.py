"""
mdkanban - file-based task lifecycle with optimistic concurrency control
"""

__version__ = "0.1.0"
