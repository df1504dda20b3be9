"""
Core module for tidyframe.

This module provides the immutable Table and its grouped form.
"""

from .table import Table, GroupedTable, desc

__all__ = ["Table", "GroupedTable", "desc"]
