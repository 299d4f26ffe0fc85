"""
Corpus reading utilities.
"""

from .reader import parse_record, count_records, locate_offsets, iter_lines, iter_records

__all__ = ["parse_record", "count_records", "locate_offsets", "iter_lines", "iter_records"]
