"""Utility functions for fareledger."""

from fareledger.utils.date_parser import parse_instant, parse_month, to_iso
from fareledger.utils.amount_parser import parse_amount

__all__ = ["parse_instant", "parse_month", "to_iso", "parse_amount"]
