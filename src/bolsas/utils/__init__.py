"""Utility functions for bolsas."""

from bolsas.utils.date_parser import parse_date, parse_month
from bolsas.utils.amount_parser import parse_amount

__all__ = ["parse_date", "parse_month", "parse_amount"]
