"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re

CENT = Decimal("0.01")


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a non-negative Decimal.

    Transaction amounts are always positive; direction comes from the
    transaction type. Handles formats like:
    - "123.45"
    - "$123.45"
    - "1,234.56"
    - "MXN 1,234.56"

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed or is negative
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    amount_str = amount_str.strip()

    # Remove currency symbols and codes
    amount_str = re.sub(r"[$€£¥]|\b[A-Za-z]{3}\b", "", amount_str)

    # Remove thousands separators
    amount_str = amount_str.replace(",", "").strip()

    try:
        amount = Decimal(amount_str)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'")

    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    if amount < 0:
        raise ValueError(
            f"Amount must not be negative (got {amount_str}); use --type to choose income, expense or transfer"
        )
    if amount != amount.quantize(CENT):
        raise ValueError(f"Amount has more than two decimal places (got {amount_str})")
    return amount
