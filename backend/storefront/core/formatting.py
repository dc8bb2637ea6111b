"""Display formatting shared by the item dialog labels and order messages."""


def format_price(amount: float) -> str:
    """Two decimals with a decimal comma, e.g. ``8,50``."""
    return f"{amount:.2f}".replace(".", ",")
