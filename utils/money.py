import os

_currency = None


def set_currency(symbol):
    global _currency
    _currency = symbol or None


def currency_symbol() -> str:
    return _currency or os.getenv("CURRENCY", "R$")


def format_amount(value) -> str:
    """
    Brazilian number formatting: 1.234,56
    """
    text = f"{float(value):,.2f}"
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def format_money(value) -> str:
    """
    Short form used in tool confirmations: R$ 1234.56
    """
    return f"{currency_symbol()} {float(value):.2f}"


def format_money_br(value) -> str:
    """
    Report form: R$ 1.234,56
    """
    return f"{currency_symbol()} {format_amount(value)}"
