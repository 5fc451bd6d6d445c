# =============================================================================
# Stock Symbol Format Check — Shanghai / Shenzhen / Beijing A-shares
# =============================================================================
#
# Pure string check run before any side effect. Accepts a 6-digit code,
# optionally prefixed by a case-insensitive "sh" or "sz". The first digit
# must belong to a Shanghai/Shenzhen/Beijing code range; the rule applies
# with and without a prefix.
# =============================================================================

from __future__ import annotations

import re
from dataclasses import dataclass

VALID_FIRST_DIGITS = frozenset("0123689")

_PREFIXES = ("sh", "sz")
_CODE_RE = re.compile(r"^\d{6}$")


@dataclass(frozen=True)
class SymbolValidation:
    """Result of validate_symbol_format(). `message` is set when invalid."""

    valid: bool
    message: str | None = None


def validate_symbol_format(symbol: str) -> SymbolValidation:
    """
    Check that `symbol` looks like an A-share code.

    Examples:
        "600519", "sh600519", "SZ000001", "300750"  → valid
        "sh12345", "700001", "AAPL"                 → invalid
    """
    code = symbol.strip().lower()

    if code.startswith(_PREFIXES):
        digits = code[2:]
        if not _CODE_RE.match(digits):
            return SymbolValidation(
                False, "股票代码格式错误，应为6位数字（如: sh600519, sz000001）"
            )
    else:
        digits = code
        if not _CODE_RE.match(digits):
            return SymbolValidation(
                False, "股票代码应为6位数字（如: 600519, 000001, 300750）"
            )

    if digits[0] not in VALID_FIRST_DIGITS:
        return SymbolValidation(
            False, "不是有效的沪深股市代码（沪市以6/9开头，深市以0/2/3开头）"
        )

    return SymbolValidation(True)


def to_exchange_code(symbol: str) -> str:
    """
    Return the exchange-prefixed code used by the quote API.

    Prefixed codes pass through lower-cased. Unprefixed codes are routed
    by first digit: 5/6/9 → Shanghai, 4/8 → Beijing, anything else →
    Shenzhen.
    """
    code = symbol.strip().lower()
    if code.startswith(_PREFIXES):
        return code
    if code[:1] in ("5", "6", "9"):
        return f"sh{code}"
    # The Juhe "hs" endpoint only quotes Shanghai/Shenzhen, so Beijing codes
    # pass the format check but get no quote; the run then ends with
    # DataUnavailableError.
    if code[:1] in ("4", "8"):
        return f"bj{code}"
    return f"sz{code}"
