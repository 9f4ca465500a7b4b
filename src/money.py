from decimal import Context, Decimal, Inexact, InvalidOperation, localcontext

# Wide enough that no in-range addition is ever rounded.
_CONTEXT = Context(prec=60, traps=[Inexact, InvalidOperation])

# Number of places past the decimal point every amount and balance carries.
DECIMAL_PLACES = 4
QUANTUM = Decimal(1).scaleb(-DECIMAL_PLACES, context=_CONTEXT)

# Balances must fit a 96-bit mantissa at DECIMAL_PLACES.
MAX_MANTISSA = 2 ** 96 - 1
MAX_BALANCE = Decimal(MAX_MANTISSA).scaleb(-DECIMAL_PLACES, context=_CONTEXT)

ZERO = Decimal("0").quantize(QUANTUM)


class BalanceOverflowError(ArithmeticError):
    """Result of an operation falls outside the representable balance range."""


class AmountPrecisionError(ValueError):
    """Amount has more fractional digits than DECIMAL_PLACES."""


def is_representable(value: Decimal) -> bool:
    return value.is_finite() and value.copy_abs() <= MAX_BALANCE


def rescale(value: Decimal) -> Decimal:
    """
    Rescale value to exactly DECIMAL_PLACES fractional digits, without a range check.

    Raises AmountPrecisionError if that would drop non-zero digits.
    """
    if not value.is_finite():
        raise BalanceOverflowError(f"non-finite amount {value}")
    with localcontext(_CONTEXT):
        try:
            return value.quantize(QUANTUM)
        except Inexact:
            raise AmountPrecisionError(
                f"{value} has more than {DECIMAL_PLACES} decimal places"
            ) from None
        except InvalidOperation:
            raise BalanceOverflowError(f"{value} exceeds {MAX_BALANCE}") from None


def to_fixed(value: Decimal) -> Decimal:
    """
    Rescale value to exactly DECIMAL_PLACES fractional digits.

    Raises AmountPrecisionError if that would drop non-zero digits,
    and BalanceOverflowError if the value is out of range.
    """
    fixed = rescale(value)
    if not is_representable(fixed):
        raise BalanceOverflowError(f"{value} exceeds {MAX_BALANCE}")
    return fixed


def checked_add(a: Decimal, b: Decimal) -> Decimal:
    """Exact a + b, or BalanceOverflowError if it leaves the balance range."""
    with localcontext(_CONTEXT):
        try:
            result = a + b
        except (Inexact, InvalidOperation):
            raise BalanceOverflowError(f"{a} + {b} is not representable") from None
    if not is_representable(result):
        raise BalanceOverflowError(f"{a} + {b} exceeds {MAX_BALANCE}")
    return result


def checked_sub(a: Decimal, b: Decimal) -> Decimal:
    """Exact a - b, or BalanceOverflowError if it leaves the balance range."""
    with localcontext(_CONTEXT):
        try:
            result = a - b
        except (Inexact, InvalidOperation):
            raise BalanceOverflowError(f"{a} - {b} is not representable") from None
    if not is_representable(result):
        raise BalanceOverflowError(f"{a} - {b} exceeds {MAX_BALANCE}")
    return result


def format_amount(value: Decimal) -> str:
    """Format decimal with exactly DECIMAL_PLACES decimal places."""
    with localcontext(_CONTEXT):
        return f"{value.quantize(QUANTUM):f}"
