"""
Number utilities: exact base conversion and small numeric helpers.

This module provides positional-notation base conversion over Python's
unbounded-precision integers (convert_base, big_int_power) together with
the everyday helpers used around it: clamping, interpolation, rounding to a
number of places, range checks and random draws.

Base conversion never goes through floating point. A 40-character base-71
string is far beyond the 2**53 range where a float stays exact, so every
step of the parse and the emit works on int.
"""

import logging
import math
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)

# Digit symbols in value order: a symbol's index is its digit value
DEFAULT_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-/=[];',."

# Largest base expressible with the default alphabet
MAX_BASE = len(DEFAULT_ALPHABET)

# Shared generator for rand_int/chance when the caller does not inject one
_default_rng = np.random.default_rng()


class OutOfRangeBaseError(ValueError):
    """
    Raised when a source or output base falls outside [2, len(alphabet)].

    Attributes:
        name: Which parameter was violated ("source_base" or "out_base").
        base: The offending base value.
        max_base: Upper bound implied by the alphabet in use.
    """

    def __init__(self, name: str, base: int, max_base: int):
        self.name = name
        self.base = base
        self.max_base = max_base
        super().__init__(f"{name} must be between 2 and {max_base}, got: {base}")


class InvalidDigitError(ValueError):
    """
    Raised when an input character is not a valid digit for the source base.

    Either the character is missing from the alphabet entirely, or its
    alphabet index is >= source_base (e.g. "2" in base 2).

    Attributes:
        digit: The offending character.
        base: The source base it was parsed against.
    """

    def __init__(self, digit: str, base: int):
        self.digit = digit
        self.base = base
        super().__init__(f"Invalid digit {digit!r} for base {base}.")


def big_int_power(base: int, exponent: int) -> int:
    """
    Raise an integer to a non-negative integer power by repeated squaring.

    **Conceptual**: Exponentiation by squaring needs O(log exponent)
    multiplications instead of O(exponent). With unbounded integers each
    multiplication gets more expensive as operands grow, so the saving
    matters for the long digit strings convert_base handles.

    **Mathematical**:
        base^0 = 1
        base^n = (base^(n//2))^2          if n is even
        base^n = base * (base^(n//2))^2   if n is odd

    **Edge cases**:
    - exponent = 0 returns 1 for every base, including 0 (0^0 = 1 by convention).
    - Negative exponents are not supported.

    Args:
        base: Integer base (any sign).
        exponent: Non-negative integer exponent.

    Returns:
        base ** exponent computed exactly.

    Raises:
        ValueError: If exponent is negative.
    """
    if exponent < 0:
        raise ValueError(f"exponent must be non-negative, got: {exponent}")
    if exponent == 0:
        return 1

    half = big_int_power(base, exponent // 2)
    if exponent % 2 == 0:
        return half * half
    return base * half * half


def _check_base(name: str, base: int, max_base: int) -> None:
    if base < 2 or base > max_base:
        logger.debug("Rejected %s=%s (allowed range 2..%d)", name, base, max_base)
        raise OutOfRangeBaseError(name, base, max_base)


def convert_base(
    value: str,
    source_base: int,
    out_base: int,
    alphabet: str = DEFAULT_ALPHABET,
) -> str:
    """
    Convert a digit string from one base to another (e.g. hexadecimal to binary).

    **Functionally**:
    - Input digits are written most-significant first, as usual.
    - Each character's value is its index in `alphabet`.
    - The result uses the same alphabet, most-significant digit first.
    - Zero, an all-zero input such as "00", and the empty string all convert
      to the single symbol alphabet[0] ("0" with the default alphabet).
    - Leading zeros in the input are accepted and dropped from the output.

    **Example**:
        >>> convert_base("FF", 16, 2)
        '11111111'
        >>> convert_base("255", 10, 16)
        'FF'

    Args:
        value: Digits to convert.
        source_base: Base of `value`, within [2, len(alphabet)].
        out_base: Base of the result, within [2, len(alphabet)].
        alphabet: Digit symbols in value order (defaults to DEFAULT_ALPHABET).

    Returns:
        `value` re-expressed in `out_base`.

    Raises:
        OutOfRangeBaseError: If either base is outside [2, len(alphabet)].
        InvalidDigitError: If a character is not a digit of `source_base`.
    """
    max_base = len(alphabet)
    _check_base("source_base", source_base, max_base)
    _check_base("out_base", out_base, max_base)

    # Parse right to left so each digit's position is its power of source_base
    total = 0
    for position, digit in enumerate(reversed(value)):
        digit_value = alphabet.find(digit)
        if digit_value == -1 or digit_value >= source_base:
            logger.debug("Invalid digit %r in %r for base %d", digit, value, source_base)
            raise InvalidDigitError(digit, source_base)
        total += digit_value * big_int_power(source_base, position)

    if total == 0:
        return alphabet[0]

    digits = []
    while total > 0:
        total, remainder = divmod(total, out_base)
        digits.append(alphabet[remainder])
    return "".join(reversed(digits))


def clamp(number: float, minimum: float, maximum: float) -> float:
    """Clamp `number` into [minimum, maximum]."""
    return max(minimum, min(maximum, number))


def rand_int(
    minimum: int,
    maximum: int,
    inclusive: bool = True,
    rng: Optional[np.random.Generator] = None,
) -> int:
    """
    Draw a uniformly distributed random integer between minimum and maximum.

    Args:
        minimum: Lowest value that can be returned.
        maximum: Upper bound of the range.
        inclusive: If True (default), maximum itself can be returned;
                   if False, the range is [minimum, maximum).
        rng: Optional numpy Generator for reproducible draws.

    Returns:
        Random integer in the requested range. With inclusive=False and
        minimum == maximum the range is empty and minimum is returned.

    Raises:
        ValueError: If minimum > maximum.
    """
    if minimum > maximum:
        raise ValueError(
            f"minimum cannot be greater than maximum, got: {minimum} > {maximum}"
        )

    generator = rng if rng is not None else _default_rng
    upper = maximum + 1 if inclusive else maximum
    if upper <= minimum:
        return minimum
    # Generator.integers excludes the upper bound
    return int(generator.integers(minimum, upper))


def chance(probability: float, rng: Optional[np.random.Generator] = None) -> bool:
    """
    Return True approximately (probability * 100)% of the time.

    Args:
        probability: Number between 0 and 1. Values <= 0 never succeed;
                     values >= 1 always succeed.
        rng: Optional numpy Generator for reproducible draws.
    """
    generator = rng if rng is not None else _default_rng
    return bool(generator.random() < probability)


def round_to(n: float, decimals: int) -> float:
    """
    Round a number to a given number of decimal places.

    Halves round towards positive infinity (2.5 -> 3, -2.5 -> -2) rather than
    to even as the builtin round() does.

    Example:
        >>> round_to(3.14159265, 5)
        3.14159
    """
    factor = 10 ** decimals
    return math.floor(n * factor + 0.5) / factor


def lerp(a: float, b: float, t: float) -> float:
    """
    Linearly interpolate between a and b.

    t = 0 gives a, t = 1 gives b; values outside [0, 1] extrapolate.
    """
    return a + (b - a) * t


def in_range(n: float, minimum: float, maximum: float) -> bool:
    """Check whether n lies in the inclusive range [minimum, maximum]."""
    return minimum <= n <= maximum
