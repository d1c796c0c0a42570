"""
Lookup key normalization.
"""
from typing import Callable, Optional

KeyNormalizer = Callable[[str], str]


def upper_invariant(value: str) -> str:
    """
    Default normalizer: culture-invariant upper case, one character at a time.

    Characters whose upper case form is longer than one character, such as
    "ß" or "ﬁ", are kept as they are; the result always has the
    input's length.
    """
    return "".join(_upper_char(char) for char in value)


def _upper_char(char: str) -> str:
    upper = char.upper()
    return upper if len(upper) == 1 else char


def normalize_key(normalizer: Optional[KeyNormalizer], value: Optional[str]) -> Optional[str]:
    """
    Apply a normalizer to a lookup key.

    A missing normalizer leaves the key unchanged, so the caller owns case
    handling. None stays None.
    """
    if value is None or normalizer is None:
        return value
    return normalizer(value)
