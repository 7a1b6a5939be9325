"""Serial code generation for purchased units.

Codes are drawn from the ``secrets`` CSPRNG over a 32-symbol alphabet that
omits the look-alike characters ``0``, ``1``, ``I`` and ``O``.  With the
default 16 symbols that is 80 bits per code, so a collision is not
expected before roughly 2**40 codes exist.  No existence check is made;
the unique constraint on ``SerialCode.code`` turns a collision into a
rolled-back checkout rather than a duplicate.
"""

import secrets

from storefront.catalog.items import get_adapter
from storefront.settings import get_config

ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
GROUP_SIZE = 4


def _random_body(length: int) -> str:
    chars = "".join(secrets.choice(ALPHABET) for _ in range(length))
    return "-".join(chars[i : i + GROUP_SIZE] for i in range(0, length, GROUP_SIZE))


def generate_serial_codes(product_line: str, count: int) -> list[str]:
    """Generate ``count`` serial codes for units of ``product_line``.

    Codes look like ``SW-7K2M-9QX4-ABCD-H3T8``, using the prefix configured
    for the product line.

    Args:
        product_line: The product line the units belong to.
        count: Number of codes to generate.

    Returns:
        A list of ``count`` codes.

    Raises:
        ValueError: If ``count`` is negative.
    """
    if count < 0:
        msg = "count must not be negative"
        raise ValueError(msg)
    prefix = get_adapter(product_line).serial_prefix()
    length = get_config().serials.length
    return [f"{prefix}-{_random_body(length)}" for _ in range(count)]
