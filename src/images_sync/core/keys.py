"""Mapping between object keys and logical image identities.

Identity is inferred purely from naming: an input ``<input>/dir/name.ext`` has
the base key ``dir/name``; a derivative ``<output>/dir/name_<W>x<H>.<fmt>``
belongs to the same base key. Keys are used verbatim, without escaping.
"""

import posixpath
import re
from typing import NamedTuple, Optional

_DIMENSION_TOKEN = re.compile(r"([0-9]+)x([0-9]+)")


class DerivativeKey(NamedTuple):
    """Base key and dimensions parsed from a derivative object key."""

    base_key: str
    width: int
    height: int


def _strip_prefix(key: str, prefix: str) -> Optional[str]:
    if not key.startswith(prefix):
        return None
    return key[len(prefix):].lstrip("/")


def base_key_from_input_key(key: str, input_prefix: str) -> Optional[str]:
    """Strip ``input_prefix`` and the extension, keeping sub-directories."""
    relative = _strip_prefix(key, input_prefix)
    if not relative:
        return None

    directory, filename = posixpath.split(relative)
    name = posixpath.splitext(filename)[0]
    if not name:
        return None
    return posixpath.join(directory, name)


def parse_derivative_suffix(key: str) -> Optional[DerivativeKey]:
    """Parse the trailing ``_<W>x<H>`` token of a derivative key's filename.

    Returns None when the last ``_`` segment is not exactly ``<digits>x<digits>``
    or nothing precedes it.
    """
    directory, filename = posixpath.split(key)
    name = posixpath.splitext(filename)[0]
    parts = name.split("_")
    if len(parts) < 2:
        return None

    match = _DIMENSION_TOKEN.fullmatch(parts[-1])
    if match is None:
        return None

    base_name = "_".join(parts[:-1])
    if not base_name:
        return None

    return DerivativeKey(
        base_key=posixpath.join(directory, base_name),
        width=int(match.group(1)),
        height=int(match.group(2)),
    )


def base_key_from_derivative_key(
    key: str, output_prefix: str
) -> Optional[DerivativeKey]:
    """Like :func:`parse_derivative_suffix`, relative to ``output_prefix``."""
    relative = _strip_prefix(key, output_prefix)
    if not relative:
        return None
    return parse_derivative_suffix(relative)


def derivative_key(
    output_prefix: str, base_key: str, width: int, height: int, image_format: str
) -> str:
    """Build ``<output>/<base_key>_<W>x<H>.<format>``."""
    prefix = output_prefix.rstrip("/")
    name = f"{base_key}_{width}x{height}.{image_format}"
    return f"{prefix}/{name}" if prefix else name
