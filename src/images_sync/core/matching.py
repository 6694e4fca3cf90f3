"""Resolve concrete derivative dimensions to configured specs."""

from typing import Iterable, List, Optional, Sequence

from .exceptions import ConfigError
from .models import DerivativeSpec


def spec_identity(spec: DerivativeSpec) -> str:
    """``width:<W>`` when width is set, else ``height:<H>``."""
    return spec.constraint.identity


def matches(spec: DerivativeSpec, width: int, height: int) -> bool:
    """Exact equality on every axis the spec constrains."""
    return spec.constraint.satisfied_by(width, height)


def match_spec(
    specs: Iterable[DerivativeSpec], width: int, height: int
) -> Optional[DerivativeSpec]:
    """Return the single spec satisfied by ``width``x``height``.

    Zero or several candidates both mean there is no authoritative match.
    """
    candidates: List[DerivativeSpec] = [
        spec for spec in specs if matches(spec, width, height)
    ]
    if len(candidates) == 1:
        return candidates[0]
    return None


def validate_specs(specs: Sequence[DerivativeSpec]) -> None:
    """Reject specs without dimensions and specs sharing an identity.

    Raises:
        ConfigError: on the first offending spec
    """
    seen = set()
    for index, spec in enumerate(specs):
        identity = spec_identity(spec)
        if identity in seen:
            raise ConfigError(
                f"Duplicate dimension found in output image config at index {index}: {identity}"
            )
        seen.add(identity)
