"""Build the reconciliation state by diffing inputs against derivatives.

Nothing is persisted between runs: both prefixes are listed and every map is
rebuilt from the object keys alone.
"""

import asyncio
from typing import Dict, Iterable, List, Optional

from .keys import base_key_from_derivative_key, base_key_from_input_key
from .logging_config import get_logger
from .matching import match_spec, matches, spec_identity, validate_specs
from .models import (
    ExistingDerivative,
    InputImage,
    PendingMutation,
    ReconciliationState,
    SyncConfig,
)
from .protocols import ObjectStore

logger = get_logger("images_sync.state")

InputImageMap = Dict[str, InputImage]
DerivativeMap = Dict[str, List[ExistingDerivative]]
PendingMap = Dict[str, List[PendingMutation]]


def _nested_prefix(inner: str, outer: str) -> Optional[str]:
    """``inner`` when it is a strict sub-prefix of ``outer``, else None."""
    if inner != outer and inner.startswith(outer):
        return inner
    return None


def collect_input_images(keys: Iterable[str], config: SyncConfig) -> InputImageMap:
    """Index input keys by base key.

    Keys are visited in lexicographic order so the first-wins choice on a
    base key collision does not depend on listing order.
    """
    # An output prefix nested inside the input prefix is not an input
    nested_output = _nested_prefix(config.output_prefix, config.input_prefix)

    input_images: InputImageMap = {}
    for key in sorted(keys):
        if nested_output and key.startswith(nested_output):
            continue
        base_key = base_key_from_input_key(key, config.input_prefix)
        if base_key is None:
            continue
        if base_key in input_images:
            logger.warning(
                f"Multiple input keys share the base key '{base_key}'. "
                f"Keeping {input_images[base_key].key}, ignoring: {key}"
            )
            continue
        input_images[base_key] = InputImage(base_key=base_key, key=key)
    return input_images


def collect_existing_derivatives(
    keys: Iterable[str], input_images: InputImageMap, config: SyncConfig
) -> DerivativeMap:
    """Group parseable derivative keys by base key.

    Keys without a valid ``_<W>x<H>`` suffix are not managed and are skipped,
    as are source images when the input prefix lies inside the output prefix.
    """
    nested_input = _nested_prefix(config.input_prefix, config.output_prefix)

    derivatives: DerivativeMap = {}
    for key in keys:
        if nested_input and key.startswith(nested_input):
            continue
        parsed = base_key_from_derivative_key(key, config.output_prefix)
        if parsed is None:
            continue

        source = input_images.get(parsed.base_key)
        derivatives.setdefault(parsed.base_key, []).append(
            ExistingDerivative(
                key=key,
                base_key=parsed.base_key,
                actual_width=parsed.width,
                actual_height=parsed.height,
                matched_spec=match_spec(
                    config.output_images, parsed.width, parsed.height
                ),
                source_key=source.key if source else None,
            )
        )
    return derivatives


def _distinct_source_keys(group: List[ExistingDerivative]) -> set:
    return {derivative.source_key for derivative in group}


def find_inconsistent_groups(derivatives: DerivativeMap) -> List[str]:
    """Base keys whose members resolve to more than one distinct source key."""
    inconsistent = []
    for base_key, group in derivatives.items():
        source_keys = _distinct_source_keys(group)
        if len(source_keys) > 1:
            logger.error(
                f"Derivatives of '{base_key}' resolve to more than one source key "
                f"{sorted(str(k) for k in source_keys)}; leaving the group untouched"
            )
            inconsistent.append(base_key)
    return inconsistent


def find_orphans(derivatives: DerivativeMap) -> List[str]:
    """Keys of every derivative whose whole group has no source image."""
    orphan_keys: List[str] = []
    for group in derivatives.values():
        source_keys = _distinct_source_keys(group)
        if source_keys == {None}:
            orphan_keys.extend(derivative.key for derivative in group)
    return orphan_keys


def find_gaps(config: SyncConfig, derivatives: DerivativeMap) -> PendingMap:
    """Specs not yet satisfied by any derivative of a consistently sourced group."""
    pending: PendingMap = {}
    for base_key, group in derivatives.items():
        source_keys = _distinct_source_keys(group)
        if len(source_keys) != 1:
            continue
        source_key: Optional[str] = next(iter(source_keys))
        if source_key is None:
            continue

        for spec in config.output_images:
            satisfied = any(
                matches(spec, derivative.actual_width, derivative.actual_height)
                for derivative in group
            )
            if not satisfied:
                pending.setdefault(base_key, []).append(
                    PendingMutation(
                        base_key=base_key, source_input_key=source_key, spec=spec
                    )
                )
    return pending


def add_new_inputs(
    config: SyncConfig,
    input_images: InputImageMap,
    derivatives: DerivativeMap,
    pending: PendingMap,
) -> PendingMap:
    """Queue every spec for inputs without any derivative yet.

    Specs whose identity is already pending for the base key are not added
    twice. ``pending`` is updated in place and returned.
    """
    for base_key, input_image in input_images.items():
        if base_key in derivatives:
            continue

        for spec in config.output_images:
            queued = pending.get(base_key, [])
            identity = spec_identity(spec)
            if any(spec_identity(m.spec) == identity for m in queued):
                continue
            pending.setdefault(base_key, []).append(
                PendingMutation(
                    base_key=base_key, source_input_key=input_image.key, spec=spec
                )
            )
    return pending


def reconcile(
    input_keys: Iterable[str], output_keys: Iterable[str], config: SyncConfig
) -> ReconciliationState:
    """Compute the reconciliation state from already listed keys."""
    validate_specs(config.output_images)

    input_images = collect_input_images(input_keys, config)
    logger.info(f"Input images: {len(input_images)}")

    derivatives = collect_existing_derivatives(output_keys, input_images, config)
    state = ReconciliationState(
        input_images=input_images, existing_derivatives=derivatives
    )
    logger.info(f"Output images already created: {state.existing_count}")

    state.inconsistent_base_keys = find_inconsistent_groups(derivatives)
    state.orphan_keys = find_orphans(derivatives)
    logger.info(f"Unmatched output images: {len(state.orphan_keys)}")

    pending = find_gaps(config, derivatives)
    state.pending_mutations = add_new_inputs(config, input_images, derivatives, pending)
    logger.info(f"Images to create: {state.pending_count}")

    return state


class StateBuilder:
    """Lists the store and builds a :class:`ReconciliationState`."""

    def __init__(self, store: ObjectStore):
        self._store = store

    async def build(self, config: SyncConfig) -> ReconciliationState:
        """
        List both prefixes and reconcile them.

        Raises:
            ConfigError: before any store access, for invalid specs
            StoreUnavailable: when either listing fails
        """
        validate_specs(config.output_images)

        logger.info("Building state")
        input_keys = await self._store.list_keys(config.input_prefix)
        output_keys = await self._store.list_keys(config.output_prefix)
        logger.info(f"Number of files: {len(input_keys) + len(output_keys)}")

        return reconcile(input_keys, output_keys, config)


def build_state_sync(store: ObjectStore, config: SyncConfig) -> ReconciliationState:
    """Synchronous wrapper around :meth:`StateBuilder.build`."""
    return asyncio.run(StateBuilder(store).build(config))
