# src/replaypipe/replay/masking.py
"""Masking stage applied to each admitted event before buffering.

When masking is enabled the event is replaced by a structurally
independent copy, so nothing downstream shares mutable state with the
recorder's object. Content redaction by CSS selector needs the live DOM and
is applied by the recorder itself (the selectors are forwarded in its start
options); this stage only logs that selector rules have no effect here.
"""

import copy
import dataclasses

import structlog

from replaypipe.contracts.config import SessionConfig
from replaypipe.contracts.events import RecordedEvent

logger = structlog.get_logger(__name__)


def mask_event(event: RecordedEvent, config: SessionConfig) -> RecordedEvent:
    """Apply configured masking to one event.

    With neither mask_text_inputs nor mask_all_inputs set, the event is
    returned as-is (same object, no copy).

    Never raises: a payload that cannot be deep-copied is passed through
    with a warning.

    Args:
        event: Validated event from the recorder boundary
        config: Session configuration

    Returns:
        The original event, or an independent deep copy of it.
    """
    if not config.masking_enabled:
        return event

    try:
        masked = dataclasses.replace(event, data=copy.deepcopy(event.data))
    except Exception as e:
        logger.warning(
            "Event payload could not be copied for masking, passing through",
            event_kind=event.kind,
            error=str(e),
        )
        return event

    if config.has_selector_rules:
        logger.debug(
            "Selector masking is applied by the recorder; no-op in masking stage",
            event_kind=event.kind,
            mask_text_selector=config.mask_text_selector,
            mask_input_selector=config.mask_input_selector,
        )

    return masked
