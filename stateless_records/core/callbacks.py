"""Callback Runner — invokes after-save hooks on a freshly persisted record.

Invariants:
    - Called only by StatelessRecord.save(), after the transition to PERSISTED
    - Hooks run in registration order, each exactly once per call
    - Hook exceptions propagate to the caller of save(); nothing is caught here
"""

import logging
from typing import Any

from stateless_records.core.errors import ErrorContext, SchemaDefinitionError

logger = logging.getLogger(__name__)


def run_after_save(record: Any, hook_names: tuple[str, ...]) -> None:
    """Resolve each hook by name on the record and call it with no arguments."""
    record_type = type(record).__name__
    for hook_name in hook_names:
        hook = getattr(record, hook_name, None)
        if not callable(hook):
            raise SchemaDefinitionError(
                f"after_save hook '{hook_name}' is not a method of {record_type}",
                ErrorContext(record_type=record_type),
            )
        logger.debug(
            f"Running after_save hook {hook_name}",
            extra={"record_type": record_type, "hook": hook_name},
        )
        hook()
