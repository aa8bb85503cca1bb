from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from itemstore_core.transfer.tasks import TransferOutcome


def _kv_pairs(fields: Mapping[str, object]) -> str:
    parts: list[str] = []
    for key, value in fields.items():
        if value is None:
            continue
        text = str(value).strip()
        if not text:
            continue
        parts.append(f"{key}={text}")
    return " ".join(parts)


def log_event(logger: logging.Logger, message: str, **fields: object) -> None:
    """Emit a stable structured log line.

    Host logs are plain text, so key fields are appended as ``k=v`` tokens.
    """

    suffix = _kv_pairs(fields)
    if suffix:
        logger.info("%s %s", message, suffix)
    else:
        logger.info("%s", message)


def outcome_log_fields(outcome: TransferOutcome) -> dict[str, object]:
    """Extract standard fields from a transfer outcome."""

    error = outcome.first_error
    return {
        "kind": outcome.kind.value,
        "attempted": outcome.attempted,
        "succeeded": outcome.succeeded,
        "failed": outcome.failed,
        "first_error_key": error.key if error is not None else None,
    }
