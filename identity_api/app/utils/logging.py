"""Structured logging for upload reconciliation."""

import logging
from typing import Any

from identity_api.app.content.upload import (
    CleanupFailure,
    CleanupReason,
    UploadState,
    UploadTransaction,
)

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the service."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


class StructuredUploadLogger:
    """Structured logger for upload reconciliation."""

    def log_outcome(self, transaction: UploadTransaction) -> None:
        """Log the final state of an upload with structured data."""
        log_data: dict[str, Any] = {
            "kind": transaction.kind,
            "state": transaction.state.value,
            "previous_path": transaction.previous_path,
            "new_path": transaction.new_path,
            "cleanup_failures": len(transaction.cleanup_failures),
        }

        if transaction.errors:
            log_data["errors"] = [error.to_dict() for error in transaction.errors]

        log_msg = f"Upload {transaction.kind} - {transaction.state.value}"

        if transaction.state == UploadState.done:
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})

    def log_cleanup_failure(self, transaction: UploadTransaction, failure: CleanupFailure) -> None:
        """Log a failed cleanup step with its reason."""
        log_data: dict[str, Any] = {
            "kind": transaction.kind,
            "step": failure.step,
            "path": failure.path,
            "reason": failure.reason.value,
        }

        if failure.detail:
            log_data["detail"] = failure.detail

        log_msg = f"Upload cleanup failed: {failure.step} - {failure.reason.value}"

        if failure.reason == CleanupReason.missing:
            logger.debug(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
