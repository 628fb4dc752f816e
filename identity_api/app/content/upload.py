"""Upload reconciliation: attach a stored file to its entity.

When a file upload completes, the target entity's ``image_path`` is switched
to the new file and persisted through the domain manager. A rejected update
deletes the new file and raises; an accepted one deletes the previous file and
clears its cached derivatives. Cleanup is best-effort: failures are recorded
on the transaction, logged and counted, never raised and never retried.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from identity_api.app.content.cache import ImageCache
from identity_api.app.content.storage import UPLOAD_CONFIGS, ContentStore
from identity_api.app.db.models import Organization, Profile, User
from identity_api.app.db.repositories import UpdateResult
from identity_api.app.errors import ConstraintViolationError, FieldError

logger = logging.getLogger(__name__)

DomainUpdate = Callable[[Any], Awaitable[UpdateResult]]


class UploadState(str, Enum):
    """Lifecycle of an upload transaction."""

    pending = "pending"
    applied = "applied"
    cleaning_up = "cleaning_up"
    done = "done"
    rejected = "rejected"


class CleanupReason(str, Enum):
    """Why a best-effort cleanup step failed."""

    missing = "missing"
    permission_denied = "permission_denied"
    os_error = "os_error"
    cache_error = "cache_error"
    unexpected = "unexpected"


@dataclass(frozen=True)
class CleanupFailure:
    """One failed cleanup step."""

    step: str  # remove_previous, remove_new, clear_cache
    path: str
    reason: CleanupReason
    detail: str = ""


@dataclass
class UploadTransaction:
    """Change of an entity's image path, created per upload."""

    target: Any
    previous_path: str | None
    new_path: str
    kind: str = "unknown"
    state: UploadState = UploadState.pending
    errors: list[FieldError] = field(default_factory=list)
    cleanup_failures: list[CleanupFailure] = field(default_factory=list)


class FileStore(Protocol):
    """File operations the reconciler needs."""

    def absolute_path(self, relative: str) -> Any: ...

    def remove_file(self, relative: str) -> None: ...


class UploadRejectedError(ConstraintViolationError):
    """Upload rejected by the domain manager; the new file was removed."""

    def __init__(self, transaction: UploadTransaction) -> None:
        super().__init__(transaction.errors)
        self.transaction = transaction


# Metrics interface
class UploadMetrics:
    """Interface for upload metrics."""

    def inc_upload(self, target: str, outcome: str) -> None:
        """Increment upload outcome counter."""
        pass

    def inc_cleanup_failure(self, step: str, reason: str) -> None:
        """Increment cleanup failure counter."""
        pass


# Logging interface
class UploadLogger:
    """Interface for structured logging."""

    def log_outcome(self, transaction: UploadTransaction) -> None:
        """Log the final state of an upload."""
        pass

    def log_cleanup_failure(self, transaction: UploadTransaction, failure: CleanupFailure) -> None:
        """Log a failed cleanup step."""
        pass


def _classify(exc: Exception) -> CleanupReason:
    if isinstance(exc, FileNotFoundError):
        return CleanupReason.missing
    if isinstance(exc, PermissionError):
        return CleanupReason.permission_denied
    if isinstance(exc, OSError):
        return CleanupReason.os_error
    return CleanupReason.unexpected


class UploadReconciler:
    """Applies a new image path to an entity and cleans up behind it."""

    def __init__(
        self,
        files: FileStore,
        cache: ImageCache | None = None,
        metrics: UploadMetrics | None = None,
        logger: UploadLogger | None = None,
    ) -> None:
        """Initialize reconciler.

        Args:
            files: Store holding uploaded files
            cache: Image-derivative cache (optional)
            metrics: Metrics recorder (optional, defaults to no-op)
            logger: Structured logger (optional, defaults to no-op)
        """
        self._files = files
        self._cache = cache
        self._metrics = metrics or UploadMetrics()
        self._logger = logger or UploadLogger()

    async def apply(
        self, target: Any, new_path: str, domain_update: DomainUpdate, *, kind: str = "unknown"
    ) -> UploadTransaction:
        """Switch the target's image to ``new_path``.

        Args:
            target: Entity with an ``image_path`` attribute
            new_path: Stored path of the uploaded file
            domain_update: Validating persistence call for the target
            kind: Upload target kind (for logs and metrics)

        Returns:
            Transaction in state ``done``

        Raises:
            UploadRejectedError: The domain manager rejected the target; the
                in-memory ``image_path`` stays on ``new_path`` and the new file
                is removed
        """
        tx = UploadTransaction(
            target=target,
            previous_path=target.image_path,
            new_path=new_path,
            kind=kind,
        )

        target.image_path = new_path
        result = await domain_update(target)

        if not result.valid:
            tx.state = UploadState.rejected
            tx.errors = list(result.errors)
            self._remove(tx, "remove_new", new_path)
            self._finish(tx)
            raise UploadRejectedError(tx)

        tx.state = UploadState.applied
        self._cleanup(tx)

        tx.state = UploadState.done
        self._finish(tx)
        return tx

    def _cleanup(self, tx: UploadTransaction) -> None:
        tx.state = UploadState.cleaning_up
        previous = tx.previous_path
        if not previous:
            return

        if previous != tx.new_path:
            self._remove(tx, "remove_previous", previous)
        if self._cache is not None:
            self._clear_cache(tx, self._cache, previous)

    def _remove(self, tx: UploadTransaction, step: str, path: str) -> None:
        try:
            self._files.remove_file(path)
        except Exception as e:
            self._record(tx, CleanupFailure(step, path, _classify(e), str(e)))

    def _clear_cache(self, tx: UploadTransaction, cache: ImageCache, path: str) -> None:
        try:
            cache.clear(str(self._files.absolute_path(path)))
        except Exception as e:
            self._record(tx, CleanupFailure("clear_cache", path, CleanupReason.cache_error, str(e)))

    def _record(self, tx: UploadTransaction, failure: CleanupFailure) -> None:
        tx.cleanup_failures.append(failure)
        self._metrics.inc_cleanup_failure(failure.step, failure.reason.value)
        self._logger.log_cleanup_failure(tx, failure)

    def _finish(self, tx: UploadTransaction) -> None:
        self._metrics.inc_upload(tx.kind, tx.state.value)
        self._logger.log_outcome(tx)


@dataclass(frozen=True)
class UploadCompleted:
    """A file was stored for an upload target kind."""

    kind: str
    target: Any
    path: str


# Entity type accepted by each upload target kind
_TARGET_TYPES: dict[str, type] = {
    "user_image": User,
    "organization_image": Organization,
    "user_profile_image": Profile,
}


class UploadCompletionHandler:
    """Reconciles completed uploads whose kind and target it recognizes."""

    def __init__(self, reconciler: UploadReconciler, domain_update: DomainUpdate) -> None:
        self._reconciler = reconciler
        self._domain_update = domain_update

    async def handle(self, event: UploadCompleted) -> UploadTransaction | None:
        """Reconcile the upload.

        Returns:
            Transaction, or None when the kind or target is not recognized
        """
        target_type = _TARGET_TYPES.get(event.kind)
        if target_type is None or not isinstance(event.target, target_type):
            logger.debug(f"Ignoring upload of kind {event.kind}")
            return None

        return await self._reconciler.apply(
            event.target, event.path, self._domain_update, kind=event.kind
        )


class ContentManager:
    """Stores uploaded files and hands them to the completion handler."""

    def __init__(self, store: ContentStore, handler: UploadCompletionHandler) -> None:
        self._store = store
        self._handler = handler

    @property
    def store(self) -> ContentStore:
        return self._store

    async def upload(
        self, kind: str, target: Any, filename: str, data: bytes
    ) -> UploadTransaction | None:
        """Store an uploaded file and reconcile it with its target.

        Raises:
            ValueError: Unknown upload kind
            ConstraintViolationError: File rejected by the upload config or
                target rejected by the domain manager
        """
        config = UPLOAD_CONFIGS.get(kind)
        if config is None:
            raise ValueError(f"Unknown upload kind: {kind!r}")

        path = self._store.store(config, filename, data)
        tx = await self._handler.handle(UploadCompleted(kind=kind, target=target, path=path))
        if tx is None:
            self.remove_image(path)
        return tx

    def remove_image(self, path: str | None) -> None:
        """Delete an entity's image file; failures are logged, never raised."""
        if not path:
            return
        try:
            self._store.remove_file(path)
        except FileNotFoundError:
            logger.debug("Image already removed", extra={"structured": {"path": path}})
        except (OSError, ValueError) as e:
            logger.warning(
                f"Failed to remove image: {e}",
                extra={"structured": {"path": path, "reason": _classify(e).value}},
            )
