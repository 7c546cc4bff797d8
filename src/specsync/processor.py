"""Save a parsed content spec to the backend."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Literal

from specsync.backend import Backend, Validator
from specsync.cancellation import CancellationToken, Compensations
from specsync.changes import SpecChanges
from specsync.config import SPECSYNC_ADDED_BY_PROPERTY_ID
from specsync.duplicates import sync_duplicates
from specsync.exceptions import ProcessingError, ShutdownRequested, SpecSyncError, SpecValidationError
from specsync.pool import TopicPool
from specsync.relationships import merge_relationships
from specsync.schemas import ContentSpec, ContentSpecEntity, PropertyTag, SpecTopic, User
from specsync.topics import build_topic_entity
from specsync.tree import TreeReconciler

logger = logging.getLogger(__name__)


class ProcessorState(str, Enum):
    """Steps a processing run goes through."""

    IDLE = "idle"
    VALIDATING = "validating"
    BUILDING_TOPICS = "building_topics"
    SAVING_POOL = "saving_pool"
    SYNCING_DUPLICATES = "syncing_duplicates"
    MERGING_TREE = "merging_tree"
    MERGING_RELATIONSHIPS = "merging_relationships"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ProcessingOptions:
    """Options for a processing run.

    Attributes:
        validate_only: If True, stop after validation without writing anything.
        mode: "new" creates the content spec, "edited" updates an existing one.
        override_locale: Locale to store instead of the one in the spec.
    """

    validate_only: bool = False
    mode: Literal["new", "edited"] = "new"
    override_locale: str | None = None


@dataclass
class ProcessResult:
    """Outcome of ``Processor.process``. Truthy on success."""

    ok: bool
    state: ProcessorState
    content_spec_id: int | None = None
    shutdown: bool = False
    error: str | None = None
    failed_state: ProcessorState | None = None
    changes: SpecChanges | None = None

    def __bool__(self) -> bool:
        return self.ok

    @property
    def summary(self) -> str:
        if self.ok:
            detail = self.changes.summary() if self.changes is not None else "validated"
            return f"Content spec {self.content_spec_id or '(not saved)'}: {detail}"
        if self.shutdown:
            return "Processing stopped by a shutdown request"
        step = self.failed_state.value if self.failed_state else "unknown"
        return f"Processing failed while {step}: {self.error}"


class Processor:
    """Reconciles one parsed content spec with its persisted copy.

    A processor owns its topic pool and compensation stack, so each instance
    handles exactly one run.
    """

    def __init__(
        self,
        backend: Backend,
        validator: Validator,
        *,
        options: ProcessingOptions | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        self.backend = backend
        self.validator = validator
        self.options = options or ProcessingOptions()
        self.token = token or CancellationToken()
        self.pool = TopicPool(backend)
        self.compensations = Compensations()
        self.state = ProcessorState.IDLE
        self._writing = False

    def _enter(self, state: ProcessorState) -> None:
        self.token.checkpoint()
        logger.info("Processor state: %s -> %s", self.state.value, state.value)
        self.state = state

    async def process(self, content_spec: ContentSpec, user: User | None = None) -> ProcessResult:
        """Validate the content spec and, unless validating only, save it.

        Args:
            content_spec: The parsed content spec.
            user: The user requesting the save. Becomes the assigned writer.

        Returns:
            The result of the run. Errors are reported on the result rather
            than raised.
        """
        try:
            self._prepare(content_spec, user)
            await self._validate(content_spec, user)
            if self.options.validate_only:
                self.state = ProcessorState.DONE
                return ProcessResult(ok=True, state=self.state, content_spec_id=content_spec.id)

            await self._build_topics(content_spec)
            with self.token.shield():
                changes = await self._save(content_spec, user)
        except ShutdownRequested:
            logger.warning("Shutdown requested while %s", self.state.value)
            return await self._fail(None, shutdown=True)
        except SpecValidationError as exc:
            logger.error("Content spec is invalid: %s", exc)
            return await self._fail(exc)
        except Exception as exc:
            logger.error("Processing failed while %s: %s", self.state.value, exc)
            if not isinstance(exc, SpecSyncError):
                logger.debug("Unexpected processing error", exc_info=True)
            return await self._fail(exc)

        self.state = ProcessorState.DONE
        logger.info("Saved content spec %s (%s)", content_spec.id, changes.summary())
        return ProcessResult(ok=True, state=self.state, content_spec_id=content_spec.id, changes=changes)

    def _prepare(self, content_spec: ContentSpec, user: User | None) -> None:
        if user is not None:
            content_spec.assigned_writer = user.username
        if self.options.override_locale:
            content_spec.locale = self.options.override_locale
        content_spec.reindex()

    async def _validate(self, content_spec: ContentSpec, user: User | None) -> None:
        self._enter(ProcessorState.VALIDATING)
        unresolved = content_spec.resolve_relationships()
        if unresolved:
            targets = ", ".join(relationship.secondary_id for relationship in unresolved)
            raise SpecValidationError(f"Relationships reference unknown topics or targets: {targets}")
        if not self.validator.pre_validate(content_spec):
            raise SpecValidationError("Content spec failed the first validation pass.")
        if not await self.validator.post_validate(content_spec, user):
            raise SpecValidationError("Content spec failed the second validation pass.")
        logger.info("Content spec is valid")

    async def _build_topics(self, content_spec: ContentSpec) -> None:
        self._enter(ProcessorState.BUILDING_TOPICS)
        for topic in content_spec.spec_topics:
            self.token.checkpoint()
            if not _needs_entity(topic):
                continue
            try:
                entity = await build_topic_entity(self.backend, topic, content_spec.assigned_writer)
            except SpecSyncError as exc:
                raise ProcessingError(f"Failed to create topic {topic.id}: {exc}") from exc
            if entity is None:
                continue
            if topic.is_existing_topic:
                self.pool.add_updated(entity)
            else:
                self.pool.add_new(entity)
        self.token.checkpoint()

    async def _save(self, content_spec: ContentSpec, user: User | None) -> SpecChanges:
        # Nothing below is interrupted; failures are compensated instead.
        self._enter(ProcessorState.SAVING_POOL)
        self._writing = True
        spec_entity = await self._save_content_spec_entity(content_spec, user)

        if not await self.pool.save_pool():
            raise ProcessingError("Failed to save the pool of topics.")
        self.compensations.register("delete pooled topics", self.pool.rollback_pool)
        for topic in content_spec.spec_topics:
            self.pool.initialise_from_pool(topic)

        self._enter(ProcessorState.SYNCING_DUPLICATES)
        sync_duplicates(content_spec.spec_topics)

        self._enter(ProcessorState.MERGING_TREE)
        reconciler = TreeReconciler(self.backend)
        identity = await reconciler.merge_children(
            content_spec.transformable_nodes(), spec_entity.children, None, spec_entity
        )

        self._enter(ProcessorState.MERGING_RELATIONSHIPS)
        merge_relationships(identity, reconciler.changes)

        self._enter(ProcessorState.PERSISTING)
        if not await self.backend.update_nodes(reconciler.changes):
            raise ProcessingError("Saving the content spec contents failed.")
        return reconciler.changes

    async def _save_content_spec_entity(self, content_spec: ContentSpec, user: User | None) -> ContentSpecEntity:
        creating = self.options.mode == "new" and content_spec.id is None
        if content_spec.id is not None:
            entity = await self.backend.get_content_spec(content_spec.id)
        elif creating:
            entity = ContentSpecEntity(title=content_spec.title)
            if user is not None:
                entity.properties.append(PropertyTag(id=SPECSYNC_ADDED_BY_PROPERTY_ID, value=user.username))
        else:
            raise ProcessingError("Unable to find the existing content spec.")

        if entity.locale != content_spec.locale:
            entity.locale = content_spec.locale

        if creating:
            saved = await self.backend.create_content_spec(entity)
            content_spec.id = saved.id
            spec_id = saved.id
            if spec_id is not None:
                self.compensations.register(
                    f"delete content spec {spec_id}",
                    lambda: self.backend.delete_content_spec(spec_id),
                )
            logger.info("Created content spec %s", spec_id)
        else:
            saved = await self.backend.update_content_spec(entity)
            # Updates return the entity without its tree.
            if not saved.children:
                saved.children = entity.children

        if saved.id is None:
            raise ProcessingError("Saving the content spec failed.")
        return saved

    async def _fail(self, exc: Exception | None, *, shutdown: bool = False) -> ProcessResult:
        failed_state = self.state
        if self._writing:
            await self._compensate()
        self.state = ProcessorState.FAILED
        return ProcessResult(
            ok=False,
            state=self.state,
            shutdown=shutdown,
            error=str(exc) if exc is not None else None,
            failed_state=failed_state,
        )

    async def _compensate(self) -> None:
        if self.backend.is_rollback_supported():
            logger.warning("Rolling back the backend transaction")
            try:
                await self.backend.rollback()
            except SpecSyncError as exc:
                logger.error("Backend rollback failed: %s", exc)
            return
        if not await self.compensations.run():
            logger.error("Some changes could not be cleaned up")


def _needs_entity(topic: SpecTopic) -> bool:
    if topic.is_new_topic or topic.is_cloned_topic:
        return True
    return topic.is_existing_topic and bool(topic.tags) and topic.revision is None
