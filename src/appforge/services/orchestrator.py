"""Two-phase edit protocol.

    ANALYZING -> FAST_ATTEMPT -> COMPLETE
                      |
                      v
                  FALLBACK ----> COMPLETE
                      |
                      v
                    ERROR

The fast phase asks for search/replace patches against the current markup.
Anything that goes wrong while planning it moves the edit to the fallback
phase, which asks for a complete replacement document. Nothing from a failed
fast phase is carried into the fallback, and nothing is written until one of
the phases has produced a complete plan.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from appforge.config import settings
from appforge.errors.exceptions import AppForgeError, BadRequestError, NotFoundError, ParseError
from appforge.logging_config import bind_pipeline_context, clear_pipeline_context
from appforge.models.application import ApplicationRecord
from appforge.models.document import ColumnDefinition, TableDefinition
from appforge.models.enums import EditPhase, EditState, GenerationMode, ProgressStep
from appforge.services.document import parse_document, parse_patch_document
from appforge.services.generation.prompts import (
    FAST_EDIT_SYSTEM_PROMPT,
    FULL_EDIT_SYSTEM_PROMPT,
    build_edit_message,
)
from appforge.services.generation.provider import GenerativeService
from appforge.services.locks import AppLockRegistry
from appforge.services.markup import substitute_placeholder
from appforge.services.patching import apply_patches
from appforge.services.progress import ProgressReporter, ProgressSink
from appforge.services.reconciler import ReconciliationReport, SchemaReconciler, check_identifiers
from appforge.services.seed_loader import SeedLoader, SeedReport
from appforge.storage.store import AppStore

logger = logging.getLogger(__name__)


@dataclass
class EditPlan:
    """Everything one phase wants written. Built without touching storage."""

    phase: EditPhase
    markup: str
    new_tables: list[TableDefinition] = field(default_factory=list)
    new_columns: dict[str, list[ColumnDefinition]] = field(default_factory=dict)
    seed_data: dict[str, Any] = field(default_factory=dict)


@dataclass
class EditOutcome:
    app_id: str
    state: EditState
    phase: EditPhase | None = None
    error: str | None = None
    fast_failure: str | None = None
    reconciliation: ReconciliationReport = field(default_factory=ReconciliationReport)
    seed_report: SeedReport = field(default_factory=SeedReport)

    @property
    def succeeded(self) -> bool:
        return self.state == EditState.COMPLETE


class EditOrchestrator:
    def __init__(
        self,
        store: AppStore,
        service: GenerativeService,
        locks: AppLockRegistry | None = None,
        *,
        placeholder: str | None = None,
        full_max_tokens: int | None = None,
        fast_max_tokens: int | None = None,
        progress_interval_chars: int | None = None,
    ):
        self._store = store
        self._service = service
        self._locks = locks or AppLockRegistry()
        self._reconciler = SchemaReconciler(store)
        self._seeds = SeedLoader(store)
        self._placeholder = placeholder or settings.app_id_placeholder
        self._full_max_tokens = full_max_tokens or settings.generation_max_tokens
        self._fast_max_tokens = fast_max_tokens or settings.fast_edit_max_tokens
        self._interval = progress_interval_chars or settings.progress_interval_chars

    async def edit(self, app_id: str, description: str, progress: ProgressSink | None = None) -> EditOutcome:
        """Run one edit request to a terminal state.

        Raises NotFoundError for an unknown application; every other failure
        ends in an ERROR outcome carrying the failure's message.
        """
        if not description or not description.strip():
            raise BadRequestError("Edit description must not be empty")

        reporter = ProgressReporter(progress)
        async with self._locks.hold(app_id):
            bind_pipeline_context(app_id, "edit")
            try:
                outcome = await self._run(app_id, description, reporter)
            finally:
                clear_pipeline_context()
            await self._record(description, outcome)
        return outcome

    async def _run(self, app_id: str, description: str, reporter: ProgressReporter) -> EditOutcome:
        logger.info("Editing application %s: %.100r", app_id, description)
        reporter.emit(ProgressStep.ANALYZING, "Analyzing current application...")
        app = await self._store.get_application(app_id)
        if app is None:
            reporter.emit(ProgressStep.ERROR, f"Application '{app_id}' not found", code="NOT_FOUND")
            raise NotFoundError("Application", app_id)
        schema = await self._store.get_schema(app_id)
        logger.info("Current schema: %d table(s), markup %d chars", len(schema), len(app.markup))
        user_message = build_edit_message(app.markup, schema, description)

        reporter.emit(ProgressStep.FAST_ATTEMPT, "Trying a quick patch-based edit...")
        fast_failure = None
        try:
            plan = await self._plan_fast(app, user_message, reporter)
        except AppForgeError as exc:
            fast_failure = exc.message
            logger.warning("Fast edit not usable (%s: %s), falling back to full regeneration", exc.code, exc.message)
            reporter.emit(
                ProgressStep.FALLBACK,
                "Quick edit not applicable, regenerating the full application...",
                reason=exc.code,
            )
            try:
                plan = await self._plan_fallback(schema, user_message, reporter)
            except AppForgeError as exc:
                return self._fail(app_id, EditPhase.FALLBACK, exc.message, reporter, fast_failure)

        try:
            reconciliation, seed_report = await self._commit(app_id, plan, reporter)
        except (AppForgeError, SQLAlchemyError) as exc:
            message = exc.message if isinstance(exc, AppForgeError) else f"Failed to persist edit: {exc}"
            return self._fail(app_id, plan.phase, message, reporter, fast_failure)

        logger.info("Edit of %s complete via %s phase", app_id, plan.phase)
        reporter.emit(
            ProgressStep.COMPLETE,
            "Application updated",
            app_id=app_id,
            phase=plan.phase,
            seeded=seed_report.summary(),
        )
        return EditOutcome(
            app_id=app_id,
            state=EditState.COMPLETE,
            phase=plan.phase,
            fast_failure=fast_failure,
            reconciliation=reconciliation,
            seed_report=seed_report,
        )

    async def _plan_fast(self, app: ApplicationRecord, user_message: str, reporter: ProgressReporter) -> EditPlan:
        result = await self._service.generate(
            FAST_EDIT_SYSTEM_PROMPT,
            user_message,
            max_tokens=self._fast_max_tokens,
            on_chunk=reporter.stream_counter(self._interval),
        )
        if result.truncated:
            # Repair could silently drop trailing patches
            raise ParseError("Fast edit response was truncated")

        document = parse_patch_document(result.text, label=GenerationMode.FAST_EDIT)
        check_identifiers(new_columns=document.new_columns)
        markup = apply_patches(app.markup, document.patches)
        return EditPlan(
            phase=EditPhase.FAST,
            markup=markup,
            new_columns=document.new_columns,
            seed_data=document.seed_data,
        )

    async def _plan_fallback(
        self, schema: list[TableDefinition], user_message: str, reporter: ProgressReporter
    ) -> EditPlan:
        result = await self._service.generate(
            FULL_EDIT_SYSTEM_PROMPT,
            user_message,
            max_tokens=self._full_max_tokens,
            on_chunk=reporter.stream_counter(self._interval),
        )
        reporter.emit(ProgressStep.PARSING, "Parsing regenerated application...")
        document = parse_document(result.text, result.truncated, label=GenerationMode.FULL_EDIT)
        new_tables = self._reconciler.select_new_tables(document, {t.name for t in schema})
        check_identifiers(new_tables, document.new_columns)
        return EditPlan(
            phase=EditPhase.FALLBACK,
            markup=document.markup,
            new_tables=new_tables,
            new_columns=document.new_columns,
            seed_data=document.seed_data,
        )

    async def _commit(
        self, app_id: str, plan: EditPlan, reporter: ProgressReporter
    ) -> tuple[ReconciliationReport, SeedReport]:
        reporter.emit(ProgressStep.APPLYING, f"Applying {plan.phase} edit...")
        reconciliation = ReconciliationReport()
        if plan.new_tables:
            reporter.emit(
                ProgressStep.CREATING_TABLES,
                f"Creating {len(plan.new_tables)} new table(s)...",
                tables=[t.name for t in plan.new_tables],
            )
            await self._reconciler.create_tables(app_id, plan.new_tables, reconciliation)
        if plan.new_columns:
            await self._reconciler.add_columns(app_id, plan.new_columns, reconciliation)

        seed_report = SeedReport()
        if plan.seed_data:
            reporter.emit(ProgressStep.SEEDING, "Inserting seed data...")
            seed_report = await self._seeds.load(app_id, plan.seed_data)

        await self._store.update_markup(app_id, substitute_placeholder(plan.markup, app_id, self._placeholder))
        return reconciliation, seed_report

    def _fail(
        self,
        app_id: str,
        phase: EditPhase,
        message: str,
        reporter: ProgressReporter,
        fast_failure: str | None,
    ) -> EditOutcome:
        logger.error("Edit of %s failed in %s phase: %s", app_id, phase, message)
        reporter.emit(ProgressStep.ERROR, message, app_id=app_id, phase=phase)
        return EditOutcome(
            app_id=app_id,
            state=EditState.ERROR,
            phase=phase,
            error=message,
            fast_failure=fast_failure,
        )

    async def _record(self, description: str, outcome: EditOutcome) -> None:
        try:
            await self._store.record_edit_request(
                outcome.app_id, description, outcome.state, outcome.phase, outcome.error
            )
        except (AppForgeError, SQLAlchemyError):
            logger.exception("Failed to record edit request for %s", outcome.app_id)
