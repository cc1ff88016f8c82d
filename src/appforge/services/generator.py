"""Create pipeline: description -> generated document -> persisted application."""

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError

from appforge.config import settings
from appforge.errors.exceptions import AppForgeError, BadRequestError
from appforge.logging_config import bind_pipeline_context, clear_pipeline_context
from appforge.models.enums import GenerationMode, ProgressStep
from appforge.services.document import parse_document
from appforge.services.generation.prompts import CREATE_SYSTEM_PROMPT, build_create_message
from appforge.services.generation.provider import GenerativeService
from appforge.services.id_generator import generate_app_id
from appforge.services.markup import substitute_placeholder
from appforge.services.progress import ProgressReporter, ProgressSink
from appforge.services.reconciler import SchemaReconciler, check_identifiers
from appforge.services.seed_loader import SeedLoader, SeedReport
from appforge.storage.store import AppStore

logger = logging.getLogger(__name__)

UNTITLED = "Untitled App"
_MAX_TITLE_LENGTH = 100


def derive_title(description: str, title: str | None = None) -> str:
    """Explicit title, else the description's first line without heading markers."""
    if title and title.strip():
        return title.strip()[:_MAX_TITLE_LENGTH]
    first_line = description.strip().split("\n")[0]
    return first_line.lstrip("#").strip()[:_MAX_TITLE_LENGTH] or UNTITLED


@dataclass
class CreatedApplication:
    app_id: str
    title: str
    tables: list[str] = field(default_factory=list)
    seed_report: SeedReport = field(default_factory=SeedReport)


class ApplicationGenerator:
    """Generates and persists a new application.

    There is no fallback on this path: any fatal error aborts the request and
    whatever was already persisted for the new application is removed.
    """

    def __init__(
        self,
        store: AppStore,
        service: GenerativeService,
        *,
        placeholder: str | None = None,
        max_tokens: int | None = None,
        progress_interval_chars: int | None = None,
    ):
        self._store = store
        self._service = service
        self._reconciler = SchemaReconciler(store)
        self._seeds = SeedLoader(store)
        self._placeholder = placeholder or settings.app_id_placeholder
        self._max_tokens = max_tokens or settings.generation_max_tokens
        self._interval = progress_interval_chars or settings.progress_interval_chars

    async def create(
        self, description: str, title: str | None = None, progress: ProgressSink | None = None
    ) -> CreatedApplication:
        if not description or not description.strip():
            raise BadRequestError("Description must not be empty")

        reporter = ProgressReporter(progress)
        title = derive_title(description, title)
        app_id = generate_app_id()
        bind_pipeline_context(app_id, GenerationMode.CREATE)
        logger.info("Creating application %r (%d chars of description)", title, len(description))

        persisting = False
        try:
            reporter.emit(ProgressStep.GENERATING, "Generating application...")
            result = await self._service.generate(
                CREATE_SYSTEM_PROMPT,
                build_create_message(title, description),
                max_tokens=self._max_tokens,
                on_chunk=reporter.stream_counter(self._interval),
            )

            reporter.emit(ProgressStep.PARSING, "Parsing generated application...")
            document = parse_document(result.text, result.truncated, label=GenerationMode.CREATE)
            check_identifiers(document.tables, document.new_columns)

            reporter.emit(
                ProgressStep.CREATING_TABLES,
                f"Creating {len(document.tables)} table(s)...",
                tables=[t.name for t in document.tables],
            )
            persisting = True
            report = await self._reconciler.create_tables(app_id, document.tables)

            seed_report = SeedReport()
            if document.seed_data:
                reporter.emit(ProgressStep.SEEDING, "Inserting seed data...")
                seed_report = await self._seeds.load(app_id, document.seed_data)

            markup = substitute_placeholder(document.markup, app_id, self._placeholder)
            await self._store.save_application(app_id, title, markup, description)
        except AppForgeError as exc:
            logger.error("Application creation failed: %s", exc.message)
            if persisting:
                await self._discard(app_id)
            reporter.emit(ProgressStep.ERROR, exc.message, code=exc.code)
            raise
        finally:
            clear_pipeline_context()

        logger.info(
            "Application %s saved: %d table(s), %d seed row(s), %d failed",
            app_id,
            len(report.created_tables),
            seed_report.inserted,
            seed_report.failed,
        )
        reporter.emit(
            ProgressStep.COMPLETE,
            "Application created",
            app_id=app_id,
            title=title,
            seeded=seed_report.summary(),
        )
        return CreatedApplication(app_id, title, report.created_tables, seed_report)

    async def _discard(self, app_id: str) -> None:
        try:
            await self._store.delete_application(app_id)
        except (AppForgeError, SQLAlchemyError):
            logger.exception("Cleanup of partially created application %s failed", app_id)
        else:
            logger.info("Removed partially created application %s", app_id)
