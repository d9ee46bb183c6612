"""
Pipeline Orchestrator - extract, register, chunk, generate, combine.

Every operation follows the same shape:

1. Extract clean text from the page (or the report sources)
2. Register a Task; a duplicate of an in-flight task returns None
3. Chunk the text and start the task with the unit count
4. Validate the content
5. Probe service availability (UNSUPPORTED fails fast, NEEDS_DOWNLOAD
   only emits an advisory progress message)
6. Drive the generation service chunk by chunk
7. Combine and complete the task

Failures set the task ERRORED with the exception attached; cancellation
leaves it CANCELLED. The terminal Task is returned either way, so the host
UI reads the result or task.error_message from it.

Usage:
    config = load_pipeline_config()
    orchestrator = PipelineOrchestrator(service, TaskRegistry.from_config(config, estimator), config=config)
    task = await orchestrator.summarize(
        PageDocument(html=html, title=title, url=url),
        SummaryOptions(type="tldr"),
        progress_callback=lambda message, percent: print(percent, message),
    )
    if task is not None and task.status == TaskStatus.COMPLETED:
        print(task.result.summary)
"""

import asyncio
from collections.abc import Awaitable, Callable

from studyscribe.config import PipelineConfig, load_pipeline_config
from studyscribe.errors import (
    CancellationSignal,
    InvalidInputError,
    ServiceUnavailableError,
    StudyScribeError,
)
from studyscribe.extraction import (
    ContentExtractor,
    PageDocument,
    SourceMode,
    extract_text,
    validate_content,
)
from studyscribe.generation.service import Availability, Capability, GenerationService
from studyscribe.logging_config import Timer, debug_log, error, info, warning
from studyscribe.tasks import OperationType, Task, TaskRegistry

from .flashcards import FlashcardOptions, FlashcardPipeline
from .progress import ProgressCallback, ProgressReporter
from .report import ReportOptions, ReportPipeline, ReportSource
from .result_types import FlashcardResult, SummaryResult
from .summarize import SummarizePipeline, SummaryOptions

CAPABILITY_LABELS = {
    Capability.SUMMARIZER: "Summarizer",
    Capability.LANGUAGE_MODEL: "Language Model",
}

TaskCreatedCallback = Callable[[Task], None]


class PipelineOrchestrator:
    """
    Runs summarize, flashcard and report operations as registered Tasks.

    Attributes:
        service: GenerationService the operations drive.
        registry: TaskRegistry owning every task this orchestrator creates.
        extractor: ContentExtractor for page documents.
        config: PipelineConfig tunables.
    """

    def __init__(
        self,
        service: GenerationService,
        registry: TaskRegistry,
        extractor: ContentExtractor | None = None,
        config: PipelineConfig | None = None,
    ):
        self.service = service
        self.registry = registry
        self.extractor = extractor or ContentExtractor()
        self.config = config if config is not None else load_pipeline_config()

        self.summarizer = SummarizePipeline(service, self.config)
        self.flashcards = FlashcardPipeline(service, self.config)
        self.reports = ReportPipeline(service, self.config, self.summarizer)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def summarize(
        self,
        document: PageDocument,
        options: SummaryOptions | None = None,
        source_mode: SourceMode = SourceMode.PAGE,
        progress_callback: ProgressCallback | None = None,
        on_task_created: TaskCreatedCallback | None = None,
    ) -> Task | None:
        """
        Summarize a page or the current selection.

        Returns:
            The terminal Task (result is a SummaryResult when COMPLETED),
            or None if the same content is already being summarized.
        """
        options = options or SummaryOptions()
        progress = ProgressReporter(progress_callback)
        progress("Extracting content...", 5)

        extraction = self.extractor.extract(document, source_mode)
        task = self._register(
            OperationType.SUMMARIZE,
            extraction.text,
            {'title': extraction.title, 'url': extraction.url, 'source_kind': extraction.source_kind.value},
            progress,
            on_task_created,
        )
        if task is None:
            return None

        async def work() -> SummaryResult:
            chunks = self.summarizer.make_chunker().chunk_text(extraction.text)
            await self._start(task, len(chunks))
            warnings = self._validate(extraction)

            progress(f"Processing {len(chunks)} chunk(s)...", 10)
            await self._ensure_available(Capability.SUMMARIZER, progress)

            summary = await self.summarizer.summarize_chunks(task, chunks, options, progress)
            return SummaryResult(
                summary=summary,
                summary_type=options.type,
                length=options.length,
                format=options.format,
                chunk_count=len(chunks),
                title=extraction.title,
                url=extraction.url,
                warnings=tuple(warnings),
            )

        return await self._drive(task, work, progress)

    async def generate_flashcards(
        self,
        document: PageDocument,
        options: FlashcardOptions | None = None,
        source_mode: SourceMode = SourceMode.PAGE,
        progress_callback: ProgressCallback | None = None,
        on_task_created: TaskCreatedCallback | None = None,
    ) -> Task | None:
        """
        Generate multiple-choice flashcards from a page or selection.

        Returns:
            The terminal Task (result is a FlashcardResult when COMPLETED),
            or None for a duplicate request.
        """
        options = options or FlashcardOptions()
        progress = ProgressReporter(progress_callback)
        progress("Extracting content...", 5)

        extraction = self.extractor.extract(document, source_mode)
        task = self._register(
            OperationType.FLASHCARDS,
            extraction.text,
            {'title': extraction.title, 'url': extraction.url, 'count': options.count},
            progress,
            on_task_created,
        )
        if task is None:
            return None

        async def work() -> FlashcardResult:
            chunks = self.flashcards.make_chunker().chunk_text(extraction.text)
            await self._start(task, len(chunks))
            warnings = self._validate(extraction)

            progress("Preparing flashcard generation...", 10)
            await self._ensure_available(Capability.LANGUAGE_MODEL, progress)

            cards, card_warnings = await self.flashcards.generate(task, chunks, options, progress)
            return FlashcardResult(
                flashcards=tuple(cards),
                requested_count=options.count,
                difficulty=options.difficulty,
                chunk_count=len(chunks),
                title=extraction.title,
                url=extraction.url,
                warnings=tuple(warnings + card_warnings),
            )

        return await self._drive(task, work, progress)

    async def synthesize_report(
        self,
        items: list[ReportSource],
        options: ReportOptions | None = None,
        progress_callback: ProgressCallback | None = None,
        on_task_created: TaskCreatedCallback | None = None,
    ) -> Task | None:
        """
        Synthesize one report from several saved sources.

        Raises:
            InvalidInputError: If items is empty or no item has any text

        Returns:
            The terminal Task (result is a ReportResult when COMPLETED),
            or None for a duplicate request.
        """
        if not items:
            raise InvalidInputError("No items to generate report from")

        options = options or ReportOptions()
        progress = ProgressReporter(progress_callback)
        progress("Preparing report generation...", 5)

        sources = [
            ReportSource(
                title=item.title,
                url=item.url,
                text=extract_text(item.text).text,
                full_text=extract_text(item.full_text).text,
                source_type=item.source_type,
            )
            for item in items
        ]
        if not any(source.content for source in sources):
            raise InvalidInputError("None of the report sources contain any text")

        fingerprint_content = "\n".join(
            f"{source.url}\n{source.display_title}\n{source.content}" for source in sources
        )
        task = self._register(
            OperationType.REPORT,
            fingerprint_content,
            {'source_count': len(sources)},
            progress,
            on_task_created,
        )
        if task is None:
            return None

        async def work():
            await self._start(task, len(sources))
            await self._ensure_available(Capability.LANGUAGE_MODEL, progress)
            if any(self.reports.needs_condensing(source) for source in sources):
                await self._ensure_available(Capability.SUMMARIZER, progress)

            return await self.reports.synthesize(task, sources, options, progress)

        return await self._drive(task, work, progress)

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------

    def _register(
        self,
        operation_type: OperationType,
        content: str,
        metadata: dict,
        progress: ProgressReporter,
        on_task_created: TaskCreatedCallback | None,
    ) -> Task | None:
        task = self.registry.create_task(operation_type, content, metadata)
        if task is None:
            info(f"[PIPELINE] {operation_type.value} already in progress for this content")
            return None

        progress.attach(task)
        progress("Content extracted", 5)
        if on_task_created:
            on_task_created(task)
        return task

    async def _start(self, task: Task, unit_count: int) -> None:
        await task.start(unit_count)
        task.token.raise_if_cancelled()

    def _validate(self, extraction) -> list[str]:
        """Raises ContentTooShortError; returns non-fatal warnings."""
        warnings = validate_content(extraction)
        for message in warnings:
            warning(f"[PIPELINE] Content validation warning: {message}")
        return warnings

    async def _ensure_available(self, capability: Capability, progress: ProgressReporter) -> None:
        """
        Fail fast when a capability cannot be used.

        Raises:
            ServiceUnavailableError: Capability missing or unsupported
        """
        label = CAPABILITY_LABELS[capability]

        if not self.service.supports(capability):
            raise ServiceUnavailableError(label, "not supported in this environment")

        availability = await self.service.availability(capability)
        debug_log(f"[PIPELINE] {label} availability: {availability.value}")

        if availability == Availability.UNSUPPORTED:
            raise ServiceUnavailableError(label)
        if availability == Availability.NEEDS_DOWNLOAD:
            progress(f"{label} model will download on first use...", 12)

    async def _drive(
        self,
        task: Task,
        work: Callable[[], Awaitable],
        progress: ProgressReporter,
    ) -> Task:
        """Run an operation body and move the task to its terminal state."""
        try:
            with Timer(f"{task.operation_type.value} {task.id}"):
                result = await work()
            task.token.raise_if_cancelled()
            progress("Complete", 100)
            await task.complete(result)
        except CancellationSignal:
            info(f"[PIPELINE] Task {task.id} cancelled")
        except asyncio.CancelledError:
            task.cancel()
            raise
        except StudyScribeError as e:
            warning(f"[PIPELINE] Task {task.id} failed: {e.user_message}")
            task.set_error(e)
        except Exception as e:
            error(f"[PIPELINE] Unexpected error in task {task.id}: {e}", exc_info=True)
            task.set_error(e)

        return task
