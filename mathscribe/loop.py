"""
Handwriting Pipeline Orchestrator
Runs Transcribe -> Solve -> Write pages -> Validate inside a bounded retry loop.
"""

import asyncio
from typing import Optional

from rich.console import Console

from config import (
    MAX_ATTEMPTS,
    PROGRESS_ANALYZING, PROGRESS_SOLVING, PROGRESS_VALIDATING, PROGRESS_COMPLETED,
)
from .errors import (
    GatewayAccessDenied, PipelineError, AccessDeniedError, EmptySolutionError,
    ValidationRejectedError, SystemFailureError,
)
from .gateway import ModelGateway, GeminiGateway
from .models import GeneratedPage, ImagePayload, ProcessingStep
from .progress import ProgressTracker, ProgressCallback, page_progress
from .solver import ProblemSolver
from .transcriber import ProblemTranscriber
from .validator import SolutionValidator
from .writer import PageWriter


console = Console()

ACCESS_DENIED_MESSAGE = "ACCESS DENIED: API Key invalid."
CANCELLED_MESSAGE = "CANCELLED: run aborted."
COMPLETED_MESSAGE = "Sequence Complete. Output Verified."


class _RetryAttempt(Exception):
    """Internal: the attempt produced nothing usable but more attempts remain."""


class HandwritingPipeline:
    """
    Main pipeline orchestrator.

    Each attempt:
    1. Transcribe the problem image
    2. Solve it into page-sized chunks
    3. Write every page in the sample's handwriting, in order
    4. Validate the pages; retry the whole attempt if rejected

    Access denials abort the run at once. Any other failure is retried until
    ``max_attempts`` is used up.
    """

    def __init__(
        self,
        gateway: Optional[ModelGateway] = None,
        api_key: Optional[str] = None,
        max_attempts: int = MAX_ATTEMPTS,
        verbose: bool = True,
        on_progress: Optional[ProgressCallback] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.gateway = gateway or GeminiGateway(api_key=api_key)
        self.max_attempts = max_attempts
        self.verbose = verbose

        self.transcriber = ProblemTranscriber(self.gateway)
        self.solver = ProblemSolver(self.gateway, verbose=verbose)
        self.writer = PageWriter(self.gateway, verbose=verbose)
        self.validator = SolutionValidator(self.gateway, verbose=verbose)

        self.progress = ProgressTracker()
        if on_progress is not None:
            self.progress.subscribe(on_progress)

        self.pages: list[GeneratedPage] = []
        self.attempts = 0
        self._pending_credential: Optional[str] = None

    @property
    def state(self):
        return self.progress.state

    def set_credential(self, token: str):
        """Replace the credential. Takes effect when the next run starts."""
        self._pending_credential = token

    def _log(self, message: str):
        if self.verbose:
            console.print(message)

    async def run(
        self,
        problem_image: ImagePayload,
        handwriting_sample: ImagePayload,
    ) -> list[GeneratedPage]:
        """
        Produce verified handwritten solution pages.

        Args:
            problem_image: Photo of the math problem
            handwriting_sample: Photo of the handwriting to imitate

        Returns:
            Pages numbered 1..N in solution order

        Raises:
            AccessDeniedError: the backend rejected the credential
            EmptySolutionError: no attempt produced a solution
            ValidationRejectedError: the last attempt failed validation
            SystemFailureError: any other failure on the last attempt
        """
        if self._pending_credential is not None:
            self.gateway.set_credential(self._pending_credential)
            self._pending_credential = None

        self.progress.reset()
        self.pages = []
        self.attempts = 0

        while self.attempts < self.max_attempts:
            self.attempts += 1
            attempt = self.attempts
            last_attempt = attempt == self.max_attempts

            try:
                pages = await self._run_attempt(
                    problem_image, handwriting_sample, attempt, last_attempt
                )
            except _RetryAttempt:
                continue
            except GatewayAccessDenied as e:
                self._log(f"[bold red]✗ Access denied:[/] {e.detail}")
                self.progress.fail(ACCESS_DENIED_MESSAGE)
                raise AccessDeniedError(e.detail, attempt=attempt) from e
            except asyncio.CancelledError:
                self.progress.fail(CANCELLED_MESSAGE)
                raise
            except Exception as e:
                message = str(e) or "Unknown error."
                if not last_attempt:
                    self._log(f"  [yellow]⚠ Attempt {attempt} failed: {message}[/]")
                    continue

                self._log(f"[bold red]✗ Attempt {attempt} failed:[/] {message}")
                self.progress.fail(f"SYSTEM FAILURE: {message}")
                if isinstance(e, PipelineError):
                    e.attempt = attempt
                    raise
                raise SystemFailureError(message, attempt=attempt) from e

            self.pages = pages
            self.progress.advance(ProcessingStep.COMPLETED, COMPLETED_MESSAGE, PROGRESS_COMPLETED)
            self._log(f"[bold green]✓ {len(pages)} page(s) verified on attempt {attempt}[/]")
            return pages

        # Every attempt asked for a retry
        message = "No attempt produced a result."
        self.progress.fail(f"SYSTEM FAILURE: {message}")
        raise SystemFailureError(message, attempt=self.attempts)

    async def _run_attempt(
        self,
        problem_image: ImagePayload,
        handwriting_sample: ImagePayload,
        attempt: int,
        last_attempt: bool,
    ) -> list[GeneratedPage]:
        self._log(f"\n[cyan]Attempt {attempt}/{self.max_attempts}[/]")

        # Step 1: Transcribe
        self.progress.advance(
            ProcessingStep.ANALYZING,
            f"Reading problem (Attempt {attempt})...",
            PROGRESS_ANALYZING,
        )
        problem_text = await self.transcriber.transcribe(problem_image)

        # Step 2: Solve
        self.progress.advance(
            ProcessingStep.SOLVING,
            "Solving problem step-by-step...",
            PROGRESS_SOLVING,
        )
        solution_steps = await self.solver.solve(problem_text)

        if not solution_steps:
            if last_attempt:
                raise EmptySolutionError(attempt=attempt)
            self._log("  [yellow]→ Empty solution, retrying...[/]")
            raise _RetryAttempt()

        # Step 3: Write pages (strictly in order)
        pages: list[GeneratedPage] = []
        total = len(solution_steps)
        for index, step_text in enumerate(solution_steps):
            self.progress.advance(
                ProcessingStep.GENERATING_PAGES,
                f"Writing page {index + 1}/{total}...",
                page_progress(index, total),
            )
            pages.append(await self.writer.write_page(handwriting_sample, step_text, index))

        # Step 4: Validate
        self.progress.advance(
            ProcessingStep.VALIDATING,
            "Verifying solution quality...",
            PROGRESS_VALIDATING,
        )
        verdict = await self.validator.validate(problem_image, pages)

        if not verdict.valid:
            if last_attempt:
                raise ValidationRejectedError(verdict.reason, attempt=attempt)
            self._log(f"  [yellow]→ Attempt {attempt} failed validation: {verdict.reason}[/]")
            raise _RetryAttempt()

        return pages

    def run_sync(
        self,
        problem_image: ImagePayload,
        handwriting_sample: ImagePayload,
    ) -> list[GeneratedPage]:
        """Synchronous wrapper for run."""
        return asyncio.run(self.run(problem_image, handwriting_sample))
