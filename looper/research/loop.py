"""
Research Loop: plan -> execute -> ingest -> evaluate -> replan.

Drives one research session until the evaluator is satisfied or the
iteration budget runs out, then synthesizes an answer.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from ..errors import (
    EngineFailureError,
    InvalidInputError,
    ProviderError,
    ProviderUnavailableError,
)
from .context_store import ContextStore
from .models import LoopEvent, LoopPhase, ResearchDepth, ToolType

if TYPE_CHECKING:
    from ..config.loader import LoopConfig
    from ..providers import ContentReader, Reference, ReadContent, SearchProvider
    from .models import Audit, Plan, PlanStep, SynthesisResult
    from .planner import Planner
    from .protocols import Evaluator, SynthesizerProtocol

logger = logging.getLogger(__name__)

PHASE_MILESTONES = {
    LoopPhase.PLANNING: "Planning...",
    LoopPhase.EXECUTING: "Searching...",
    LoopPhase.INGESTING: "Ingesting results...",
    LoopPhase.EVALUATING: "Evaluating...",
    LoopPhase.REPLANNING: "Replanning...",
    LoopPhase.SYNTHESIZING: "Synthesizing...",
    LoopPhase.DONE: "Done.",
}

ProgressCallback = Callable[[LoopEvent], Any]


@dataclass
class Session:
    """
    One end-to-end research request.

    Owned by the caller (e.g. a transport layer mapping request ids to
    sessions). The context store lives exactly as long as the session runs.
    """

    query: str
    depth: ResearchDepth = ResearchDepth.FAST
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    store: ContextStore = field(default_factory=ContextStore)
    phase: LoopPhase = LoopPhase.PLANNING
    iterations: int = 0
    created_at: datetime = field(default_factory=datetime.now)
    read_urls: set[str] = field(default_factory=set)  # deep-read (or in flight) this session
    _cancel_event: asyncio.Event = field(default_factory=asyncio.Event, init=False, repr=False)

    def __post_init__(self):
        try:
            self.depth = ResearchDepth(self.depth)
        except ValueError:
            raise InvalidInputError(
                f"Unknown depth '{self.depth}'. Use one of: "
                + ", ".join(d.value for d in ResearchDepth)
            ) from None

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Ask the loop to stop; it returns the best synthesis so far."""
        if not self.cancelled:
            logger.info(f"Session {self.id} cancelled")
        self._cancel_event.set()

    async def wait_cancelled(self) -> None:
        await self._cancel_event.wait()


class ResearchLoop:
    """
    The recursive research loop.

    Each iteration:
    1. Execute the plan's steps concurrently (search, then read the top hits)
    2. Ingest the whole iteration's results into the session's context store
    3. Evaluate the cumulative context
    4. Stop if satisfied or out of budget, otherwise replan and repeat

    Provider failures never abort an iteration. Planner, evaluator and
    synthesizer failures abort the session with EngineFailureError.
    """

    def __init__(
        self,
        search_provider: SearchProvider,
        content_reader: ContentReader,
        planner: Planner | None = None,
        evaluator: Evaluator | None = None,
        synthesizer: SynthesizerProtocol | None = None,
        config: LoopConfig | None = None,
    ):
        """
        Initialize the research loop.

        Args:
            search_provider: Search capability provider
            content_reader: Content-reader capability provider
            planner: Planner. Defaults to the keyword planner.
            evaluator: Satisfaction judge. Defaults to WordCountEvaluator.
            synthesizer: Answer synthesizer. Defaults to Synthesizer.
            config: Loop configuration
        """
        if config is None:
            from ..config.loader import LoopConfig
            config = LoopConfig()
        if planner is None:
            from .planner import Planner
            planner = Planner()
        if evaluator is None:
            from .evaluator import WordCountEvaluator
            evaluator = WordCountEvaluator()
        if synthesizer is None:
            from .synthesizer import Synthesizer
            synthesizer = Synthesizer()

        self.search_provider = search_provider
        self.content_reader = content_reader
        self.planner = planner
        self.evaluator = evaluator
        self.synthesizer = synthesizer

        self.budgets = {
            ResearchDepth.FAST: config.fast_iterations,
            ResearchDepth.DEEP: config.deep_iterations,
        }
        self.satisfaction_threshold = config.satisfaction_threshold
        self.read_top_n = config.read_top_n
        self.provider_timeout = config.provider_timeout
        self.default_limit = config.default_search_limit

        self._tools: dict[str, Callable[..., Awaitable[list]]] = {
            ToolType.WEB_SEARCH.value: self._run_search,
        }

    async def __aenter__(self) -> "ResearchLoop":
        """Enter async context for both providers."""
        for provider in self._providers():
            if hasattr(provider, "__aenter__"):
                await provider.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context for both providers."""
        for provider in self._providers():
            if hasattr(provider, "__aexit__"):
                await provider.__aexit__(exc_type, exc_val, exc_tb)

    def _providers(self) -> list:
        providers = [self.search_provider]
        if self.content_reader is not self.search_provider:
            providers.append(self.content_reader)
        return providers

    @property
    def tools(self) -> frozenset[str]:
        """Names of the tools this loop can dispatch."""
        return frozenset(self._tools)

    def budget_for(self, depth: ResearchDepth | str) -> int:
        """Iteration budget for a depth."""
        return self.budgets[ResearchDepth(depth)]

    async def run(
        self,
        session: Session,
        on_progress: ProgressCallback | None = None,
    ) -> SynthesisResult:
        """
        Run a research session to completion.

        Args:
            session: The session to run (runs once)
            on_progress: Called with a progress LoopEvent on every transition

        Returns:
            SynthesisResult, possibly low-confidence

        Raises:
            InvalidInputError: Empty query or already-finished session
            EngineFailureError: Planner/evaluator/synthesizer failure
        """
        if not (session.query or "").strip():
            raise InvalidInputError("Query must be a non-empty string")
        if session.store.is_discarded:
            raise InvalidInputError(f"Session {session.id} has already finished")

        started = time.monotonic()
        budget = self.budget_for(session.depth)
        emit = self._emitter(session, on_progress)
        logger.info(
            f"Session {session.id}: '{session.query}' "
            f"(depth={session.depth.value}, budget={budget})"
        )

        try:
            emit(LoopPhase.PLANNING)
            plan = self._guard(LoopPhase.PLANNING, self.planner.plan, session.query)
            logger.debug(f"Plan created: {plan.to_dict()}")

            audit = await self._iterate(session, plan, budget, emit)

            if audit is None:
                # Cancelled before the first evaluation
                audit = self._guard(LoopPhase.EVALUATING, self.evaluator.evaluate, session.store)

            emit(LoopPhase.SYNTHESIZING)
            result = self._guard(
                LoopPhase.SYNTHESIZING,
                self.synthesizer.synthesize,
                session.query,
                session.store,
                audit.satisfaction,
            )
            result.metadata.update(
                {
                    "session_id": session.id,
                    "depth": session.depth.value,
                    "intent": plan.intent.category.value,
                    "iterations": session.iterations,
                    "budget": budget,
                    "satisfaction": audit.satisfaction,
                    "total_word_count": session.store.total_word_count,
                    "source_count": session.store.source_count,
                    "cancelled": session.cancelled,
                    "elapsed_ms": int((time.monotonic() - started) * 1000),
                }
            )

            emit(LoopPhase.DONE)
            logger.info(
                f"Session {session.id} done after {session.iterations} iteration(s): "
                f"{result.metadata['source_count']} sources, confidence {result.confidence:.2f}"
            )
            return result
        finally:
            session.store.discard()

    async def _iterate(
        self,
        session: Session,
        plan: Plan,
        budget: int,
        emit: Callable[..., None],
    ) -> Audit | None:
        """Run iterations; returns the audit of the final store snapshot."""
        audit: Audit | None = None

        while True:
            if session.cancelled:
                break

            logger.info(f"Iteration {session.iterations + 1}/{budget}")
            emit(LoopPhase.EXECUTING)
            buffer = await self._execute(plan, session, emit)
            if buffer is None:
                break

            emit(LoopPhase.INGESTING)
            self._guard(LoopPhase.INGESTING, session.store.ingest, buffer)

            emit(LoopPhase.EVALUATING)
            audit = self._guard(LoopPhase.EVALUATING, self.evaluator.evaluate, session.store)
            session.iterations += 1
            logger.info(
                f"Iteration {session.iterations}: {session.store.total_word_count} words, "
                f"{session.store.source_count} sources, satisfaction {audit.satisfaction}"
            )

            if audit.satisfaction >= self.satisfaction_threshold:
                logger.info("Satisfaction reached. Stopping recursion.")
                break
            if session.iterations >= budget:
                logger.info("Iteration budget exhausted. Synthesizing best-so-far.")
                break
            if session.cancelled:
                break

            logger.info("Insufficient data. Recursion triggered.")
            emit(LoopPhase.REPLANNING)
            plan = self._guard(
                LoopPhase.REPLANNING,
                self.planner.replan,
                session.query,
                audit.missing_info,
                session.iterations,
            )

        return audit

    async def _execute(
        self,
        plan: Plan,
        session: Session,
        emit: Callable[..., None],
    ) -> list[Reference | ReadContent] | None:
        """
        Execute all steps of a plan, racing against cancellation.

        Returns the iteration buffer, or None if the session was cancelled
        before execution finished (in-flight calls are abandoned).
        """
        execution = asyncio.ensure_future(self._execute_steps(plan.steps, session, emit))
        cancellation = asyncio.ensure_future(session.wait_cancelled())

        try:
            await asyncio.wait(
                {execution, cancellation}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (execution, cancellation):
                if not task.done():
                    task.cancel()
            await asyncio.gather(execution, cancellation, return_exceptions=True)

        if execution.cancelled():
            logger.info(f"Session {session.id}: abandoning in-flight provider calls")
            return None

        try:
            return execution.result()
        except (InvalidInputError, EngineFailureError):
            raise
        except Exception as e:
            logger.error(f"Engine failure during execution: {e}")
            raise EngineFailureError(
                f"executing failed: {e}", phase=LoopPhase.EXECUTING.value
            ) from e

    async def _execute_steps(
        self,
        steps: tuple[PlanStep, ...],
        session: Session,
        emit: Callable[..., None],
    ) -> list[Reference | ReadContent]:
        results = await asyncio.gather(*(self._run_step(step, session, emit) for step in steps))

        # Step order is preserved so each reference precedes its content
        buffer: list[Reference | ReadContent] = []
        for items in results:
            buffer.extend(items)
        return buffer

    async def _run_step(
        self,
        step: PlanStep,
        session: Session,
        emit: Callable[..., None],
    ) -> list[Reference | ReadContent]:
        handler = self._tools.get(step.tool)
        if handler is None:
            logger.warning(f"Skipping step with unknown tool: {step.tool}")
            return []
        return await handler(step.params, session, emit)

    async def _run_search(
        self,
        params: dict[str, Any],
        session: Session,
        emit: Callable[..., None],
    ) -> list[Reference | ReadContent]:
        """web_search: search, then deep-read the top references not yet read."""
        query = params.get("query") or session.query
        limit = int(params.get("limit") or self.default_limit)
        page = int(params.get("page") or 1)
        safe_search = params.get("safe_search", "moderate")

        emit(LoopPhase.EXECUTING, f"Searching: '{query}'")
        try:
            references = await self._call(
                "search",
                self.search_provider.search(
                    query, limit=limit, page=page, safe_search=safe_search
                ),
            )
        except ProviderError as e:
            logger.warning(f"Step failed: web_search '{query}': {e}")
            return []

        items: list[Reference | ReadContent] = list(references)
        if not references:
            logger.info(f"No references found for '{query}'")
            return items

        unread = [r for r in references if r.url not in session.read_urls]
        top = sorted(unread, key=lambda r: r.relevance, reverse=True)[: self.read_top_n]
        if not top:
            logger.info(f"All top references for '{query}' were already read")
            return items

        # Claimed before awaiting so concurrent steps pick different pages
        session.read_urls.update(reference.url for reference in top)
        emit(LoopPhase.EXECUTING, f"Reading {len(top)} sources...")
        contents = await asyncio.gather(*(self._read(reference, session) for reference in top))
        items.extend(content for content in contents if content is not None)
        return items

    async def _read(self, reference: Reference, session: Session) -> ReadContent | None:
        try:
            content = await self._call("read", self.content_reader.read(reference))
        except ProviderUnavailableError as e:
            # Transient; a later iteration may try this page again
            session.read_urls.discard(reference.url)
            logger.warning(f"Read failed for {reference.url}: {e}")
            return None
        except ProviderError as e:
            logger.warning(f"Read failed for {reference.url}: {e}")
            return None

        if content.source_url != reference.url:
            logger.warning(
                f"Reader returned content for {content.source_url} "
                f"when asked for {reference.url}; dropping it"
            )
            return None
        return content

    async def _call(self, kind: str, call: Awaitable[Any]) -> Any:
        """Await a provider call with a timeout, normalizing failures."""
        try:
            return await asyncio.wait_for(call, timeout=self.provider_timeout)
        except ProviderError:
            raise
        except asyncio.TimeoutError as e:
            raise ProviderUnavailableError(
                f"{kind} timed out after {self.provider_timeout}s", kind
            ) from e
        except Exception as e:
            raise ProviderUnavailableError(f"{kind} failed: {e}", kind) from e

    def _guard(self, phase: LoopPhase, func: Callable[..., Any], *args: Any) -> Any:
        """Call an engine component, turning unexpected errors into EngineFailureError."""
        try:
            return func(*args)
        except (InvalidInputError, EngineFailureError):
            raise
        except Exception as e:
            logger.error(f"Engine failure during {phase.value}: {e}")
            raise EngineFailureError(f"{phase.value} failed: {e}", phase=phase.value) from e

    def _emitter(
        self,
        session: Session,
        on_progress: ProgressCallback | None,
    ) -> Callable[..., None]:
        def emit(phase: LoopPhase, detail: str | None = None) -> None:
            session.phase = phase
            step = detail or PHASE_MILESTONES[phase]
            logger.debug(f"[{session.id}] {step}")
            if on_progress is not None:
                on_progress(LoopEvent(type="progress", step=step, phase=phase))

        return emit

    async def stream(self, session: Session) -> AsyncIterator[LoopEvent]:
        """
        Run a session, yielding progress events as they happen.

        Ends with exactly one "complete" event carrying the result, or one
        "error" event on engine failure. Closing the iterator early cancels
        the session.

        Raises:
            InvalidInputError: Empty query or already-finished session
        """
        queue: asyncio.Queue[LoopEvent | None] = asyncio.Queue()
        task = asyncio.ensure_future(self.run(session, on_progress=queue.put_nowait))
        task.add_done_callback(lambda _: queue.put_nowait(None))

        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event

            try:
                result = task.result()
            except EngineFailureError as e:
                yield LoopEvent(type="error", message=str(e))
                return

            yield LoopEvent(type="complete", result=result)
        finally:
            if not task.done():
                session.cancel()
                await asyncio.gather(task, return_exceptions=True)


async def research(
    query: str,
    depth: ResearchDepth | str = ResearchDepth.FAST,
    profile: str | None = None,
    on_progress: ProgressCallback | None = None,
) -> SynthesisResult:
    """
    Convenience function to run one research session from a config profile.

    Example:
        result = await research("compare solar and wind power", depth="deep")
    """
    from ..config import load_config, create_research_loop

    config = load_config(profile=profile)
    session = Session(query=query, depth=depth)

    async with create_research_loop(config) as loop:
        return await loop.run(session, on_progress=on_progress)
