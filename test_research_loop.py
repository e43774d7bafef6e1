"""
Research Loop Tests

Tests for the plan -> execute -> ingest -> evaluate -> replan loop using the
offline mock providers.
"""

import asyncio

import pytest

from looper.errors import EngineFailureError, InvalidInputError
from looper.providers import MockContentReader, MockSearchProvider, Reference
from looper.research import (
    Audit,
    LoopPhase,
    Plan,
    Planner,
    PlanStep,
    ResearchLoop,
    Session,
    WordCountEvaluator,
)


def make_references(count: int = 6) -> list[Reference]:
    return [
        Reference(
            url=f"https://source{i}.example.com/article",
            title=f"Source {i}",
            snippet=f"Snippet {i}",
            relevance=round(1.0 - i * 0.1, 2),
        )
        for i in range(count)
    ]


def words(n: int) -> str:
    return " ".join(["word"] * n)


class FailingEvaluator:
    def evaluate(self, store):
        raise RuntimeError("judge crashed")


class FixedEvaluator:
    """Evaluator that always returns the same audit and counts calls."""

    def __init__(self, satisfaction: float, missing_info: str | None = "more please"):
        self.audit = Audit(satisfaction=satisfaction, missing_info=missing_info)
        self.calls = 0

    def evaluate(self, store):
        self.calls += 1
        return self.audit


async def test_scenario_a_satisfied_in_one_iteration():
    """Scenario A: >1000 words after the first read -> one iteration."""
    print("=" * 60)
    print("TEST 1: Satisfied on the first iteration")
    print("=" * 60)

    references = make_references(6)
    texts = {r.url: words(600) for r in references}
    search = MockSearchProvider(references=references)
    reader = MockContentReader(texts=texts)

    async with ResearchLoop(search, reader) as loop:
        result = await loop.run(Session(query="compare X and Y", depth="fast"))

    print(f"\nAnswer: {result.answer}")
    print(f"Metadata: {result.metadata}")

    assert result.metadata["iterations"] == 1
    assert result.metadata["satisfaction"] >= 0.85
    assert result.metadata["intent"] == "broad_research"
    assert result.metadata["total_word_count"] == 1200
    assert result.confidence >= 0.85
    assert 1 <= len(result.sources) <= 3
    urls = {r.url for r in references}
    assert all(s.url in urls for s in result.sources)
    assert result.sources[0].url == references[0].url

    # Only the top two references are deep-read
    assert sorted(reader.calls) == sorted(r.url for r in references[:2])
    assert len(search.calls) == 1
    print("\n[PASS] Loop stopped after one satisfied iteration")


async def test_scenario_b_empty_search():
    """Scenario B: empty search results -> budget exhausted, no information."""
    print("\n" + "=" * 60)
    print("TEST 2: Search always returns nothing")
    print("=" * 60)

    search = MockSearchProvider(empty=True)
    reader = MockContentReader()

    async with ResearchLoop(search, reader) as loop:
        result = await loop.run(Session(query="obscure topic", depth="fast"))

    print(f"\nAnswer: {result.answer}")

    assert result.metadata["iterations"] == 2
    assert result.confidence < 0.5
    assert "No information was found" in result.answer
    assert result.sources == []
    assert result.alternatives == []
    assert reader.calls == []
    print("\n[PASS] Empty results produce a no-information answer")


async def test_scenario_c_empty_query_rejected():
    """Scenario C: empty query is rejected before any provider call."""
    print("\n" + "=" * 60)
    print("TEST 3: Empty query")
    print("=" * 60)

    search = MockSearchProvider()
    reader = MockContentReader()
    loop = ResearchLoop(search, reader)

    for query in ("", "   "):
        with pytest.raises(InvalidInputError):
            await loop.run(Session(query=query))

    with pytest.raises(InvalidInputError):
        loop.planner.plan("")

    assert search.calls == []
    assert reader.calls == []
    print("\n[PASS] Empty queries rejected up front")


async def test_scenario_d_unreadable_reference_skipped():
    """Scenario D: one unreadable reference does not abort the iteration."""
    print("\n" + "=" * 60)
    print("TEST 4: One of two reads fails")
    print("=" * 60)

    references = make_references(2)
    reader = MockContentReader(
        unreadable=[references[0].url],
        texts={references[1].url: words(1100)},
    )
    search = MockSearchProvider(references=references)

    async with ResearchLoop(search, reader) as loop:
        result = await loop.run(Session(query="what is a heat pump"))

    assert result.metadata["iterations"] == 1
    assert result.metadata["total_word_count"] == 1100
    assert result.metadata["source_count"] == 2
    assert result.confidence >= 0.85
    print("\n[PASS] Unreadable reference skipped, iteration proceeded")


async def test_budget_limits_iterations():
    """Fast stops after 2 iterations and deep after 4 when never satisfied."""
    print("\n" + "=" * 60)
    print("TEST 5: Iteration budget")
    print("=" * 60)

    for depth, expected in (("fast", 2), ("deep", 4)):
        evaluator = FixedEvaluator(0.5)
        search = MockSearchProvider()
        loop = ResearchLoop(search, MockContentReader(words_per_page=10), evaluator=evaluator)

        async with loop:
            result = await loop.run(Session(query="history of rome", depth=depth))

        print(f"  {depth}: {result.metadata['iterations']} iterations")
        assert result.metadata["iterations"] == expected
        assert result.metadata["budget"] == expected
        assert evaluator.calls == expected
        assert result.confidence == 0.5

    print("\n[PASS] Budgets respected")


async def test_replan_uses_feedback_and_new_pages():
    """Replanned searches never repeat the first step and carry feedback."""
    print("\n" + "=" * 60)
    print("TEST 6: Replanning")
    print("=" * 60)

    search = MockSearchProvider()
    reader = MockContentReader(words_per_page=50)

    async with ResearchLoop(search, reader) as loop:
        result = await loop.run(Session(query="history of rome", depth="fast"))

    assert result.metadata["iterations"] == 2
    # Iteration 1: one step; iteration 2: primary + refinement
    assert len(search.calls) == 3
    first, *second = search.calls
    assert first["page"] == 1
    assert first["query"] == "history of rome"
    steps = {(c["query"], c["page"]) for c in second}
    assert ("history of rome", 2) in steps
    assert ("history of rome overview", 1) in steps
    assert (first["query"], first["page"]) not in steps
    print("\n[PASS] Replan moved to new pages and refined the query")


class RecordingEvaluator(WordCountEvaluator):
    """Word-count evaluator that records the store total it judged."""

    def __init__(self):
        super().__init__()
        self.seen = []

    def evaluate(self, store):
        self.seen.append(store.total_word_count)
        return super().evaluate(store)


async def test_repeated_pages_add_no_words():
    """Pages already read are not read or counted again."""
    print("\n" + "=" * 60)
    print("TEST 7: Repeated pages")
    print("=" * 60)

    references = make_references(2)
    texts = {r.url: words(150) for r in references}
    reader = MockContentReader(texts=texts)
    evaluator = RecordingEvaluator()

    # The provider ignores paging and returns the same two pages every time
    async with ResearchLoop(
        MockSearchProvider(references=references),
        reader,
        evaluator=evaluator,
    ) as loop:
        result = await loop.run(Session(query="history of rome", depth="deep"))

    print(f"\nWord counts per iteration: {evaluator.seen}")

    assert evaluator.seen == [300, 300, 300, 300]
    assert result.metadata["iterations"] == 4
    assert result.metadata["total_word_count"] == 300
    assert result.metadata["satisfaction"] == 0.3
    assert sorted(reader.calls) == sorted(r.url for r in references)
    print("\n[PASS] Repeated pages did not satisfy the loop")


async def test_new_pages_accumulate_words():
    """Satisfaction is judged on the cumulative store across iterations."""
    evaluator = RecordingEvaluator()

    async with ResearchLoop(
        MockSearchProvider(),
        MockContentReader(words_per_page=100),
        evaluator=evaluator,
    ) as loop:
        result = await loop.run(Session(query="history of rome", depth="fast"))

    assert len(evaluator.seen) == 2
    assert evaluator.seen[1] > evaluator.seen[0] > 0
    assert result.metadata["total_word_count"] == evaluator.seen[-1]


async def test_failed_refinement_keeps_primary_results():
    """A failing refinement search does not lose the primary step's pages."""
    print("\n" + "=" * 60)
    print("TEST 8: One replanned search fails")
    print("=" * 60)

    search = MockSearchProvider(fail_queries=["history of rome overview"])
    reader = MockContentReader(words_per_page=100)
    evaluator = RecordingEvaluator()

    async with ResearchLoop(search, reader, evaluator=evaluator) as loop:
        result = await loop.run(Session(query="history of rome", depth="fast"))

    print(f"\nWord counts per iteration: {evaluator.seen}")

    assert result.metadata["iterations"] == 2
    assert len(search.calls) == 3
    assert any(c["query"] == "history of rome overview" for c in search.calls)
    # Second iteration ingested page 2 of the primary query
    assert evaluator.seen[1] > evaluator.seen[0]
    assert len([url for url in reader.calls if url.endswith("#page-2")]) == 2
    assert result.metadata["source_count"] == 12
    print("\n[PASS] Primary step results survived the failed refinement")


async def test_unavailable_read_is_retried():
    """A read that cannot reach its page is skipped, then tried again later."""
    references = make_references(2)
    reader = MockContentReader(
        unavailable=[references[0].url],
        texts={references[1].url: words(300)},
    )

    async with ResearchLoop(MockSearchProvider(references=references), reader) as loop:
        result = await loop.run(Session(query="history of rome", depth="fast"))

    assert result.metadata["iterations"] == 2
    assert result.metadata["total_word_count"] == 300
    assert reader.calls.count(references[0].url) == 2
    assert reader.calls.count(references[1].url) == 1


async def test_search_step_defaults_to_session_query():
    """A web_search step without a query searches for the session query."""

    class QuerylessPlanner:
        def __init__(self):
            self.planner = Planner()

        def plan(self, query):
            return Plan(
                id="plan-queryless",
                intent=self.planner.classify(query),
                steps=(PlanStep(tool="web_search", params={}),),
            )

        def replan(self, query, feedback, iteration=1):
            return self.plan(query)

    search = MockSearchProvider()
    loop = ResearchLoop(search, MockContentReader(words_per_page=50), planner=QuerylessPlanner())

    async with loop:
        result = await loop.run(Session(query="history of rome", depth="fast"))

    assert result.metadata["iterations"] == 2
    assert search.calls
    assert all(c["query"] == "history of rome" for c in search.calls)
    assert all(c["limit"] == 6 for c in search.calls)


async def test_total_search_failure_still_synthesizes():
    """Every search failing is recovered; the loop still returns a result."""
    print("\n" + "=" * 60)
    print("TEST 9: Search provider down")
    print("=" * 60)

    async with ResearchLoop(MockSearchProvider(fail=True), MockContentReader()) as loop:
        result = await loop.run(Session(query="compare X and Y"))

    assert result.metadata["iterations"] == 2
    assert result.confidence == 0.0
    assert "No information was found" in result.answer
    print("\n[PASS] Provider failures never abort the session")


async def test_engine_failure_aborts():
    """An evaluator crash surfaces as EngineFailureError."""
    print("\n" + "=" * 60)
    print("TEST 10: Engine failure")
    print("=" * 60)

    session = Session(query="compare X and Y")
    loop = ResearchLoop(MockSearchProvider(), MockContentReader(), evaluator=FailingEvaluator())

    with pytest.raises(EngineFailureError) as exc_info:
        async with loop:
            await loop.run(session)

    assert exc_info.value.phase == LoopPhase.EVALUATING.value
    assert session.store.is_discarded
    print("\n[PASS] EngineFailureError raised with phase")


async def test_provider_timeout():
    """A hung provider call times out and counts as unavailable."""
    print("\n" + "=" * 60)
    print("TEST 11: Provider timeout")
    print("=" * 60)

    from looper.config import LoopConfig

    config = LoopConfig(fast_iterations=1, deep_iterations=1, provider_timeout=0.05)
    search = MockSearchProvider(delay=1.0)

    async with ResearchLoop(search, MockContentReader(), config=config) as loop:
        result = await loop.run(Session(query="what is rust"))

    assert result.metadata["iterations"] == 1
    assert result.sources == []
    print("\n[PASS] Timed out search treated as a failed step")


async def test_cancellation_returns_best_so_far():
    """Cancelling mid-execution returns a synthesis instead of raising."""
    print("\n" + "=" * 60)
    print("TEST 12: Cancellation")
    print("=" * 60)

    session = Session(query="compare X and Y", depth="deep")
    search = MockSearchProvider(delay=5.0)

    async with ResearchLoop(search, MockContentReader()) as loop:
        task = asyncio.ensure_future(loop.run(session))
        await asyncio.sleep(0.05)
        session.cancel()
        result = await asyncio.wait_for(task, timeout=2.0)

    assert result.metadata["cancelled"] is True
    assert result.metadata["iterations"] == 0
    assert result.confidence == 0.0
    assert session.store.is_discarded
    print("\n[PASS] Cancelled session synthesized best-so-far")


async def test_session_runs_once():
    """A finished session's store is discarded and cannot be rerun."""
    session = Session(query="what is rust")
    async with ResearchLoop(MockSearchProvider(), MockContentReader()) as loop:
        await loop.run(session)
        assert session.store.is_discarded
        assert len(session.store) == 0
        with pytest.raises(InvalidInputError):
            await loop.run(session)


async def test_unknown_tool_is_skipped():
    """Steps naming an unregistered tool are skipped without failing."""
    loop = ResearchLoop(MockSearchProvider(), MockContentReader())

    def emit(phase, detail=None):
        pass

    items = await loop._run_step(
        PlanStep(tool="image_search", params={}), Session(query="x"), emit
    )
    assert items == []
    assert loop.tools == frozenset({"web_search"})


def test_invalid_depth():
    with pytest.raises(InvalidInputError):
        Session(query="x", depth="medium")


async def test_progress_events_in_order():
    """Milestones appear in phase order and end with Done."""
    print("\n" + "=" * 60)
    print("TEST 13: Progress milestones")
    print("=" * 60)

    events = []
    async with ResearchLoop(MockSearchProvider(), MockContentReader()) as loop:
        await loop.run(Session(query="compare X and Y"), on_progress=events.append)

    phases = [e.phase for e in events]
    steps = [e.step for e in events]
    print(f"\nSteps: {steps}")

    assert phases[0] == LoopPhase.PLANNING
    assert phases[-1] == LoopPhase.DONE
    assert phases[-2] == LoopPhase.SYNTHESIZING
    assert "Planning..." in steps
    assert "Evaluating..." in steps
    assert any(s.startswith("Searching: ") for s in steps)
    assert all(e.type == "progress" for e in events)
    print("\n[PASS] Progress events emitted in order")


async def test_stream_ends_with_complete():
    """The stream yields progress events then exactly one complete event."""
    print("\n" + "=" * 60)
    print("TEST 14: Event stream")
    print("=" * 60)

    async with ResearchLoop(MockSearchProvider(), MockContentReader()) as loop:
        events = [e async for e in loop.stream(Session(query="compare X and Y"))]

    assert events[-1].type == "complete"
    assert events[-1].result is not None
    assert sum(1 for e in events if e.type == "complete") == 1
    assert all(e.type == "progress" for e in events[:-1])

    payload = events[-1].to_dict()
    assert payload["type"] == "complete"
    assert "answer" in payload["data"]
    print("\n[PASS] Stream completed")


async def test_stream_reports_engine_failure():
    async with ResearchLoop(
        MockSearchProvider(), MockContentReader(), evaluator=FailingEvaluator()
    ) as loop:
        events = [e async for e in loop.stream(Session(query="compare X and Y"))]

    assert events[-1].type == "error"
    assert "judge crashed" in events[-1].message


async def test_stream_rejects_empty_query():
    async with ResearchLoop(MockSearchProvider(), MockContentReader()) as loop:
        with pytest.raises(InvalidInputError):
            async for _ in loop.stream(Session(query="")):
                pass


async def test_divergent_results_become_alternatives():
    """Provider-labelled divergent items surface as alternatives."""
    async with ResearchLoop(MockSearchProvider(), MockContentReader()) as loop:
        result = await loop.run(Session(query="dark matter"))

    urls = [a.source_url for a in result.alternatives]
    assert any("contrarian-blog.com" in u for u in urls)
    assert any("archive.org" in u for u in urls)
    assert len(urls) == len(set(urls))
    assert "divergent" in result.answer


def main():
    """Run all tests."""
    print("\n" + "=" * 60)
    print("RESEARCH LOOP TESTS")
    print("=" * 60)

    asyncio.run(test_scenario_a_satisfied_in_one_iteration())
    asyncio.run(test_scenario_b_empty_search())
    asyncio.run(test_scenario_c_empty_query_rejected())
    asyncio.run(test_scenario_d_unreadable_reference_skipped())
    asyncio.run(test_budget_limits_iterations())
    asyncio.run(test_replan_uses_feedback_and_new_pages())
    asyncio.run(test_repeated_pages_add_no_words())
    asyncio.run(test_new_pages_accumulate_words())
    asyncio.run(test_failed_refinement_keeps_primary_results())
    asyncio.run(test_unavailable_read_is_retried())
    asyncio.run(test_search_step_defaults_to_session_query())
    asyncio.run(test_total_search_failure_still_synthesizes())
    asyncio.run(test_engine_failure_aborts())
    asyncio.run(test_provider_timeout())
    asyncio.run(test_cancellation_returns_best_so_far())
    asyncio.run(test_session_runs_once())
    asyncio.run(test_unknown_tool_is_skipped())
    test_invalid_depth()
    asyncio.run(test_progress_events_in_order())
    asyncio.run(test_stream_ends_with_complete())
    asyncio.run(test_stream_reports_engine_failure())
    asyncio.run(test_stream_rejects_empty_query())
    asyncio.run(test_divergent_results_become_alternatives())

    print("\n" + "=" * 60)
    print("ALL TESTS PASSED!")
    print("=" * 60)


if __name__ == "__main__":
    main()
