from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List, Optional
import time

from playwright.sync_api import Page

from ..ops_logger import OpsLogger
from ..schemas import ContactRecord
from .dedupe import dedupe_new
from .export import ProgressSink
from .extractors import CardExtractor, PrepareCard
from .pagination import ScrollPaginator, SearchBox


class LoopState(str, Enum):
    RUNNING = "RUNNING"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class LoopResult:
    """Outcome of one loop run. ``records`` is the aggregated result set."""
    state: LoopState
    records: List[ContactRecord] = field(default_factory=list)
    iterations: int = 0
    persist_failures: int = 0
    stop_reason: str = ""
    elapsed_s: float = 0.0


class ScrapeLoop:
    """Incremental extract -> dedupe -> persist loop over one live listing.

    Owns the aggregated result set and the sink; the extractor, paginator and
    dedupe never see either. The set only grows, in discovery order.

    The scroll variant ends when a cycle finds nothing new. max_iterations,
    max_duration_s and should_stop are optional safety valves, checked only
    between cycles; hitting one also ends in DONE, with stop_reason set.
    """

    def __init__(
        self,
        extractor: CardExtractor,
        sink: ProgressSink,
        *,
        prepare_card: Optional[PrepareCard] = None,
        max_iterations: Optional[int] = None,
        max_duration_s: Optional[float] = None,
        should_stop: Optional[Callable[[], bool]] = None,
        ops_logger: Optional[OpsLogger] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.extractor = extractor
        self.sink = sink
        self.prepare_card = prepare_card
        self.max_iterations = max_iterations
        self.max_duration_s = max_duration_s
        self.should_stop = should_stop
        self.ops_logger = ops_logger
        self._clock = clock

        self.state = LoopState.RUNNING
        self.records: List[ContactRecord] = []
        self.iterations = 0
        self.persist_failures = 0
        self._started = 0.0

    # -------------------------
    # Variants
    # -------------------------
    def run_scroll(self, page: Page, paginator: ScrollPaginator, *, skip_first_advance: bool = False) -> LoopResult:
        """Scroll until a cycle yields no new unique record."""
        print("Preparing for controlled scrolling...")
        self._reset()
        try:
            while True:
                reason = self._guard_reason()
                if reason:
                    return self._finish(reason)
                self.iterations += 1
                print(f"Scroll #{self.iterations} ...")
                if not (skip_first_advance and self.iterations == 1):
                    paginator.advance(page)
                candidates = self.extractor.extract_from_playwright(page, self.prepare_card)
                fresh = self._accept(candidates, label=f"scroll #{self.iterations}")
                if not fresh:
                    print(f"No new cards found (cards: {len(candidates)}). Scrolling completed.")
                    return self._finish("no_new_records")
        except BaseException:
            self.state = LoopState.FAILED
            self._emit_end()
            raise

    def run_search(self, page: Page, search_box: SearchBox, terms: Iterable[str]) -> LoopResult:
        """One search + single extraction per term; dedupe is run-global."""
        self._reset()
        try:
            for term in terms:
                reason = self._guard_reason()
                if reason:
                    return self._finish(reason)
                self.iterations += 1
                print(f"\n🔎 Searching for: {term}")
                shown = search_box.search(page, term)
                if shown == 0:
                    print(f"❌ No results found for: {term}")
                    self._emit_cycle(term, cards=0, fresh=0, persisted=None)
                    continue
                print(f"Found {shown} result(s) for: {term}")
                candidates = self.extractor.extract_from_playwright(page, self.prepare_card)
                fresh = self._accept(candidates, label=term)
                if not fresh:
                    print(f"⚠️  Nothing new for: {term} (cards: {len(candidates)})")
            return self._finish("terms_exhausted")
        except BaseException:
            self.state = LoopState.FAILED
            self._emit_end()
            raise

    # -------------------------
    # Shared cycle body
    # -------------------------
    def _accept(self, candidates: List[ContactRecord], label: str) -> List[ContactRecord]:
        fresh = dedupe_new(self.records, candidates)
        persisted: Optional[bool] = None
        if fresh:
            self.records.extend(fresh)
            persisted = self.sink.persist(fresh, self.records)
            if not persisted:
                self.persist_failures += 1
            print(f"  ✅ Cards: {len(candidates)} | new unique: {len(fresh)} | total: {len(self.records)}")
        self._emit_cycle(label, cards=len(candidates), fresh=len(fresh), persisted=persisted)
        return fresh

    def _reset(self) -> None:
        self.state = LoopState.RUNNING
        self.records = []
        self.iterations = 0
        self.persist_failures = 0
        self._started = self._clock()

    def _elapsed(self) -> float:
        return max(0.0, self._clock() - self._started)

    def _guard_reason(self) -> str:
        if self.should_stop is not None and self.should_stop():
            return "stop_requested"
        if self.max_iterations is not None and self.iterations >= self.max_iterations:
            return "max_iterations"
        if self.max_duration_s is not None and self._elapsed() >= self.max_duration_s:
            return "max_duration"
        return ""

    def _finish(self, reason: str) -> LoopResult:
        self.state = LoopState.DONE
        if reason not in ("no_new_records", "terms_exhausted"):
            print(f"⏹  Stopped early: {reason}")
        minutes = self._elapsed() / 60
        print(f"⏳ Total scraping time: {minutes:.2f} minutes")
        self._emit_end(reason)
        return LoopResult(
            state=self.state,
            records=list(self.records),
            iterations=self.iterations,
            persist_failures=self.persist_failures,
            stop_reason=reason,
            elapsed_s=round(self._elapsed(), 3),
        )

    def _emit_cycle(self, label: str, *, cards: int, fresh: int, persisted: Optional[bool]) -> None:
        if self.ops_logger:
            self.ops_logger.emit_event(
                "cycle",
                iteration=self.iterations,
                label=label,
                cards=cards,
                new=fresh,
                total=len(self.records),
                persisted=persisted,
                elapsed_s=round(self._elapsed(), 3),
            )

    def _emit_end(self, reason: str = "") -> None:
        if self.ops_logger:
            self.ops_logger.emit_event(
                "loop_end",
                state=self.state.value,
                stop_reason=reason,
                iterations=self.iterations,
                total=len(self.records),
                persist_failures=self.persist_failures,
            )
