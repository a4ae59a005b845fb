"""
Broker Contacts Scraper - CLI Runner

Usage:
  python -m bcs.run --config config/example.yaml --out ./output

Search-list variant (one search per term, contact reveal):
  python -m bcs.run -c config/example.yaml --mode search --terms-file names.txt --reveal-contacts

Dry run (validate only):
  python -m bcs.run -c config/example.yaml --dry-run

Exit codes:
  0 - success (scrape reached DONE; persistence warnings do not change this)
  1 - configuration error (missing/invalid config, search terms or credentials)
  2 - authentication error (login form missing or login never completed)
  3 - scrape error (navigation timeout or other runtime failure)
  130 - interrupted
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.errors import ConfigurationError, ScraperError
from src.ops_logger import OpsLogger
from src.settings import ScrapeConfig, RunMode, build_config, read_config_file, read_terms_file
from src.pipeline.export import ProgressSink
from src.pipeline.extractors import CardExtractor, ContactRevealer
from src.pipeline.filters import FilterApplier
from src.pipeline.pagination import ScrollPaginator, SearchBox
from src.pipeline.scrape_loop import LoopResult, ScrapeLoop
from src.pipeline.session import BrowserSession


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bcs.run", description="Broker contacts listing scraper")
    parser.add_argument("--config", "-c", default=None, help="Path to YAML config file")
    parser.add_argument("--out", "-o", default=None, help="Output directory (default: output)")
    parser.add_argument("--mode", choices=["scroll", "search"], default=None, help="scroll the filtered listing, or search each term once")
    parser.add_argument("--terms-file", default=None, help="Search terms, one per line (search mode)")
    parser.add_argument("--login", choices=["manual", "credentials"], default=None, help="Login flow (default: credentials from BF_USERNAME/BF_PASSWORD)")
    headless = parser.add_mutually_exclusive_group()
    headless.add_argument("--headless", dest="headless", action="store_true", default=None, help="Run Chromium headless")
    headless.add_argument("--no-headless", dest="headless", action="store_false", help="Show the browser window")
    parser.add_argument("--settle-ms", type=int, default=None, help="Wait after each scroll in ms (default 10000)")
    parser.add_argument("--max-iterations", type=int, default=None, help="Stop after this many cycles")
    parser.add_argument("--max-duration", type=float, default=None, help="Stop after this many seconds (checked between cycles)")
    parser.add_argument("--reveal-contacts", action="store_true", default=None, help="Click 'Get Contact' on each card before reading it")
    parser.add_argument("--dry-run", action="store_true", help="Validate config and exit")
    parser.add_argument("--ops-log", default=None, help="Path to ops JSONL log file (default: <out>/ops.log)")
    parser.add_argument("--ops-stdout", action="store_true", help="Also mirror ops JSON to stdout")
    return parser


def resolve_config(args: argparse.Namespace) -> ScrapeConfig:
    data: Dict[str, Any] = read_config_file(args.config) if args.config else {}
    overrides: Dict[str, Any] = {
        "mode": args.mode,
        "output_dir": args.out,
        "login": args.login,
        "headless": args.headless,
        "scroll_settle_delay_ms": args.settle_ms,
        "max_iterations": args.max_iterations,
        "max_duration_s": args.max_duration,
        "reveal_contacts": args.reveal_contacts,
    }
    if args.terms_file:
        overrides["search_terms"] = read_terms_file(args.terms_file)
    cfg = build_config(data, overrides)
    if cfg.mode == RunMode.SEARCH:
        cfg.require_search_terms()
    return cfg


def scrape(cfg: ScrapeConfig, ops_logger: Optional[OpsLogger] = None) -> LoopResult:
    """Open the listing, apply filters, run the configured loop variant."""
    sink = ProgressSink(
        output_dir=cfg.output_dir,
        snapshot_name=cfg.snapshot_name,
        table_name=cfg.table_name,
        ops_logger=ops_logger,
    )
    extractor = CardExtractor(ops_logger=ops_logger)
    revealer = ContactRevealer(timeout_ms=cfg.reveal_timeout_ms) if cfg.reveal_contacts else None
    loop = ScrapeLoop(
        extractor,
        sink,
        prepare_card=revealer,
        max_iterations=cfg.max_iterations,
        max_duration_s=cfg.max_duration_s,
        ops_logger=ops_logger,
    )

    with BrowserSession(cfg) as session:
        page = session.open_listing()
        if not cfg.filters.is_empty():
            FilterApplier(page, ops_logger=ops_logger).apply(cfg.filters)
        if cfg.mode == RunMode.SEARCH:
            box = SearchBox(settle_ms=cfg.search_settle_delay_ms)
            return loop.run_search(page, box, cfg.search_terms)
        print("Scrolling and scraping incrementally...")
        paginator = ScrollPaginator(settle_ms=cfg.scroll_settle_delay_ms, delta_y=cfg.scroll_delta_y)
        return loop.run_scroll(page, paginator, skip_first_advance=cfg.skip_first_advance)


def main(argv: List[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = resolve_config(args)
    except ConfigurationError as e:
        print(f"❌ {e.describe()}", file=sys.stderr)
        return e.exit_code

    out_dir = Path(cfg.output_dir)
    if args.dry_run:
        print("✅ Dry-run validation passed")
        print(f" - Mode: {cfg.mode.value}")
        print(f" - Start URL: {cfg.start_url}")
        print(f" - Output dir: {out_dir}")
        print(f" - Search terms: {len(cfg.search_terms)}")
        print(f" - Filters: {cfg.filters.model_dump(exclude_defaults=True)}")
        return 0

    try:
        out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        print(f"❌ Output error: cannot write to {out_dir}: {e}", file=sys.stderr)
        return 3

    ops_log_path = Path(args.ops_log) if args.ops_log else (out_dir / "ops.log")
    ops_logger = OpsLogger(ops_log_path, also_stdout=bool(args.ops_stdout))
    ops_logger.emit_event("run_start", mode=cfg.mode.value, filters=cfg.filters.model_dump(mode="json"))

    try:
        result = scrape(cfg, ops_logger=ops_logger)
    except ScraperError as e:
        print(f"❌ {e.describe()}", file=sys.stderr)
        ops_logger.emit_event("run_end", status="error", error=str(e), operation=e.operation, target=e.target)
        return e.exit_code
    except KeyboardInterrupt:
        print("⛔ Interrupted; snapshot holds the last completed batch.", file=sys.stderr)
        ops_logger.emit_event("run_end", status="interrupted")
        return 130
    except Exception as e:
        print(f"❌ scrape failed: {e}", file=sys.stderr)
        ops_logger.emit_event("run_end", status="error", error=str(e))
        return 3

    print(f"🏁 Done. {len(result.records)} unique contacts in {result.iterations} cycle(s).")
    if result.persist_failures:
        print(f"⚠️  {result.persist_failures} batch write(s) failed; see {ops_log_path}", file=sys.stderr)
    ops_logger.emit_event(
        "run_end",
        status="ok",
        total=len(result.records),
        iterations=result.iterations,
        stop_reason=result.stop_reason,
        persist_failures=result.persist_failures,
        elapsed_s=result.elapsed_s,
    )
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
