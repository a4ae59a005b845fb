"""
Card Extraction Logic - Broker Contact Records from the Listing View

Turns rendered listing cards into ContactRecord objects. Parsing is done on
card HTML with selectolax so the same code serves the live Playwright page and
saved page snapshots.

Key Features:
- One outerHTML round trip per listing frame (no per-field browser calls)
- Per-card isolation: a malformed card is reported and skipped
- Optional per-card prepare hook (contact reveal) for the live page
- Invalid cards (no name and no company) never leave the extractor
"""

import sys
from typing import Callable, List, Optional
from urllib.parse import urljoin

from selectolax.parser import HTMLParser, Node
from playwright.sync_api import Locator, Page, TimeoutError as PlaywrightTimeoutError

from ..errors import ExtractionError
from ..ops_logger import OpsLogger
from ..schemas import ContactRecord
from .selectors import CardSelectors, DEFAULT_SELECTORS


PrepareCard = Callable[[Locator], None]


def _clean_text(node: Optional[Node]) -> Optional[str]:
    if node is None:
        return None
    txt = node.text(deep=True, separator=" ", strip=True)
    txt = " ".join(txt.split())
    return txt or None


def _element_children(node: Node) -> List[Node]:
    # skip comment nodes ("_comment" / "!comment" depending on backend)
    return [c for c in node.iter(include_text=False) if c.tag and c.tag[0].isalpha()]


class ContactRevealer:
    """Clicks a card's reveal button so email/phone get rendered.

    Waits up to ``timeout_ms`` for a visible contact marker; on timeout the
    card is read as-is (contact fields stay empty). A fixed settle follows
    every click.
    """

    def __init__(
        self,
        selectors: CardSelectors = DEFAULT_SELECTORS,
        *,
        timeout_ms: int = 5000,
        settle_ms: int = 500,
    ) -> None:
        self.selectors = selectors
        self.timeout_ms = timeout_ms
        self.settle_ms = settle_ms

    def __call__(self, card: Locator) -> None:
        button = card.locator("button", has_text=self.selectors.reveal_button_text)
        if button.count() == 0:
            return
        button.first.click()
        marker = card.locator(f"{self.selectors.phone}, {self.selectors.email}")
        try:
            marker.first.wait_for(state="attached", timeout=self.timeout_ms)
        except PlaywrightTimeoutError:
            pass
        card.page.wait_for_timeout(self.settle_ms)


class CardExtractor:
    """
    Extracts ContactRecord objects from broker listing cards.

    The extractor keeps no state between calls: each call returns exactly the
    valid records visible in the view it was given, in DOM order.
    """

    def __init__(self, selectors: CardSelectors = DEFAULT_SELECTORS, ops_logger: Optional[OpsLogger] = None):
        self.selectors = selectors
        self.ops_logger = ops_logger

    # -------------------------
    # Entry points
    # -------------------------
    def extract_from_html(self, html: str, base_url: Optional[str] = None) -> List[ContactRecord]:
        """Parse every card container found in a page (or fragment) HTML."""
        parser = HTMLParser(html or "")
        records: List[ContactRecord] = []
        for idx, card in enumerate(parser.css(self.selectors.container)):
            record = self._guarded_parse(card, idx, base_url)
            if record is not None:
                records.append(record)
        return records

    def extract_from_playwright(self, page: Page, prepare_card: Optional[PrepareCard] = None) -> List[ContactRecord]:
        """Extract from the live listing.

        Without a hook all cards are serialized in one evaluate_all call.
        With a hook each card locator is prepared first, then read.
        """
        cards = page.locator(self.selectors.container)
        base_url = page.url
        if prepare_card is None:
            fragments = cards.evaluate_all("els => els.map(el => el.outerHTML)")
        else:
            fragments = []
            for idx in range(cards.count()):
                card = cards.nth(idx)
                try:
                    prepare_card(card)
                    fragments.append(card.evaluate("el => el.outerHTML"))
                except Exception as e:
                    self._report_card_error(idx, e)
                    fragments.append(None)

        records: List[ContactRecord] = []
        for idx, fragment in enumerate(fragments):
            if fragment is None:
                continue
            root = HTMLParser(fragment).css_first(self.selectors.container)
            if root is None:
                self._report_card_error(idx, ExtractionError("card container missing from card HTML", target=f"card #{idx}"))
                continue
            record = self._guarded_parse(root, idx, base_url)
            if record is not None:
                records.append(record)
        return records

    # -------------------------
    # Card parsing
    # -------------------------
    def _guarded_parse(self, card: Node, idx: int, base_url: Optional[str]) -> Optional[ContactRecord]:
        try:
            record = self.parse_card(card, base_url)
        except Exception as e:
            self._report_card_error(idx, e)
            return None
        return record if record.is_valid else None

    def parse_card(self, card: Node, base_url: Optional[str] = None) -> ContactRecord:
        """Build a record from one card container node (validity not checked)."""
        sel = self.selectors
        regions = _element_children(card)
        if not regions:
            raise ExtractionError("card has no person/company regions")
        person = regions[0]
        employer = regions[1] if len(regions) > 1 else None

        lines = person.css(sel.person_line)
        years_in_role, years_at_company = self._years(card)

        return ContactRecord(
            name=_clean_text(person.css_first(sel.card_title)),
            title=_clean_text(lines[0]) if len(lines) > 0 else None,
            location=_clean_text(lines[1]) if len(lines) > 1 else None,
            email=_clean_text(card.css_first(sel.email)),
            phone=_clean_text(card.css_first(sel.phone)),
            company=_clean_text(employer.css_first(sel.card_title)) if employer is not None else None,
            linkedin_profile=self._attr_url(person.css_first(sel.linkedin_profile), "href", base_url),
            linkedin_company=self._attr_url(employer.css_first(sel.linkedin_company), "href", base_url) if employer is not None else None,
            avatar=self._attr_url(person.css_first(sel.avatar), "src", base_url),
            years_in_role=years_in_role,
            years_at_company=years_at_company,
        )

    def _years(self, card: Node) -> tuple[Optional[str], Optional[str]]:
        labels = card.css(self.selectors.description_label)
        values = card.css(self.selectors.description_value)
        in_role: Optional[str] = None
        at_company: Optional[str] = None
        for label, value in zip(labels, values):
            text = (_clean_text(label) or "").lower()
            if in_role is None and self.selectors.years_in_role_label in text:
                in_role = _clean_text(value)
            elif at_company is None and self.selectors.years_at_company_label in text:
                at_company = _clean_text(value)
        return in_role, at_company

    @staticmethod
    def _attr_url(node: Optional[Node], attr: str, base_url: Optional[str]) -> Optional[str]:
        if node is None:
            return None
        raw = (node.attributes.get(attr) or "").strip()
        if not raw:
            return None
        return urljoin(base_url, raw) if base_url else raw

    def _report_card_error(self, idx: int, err: Exception) -> None:
        print(f"  ⚠️  Skipped card #{idx}: {err}", file=sys.stderr)
        if self.ops_logger:
            self.ops_logger.emit_event("card_error", card_index=idx, error=str(err))
