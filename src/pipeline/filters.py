from __future__ import annotations

import json
from typing import Optional

from playwright.sync_api import Page, TimeoutError as PlaywrightTimeoutError

from ..errors import NavigationTimeout
from ..ops_logger import OpsLogger
from ..settings import CreditUsage, FilterConfig, YearsRange
from .selectors import CardSelectors, DEFAULT_SELECTORS


AUTOCOMPLETE_LIST = '[data-testid^="auto-complete-component-options"]:not(.hidden)'
AUTOCOMPLETE_OPTION = '[data-testid^="auto-complete-option-"]'

COMPANY_INPUT = '.ds_collapsible input.ds_input[placeholder="e.g. Mercer"]'
ROLE_INPUT = '.ds_collapsible input.ds_input[placeholder="e.g. Producer"]'
JOB_TITLE_INPUT = '.ds_collapsible input.ds_input[placeholder="e.g Consultant"]'
LOCATION_INPUT = 'input[data-testid="hq-location-filter-input"]'
CREDIT_RADIO = 'input[type="radio"][name^="radio-filter-"]'
YEARS_SELECT = 'div.ds_collapsible-open-content select[data-testid="years-at-company-filter-start-input"]'

_EXPAND_SECTION_JS = """
(label) => {
  const sec = Array.from(document.querySelectorAll('.ds_collapsible'))
    .find((s) => s.innerText.includes(label));
  if (sec && sec.classList.contains('closed')) {
    const btn = sec.querySelector('.ds_collapsible-button');
    if (btn) btn.click();
  }
  return Boolean(sec);
}
"""

_LIST_HAS_OPTIONS_JS = (
    "() => { const d = document.querySelector(%s);"
    " return !!d && d.querySelectorAll(%s).length > 0; }"
    % (json.dumps(AUTOCOMPLETE_LIST), json.dumps(AUTOCOMPLETE_OPTION))
)


class FilterApplier:
    """Narrows the broker listing before scraping starts.

    Each text filter: open its collapsible section, clear and type into the
    input, wait for the suggestion list, commit the top suggestion with Enter,
    then wait for the cards to re-render. A filter that leaves zero cards is
    accepted (logged); a missing control is a NavigationTimeout.
    """

    def __init__(
        self,
        page: Page,
        selectors: CardSelectors = DEFAULT_SELECTORS,
        *,
        control_timeout_ms: int = 10000,
        suggestion_timeout_ms: int = 8000,
        cards_timeout_ms: int = 15000,
        type_delay_ms: int = 50,
        pause_ms: int = 1000,
        ops_logger: Optional[OpsLogger] = None,
    ) -> None:
        self.page = page
        self.selectors = selectors
        self.control_timeout_ms = control_timeout_ms
        self.suggestion_timeout_ms = suggestion_timeout_ms
        self.cards_timeout_ms = cards_timeout_ms
        self.type_delay_ms = type_delay_ms
        self.pause_ms = pause_ms
        self.ops_logger = ops_logger

    def apply(self, filters: FilterConfig) -> int:
        """Apply every configured filter in a fixed order; return how many ran."""
        applied = 0
        if filters.company_name:
            self.apply_company_name(filters.company_name)
            applied += 1
        for loc in filters.locations:
            self.apply_location(loc)
            applied += 1
        for role in filters.roles:
            self.apply_role(role)
            applied += 1
        if filters.job_title:
            self.apply_job_title(filters.job_title)
            applied += 1
        if filters.credit_usage is not None:
            self.apply_credit_usage(filters.credit_usage)
            applied += 1
        if filters.years_at_company is not None:
            self.apply_years_at_company(filters.years_at_company)
            applied += 1
        return applied

    # -------------------------
    # Individual filters
    # -------------------------
    def apply_company_name(self, company: str) -> None:
        self._autocomplete("Company Name", COMPANY_INPUT, company, operation="company filter")

    def apply_role(self, role: str) -> None:
        self._autocomplete("Role", ROLE_INPUT, role, operation="role filter")

    def apply_job_title(self, job_title: str) -> None:
        self._autocomplete("Job Title", JOB_TITLE_INPUT, job_title, operation="job title filter")

    def apply_location(self, location: str) -> None:
        self._autocomplete("Location", LOCATION_INPUT, location, operation="location filter", need_options=True)

    def apply_credit_usage(self, option: CreditUsage) -> None:
        operation = "credit usage filter"
        print(f"Applying Credit Usage Filter: {option.value}")
        self._expand("Credit Usage")
        radio = self.page.locator(f'{CREDIT_RADIO}[value="{option.radio_value}"]').first
        try:
            radio.click(timeout=self.control_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout("credit usage radio not found", operation=operation, target=option.value) from e
        self.page.wait_for_timeout(self.pause_ms)
        self._wait_for_cards(operation, option.value)

    def apply_years_at_company(self, years: YearsRange) -> None:
        operation = "years at company filter"
        target = f"{years.min}-{years.max}"
        print(f"Applying Years At Company Filter: {years.min} → {years.max}")
        self._expand("Years At Company")
        selects = self.page.locator(YEARS_SELECT)
        try:
            selects.first.wait_for(state="attached", timeout=self.control_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout("years selects not found", operation=operation, target=target) from e
        if selects.count() < 2:
            raise NavigationTimeout("could not find both min and max year selects", operation=operation, target=target)
        selects.nth(0).select_option(str(years.min))
        selects.nth(1).select_option(str(years.max))
        self._wait_for_cards(operation, target)

    # -------------------------
    # Helpers
    # -------------------------
    def _autocomplete(self, section: str, input_selector: str, value: str, *, operation: str, need_options: bool = False) -> None:
        print(f"Applying {section} Filter: {value}")
        self._expand(section)
        box = self.page.locator(input_selector).first
        try:
            box.wait_for(state="visible", timeout=self.control_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(f"{section} input not found", operation=operation, target=value) from e
        box.fill("")
        box.press_sequentially(value, delay=self.type_delay_ms)
        try:
            if need_options:
                self.page.wait_for_function(_LIST_HAS_OPTIONS_JS, timeout=self.suggestion_timeout_ms)
            else:
                self.page.locator(AUTOCOMPLETE_LIST).first.wait_for(state="visible", timeout=self.suggestion_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout("no suggestions shown", operation=operation, target=value) from e
        self.page.wait_for_timeout(self.pause_ms)
        self.page.keyboard.press("Enter")
        self._wait_for_cards(operation, value)

    def _expand(self, label: str) -> None:
        self.page.evaluate(_EXPAND_SECTION_JS, label)
        self.page.wait_for_timeout(self.pause_ms)

    def _wait_for_cards(self, operation: str, target: str) -> int:
        try:
            self.page.locator(self.selectors.container).first.wait_for(state="attached", timeout=self.cards_timeout_ms)
        except PlaywrightTimeoutError:
            print(f"  ℹ️  {operation} ({target}) left no cards")
            count = 0
        else:
            count = self.page.locator(self.selectors.container).count()
            print(f"✔ {operation} applied: {target} ({count} cards)")
        if self.ops_logger:
            self.ops_logger.emit_event("filter", operation=operation, target=target, cards=count)
        return count
