from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CardSelectors:
    """CSS selectors for the broker listing markup.

    title/location share one selector and are told apart by position only
    (first and second match). Years labels and values are correlated by index.
    Both break silently if the card markup is reordered; keep all knowledge of
    the markup here.
    """

    container: str = 'div[data-testid="card-container"]'
    card: str = 'div[data-testid="card-container"] > div'
    card_title: str = '[data-testid="card-title"]'
    person_line: str = "p.ds_typography-text.sm.regular"
    linkedin_profile: str = 'a[href*="linkedin.com/in"]'
    linkedin_company: str = 'a[href*="linkedin.com/company"]'
    avatar: str = "img.ds_avatar"
    email: str = '[data-testid="visible-email"]'
    phone: str = '[data-testid="visible-phone"]'
    description_label: str = '[data-testid="description-label"]'
    description_value: str = '[data-testid="description-value"]'
    years_in_role_label: str = "yrs. in role"
    years_at_company_label: str = "yrs. at company"
    reveal_button_text: str = "Get Contact"
    broker_tab_text: str = "Broker Contacts"
    search_input: str = 'input[placeholder="Search broker contacts"]'


DEFAULT_SELECTORS = CardSelectors()
