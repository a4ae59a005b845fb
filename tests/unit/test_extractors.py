"""
Unit tests for CardExtractor

Static HTML fixtures shaped like the broker listing cards; the Playwright
entry point is exercised with mocked locators.
"""

from unittest.mock import MagicMock, patch

import pytest
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from src.pipeline.extractors import CardExtractor, ContactRevealer


def card_html(
    name=None,
    title=None,
    location=None,
    company=None,
    email=None,
    phone=None,
    profile=None,
    company_url=None,
    avatar=None,
    years=(),
):
    left = []
    if avatar:
        left.append(f'<img class="ds_avatar" src="{avatar}">')
    if name:
        left.append(f'<div data-testid="card-title">{name}</div>')
    if title:
        left.append(f'<p class="ds_typography-text sm regular typography-primary">{title}</p>')
    if location:
        left.append(f'<p class="ds_typography-text sm regular typography-secondary">{location}</p>')
    if profile:
        left.append(f'<a href="{profile}">in</a>')
    right = []
    if company:
        right.append(f'<div data-testid="card-title">{company}</div>')
    if company_url:
        right.append(f'<a href="{company_url}">co</a>')
    contact = []
    if email:
        contact.append(f'<p data-testid="visible-email">{email}</p>')
    if phone:
        contact.append(f'<p data-testid="visible-phone">{phone}</p>')
    desc = "".join(
        f'<span data-testid="description-label">{label}</span><span data-testid="description-value">{value}</span>'
        for label, value in years
    )
    return (
        '<div data-testid="card-container">'
        f'<div>{"".join(left)}</div>'
        f'<div>{"".join(right)}{"".join(contact)}{desc}</div>'
        '</div>'
    )


def page_html(*cards):
    return f"<html><body><main>{''.join(cards)}</main></body></html>"


class TestStaticExtraction:
    def setup_method(self):
        self.extractor = CardExtractor()

    def test_full_card(self):
        html = page_html(card_html(
            name="Jane Doe",
            title="Senior Consultant",
            location="Chicago, IL",
            company="Alera Group",
            email="jane@alera.com",
            phone="(312) 555-0100",
            profile="https://www.linkedin.com/in/janedoe",
            company_url="https://www.linkedin.com/company/alera",
            avatar="https://cdn.example.com/a.png",
            years=[("Yrs. in Role", "3"), ("Yrs. at Company", "5+")],
        ))
        [rec] = self.extractor.extract_from_html(html)
        assert rec.name == "Jane Doe"
        assert rec.title == "Senior Consultant"
        assert rec.location == "Chicago, IL"
        assert rec.company == "Alera Group"
        assert rec.email == "jane@alera.com"
        assert rec.phone == "(312) 555-0100"
        assert rec.linkedin_profile == "https://www.linkedin.com/in/janedoe"
        assert rec.linkedin_company == "https://www.linkedin.com/company/alera"
        assert rec.avatar == "https://cdn.example.com/a.png"
        assert rec.years_in_role == "3"
        assert rec.years_at_company == "5+"

    def test_name_only_card_is_kept(self):
        [rec] = self.extractor.extract_from_html(page_html(card_html(name="Jane Doe")))
        assert rec.name == "Jane Doe"
        assert rec.company is None
        assert rec.email is None
        assert rec.linkedin_profile is None

    def test_card_without_name_and_company_is_dropped(self):
        html = page_html(card_html(title="Producer", email="x@y.com"), card_html(company="Lockton"))
        records = self.extractor.extract_from_html(html)
        assert [r.company for r in records] == ["Lockton"]

    def test_location_is_second_person_line(self):
        [rec] = self.extractor.extract_from_html(page_html(card_html(name="A", title="Producer", location="Denver, CO")))
        assert rec.title == "Producer"
        assert rec.location == "Denver, CO"

    def test_single_person_line_leaves_location_empty(self):
        [rec] = self.extractor.extract_from_html(page_html(card_html(name="A", title="Producer")))
        assert rec.location is None

    def test_years_labels_case_insensitive_first_match_wins(self):
        html = page_html(card_html(
            name="A",
            years=[("YRS. AT COMPANY", "7"), ("Yrs. in role", "2"), ("Yrs. at company", "99")],
        ))
        [rec] = self.extractor.extract_from_html(html)
        assert rec.years_at_company == "7"
        assert rec.years_in_role == "2"

    def test_dom_order_preserved(self):
        html = page_html(*(card_html(name=f"Person {i}") for i in range(5)))
        assert [r.name for r in self.extractor.extract_from_html(html)] == [f"Person {i}" for i in range(5)]

    def test_relative_links_resolved_against_base_url(self):
        html = page_html(card_html(name="A", avatar="/img/a.png"))
        [rec] = self.extractor.extract_from_html(html, base_url="https://benefit-flow.com/Search")
        assert rec.avatar == "https://benefit-flow.com/img/a.png"

    def test_bad_card_is_skipped_not_fatal(self, capsys):
        html = page_html(
            '<div data-testid="card-container"></div>',
            card_html(name="Good Card"),
        )
        records = self.extractor.extract_from_html(html)
        assert [r.name for r in records] == ["Good Card"]
        assert "Skipped card #0" in capsys.readouterr().err

    def test_card_without_company_region(self):
        html = page_html('<div data-testid="card-container"><div><div data-testid="card-title">Solo</div></div></div>')
        [rec] = self.extractor.extract_from_html(html)
        assert rec.name == "Solo"
        assert rec.company is None

    def test_multiline_text_collapsed(self):
        [rec] = self.extractor.extract_from_html(page_html(card_html(name="Jane\n   <b>Doe</b>")))
        assert rec.name == "Jane Doe"

    def test_comment_nodes_are_not_card_regions(self):
        html = page_html(
            '<div data-testid="card-container"><!-- person -->'
            '<div><div data-testid="card-title">Jane Doe</div></div><!-- employer -->'
            '<div><div data-testid="card-title">Alera Group</div></div></div>'
        )
        [rec] = self.extractor.extract_from_html(html)
        assert rec.name == "Jane Doe"
        assert rec.company == "Alera Group"

    def test_card_error_goes_to_ops_log(self):
        ops = MagicMock()
        extractor = CardExtractor(ops_logger=ops)
        extractor.extract_from_html(page_html('<div data-testid="card-container"></div>'))
        ops.emit_event.assert_called_once()
        assert ops.emit_event.call_args.args[0] == "card_error"


def make_page(fragments):
    page = MagicMock()
    page.url = "https://benefit-flow.com/Search"
    cards = MagicMock()
    cards.evaluate_all.return_value = fragments
    cards.count.return_value = len(fragments)
    card_locators = []
    for frag in fragments:
        loc = MagicMock()
        loc.evaluate.return_value = frag
        card_locators.append(loc)
    cards.nth.side_effect = lambda i: card_locators[i]
    page.locator.return_value = cards
    return page, cards, card_locators


class TestPlaywrightExtraction:
    def test_bulk_path_uses_single_evaluate_all(self):
        page, cards, locs = make_page([card_html(name="A"), card_html(company="B")])
        records = CardExtractor().extract_from_playwright(page)
        assert [(r.name, r.company) for r in records] == [("A", None), (None, "B")]
        cards.evaluate_all.assert_called_once()
        page.locator.assert_called_once_with('div[data-testid="card-container"]')
        for loc in locs:
            loc.evaluate.assert_not_called()

    def test_prepare_hook_runs_per_card_before_read(self):
        page, cards, locs = make_page([card_html(name="A"), card_html(name="B")])
        seen = []
        records = CardExtractor().extract_from_playwright(page, prepare_card=seen.append)
        assert seen == locs
        assert [r.name for r in records] == ["A", "B"]
        cards.evaluate_all.assert_not_called()

    def test_prepare_hook_failure_skips_only_that_card(self, capsys):
        page, _, locs = make_page([card_html(name="A"), card_html(name="B")])

        def hook(card):
            if card is locs[0]:
                raise RuntimeError("detached")

        records = CardExtractor().extract_from_playwright(page, prepare_card=hook)
        assert [r.name for r in records] == ["B"]
        assert "detached" in capsys.readouterr().err

    def test_empty_listing(self):
        page, _, _ = make_page([])
        assert CardExtractor().extract_from_playwright(page) == []


class TestContactRevealer:
    def _card(self, buttons=1):
        card = MagicMock()
        button = MagicMock()
        button.count.return_value = buttons
        marker = MagicMock()
        card.locator.side_effect = lambda sel, **kw: button if sel == "button" else marker
        return card, button, marker

    def test_clicks_and_waits(self):
        card, button, marker = self._card()
        ContactRevealer(timeout_ms=1234, settle_ms=500)(card)
        button.first.click.assert_called_once()
        marker.first.wait_for.assert_called_once_with(state="attached", timeout=1234)
        card.page.wait_for_timeout.assert_called_once_with(500)

    def test_no_button_is_noop(self):
        card, button, marker = self._card(buttons=0)
        ContactRevealer()(card)
        button.first.click.assert_not_called()
        card.page.wait_for_timeout.assert_not_called()

    def test_timeout_is_swallowed(self):
        card, button, marker = self._card()
        marker.first.wait_for.side_effect = PlaywrightTimeoutError("Timeout 5000ms exceeded")
        ContactRevealer()(card)
        card.page.wait_for_timeout.assert_called_once_with(500)
