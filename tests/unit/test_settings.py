from pathlib import Path
from unittest.mock import patch

import pytest

from src.errors import ConfigurationError
from src.settings import (
    DEFAULT_START_URL,
    CreditUsage,
    Credentials,
    LoginMode,
    RunMode,
    ScrapeConfig,
    build_config,
    read_config_file,
    read_terms_file,
)


def test_defaults():
    cfg = ScrapeConfig()
    assert cfg.mode == RunMode.SCROLL
    assert cfg.start_url == DEFAULT_START_URL
    assert cfg.scroll_settle_delay_ms == 10000
    assert cfg.scroll_delta_y == 800
    assert cfg.login == LoginMode.CREDENTIALS
    assert cfg.filters.is_empty()
    assert cfg.max_iterations is None


def test_read_yaml_config(tmp_path: Path):
    p = tmp_path / "run.yaml"
    p.write_text(
        "mode: scroll\n"
        "scroll_settle_delay_ms: 4000\n"
        "filters:\n"
        "  company_name: Mercer\n"
        "  locations: Texas\n"
        "  roles: [Producer, '  ']\n"
        "  credit_usage: unused\n"
        "  years_at_company: {min: 2, max: 8}\n",
        encoding="utf-8",
    )
    cfg = build_config(read_config_file(p))
    assert cfg.scroll_settle_delay_ms == 4000
    assert cfg.filters.company_name == "Mercer"
    assert cfg.filters.locations == ["Texas"]
    assert cfg.filters.roles == ["Producer"]
    assert cfg.filters.credit_usage == CreditUsage.UNUSED
    assert cfg.filters.credit_usage.radio_value == "not_purchased"
    assert (cfg.filters.years_at_company.min, cfg.filters.years_at_company.max) == (2, 8)
    assert not cfg.filters.is_empty()


def test_empty_yaml_is_defaults(tmp_path: Path):
    p = tmp_path / "empty.yaml"
    p.write_text("", encoding="utf-8")
    assert read_config_file(p) == {}


def test_missing_file(tmp_path: Path):
    with pytest.raises(ConfigurationError) as ei:
        read_config_file(tmp_path / "nope.yaml")
    assert ei.value.exit_code == 1


def test_invalid_yaml(tmp_path: Path):
    p = tmp_path / "bad.yaml"
    p.write_text("filters: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        read_config_file(p)


def test_top_level_must_be_mapping(tmp_path: Path):
    p = tmp_path / "list.yaml"
    p.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        read_config_file(p)


def test_overrides_win_and_none_is_ignored():
    cfg = build_config({"scroll_settle_delay_ms": 4000, "output_dir": "a"}, {"output_dir": "b", "scroll_settle_delay_ms": None})
    assert cfg.output_dir == "b"
    assert cfg.scroll_settle_delay_ms == 4000


@pytest.mark.parametrize("years", [{"min": 5, "max": 2}, {"min": -1}, {"max": 22}])
def test_years_bounds(years):
    with pytest.raises(ConfigurationError):
        build_config({"filters": {"years_at_company": years}})


def test_bad_start_url():
    with pytest.raises(ConfigurationError) as ei:
        build_config({"start_url": "ftp://x"})
    assert ei.value.target == "start_url"


def test_manual_login_needs_visible_browser():
    with pytest.raises(ConfigurationError):
        build_config({"login": "manual", "headless": True})
    assert build_config({"login": "manual", "headless": False}).login == LoginMode.MANUAL


def test_unknown_credit_usage():
    with pytest.raises(ConfigurationError):
        build_config({"filters": {"credit_usage": "sometimes"}})


def test_require_search_terms():
    with pytest.raises(ConfigurationError):
        ScrapeConfig(mode="search").require_search_terms()
    assert ScrapeConfig(search_terms=[" Jane ", ""]).require_search_terms() == ["Jane"]


def test_terms_file_skips_blanks_and_comments(tmp_path: Path):
    p = tmp_path / "names.txt"
    p.write_text("# brokers\nJane Doe\n\n  John Roe  \n", encoding="utf-8")
    assert read_terms_file(p) == ["Jane Doe", "John Roe"]


@patch("src.settings.load_dotenv")
def test_credentials_from_env(_mock_dotenv, monkeypatch):
    monkeypatch.setenv("BF_USERNAME", "me@x.com")
    monkeypatch.setenv("BF_PASSWORD", "secret")
    creds = Credentials.from_env()
    assert creds.username == "me@x.com"
    assert creds.password == "secret"


@patch("src.settings.load_dotenv")
def test_credentials_missing(_mock_dotenv, monkeypatch):
    monkeypatch.setenv("BF_USERNAME", "me@x.com")
    monkeypatch.delenv("BF_PASSWORD", raising=False)
    with pytest.raises(ConfigurationError):
        Credentials.from_env()
