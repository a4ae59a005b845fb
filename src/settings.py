"""
Run configuration: YAML file -> validated ScrapeConfig.

Filter values and timings are passed into the run explicitly; nothing is read
from module-level constants. Secrets come from the environment only (a local
.env file is loaded when present).
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .errors import ConfigurationError


DEFAULT_START_URL = "https://benefit-flow.com/Search"


class CreditUsage(str, Enum):
    ALL = "all"
    USED = "used"
    UNUSED = "unused"

    @property
    def radio_value(self) -> str:
        """Value attribute of the matching radio input on the filter panel."""
        return {"all": "", "used": "purchased", "unused": "not_purchased"}[self.value]


class LoginMode(str, Enum):
    MANUAL = "manual"
    CREDENTIALS = "credentials"


class RunMode(str, Enum):
    SCROLL = "scroll"
    SEARCH = "search"


class YearsRange(BaseModel):
    """Years-at-company bounds; 0 means no minimum, 21 means no maximum."""
    min: int = Field(default=0, ge=0, le=21)
    max: int = Field(default=21, ge=0, le=21)

    @model_validator(mode="after")
    def check_order(self) -> "YearsRange":
        if self.min > self.max:
            raise ValueError("years_at_company.min must not exceed years_at_company.max")
        return self


class FilterConfig(BaseModel):
    company_name: Optional[str] = None
    job_title: Optional[str] = None
    roles: List[str] = Field(default_factory=list)
    locations: List[str] = Field(default_factory=list)
    credit_usage: Optional[CreditUsage] = None
    years_at_company: Optional[YearsRange] = None

    @field_validator("company_name", "job_title", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator("roles", "locations", mode="before")
    @classmethod
    def listify(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return [s.strip() for s in v if isinstance(s, str) and s.strip()]

    def is_empty(self) -> bool:
        return not (
            self.company_name or self.job_title or self.roles or self.locations
            or self.credit_usage is not None or self.years_at_company is not None
        )


class ScrapeConfig(BaseModel):
    """Everything one run needs besides credentials."""
    mode: RunMode = RunMode.SCROLL
    start_url: str = DEFAULT_START_URL
    search_terms: List[str] = Field(default_factory=list)
    filters: FilterConfig = Field(default_factory=FilterConfig)

    # Pagination
    scroll_settle_delay_ms: int = Field(default=10000, ge=0)
    scroll_delta_y: int = Field(default=800, gt=0)
    skip_first_advance: bool = False
    search_settle_delay_ms: int = Field(default=3000, ge=0)

    # Safety valves (unset = run until no new records)
    max_iterations: Optional[int] = Field(default=None, gt=0)
    max_duration_s: Optional[float] = Field(default=None, gt=0)

    # Contact reveal (search variant)
    reveal_contacts: bool = False
    reveal_timeout_ms: int = Field(default=5000, ge=0)

    # Browser / session
    headless: bool = True
    login: LoginMode = LoginMode.CREDENTIALS
    manual_login_timeout_ms: int = Field(default=300000, gt=0)
    navigation_timeout_ms: int = Field(default=60000, gt=0)
    viewport_width: int = 1280
    viewport_height: int = 1000

    # Output
    output_dir: str = "output"
    snapshot_name: str = "data.json"
    table_name: str = "data.csv"

    @field_validator("search_terms", mode="before")
    @classmethod
    def clean_terms(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return [s.strip() for s in v if isinstance(s, str) and s.strip()]

    @field_validator("start_url")
    @classmethod
    def validate_start_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("start_url must be a valid HTTP/HTTPS URL")
        return v

    @model_validator(mode="after")
    def check_mode(self) -> "ScrapeConfig":
        if self.login == LoginMode.MANUAL and self.headless:
            raise ValueError("manual login needs a visible browser (headless: false)")
        return self

    def require_search_terms(self) -> List[str]:
        if not self.search_terms:
            raise ConfigurationError("no search terms supplied", target="search_terms")
        return list(self.search_terms)


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str

    @classmethod
    def from_env(cls) -> "Credentials":
        load_dotenv()
        username = os.getenv("BF_USERNAME")
        password = os.getenv("BF_PASSWORD")
        if not username or not password:
            raise ConfigurationError("BF_USERNAME or BF_PASSWORD not set", operation="login", target=".env")
        return cls(username=username, password=password)


def read_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists() or not p.is_file():
        raise ConfigurationError(f"file not found: {p}", target=str(p))
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML: {e}", target=str(p)) from e
    if not isinstance(data, dict):
        raise ConfigurationError("top level must be a mapping", target=str(p))
    return data


def build_config(data: Dict[str, Any], overrides: Optional[Dict[str, Any]] = None) -> ScrapeConfig:
    """Validate file values merged with CLI overrides (None = not given)."""
    merged = dict(data)
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value
    try:
        return ScrapeConfig.model_validate(merged)
    except ValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(p) for p in first.get("loc", ()))
        raise ConfigurationError(first.get("msg", str(e)), target=loc or None) from e


def read_terms_file(path: Union[str, Path]) -> List[str]:
    p = Path(path)
    if not p.exists() or not p.is_file():
        raise ConfigurationError(f"file not found: {p}", target=str(p))
    terms: List[str] = []
    for line in p.read_text(encoding="utf-8").splitlines():
        s = line.strip()
        if not s or s.startswith("#"):
            continue
        terms.append(s)
    return terms
