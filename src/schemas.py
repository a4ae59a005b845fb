"""
Broker Contacts Scraper - Pydantic Data Schemas

ContactRecord is the unit of extraction: one broker/company card from the
listing view. Every field is optional free text; the record is only kept when
it names a person or a company.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# (field, CSV column title) in table order
CSV_COLUMNS = [
    ("name", "Name"),
    ("title", "Title"),
    ("location", "Location"),
    ("phone", "Phone"),
    ("email", "Email"),
    ("company", "Company"),
    ("linkedin_profile", "LinkedIn Profile"),
    ("linkedin_company", "Company LinkedIn"),
    ("avatar", "Avatar URL"),
    ("years_in_role", "Years in Role"),
    ("years_at_company", "Years at Company"),
]


class ContactRecord(BaseModel):
    """
    One broker contact as rendered on a listing card.

    Left card region gives the person, right card region the employer.
    Email and phone are only present once the contact has been revealed.
    """

    model_config = ConfigDict(validate_assignment=True)

    name: Optional[str] = Field(default=None, description="Broker full name")
    title: Optional[str] = Field(default=None, description="Role or job title line")
    location: Optional[str] = Field(default=None, description="Office location line")
    email: Optional[str] = Field(default=None, description="Revealed email address")
    phone: Optional[str] = Field(default=None, description="Revealed phone number")
    company: Optional[str] = Field(default=None, description="Employer name")
    linkedin_profile: Optional[str] = Field(default=None, description="Person LinkedIn URL")
    linkedin_company: Optional[str] = Field(default=None, description="Company LinkedIn URL")
    avatar: Optional[str] = Field(default=None, description="Avatar image URL")
    years_in_role: Optional[str] = Field(default=None, description="Free text, e.g. '3' or '5+'")
    years_at_company: Optional[str] = Field(default=None, description="Free text, e.g. '3' or '5+'")

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        """Trim strings; empty text counts as missing."""
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @property
    def is_valid(self) -> bool:
        return self.name is not None or self.company is not None

    def same_entity(self, other: "ContactRecord") -> bool:
        """Identity used for dedupe only: shared email or shared profile link.

        Records with neither field never match anything.
        """
        if self.email is not None and self.email == other.email:
            return True
        if self.linkedin_profile is not None and self.linkedin_profile == other.linkedin_profile:
            return True
        return False

    def to_row(self) -> dict:
        """Flatten to a CSV row keyed by column title (missing -> '')."""
        data = self.model_dump()
        return {title: (data[field] or "") for field, title in CSV_COLUMNS}
