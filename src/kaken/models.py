"""Domain models returned by the KAKEN client and the search parameters it accepts."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


class Record(BaseModel):
    """Immutable value record produced by a response parser."""

    model_config = ConfigDict(frozen=True)


class Institution(Record):
    name: str
    code: str | None = None
    type: str | None = None
    participate: str | None = None


class Department(Record):
    name: str
    code: str | None = None


class JobTitle(Record):
    name: str
    code: str | None = None


class Affiliation(Record):
    """A researcher's institution / department / job title, optionally dated."""

    sequence: int | None = None
    institution: Institution | None = None
    department: Department | None = None
    job_title: JobTitle | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class PersonName(Record):
    full_name: str
    family_name: str | None = None
    given_name: str | None = None
    family_name_reading: str | None = None
    given_name_reading: str | None = None


class Category(Record):
    name: str
    path: str | None = None
    code: str | None = None


class Field(Record):
    name: str
    path: str | None = None
    code: str | None = None
    field_table: str | None = None
    sequence: int | None = None


class Keyword(Record):
    """A project keyword.

    ``language`` is kept as reported by the API, which frequently tags every
    keyword as undetermined; it is never used to select keywords.
    """

    text: str
    language: str | None = None


class ProjectStatus(Record):
    status_code: str
    fiscal_year: int | None = None
    date: datetime | None = None
    note: str | None = None


class PeriodOfAward(Record):
    start_date: datetime | None = None
    end_date: datetime | None = None
    start_fiscal_year: int | None = None
    end_fiscal_year: int | None = None
    search_start_fiscal_year: int | None = None
    search_end_fiscal_year: int | None = None


class CurrencyUnit(Record):
    original_value: str
    normalized_value: str | None = None


class AwardAmount(Record):
    total_cost: int | float | None = None
    direct_cost: int | float | None = None
    indirect_cost: int | float | None = None
    converted_jpy_total_cost: int | float | None = None
    unit: CurrencyUnit | None = None
    planned: bool | None = None
    caption: str | None = None
    user_defined_id: str | None = None


class Allocation(Record):
    name: str
    code: str | None = None
    participate: str | None = None


class ResearcherRole(Record):
    """A project member: the role plus a partial view of the researcher.

    Deliberately narrower than :class:`Researcher` so that a project never
    embeds researchers that in turn embed projects.
    """

    role: str
    participate: str | None = None
    sequence: int | None = None
    researcher_number: str | None = None
    erad_code: str | None = None
    name: PersonName | None = None
    affiliations: list[Affiliation] | None = None


class ProjectIdentifier(Record):
    type: str
    value: str


class Project(Record):
    """A single research grant (award) record."""

    id: str | None = None
    record_set: str | None = None
    award_number: str | None = None
    title: str | None = None
    title_en: str | None = None
    title_abbreviated: str | None = None
    categories: list[Category] | None = None
    fields: list[Field] | None = None
    institutions: list[Institution] | None = None
    keywords: list[Keyword] | None = None
    period_of_award: PeriodOfAward | None = None
    project_status: ProjectStatus | None = None
    project_type: str | None = None
    allocations: list[Allocation] | None = None
    members: list[ResearcherRole] | None = None
    award_amounts: list[AwardAmount] | None = None
    created: datetime | None = None
    modified: datetime | None = None
    identifiers: list[ProjectIdentifier] | None = None
    raw_data: Any = None


class Product(Record):
    """A research output (article, presentation, book, ...) listed on a researcher.

    Only the identifier, type and title are extracted; the complete entry is
    kept in ``raw_data``.
    """

    id: str | None = None
    type: str | None = None
    title: str | None = None
    raw_data: Any = None


class Researcher(Record):
    id: str | None = None
    name: PersonName | None = None
    current_affiliations: list[Affiliation] = []
    historical_affiliations: list[Affiliation] | None = None
    erad_researcher_number: str | None = None
    jglobal_id: str | None = None
    researchmap_id: str | None = None
    orcid: str | None = None
    projects: list[Project] | None = None
    products: list[Product] | None = None
    raw_data: Any = None


class ProjectsResponse(Record):
    """Envelope for a project search; ``raw_data`` is the XML body text."""

    raw_data: str
    total_results: int | None = None
    start_index: int | None = None
    items_per_page: int | None = None
    projects: list[Project] = []

    @property
    def items(self) -> list[Project]:
        return self.projects


class ResearchersResponse(Record):
    """Envelope for a researcher search; ``raw_data`` is the decoded JSON object."""

    raw_data: dict[str, Any]
    total_results: int | None = None
    start_index: int | None = None
    items_per_page: int | None = None
    researchers: list[Researcher] = []

    @property
    def items(self) -> list[Researcher]:
        return self.researchers


Language = Literal["ja", "en"]


class SearchParams(BaseModel):
    """Parameters shared by both search endpoints."""

    model_config = ConfigDict(extra="forbid")

    keyword: str | None = None
    results_per_page: int | None = None
    language: Language | None = None
    start_index: int | None = None
    project_title: str | None = None
    project_number: str | None = None
    research_category: str | None = None
    research_field: str | None = None
    institution: str | None = None
    grant_period_from: int | None = None
    grant_period_to: int | None = None
    grant_period_condition: str | None = None
    researcher_name: str | None = None
    researcher_institution: str | None = None
    researcher_number: str | None = None
    sort_order: str | None = None


class ProjectSearchParams(SearchParams):
    project_type: str | list[str] | None = None
    allocation_type: str | list[str] | None = None
    total_grant_amount: str | None = None
    project_status: str | list[str] | None = None
    researcher_role: str | list[str] | None = None


class ResearcherSearchParams(SearchParams):
    researcher_department: str | None = None
    researcher_job_title: str | None = None
