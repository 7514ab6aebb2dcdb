"""Researcher search against the KAKEN (NRID) JSON endpoint."""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime
from typing import Any

import structlog

from kaken.constants import (
    MAX_RESEARCHERS_RESULTS,
    RESEARCHER_SORT_OPTIONS,
    RESEARCHERS_ENDPOINT,
    RESEARCHERS_FORMAT,
)
from kaken.exceptions import ResponseError
from kaken.models import (
    Affiliation,
    Department,
    Institution,
    JobTitle,
    PersonName,
    Product,
    Project,
    Researcher,
    ResearchersResponse,
    ResearcherSearchParams,
)
from kaken.utils import first_string, number_to_int, pick_localized_text
from .endpoint import SearchEndpoint

logger = structlog.get_logger(__name__)

INSTITUTION_ID_KEYS = (
    "id:institution:erad",
    "id:institution:kakenhi",
    "id:institution:mext",
    "id:institution:jsps",
    "id:institution:jst",
)
DEPARTMENT_ID_KEYS = (
    "id:department:erad",
    "id:department:mext",
    "id:department:jsps",
    "id:department:jst",
)
JOB_TITLE_ID_KEYS = (
    "id:jobTitle:erad",
    "id:jobTitle:mext",
    "id:jobTitle:jsps",
    "id:jobTitle:jst",
)

PERSON_ID_KEYS = {
    "erad_researcher_number": "id:person:erad",
    "jglobal_id": "id:person:jglobal",
    "researchmap_id": "id:person:researchmap",
    "orcid": "id:orcid",
}


class ResearchersAPI(SearchEndpoint[ResearcherSearchParams]):
    """Searches researchers."""

    params_model = ResearcherSearchParams
    base_url = RESEARCHERS_ENDPOINT
    response_format = RESEARCHERS_FORMAT
    max_results = MAX_RESEARCHERS_RESULTS
    condition_fields = (
        "keyword",
        "researcher_name",
        "researcher_number",
        "researcher_institution",
        "researcher_department",
        "researcher_job_title",
        "project_title",
        "project_number",
        "research_category",
        "research_field",
        "institution",
        "grant_period_from",
        "grant_period_to",
    )
    query_keys = (
        ("researcher_name", "qg"),
        ("researcher_number", "qm"),
        ("researcher_institution", "qh"),
        ("researcher_department", "qq"),
        ("researcher_job_title", "qs"),
        ("project_title", "qa"),
        ("project_number", "qb"),
        ("research_category", "qc"),
        ("research_field", "qd"),
        ("institution", "qe"),
        ("grant_period_from", "s1"),
        ("grant_period_to", "s2"),
        ("grant_period_condition", "o1"),
    )
    sort_options = RESEARCHER_SORT_OPTIONS

    async def search(
        self, params: ResearcherSearchParams | None = None, **overrides: Any
    ) -> ResearchersResponse:
        params = self.coerce_params(params, overrides)
        url = self.build_url(params)
        logger.info("researchers.search", url=url)
        content = await self._fetch_body(url)
        return parse_researchers_response(content)


def parse_researchers_response(content: str) -> ResearchersResponse:
    """Parse the JSON body of a researcher search."""
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ResponseError(f"Failed to parse JSON response: {exc}") from exc

    try:
        if not isinstance(data, dict):
            raise ResponseError("Unexpected JSON response: top level is not an object")
        researchers = [
            _parse_researcher(item)
            for item in data.get("researchers") or []
            if isinstance(item, Mapping)
        ]
        return ResearchersResponse(
            raw_data=data,
            total_results=number_to_int(data.get("totalResults")),
            start_index=number_to_int(data.get("startIndex")),
            items_per_page=number_to_int(data.get("itemsPerPage")),
            researchers=researchers,
        )
    except ResponseError:
        raise
    except Exception as exc:
        raise ResponseError(f"Failed to process JSON response: {exc}") from exc


def _parse_researcher(data: Mapping[str, Any]) -> Researcher:
    accession = data.get("accn")
    name = data.get("name")
    identifiers = {field: _first_item(data.get(key)) for field, key in PERSON_ID_KEYS.items()}

    historical = data.get("affiliations:history")
    work_projects = data.get("work:project")
    work_products = data.get("work:product")
    return Researcher(
        id=accession if isinstance(accession, str) else None,
        name=parse_person_name(name) if isinstance(name, Mapping) else None,
        current_affiliations=_parse_affiliations(data.get("affiliations:current")),
        historical_affiliations=_parse_affiliations(historical)
        if isinstance(historical, list)
        else None,
        projects=[_parse_project(item) for item in work_projects if isinstance(item, Mapping)]
        if isinstance(work_projects, list)
        else None,
        products=[_parse_product(item) for item in work_products if isinstance(item, Mapping)]
        if isinstance(work_products, list)
        else None,
        raw_data=data,
        **identifiers,
    )


def parse_person_name(data: Mapping[str, Any]) -> PersonName:
    """Resolve a researcher name from its localized family / given name values."""
    family_values = data.get("name:familyName")
    given_values = data.get("name:givenName")

    family_name = pick_localized_text(family_values, "ja")
    given_name = pick_localized_text(given_values, "ja")
    if family_name and given_name:
        full_name = f"{family_name} {given_name}"
    else:
        full_name = family_name or given_name or "Unknown"

    return PersonName(
        full_name=full_name,
        family_name=family_name,
        given_name=given_name,
        family_name_reading=pick_localized_text(family_values, "ja-Kana", fallback=False),
        given_name_reading=pick_localized_text(given_values, "ja-Kana", fallback=False),
    )


def _parse_affiliations(items: Any) -> list[Affiliation]:
    if not isinstance(items, list):
        return []
    return [
        affiliation
        for item in items
        if isinstance(item, Mapping) and (affiliation := _parse_affiliation(item)) is not None
    ]


def _parse_affiliation(data: Mapping[str, Any]) -> Affiliation | None:
    institution = _parse_institution(data.get("affiliation:institution"))
    department = _parse_department(data.get("affiliation:department"))
    job_title = _parse_job_title(data.get("affiliation:jobTitle"))
    if institution is None and department is None and job_title is None:
        return None

    return Affiliation(
        sequence=number_to_int(data.get("sequence")),
        institution=institution,
        department=department,
        job_title=job_title,
        start_date=parse_era_date(data.get("since")),
        end_date=parse_era_date(data.get("until")),
    )


def _parse_institution(data: Any) -> Institution | None:
    if not isinstance(data, Mapping):
        return None
    name = pick_localized_text(data.get("humanReadableValue"), "ja")
    if not name:
        return None
    category = data.get("category:institution:kakenhi")
    return Institution(
        name=name,
        code=first_string(data, INSTITUTION_ID_KEYS),
        type=category if isinstance(category, str) else None,
    )


def _parse_department(data: Any) -> Department | None:
    if not isinstance(data, Mapping):
        return None
    name = pick_localized_text(data.get("humanReadableValue"), "ja")
    if not name:
        return None
    return Department(name=name, code=first_string(data, DEPARTMENT_ID_KEYS))


def _parse_job_title(data: Any) -> JobTitle | None:
    if not isinstance(data, Mapping):
        return None
    name = pick_localized_text(data.get("humanReadableValue"), "ja")
    if not name:
        return None
    return JobTitle(name=name, code=first_string(data, JOB_TITLE_ID_KEYS))


def parse_era_date(data: Any) -> datetime | None:
    """Build a date from ``{"commonEra:year": Y, "month": M, "day": D}``.

    ``month`` and ``day`` default to 1 when absent. Without a numeric year, or
    when the parts do not form a calendar date, there is no date.
    """
    if not isinstance(data, Mapping):
        return None
    year = number_to_int(data.get("commonEra:year"))
    if year is None:
        return None
    month = number_to_int(data.get("month"))
    day = number_to_int(data.get("day"))
    try:
        return datetime(year, month if month is not None else 1, day if day is not None else 1)
    except (ValueError, OverflowError):
        return None


def _parse_project(data: Mapping[str, Any]) -> Project:
    """Partial project: id, titles and the untouched source entry."""
    record_source = data.get("recordSource")
    project_ids = record_source.get("id:project:kakenhi") if isinstance(record_source, Mapping) else None

    titles = data.get("title")
    first_title = titles[0] if isinstance(titles, list) and titles else None
    title_values = first_title.get("humanReadableValue") if isinstance(first_title, Mapping) else None

    return Project(
        id=_first_item(project_ids),
        title=pick_localized_text(title_values, "ja"),
        title_en=pick_localized_text(title_values, "en", fallback=False),
        raw_data=data,
    )


def _parse_product(data: Mapping[str, Any]) -> Product:
    """Partial product: id, type, title and the untouched source entry."""
    resource_type = data.get("resourceType")
    title_main = data.get("title:main")
    title = title_main.get("text") if isinstance(title_main, Mapping) else None
    return Product(
        id=_first_item(data.get("accn")),
        type=resource_type if isinstance(resource_type, str) else None,
        title=title if isinstance(title, str) else None,
        raw_data=data,
    )


def _first_item(values: Any) -> str | None:
    """Index 0 of a list when it is a string; later entries are ignored."""
    if isinstance(values, list) and values and isinstance(values[0], str):
        return values[0]
    return None
