"""Project search against the KAKEN XML endpoint."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

import structlog

from kaken.constants import (
    MAX_PROJECTS_RESULTS,
    PROJECT_SORT_OPTIONS,
    PROJECTS_ENDPOINT,
    PROJECTS_FORMAT,
)
from kaken.exceptions import ResponseError
from kaken.models import (
    Affiliation,
    Allocation,
    AwardAmount,
    Category,
    CurrencyUnit,
    Department,
    Field,
    Institution,
    JobTitle,
    Keyword,
    PeriodOfAward,
    PersonName,
    Project,
    ProjectIdentifier,
    ProjectSearchParams,
    ProjectsResponse,
    ProjectStatus,
    ResearcherRole,
)
from kaken.utils import (
    clean_text,
    ensure_list,
    is_number,
    number_to_int,
    parse_iso_datetime,
    pick_localized,
    to_int,
)
from .endpoint import SearchEndpoint
from .xmltree import attribute, parse_xml, text_node

logger = structlog.get_logger(__name__)

# Elements that may occur once or many times; always parsed as lists.
REPEATED_ELEMENTS = (
    "grantAward",
    "summary",
    "identifier",
    "field",
    "keyword",
    "member",
    "category",
    "institution",
    "allocation",
    "affiliation",
    "overallAwardAmount",
)

SUMMARY_LANG_KEY = "@xml:lang"


class ProjectsAPI(SearchEndpoint[ProjectSearchParams]):
    """Searches research projects (grant awards)."""

    params_model = ProjectSearchParams
    base_url = PROJECTS_ENDPOINT
    response_format = PROJECTS_FORMAT
    max_results = MAX_PROJECTS_RESULTS
    condition_fields = (
        "keyword",
        "project_title",
        "project_number",
        "project_type",
        "research_category",
        "allocation_type",
        "research_field",
        "institution",
        "grant_period_from",
        "grant_period_to",
        "total_grant_amount",
        "project_status",
        "researcher_name",
        "researcher_institution",
        "researcher_number",
        "researcher_role",
    )
    query_keys = (
        ("project_title", "qa"),
        ("project_number", "qb"),
        ("project_type", "c6"),
        ("research_category", "qc"),
        ("allocation_type", "c7"),
        ("research_field", "qd"),
        ("institution", "qe"),
        ("grant_period_from", "s1"),
        ("grant_period_to", "s2"),
        ("grant_period_condition", "o1"),
        ("total_grant_amount", "s3"),
        ("project_status", "c1"),
        ("researcher_name", "qg"),
        ("researcher_institution", "qh"),
        ("researcher_number", "qm"),
        ("researcher_role", "c2"),
    )
    sort_options = PROJECT_SORT_OPTIONS

    async def search(
        self, params: ProjectSearchParams | None = None, **overrides: Any
    ) -> ProjectsResponse:
        """Search projects.

        Raises ``RequestError`` when no search condition is given or the start
        index is out of range, ``NotFoundError`` on HTTP 404 and
        ``ResponseError`` when the XML cannot be parsed.
        """
        params = self.coerce_params(params, overrides)
        url = self.build_url(params)
        logger.info("projects.search", url=url)
        content = await self._fetch_body(url)
        return parse_projects_response(content)


def parse_projects_response(content: str) -> ProjectsResponse:
    """Parse the XML body of a project search."""
    try:
        document = parse_xml(content, force_list=REPEATED_ELEMENTS)
        root_key = next((key for key in document if not key.startswith("?")), None)
        if root_key is None:
            raise ResponseError("Empty document: no root element")
        root = document[root_key]
        if not isinstance(root, Mapping):
            raise ResponseError("Unexpected root element type")

        projects = [
            _parse_project(award)
            for award in ensure_list(root.get("grantAward"))
            if isinstance(award, Mapping)
        ]
        return ProjectsResponse(
            raw_data=content,
            total_results=to_int(root.get("totalResults")),
            start_index=to_int(root.get("startIndex")),
            items_per_page=to_int(root.get("itemsPerPage")),
            projects=projects,
        )
    except ResponseError:
        raise
    except Exception as exc:
        raise ResponseError(f"Failed to parse XML response: {exc}") from exc


def _parse_project(award: Mapping[str, Any]) -> Project:
    summaries = [item for item in ensure_list(award.get("summary")) if isinstance(item, Mapping)]
    ja_summary = pick_localized(summaries, "ja", lang_key=SUMMARY_LANG_KEY)
    en_summary = pick_localized(summaries, "en", lang_key=SUMMARY_LANG_KEY, fallback=False)

    details: dict[str, Any] = {}
    if ja_summary is not None:
        details = {
            "title": _summary_text(ja_summary, "title"),
            "title_abbreviated": _summary_text(ja_summary, "titleAbbreviated"),
            "categories": _parse_categories(ja_summary) or None,
            "fields": _parse_fields(ja_summary) or None,
            "institutions": _parse_institutions(ja_summary) or None,
            "allocations": _parse_allocations(ja_summary) or None,
            "members": _parse_members(ja_summary) or None,
            "keywords": _parse_keywords(ja_summary) or None,
            "period_of_award": _parse_period_of_award(ja_summary),
            "project_status": _parse_project_status(ja_summary),
            "award_amounts": _parse_award_amounts(ja_summary) or None,
        }

    return Project(
        id=attribute(award, "id"),
        award_number=attribute(award, "awardNumber"),
        project_type=attribute(award, "projectType"),
        record_set=attribute(award, "recordSet"),
        title_en=_summary_text(en_summary, "title") if en_summary is not None else None,
        created=parse_iso_datetime(award.get("created")),
        modified=parse_iso_datetime(award.get("modified")),
        identifiers=_parse_identifiers(award) or None,
        raw_data=award,
        **details,
    )


def _summary_text(summary: Mapping[str, Any], key: str) -> str | None:
    node = text_node(summary.get(key))
    return clean_text(node.text) if node else None


def _parse_identifiers(award: Mapping[str, Any]) -> list[ProjectIdentifier]:
    identifiers: list[ProjectIdentifier] = []
    for item in ensure_list(award.get("identifier")):
        identifier_type = attribute(item, "type")
        value = item.get("normalizedValue") if isinstance(item, Mapping) else None
        if not identifier_type or not isinstance(value, str) or not value:
            continue
        identifiers.append(ProjectIdentifier(type=identifier_type, value=value))
    return identifiers


def _parse_categories(summary: Mapping[str, Any]) -> list[Category]:
    categories: list[Category] = []
    for item in ensure_list(summary.get("category")):
        node = text_node(item)
        if node is None:
            continue
        categories.append(Category(name=node.text, path=node.attr("path"), code=node.attr("niiCode")))
    return categories


def _parse_fields(summary: Mapping[str, Any]) -> list[Field]:
    fields: list[Field] = []
    for item in ensure_list(summary.get("field")):
        node = text_node(item)
        if node is None:
            continue
        fields.append(
            Field(
                name=node.text,
                path=node.attr("path"),
                code=node.attr("niiCode"),
                field_table=node.attr("fieldTable"),
                sequence=to_int(node.attr("sequence")),
            )
        )
    return fields


def _parse_institutions(summary: Mapping[str, Any]) -> list[Institution]:
    institutions: list[Institution] = []
    for item in ensure_list(summary.get("institution")):
        node = text_node(item)
        if node is None:
            continue
        institutions.append(
            Institution(
                name=node.text,
                code=node.attr("niiCode"),
                type=node.attr("type"),
                participate=node.attr("participate"),
            )
        )
    return institutions


def _parse_allocations(summary: Mapping[str, Any]) -> list[Allocation]:
    allocations: list[Allocation] = []
    for item in ensure_list(summary.get("allocation")):
        node = text_node(item)
        if node is None:
            continue
        allocations.append(
            Allocation(name=node.text, code=node.attr("niiCode"), participate=node.attr("participate"))
        )
    return allocations


def _parse_keywords(summary: Mapping[str, Any]) -> list[Keyword]:
    keyword_list = summary.get("keywordList")
    if not isinstance(keyword_list, Mapping):
        return []
    keywords: list[Keyword] = []
    # Every keyword is kept; the language tag is unreliable and never filters.
    for item in ensure_list(keyword_list.get("keyword")):
        node = text_node(item)
        if node is None:
            continue
        keywords.append(Keyword(text=node.text, language=node.attr("xml:lang")))
    return keywords


def _parse_period_of_award(summary: Mapping[str, Any]) -> PeriodOfAward | None:
    period = summary.get("periodOfAward")
    if not isinstance(period, Mapping):
        return None

    start = text_node(period.get("startDate"))
    end = text_node(period.get("endDate"))
    values = {
        "start_date": parse_iso_datetime(start.text) if start else None,
        "end_date": parse_iso_datetime(end.text) if end else None,
        "start_fiscal_year": number_to_int(period.get("startFiscalYear")),
        "end_fiscal_year": number_to_int(period.get("endFiscalYear")),
        "search_start_fiscal_year": to_int(attribute(period, "searchStartFiscalYear")),
        "search_end_fiscal_year": to_int(attribute(period, "searchEndFiscalYear")),
    }
    if all(value is None for value in values.values()):
        return None
    return PeriodOfAward(**values)


def _parse_project_status(summary: Mapping[str, Any]) -> ProjectStatus | None:
    status = summary.get("projectStatus")
    status_code = attribute(status, "statusCode")
    if not status_code:
        return None
    note = status.get("note")
    return ProjectStatus(
        status_code=status_code,
        fiscal_year=to_int(attribute(status, "fiscalYear")),
        date=parse_iso_datetime(attribute(status, "date")),
        note=note if isinstance(note, str) and note else None,
    )


def _parse_award_amounts(summary: Mapping[str, Any]) -> list[AwardAmount]:
    amounts: list[AwardAmount] = []
    for item in ensure_list(summary.get("overallAwardAmount")):
        if not isinstance(item, Mapping):
            continue
        planned = attribute(item, "planned")
        amounts.append(
            AwardAmount(
                total_cost=_numeric(item.get("totalCost")),
                direct_cost=_numeric(item.get("directCost")),
                indirect_cost=_numeric(item.get("indirectCost")),
                converted_jpy_total_cost=_numeric(item.get("convertedJpyTotalCost")),
                unit=_parse_currency_unit(item.get("unit")),
                planned=planned == "true" if planned is not None else None,
                caption=attribute(item, "caption"),
                # Upstream spells the attribute "userDefiendId".
                user_defined_id=attribute(item, "userDefiendId"),
            )
        )
    return amounts


def _parse_currency_unit(node: Any) -> CurrencyUnit | None:
    if not isinstance(node, Mapping):
        return None
    original = node.get("originalValue")
    if not isinstance(original, str):
        return None
    normalized = node.get("normalizedValue")
    return CurrencyUnit(
        original_value=original,
        normalized_value=normalized if isinstance(normalized, str) else None,
    )


def _parse_members(summary: Mapping[str, Any]) -> list[ResearcherRole]:
    members: list[ResearcherRole] = []
    for item in ensure_list(summary.get("member")):
        role = attribute(item, "role")
        if not role:
            continue
        personal_name = item.get("personalName")
        affiliations = [
            affiliation
            for node in ensure_list(item.get("affiliation"))
            if (affiliation := _parse_member_affiliation(node)) is not None
        ]
        members.append(
            ResearcherRole(
                role=role,
                participate=attribute(item, "participate"),
                sequence=to_int(attribute(item, "sequence")),
                researcher_number=attribute(item, "researcherNumber"),
                erad_code=attribute(item, "eradCode"),
                name=_parse_person_name(personal_name) if isinstance(personal_name, Mapping) else None,
                affiliations=affiliations or None,
            )
        )
    return members


def _parse_person_name(node: Mapping[str, Any]) -> PersonName | None:
    full_name = node.get("fullName")
    if not isinstance(full_name, str) or not full_name:
        return None
    family = text_node(node.get("familyName"))
    given = text_node(node.get("givenName"))
    return PersonName(
        full_name=full_name,
        family_name=family.text if family else None,
        given_name=given.text if given else None,
        family_name_reading=family.attr("yomi") if family else None,
        given_name_reading=given.attr("yomi") if given else None,
    )


def _parse_member_affiliation(node: Any) -> Affiliation | None:
    if not isinstance(node, Mapping):
        return None
    institution_nodes = ensure_list(node.get("institution"))
    institution = text_node(institution_nodes[0]) if institution_nodes else None
    department = text_node(node.get("department"))
    job_title = text_node(node.get("jobTitle"))
    if institution is None and department is None and job_title is None:
        return None
    return Affiliation(
        institution=Institution(
            name=institution.text,
            code=institution.attr("niiCode"),
            type=institution.attr("institutionType"),
        )
        if institution
        else None,
        department=Department(name=department.text, code=department.attr("niiCode"))
        if department
        else None,
        job_title=JobTitle(name=job_title.text, code=job_title.attr("niiCode")) if job_title else None,
    )


def _numeric(value: Any) -> int | float | None:
    if not is_number(value) or (isinstance(value, float) and not math.isfinite(value)):
        return None
    return value
