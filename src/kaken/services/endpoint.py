"""Shared request building and response handling for the search endpoints."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, ClassVar, Generic, TypeVar

import structlog
from pydantic import ValidationError

from kaken.constants import DEFAULT_LANGUAGE, DEFAULT_RESULTS_PER_PAGE, DEFAULT_START_INDEX, VALID_RESULTS_PER_PAGE
from kaken.exceptions import NotFoundError, RequestError
from kaken.models import SearchParams
from kaken.utils import build_url, join_values
from .fetch import RawResponse

logger = structlog.get_logger(__name__)

FetchFunc = Callable[[str], Awaitable[RawResponse]]
ParamsT = TypeVar("ParamsT", bound=SearchParams)


class SearchEndpoint(Generic[ParamsT]):
    """Base class for an OpenSearch-style endpoint.

    Subclasses declare the parameter model, which parameters count as a search
    condition, and how parameters map onto query-string keys.
    """

    params_model: ClassVar[type[SearchParams]]
    base_url: ClassVar[str]
    response_format: ClassVar[str]
    max_results: ClassVar[int]
    condition_fields: ClassVar[tuple[str, ...]]
    query_keys: ClassVar[tuple[tuple[str, str], ...]]
    sort_options: ClassVar[Mapping[str, str]]

    def __init__(
        self,
        fetch: FetchFunc,
        *,
        app_id: str | None = None,
        base_url: str | None = None,
        language: str = DEFAULT_LANGUAGE,
    ) -> None:
        self._fetch = fetch
        self._app_id = app_id
        self._base_url = base_url or self.base_url
        self._language = language

    def coerce_params(self, params: ParamsT | None, overrides: dict[str, Any]) -> ParamsT:
        if params is not None and not overrides:
            return params
        payload = params.model_dump(exclude_unset=True) if params is not None else {}
        payload.update(overrides)
        try:
            return self.params_model.model_validate(payload)  # type: ignore[return-value]
        except ValidationError as exc:
            raise RequestError(f"Invalid search parameters: {exc}") from exc

    def build_url(self, params: ParamsT) -> str:
        """Validate ``params`` and render the request URL."""
        self._validate(params)
        query: dict[str, Any] = {
            "kw": params.keyword,
            "rw": self._results_per_page(params.results_per_page),
            "lang": params.language or self._language,
            "st": self._start_index(params.start_index),
            "format": self.response_format,
        }
        for attribute, key in self.query_keys:
            value = getattr(params, attribute)
            if isinstance(value, list):
                value = join_values(value)
            query[key] = value
        query["od"] = self._sort_order(params.sort_order)
        query["appid"] = self._app_id
        return build_url(self._base_url, query)

    async def _fetch_body(self, url: str) -> str:
        try:
            response = await self._fetch(url)
        except Exception as exc:
            logger.warning("search.request_failed", url=url, error=str(exc))
            raise RequestError(f"Request failed: {exc}") from exc
        if response.status == 404:
            raise NotFoundError("Resource not found.")
        if not response.ok:
            raise RequestError(f"HTTP error: {response.status}", response.status)
        return response.text

    def _validate(self, params: ParamsT) -> None:
        has_condition = any(
            getattr(params, name) is not None
            if name.startswith("grant_period_")
            else bool(getattr(params, name))
            for name in self.condition_fields
        )
        if not has_condition:
            raise RequestError("Either keyword or at least one search parameter must be provided.")

    def _sort_order(self, sort_order: str | None) -> str | None:
        if sort_order is not None and sort_order not in self.sort_options:
            raise RequestError(
                f"Invalid sort order {sort_order!r}; expected one of {', '.join(self.sort_options)}."
            )
        return sort_order

    def _start_index(self, start_index: int | None) -> int:
        index = start_index if start_index is not None else DEFAULT_START_INDEX
        if index > self.max_results:
            raise RequestError(f"Start index cannot exceed {self.max_results}.")
        return index if index >= 1 else DEFAULT_START_INDEX

    def _results_per_page(self, results_per_page: int | None) -> int:
        if results_per_page in VALID_RESULTS_PER_PAGE:
            return results_per_page
        return DEFAULT_RESULTS_PER_PAGE
