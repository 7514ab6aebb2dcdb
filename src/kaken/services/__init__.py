"""Service abstractions for the KAKEN client."""

from .cache import ResponseCache
from .client import KakenClient
from .endpoint import FetchFunc, SearchEndpoint
from .fetch import HttpxTransport, RawResponse, ResilientFetcher, Transport
from .projects import ProjectsAPI, parse_projects_response
from .researchers import ResearchersAPI, parse_person_name, parse_researchers_response

__all__ = [
    "ResponseCache",
    "KakenClient",
    "FetchFunc",
    "SearchEndpoint",
    "HttpxTransport",
    "RawResponse",
    "ResilientFetcher",
    "Transport",
    "ProjectsAPI",
    "parse_projects_response",
    "ResearchersAPI",
    "parse_person_name",
    "parse_researchers_response",
]
