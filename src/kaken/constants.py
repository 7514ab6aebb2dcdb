"""Endpoints, defaults and code tables published by the KAKEN API."""

from __future__ import annotations

PROJECTS_ENDPOINT = "https://kaken.nii.ac.jp/opensearch/"
RESEARCHERS_ENDPOINT = "https://nrid.nii.ac.jp/opensearch/"

DEFAULT_RESULTS_PER_PAGE = 20
DEFAULT_LANGUAGE = "ja"
DEFAULT_START_INDEX = 1
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 3
RETRY_BASE_DELAY_SECONDS = 1.0
RETRY_MAX_DELAY_SECONDS = 30.0

PROJECTS_FORMAT = "xml"
RESEARCHERS_FORMAT = "json"

MAX_PROJECTS_RESULTS = 200_000
MAX_RESEARCHERS_RESULTS = 1_000

VALID_RESULTS_PER_PAGE = (20, 50, 100, 200, 500)

PROJECT_STATUS = {
    "adopted": "採択",
    "granted": "交付",
    "ceased": "中断",
    "suspended": "留保",
    "project_closed": "完了",
    "declined": "採択後辞退",
    "discontinued": "中途終了",
}

PROJECT_TYPES = {
    "project": "研究課題",
    "area": "領域",
    "organizer": "総括班",
    "wrapup": "成果取りまとめ",
    "planned": "計画研究",
    "publicly": "公募研究",
    "international": "国際活動支援班",
}

ALLOCATION_TYPES = {
    "hojokin": "補助金",
    "kikin": "基金",
    "ichibu_kikin": "一部基金",
}

RESEARCHER_ROLES = {
    "principal_investigator": "研究代表者",
    "area_organizer": "領域代表者",
    "co_investigator_buntan": "研究分担者",
    "co_investigator_renkei": "連携研究者",
    "research_collaborator": "研究協力者",
    "research_fellow": "特別研究員",
    "host_researcher": "受入研究者",
    "foreign_research_fellow": "外国人特別研究員",
    "principal_investigator_support": "研究支援代表者",
    "co_investigator_buntan_support": "研究支援分担者",
}

PROJECT_SORT_OPTIONS = {
    "1": "適合度",
    "2": "研究開始年:新しい順",
    "3": "研究開始年:古い順",
    "4": "配分額合計:多い順",
    "5": "配分額合計:少ない順",
}

RESEARCHER_SORT_OPTIONS = {
    "1": "適合度",
    "2": "研究者氏名のカナ:昇順",
    "3": "研究者氏名のカナ:降順",
    "4": "研究者氏名のアルファベット:昇順",
    "5": "研究者氏名のアルファベット:降順",
    "6": "研究課題数:少ない順",
    "7": "研究課題数:多い順",
}
