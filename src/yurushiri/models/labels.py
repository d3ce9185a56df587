"""Survey enumerations for registrations and their display labels"""

import enum


class AgeGroup(str, enum.Enum):
    TEENS = "teens"
    TWENTIES = "twenties"
    THIRTIES = "thirties"
    FORTIES = "forties"
    FIFTIES = "fifties"
    SIXTIES_PLUS = "sixtiesPlus"


class OccupationCategory(str, enum.Enum):
    STUDENT = "student"
    ENGINEER = "engineer"
    DESIGNER = "designer"
    PLANNER = "planner"
    MANAGER = "manager"
    OTHER = "other"


class DiscoverySource(str, enum.Enum):
    SNS = "sns"
    SEARCH = "search"
    FRIEND = "friend"
    MEDIA = "media"
    EVENT_SITE = "eventSite"
    OTHER = "other"


AGE_GROUP_LABELS = {
    "teens": "10代以下",
    "twenties": "20代",
    "thirties": "30代",
    "forties": "40代",
    "fifties": "50代",
    "sixtiesPlus": "60代以上",
}

OCCUPATION_LABELS = {
    "student": "学生",
    "engineer": "エンジニア",
    "designer": "デザイナー",
    "planner": "企画・マーケティング",
    "manager": "マネジメント",
    "other": "その他",
}

DISCOVERY_LABELS = {
    "sns": "SNS",
    "search": "インターネット検索",
    "friend": "友人・知人の紹介",
    "media": "メディア記事・ブログ",
    "eventSite": "イベント紹介サイト",
    "other": "その他",
}

# Display order used by distributions and select boxes
AGE_GROUP_ORDER = [e.value for e in AgeGroup]
OCCUPATION_ORDER = [e.value for e in OccupationCategory]
DISCOVERY_ORDER = [e.value for e in DiscoverySource]
