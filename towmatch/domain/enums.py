"""Domain enumerations."""

import enum


class SearchStage(str, enum.Enum):
    """Widening phase in which a candidate was collected."""

    DISTRICT = "DISTRICT"
    PROVINCE = "PROVINCE"
    NATIONWIDE = "NATIONWIDE"
    RANDOM = "RANDOM"


class CandidateKind(str, enum.Enum):
    TOW_TRUCK = "TOW_TRUCK"
    COMPANY = "COMPANY"
