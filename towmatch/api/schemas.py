"""Pydantic response schemas for the REST API."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


# ── Responses ─────────────────────────────────────────────────────────


class OperatingAreaResponse(BaseModel):
    province_id: int = Field(..., alias="provinceId")
    district_id: int = Field(..., alias="districtId")
    city: str = ""
    district: str = ""

    model_config = {"from_attributes": True, "populate_by_name": True}


class RatingSummaryResponse(BaseModel):
    average_rating: float = Field(0.0, alias="averageRating")
    review_count: int = Field(0, alias="reviewCount")

    model_config = {"from_attributes": True, "populate_by_name": True}


class _NearestResult(BaseModel):
    id: int
    distance: Optional[float] = Field(
        None, description="Great-circle distance to the user in km."
    )
    stage: Optional[str] = Field(
        None, description="DISTRICT, PROVINCE, NATIONWIDE or RANDOM."
    )
    company_id: Optional[int] = Field(None, alias="companyId")
    company_name: str = Field("", alias="companyName")
    company_phone: str = Field("", alias="companyPhone")
    average_rating: float = Field(0.0, alias="averageRating")
    review_count: int = Field(0, alias="reviewCount")

    model_config = {"populate_by_name": True}


class TowTruckResult(_NearestResult):
    license_plate: str = Field("", alias="licensePlate")
    driver_name: str = Field("", alias="driverName")
    driver_photo_url: Optional[str] = Field(None, alias="driverPhotoUrl")
    operating_areas: list[OperatingAreaResponse] = Field(
        default_factory=list, alias="operatingAreas"
    )


class CompanyResult(_NearestResult):
    city: str = ""
    district: str = ""
    full_address: str = Field("", alias="fullAddress")
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class ReferenceDataStatus(BaseModel):
    provinces: int
    districts: int


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
