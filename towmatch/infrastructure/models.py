"""
SQLAlchemy ORM models.

Tables
------
* ``provinces`` / ``districts`` -- administrative reference data
* ``companies``                 -- towing companies (yard coordinates live here)
* ``tow_trucks``                -- vehicles owned by a company
* ``tow_truck_areas``           -- (province, district) pairs a truck serves
* ``reviews``                   -- user ratings of a tow truck

Indexes
-------
* **B-Tree** on ``is_active`` flags and on ``tow_truck_areas.district_id`` /
  ``province_id`` -- the district and province stages of the nearest
  search filter on exactly these columns.
* **B-Tree** on ``reviews.tow_truck_id`` for rating aggregation.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base


class ProvinceModel(Base):
    __tablename__ = "provinces"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(100), nullable=False)

    districts = relationship("DistrictModel", back_populates="province")


class DistrictModel(Base):
    __tablename__ = "districts"

    id = Column(Integer, primary_key=True, autoincrement=False)
    province_id = Column(Integer, ForeignKey("provinces.id"), nullable=False)
    name = Column(String(100), nullable=False)

    province = relationship("ProvinceModel", back_populates="districts")

    __table_args__ = (Index("idx_districts_province", "province_id"),)


class CompanyModel(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    company_name = Column(String(200), nullable=False)
    phone_number = Column(String(20), unique=True, nullable=False)
    email = Column(String(100), unique=True, nullable=False)

    province_id = Column(Integer, nullable=False)
    city = Column(String(100), nullable=False, default="")
    district_id = Column(Integer, nullable=False)
    district = Column(String(100), nullable=False, default="")
    full_address = Column(String(500), nullable=False, default="")

    # Yard location; nullable -- such companies cannot be distance-ranked
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    service_city = Column(String(100), nullable=False, default="")
    service_district = Column(String(100), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    tow_trucks = relationship("TowTruckModel", back_populates="company")

    __table_args__ = (
        Index("idx_companies_active", "is_active"),
        Index("idx_companies_district", "district_id"),
        Index("idx_companies_province", "province_id"),
    )


class TowTruckModel(Base):
    __tablename__ = "tow_trucks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    license_plate = Column(String(20), unique=True, nullable=False)
    driver_name = Column(String(100), nullable=False)
    driver_photo_url = Column(String(500), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    company = relationship("CompanyModel", back_populates="tow_trucks")
    operating_areas = relationship(
        "TowTruckAreaModel",
        back_populates="tow_truck",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_tow_trucks_active", "is_active"),
        Index("idx_tow_trucks_company", "company_id"),
    )


class TowTruckAreaModel(Base):
    __tablename__ = "tow_truck_areas"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tow_truck_id = Column(
        Integer, ForeignKey("tow_trucks.id", ondelete="CASCADE"), nullable=False
    )
    province_id = Column(Integer, nullable=False)
    district_id = Column(Integer, nullable=False)
    city = Column(String(100), nullable=False, default="")
    district = Column(String(100), nullable=False, default="")

    tow_truck = relationship("TowTruckModel", back_populates="operating_areas")

    __table_args__ = (
        Index("idx_tow_truck_areas_truck", "tow_truck_id"),
        Index("idx_tow_truck_areas_district", "district_id"),
        Index("idx_tow_truck_areas_province", "province_id"),
    )


class ReviewModel(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tow_truck_id = Column(Integer, ForeignKey("tow_trucks.id"), nullable=False)
    reviewer_name = Column(String(100), nullable=False)
    reviewer_phone = Column(String(20), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(String(1000), nullable=True)
    is_approved = Column(Boolean, default=True, nullable=False)
    is_visible = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_reviews_truck", "tow_truck_id"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating"),
    )
