"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 2 provinces (İstanbul, Ankara) with 5 districts
  - 5 towing companies (one without yard coordinates)
  - 9 tow trucks with operating areas (one inactive)
  - a handful of reviews
"""

import asyncio

from sqlalchemy import text

from towmatch.infrastructure.database import async_session_factory, engine
from towmatch.infrastructure.models import (
    CompanyModel,
    DistrictModel,
    ProvinceModel,
    ReviewModel,
    TowTruckAreaModel,
    TowTruckModel,
)

PROVINCES = {34: "İstanbul", 6: "Ankara"}

DISTRICTS = [
    # (district_id, province_id, name)
    (1421, 34, "Kadıköy"),
    (1708, 34, "Üsküdar"),
    (1183, 34, "Beşiktaş"),
    (1166, 34, "Bakırköy"),
    (1231, 6, "Çankaya"),
]

COMPANIES = [
    {"company_name": "Anadolu Yakası Kurtarma", "phone": "05320000001", "province": 34, "district": 1421, "lat": 40.9909, "lng": 29.0303},
    {"company_name": "Üsküdar Oto Çekici", "phone": "05320000002", "province": 34, "district": 1708, "lat": 41.0235, "lng": 29.0153},
    {"company_name": "Boğaz Yol Yardım", "phone": "05320000003", "province": 34, "district": 1183, "lat": 41.0430, "lng": 29.0094},
    {"company_name": "Başkent Kurtarma", "phone": "05320000004", "province": 6, "district": 1231, "lat": 39.9179, "lng": 32.8627},
    {"company_name": "Adressiz Çekici", "phone": "05320000005", "province": 34, "district": 1166, "lat": None, "lng": None},
]

TRUCKS = [
    # (company index, plate, driver, active, [(province, district), ...])
    (0, "34 ABC 001", "Ahmet Yılmaz", True, [(34, 1421)]),
    (0, "34 ABC 002", "Mehmet Kaya", True, [(34, 1421), (34, 1708)]),
    (1, "34 DEF 101", "Ali Demir", True, [(34, 1708)]),
    (1, "34 DEF 102", "Veli Çelik", False, [(34, 1708)]),
    (2, "34 GHI 201", "Hasan Şahin", True, [(34, 1183), (34, 1166)]),
    (2, "34 GHI 202", "Hüseyin Aydın", True, [(34, 1183)]),
    (3, "06 JKL 301", "Mustafa Öztürk", True, [(6, 1231)]),
    (3, "06 JKL 302", "Emre Arslan", True, [(6, 1231)]),
    (4, "34 MNO 401", "Burak Doğan", True, [(34, 1166)]),
]

REVIEWS = [
    # (truck index, rating)
    (0, 5), (0, 4), (1, 3), (2, 5), (4, 4), (4, 5), (6, 2),
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM companies"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Reference data ────────────────────────────────────────────
        for province_id, name in PROVINCES.items():
            session.add(ProvinceModel(id=province_id, name=name))
        for district_id, province_id, name in DISTRICTS:
            session.add(DistrictModel(id=district_id, province_id=province_id, name=name))
        await session.flush()
        print(f"  Created {len(PROVINCES)} provinces, {len(DISTRICTS)} districts")

        district_names = {d[0]: d[2] for d in DISTRICTS}

        # ── Companies ─────────────────────────────────────────────────
        company_models = []
        for i, c in enumerate(COMPANIES, start=1):
            m = CompanyModel(
                first_name="Firma",
                last_name=f"Sahibi {i}",
                company_name=c["company_name"],
                phone_number=c["phone"],
                email=f"firma{i}@example.com",
                province_id=c["province"],
                city=PROVINCES[c["province"]],
                district_id=c["district"],
                district=district_names[c["district"]],
                full_address=f"{district_names[c['district']]}, {PROVINCES[c['province']]}",
                latitude=c["lat"],
                longitude=c["lng"],
                service_city=PROVINCES[c["province"]],
                is_active=True,
            )
            session.add(m)
            company_models.append(m)
        await session.flush()
        print(f"  Created {len(company_models)} companies")

        # ── Tow trucks ────────────────────────────────────────────────
        truck_models = []
        for company_idx, plate, driver, active, areas in TRUCKS:
            m = TowTruckModel(
                company_id=company_models[company_idx].id,
                license_plate=plate.replace(" ", "").upper(),
                driver_name=driver,
                is_active=active,
                operating_areas=[
                    TowTruckAreaModel(
                        province_id=p,
                        district_id=d,
                        city=PROVINCES[p],
                        district=district_names[d],
                    )
                    for p, d in areas
                ],
            )
            session.add(m)
            truck_models.append(m)
        await session.flush()
        print(f"  Created {len(truck_models)} tow trucks")

        # ── Reviews ───────────────────────────────────────────────────
        for n, (truck_idx, rating) in enumerate(REVIEWS):
            session.add(
                ReviewModel(
                    tow_truck_id=truck_models[truck_idx].id,
                    reviewer_name=f"Kullanıcı {n + 1}",
                    reviewer_phone=f"0555000{n:04d}",
                    rating=rating,
                )
            )
        await session.flush()
        print(f"  Created {len(REVIEWS)} reviews")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
