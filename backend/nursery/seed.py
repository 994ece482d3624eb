"""
Seed data script for the nursery database.
Populates users for each role, species, zones with beds and a few batches.

    python -m nursery.seed
"""
import os

from nursery.auth import hash_password
from nursery.database import Base, SessionLocal, engine
from nursery.models import Bed, Pathway, Role, Species, User, Zone
from nursery.services import BatchLifecycleManager

USERS = [
    ("admin@plant.com", "Super", "Admin", Role.SUPER_ADMIN),
    ("manager@plant.com", "Plant", "Manager", Role.MANAGER),
    ("officer@plant.com", "Field", "Officer", Role.FIELD_OFFICER),
]

SPECIES = [
    ("Rubber Tree", "Ficus elastica", 3.5, 50),
    ("Mango Tree", "Mangifera indica", 4.0, 60),
    ("Avocado Tree", "Persea americana", 3.0, 45),
    ("Orange Tree", "Citrus sinensis", 2.5, 40),
    ("Apple Tree", "Malus domestica", 3.2, 55),
    ("Coconut Palm", "Cocos nucifera", 5.0, 80),
    ("Teak Tree", "Tectona grandis", 4.5, 70),
    ("Mahogany Tree", "Swietenia macrophylla", 4.2, 65),
]

ZONES = [
    ("Zone A - Propagation", 2000, [("Bed A1", 400), ("Bed A2", 500), ("Bed A3", 600), ("Bed A4", 500)]),
    ("Zone B - Growing", 3000, [("Bed B1", 750), ("Bed B2", 800), ("Bed B3", 750), ("Bed B4", 700)]),
    ("Zone C - Hardening", 1500, [("Bed C1", 375), ("Bed C2", 400), ("Bed C3", 375), ("Bed C4", 350)]),
    ("Zone D - Finishing", 1000, [("Bed D1", 250), ("Bed D2", 300), ("Bed D3", 250), ("Bed D4", 200)]),
]


def seed_database():
    """Seed the database with initial nursery data."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    try:
        if session.query(User).first():
            print("Database already seeded, skipping...")
            return

        print("Seeding database...")
        password = hash_password(os.environ.get("SEED_PASSWORD", "password123"))
        users = {}
        for email, first, last, role in USERS:
            users[role] = User(email=email, first_name=first, last_name=last, password_hash=password, role=role)
            session.add(users[role])

        species = [
            Species(name=name, scientific_name=scientific, target_girth=girth, target_height=height)
            for name, scientific, girth, height in SPECIES
        ]
        session.add_all(species)

        zones = []
        for name, capacity, beds in ZONES:
            zone = Zone(name=name, capacity=capacity)
            zone.beds = [Bed(name=bed_name, capacity=bed_capacity, occupied=0) for bed_name, bed_capacity in beds]
            zones.append(zone)
        session.add_all(zones)
        session.commit()

        # Batches go through the lifecycle manager so bed occupancy and history stay consistent.
        manager = BatchLifecycleManager(session)
        pathways = list(Pathway)
        for index, zone in enumerate(zones):
            bed = zone.beds[0]
            manager.create_batch(
                species_id=species[index].id,
                pathway=pathways[index % len(pathways)],
                initial_qty=bed.capacity // 2,
                zone_id=zone.id,
                bed_id=bed.id,
                created_by=users[Role.MANAGER],
            )

        print(f"✓ Seeded {session.query(User).count()} users")
        print(f"✓ Seeded {session.query(Species).count()} species")
        print(f"✓ Seeded {session.query(Zone).count()} zones and {session.query(Bed).count()} beds")
        print(f"✓ Seeded {len(zones)} batches")
        print("Database seeding complete!")
    finally:
        session.close()


if __name__ == "__main__":
    seed_database()
