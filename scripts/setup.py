#!/usr/bin/env python3
"""Setup script for the tour desk API: migrate the schema and seed sample data."""

import asyncio
import logging
import sys
from datetime import timedelta
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command
from alembic.config import Config
from sqlalchemy import func, select

from tourdesk.core.database import async_session_factory, utcnow
from tourdesk.models import Customer, Tour, TourStatus

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SAMPLE_TOURS = [
    ("Reykjavik Northern Lights", "Aurora hunting with expert guides", 30, 7, 20, 189900),
    ("Kyoto Temples & Gardens", "Guided walks through historic Kyoto", 45, 10, 12, 249900),
    ("Patagonia Trek", "W trek through Torres del Paine", 60, 9, 8, 319900),
    ("Amalfi Coast Sailing", "Island hopping along the Amalfi coast", 75, 6, 10, 279900),
    ("Marrakech Souks & Desert", "Medina tours and a night in the Sahara", 90, 5, 16, 129900),
]

SAMPLE_CUSTOMERS = [
    ("Ada", "Lovelace", "ada@example.com", "+44 20 7946 0018"),
    ("Grace", "Hopper", "grace@example.com", "+1 202 555 0143"),
    ("Alan", "Turing", "alan@example.com", "+44 161 496 0735"),
]


def run_migrations() -> None:
    """Upgrade the database to the latest Alembic revision."""
    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))

    logger.info("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def create_sample_data():
    """Create sample tours and customers unless tours already exist."""
    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        try:
            existing_tours = await db.execute(select(func.count(Tour.id)))
            if existing_tours.scalar() > 0:
                logger.info("Sample data already exists, skipping...")
                return

            today = utcnow().date()
            for destination, description, starts_in, days, capacity, price in SAMPLE_TOURS:
                start_date = today + timedelta(days=starts_in)
                db.add(Tour(
                    destination=destination,
                    description=description,
                    start_date=start_date,
                    end_date=start_date + timedelta(days=days),
                    capacity=capacity,
                    price_amount=price,
                    price_currency="USD",
                    status=TourStatus.ACTIVE.value,
                ))

            for first_name, last_name, email, phone in SAMPLE_CUSTOMERS:
                db.add(Customer(
                    first_name=first_name,
                    last_name=last_name,
                    email=email,
                    phone=phone,
                    user_ref=email,
                ))

            await db.commit()
            logger.info("Sample data created successfully!")

        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to create sample data: {e}")
            raise


async def main():
    """Main setup function."""
    logger.info("Starting tour desk API setup...")

    # Alembic's async env.py drives its own event loop
    await asyncio.to_thread(run_migrations)

    await create_sample_data()

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn tourdesk.main:app --reload")


if __name__ == "__main__":
    asyncio.run(main())
