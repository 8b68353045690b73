#!/usr/bin/env python
"""
Seed script for creating demo cadences and their first instances.
Run with: cd backend; python scripts/seed_cadences.py
Requires DATABASE_URL and SECRET_KEY in .env.
"""

import os
import sys

# Add opscadence to path
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from opscadence.database import Base, SessionLocal, engine
from opscadence.models.cadence import Cadence
from opscadence.schemas.cadence import CadenceCreate
from opscadence.services.cadence_service import create_cadence

DEMO_WORKSPACE = os.getenv('SEED_WORKSPACE_ID', 'demo-workspace')

DEMO_CADENCES = [
    {
        'form_id': 'daily-safety-check',
        'name': 'Daily Safety Check',
        'description': 'Opening walkthrough of the warehouse floor',
        'schedule_config': {
            'pattern': 'daily',
            'time': '09:00',
            'timezone': 'America/New_York',
            'days_of_week': [1, 2, 3, 4, 5],
            'completion_window_hours': 4,
        },
    },
    {
        'form_id': 'weekly-inventory',
        'name': 'Weekly Inventory Count',
        'schedule_config': {
            'pattern': 'weekly',
            'time': '16:00',
            'timezone': 'Europe/Brussels',
            'days_of_week': [5],
            'completion_window_hours': 48,
        },
    },
    {
        'form_id': 'month-end-close',
        'name': 'Month End Close',
        'schedule_config': {
            'pattern': 'monthly',
            'time': '17:00',
            'timezone': 'UTC',
            'day_of_month': 31,
            'completion_window_hours': 72,
        },
    },
]


def seed_cadences():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        existing = db.query(Cadence).filter(Cadence.workspace_id == DEMO_WORKSPACE).count()
        if existing:
            print(f"Workspace '{DEMO_WORKSPACE}' already has {existing} cadences. Skipping seed.")
            return

        for data in DEMO_CADENCES:
            payload = CadenceCreate(workspace_id=DEMO_WORKSPACE, **data)
            cadence = create_cadence(db, payload, created_by='seed')
            print(f"Created cadence '{cadence.name}' with {len(cadence.instances)} instances")

        print("\nDemo cadences seeded successfully!")
        print("Next steps:")
        print("1. Log in (admin/changeme) and list cadences for workspace " + DEMO_WORKSPACE)
        print("2. Point your cron provider at /api/v1/cron/generate-instances and /api/v1/cron/update-instance-status")

    except Exception as e:
        db.rollback()
        print(f"Error seeding cadences: {e}")
    finally:
        db.close()


if __name__ == '__main__':
    seed_cadences()
