"""
Sample data population script for AutoCare
Builds a demo owner with two vehicles and some history, going through the
services so every side effect (reminders, expenses, notifications) happens
exactly as it would through the API.

Run from the project root::

    python scripts/database/populate_sample_data.py
"""
import os
import sys
from datetime import datetime, timedelta
from decimal import Decimal

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from app import create_app
from extensions import db
from models.users import User
from services import get_services

DEMO_EMAIL = 'demo@example.com'
DEMO_PASSWORD = 'Demo12345!'

VEHICLES = [
    {'brand': 'Toyota', 'model': 'Corolla', 'year': 2016, 'license_plate': 'DEM0001',
     'color': 'Silver', 'mileage': 98500},
    {'brand': 'Honda', 'model': 'CB 500', 'year': 2021, 'license_plate': 'DEM0002',
     'type': 'MOTORCYCLE', 'mileage': 12300},
]

MONTHLY_EXPENSES = [
    ('Full tank', 'FUEL', Decimal('240.00')),
    ('Car wash', 'CLEANING', Decimal('35.00')),
    ('Parking', 'PARKING', Decimal('60.00')),
]


def populate_sample_data():
    app = create_app()

    with app.app_context():
        services = get_services()
        services.email_service.enabled = False
        now = datetime.utcnow().replace(second=0, microsecond=0)

        print("Clearing existing data...")
        db.drop_all()
        db.create_all()

        print("\n=== STEP 1: Demo owner ===")
        owner = User(email=DEMO_EMAIL, name='Demo Owner')
        owner.set_password(DEMO_PASSWORD)
        db.session.add(owner)
        db.session.commit()
        print(f"✓ Created {owner.email} / {DEMO_PASSWORD}")

        print("\n=== STEP 2: Vehicles ===")
        vehicles = [services.vehicle_service.create(owner.id, data) for data in VEHICLES]
        print(f"✓ Created {len(vehicles)} vehicles")

        print("\n=== STEP 3: Six months of expenses ===")
        count = 0
        for vehicle in vehicles:
            for months_ago in range(6, 0, -1):
                date = now - timedelta(days=30 * months_ago)
                for description, category, amount in MONTHLY_EXPENSES:
                    services.expense_service.create({
                        'vehicle_id': vehicle.id,
                        'description': description,
                        'category': category,
                        'amount': amount + months_ago * 5,
                        'date': date,
                    })
                    count += 1
        print(f"✓ Created {count} expenses")

        print("\n=== STEP 4: Maintenance history ===")
        car = vehicles[0]
        for months_ago, cost in ((9, '420.00'), (5, '380.00'), (1, '450.00')):
            done = now - timedelta(days=30 * months_ago)
            maintenance = services.maintenance_service.create({
                'vehicle_id': car.id,
                'description': f'Periodic service ({months_ago} months ago)',
                'type': 'PREVENTIVE',
                'scheduled_date': done,
            })
            services.maintenance_service.update(maintenance.id, {
                'status': 'COMPLETED', 'completed_date': done, 'cost': Decimal(cost),
            })
        services.maintenance_service.create({
            'vehicle_id': car.id,
            'description': 'Brake pads',
            'type': 'CORRECTIVE',
            'scheduled_date': now + timedelta(days=10),
            'cost': Decimal('320.00'),
        })
        print("✓ Created 4 maintenances")

        print("\n=== STEP 5: Reminders ===")
        for vehicle in vehicles:
            services.reminder_service.create_smart_reminder(vehicle.id, 'oil_change')
        services.mileage_notification_service.create_mileage_reminder(
            car.id, 'Timing belt', 100000, interval_mileage=60000, recurring=True
        )
        print("✓ Created smart and mileage reminders")

        print("\n=== STEP 6: Predictions ===")
        created = services.cron_service.generate_daily_predictions(now)
        print(f"✓ Stored {created} predictions")

        print("\n✅ Sample data ready")


if __name__ == '__main__':
    populate_sample_data()
