"""
Create the AutoCare schema and backfill per-user notification settings.

Safe to re-run: existing tables and settings rows are left alone.
"""
import sys

from app import create_app
from extensions import db
from models import User, UserSettings


def table_row_counts():
    """``{table name: row count}`` for every mapped table."""
    return {
        table.name: db.session.execute(db.select(db.func.count()).select_from(table)).scalar()
        for table in db.metadata.sorted_tables
    }


def ensure_default_settings():
    """Give every user without a settings row the defaults.  Returns how many were created."""
    from services import get_services
    notification_service = get_services().notification_service

    missing = User.query.filter(~User.settings.has()).all()
    for user in missing:
        notification_service.get_notification_settings(user.id)
    return len(missing)


def init_db(config_name='development'):
    app = create_app(config_name)

    with app.app_context():
        db.create_all()
        print(f"Database: {app.config['SQLALCHEMY_DATABASE_URI']}")

        print("\nTables:")
        for name, rows in table_row_counts().items():
            print(f"  - {name:<20} {rows} row(s)")

        created = ensure_default_settings()
        print(f"\nDefault notification settings created for {created} user(s)"
              f" ({UserSettings.query.count()} total)")


if __name__ == '__main__':
    init_db(sys.argv[1] if len(sys.argv) > 1 else 'development')
