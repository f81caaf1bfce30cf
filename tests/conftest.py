"""
Shared pytest fixtures for the AutoCare test suite.

All tests run against an in-memory SQLite database (TestingConfig).
A single app context is pushed for the whole session so that SQLAlchemy
objects remain attached throughout.  After each test, clean_db wipes all
rows so tests are fully independent.
"""
import pytest
from flask import g

from app import create_app
from extensions import db as _db


# ---------------------------------------------------------------------------
# Application / database lifecycle
# ---------------------------------------------------------------------------

@pytest.fixture(scope='session')
def app():
    """Create a test Flask application with an in-memory SQLite database."""
    application = create_app('testing')
    ctx = application.app_context()
    ctx.push()
    _db.create_all()
    yield application
    _db.session.remove()
    _db.drop_all()
    ctx.pop()


@pytest.fixture(autouse=True)
def clean_db(app):
    """Wipe every table after each test so tests never share state."""
    yield
    _db.session.rollback()
    for table in reversed(_db.metadata.sorted_tables):
        _db.session.execute(table.delete())
    _db.session.commit()
    _db.session.expunge_all()


@pytest.fixture
def services(app):
    from services import get_services
    return get_services()


# ---------------------------------------------------------------------------
# Common model helpers
# ---------------------------------------------------------------------------

def _make_user(email, name, role='OWNER'):
    from models.users import User
    u = User(email=email, name=name, role=role)
    u.set_password('TestPass1!')
    _db.session.add(u)
    _db.session.commit()
    return u


@pytest.fixture
def user(app):
    return _make_user('owner@example.com', 'Owner User')


@pytest.fixture
def other_user(app):
    return _make_user('other@example.com', 'Other User')


@pytest.fixture
def mechanic(app):
    return _make_user('mechanic@example.com', 'Mechanic User', role='MECHANIC')


@pytest.fixture
def make_vehicle(app):
    """Factory: ``make_vehicle(owner, plate='ABC1234', year=2020, mileage=50000)``."""
    from models.vehicles import Vehicle

    def _make(owner, license_plate='ABC1234', year=2020, mileage=50000, brand='Toyota', model='Corolla'):
        v = Vehicle(owner_id=owner.id, brand=brand, model=model, year=year,
                    license_plate=license_plate, type='CAR', mileage=mileage)
        _db.session.add(v)
        _db.session.commit()
        return v
    return _make


@pytest.fixture
def vehicle(user, make_vehicle):
    return make_vehicle(user)


@pytest.fixture
def make_reminder(app):
    """Factory for Reminder rows, bypassing the service (no notifications)."""
    from models.reminders import Reminder

    def _make(vehicle, description='Oil change', type='TIME_BASED', **fields):
        r = Reminder(vehicle_id=vehicle.id, description=description, type=type,
                     recurring=fields.pop('recurring', False),
                     completed=fields.pop('completed', False), **fields)
        _db.session.add(r)
        _db.session.commit()
        return r
    return _make


@pytest.fixture
def make_expense(app):
    from decimal import Decimal
    from models.expenses import Expense

    def _make(vehicle, amount, date, category='FUEL', description='Full tank'):
        e = Expense(vehicle_id=vehicle.id, description=description, category=category,
                    amount=Decimal(str(amount)), date=date)
        _db.session.add(e)
        _db.session.commit()
        return e
    return _make


@pytest.fixture
def make_maintenance(app):
    from decimal import Decimal
    from models.maintenance import Maintenance

    def _make(vehicle, scheduled_date, status='SCHEDULED', cost=None, description='Revision',
              completed_date=None, mechanic_id=None, type='PREVENTIVE'):
        m = Maintenance(vehicle_id=vehicle.id, description=description, type=type, status=status,
                        scheduled_date=scheduled_date, completed_date=completed_date,
                        cost=Decimal(str(cost)) if cost is not None else None,
                        mechanic_id=mechanic_id)
        _db.session.add(m)
        _db.session.commit()
        return m
    return _make


@pytest.fixture
def frozen_now(monkeypatch):
    """Pin ``utcnow()`` for every service module that reads the clock."""
    def _freeze(moment):
        for module in ('services.reminder_service', 'services.maintenance_service',
                       'services.expense_service', 'services.mileage_evaluator',
                       'services.cron_service', 'services.prediction_service'):
            monkeypatch.setattr(f'{module}.utcnow', lambda: moment)
        return moment
    return _freeze


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

class ApiClient:
    """
    Test client that sends a bearer token with every request.

    Requests reuse the session-wide app context, so the user Flask-Login
    caches on ``g`` is dropped before each call.
    """

    def __init__(self, client, token=None):
        self.client = client
        self.token = token

    def open(self, method, url, **kwargs):
        g.pop('_login_user', None)
        headers = dict(kwargs.pop('headers', None) or {})
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return self.client.open(url, method=method, headers=headers, **kwargs)

    def get(self, url, **kwargs):
        return self.open('GET', url, **kwargs)

    def post(self, url, **kwargs):
        return self.open('POST', url, **kwargs)

    def put(self, url, **kwargs):
        return self.open('PUT', url, **kwargs)

    def delete(self, url, **kwargs):
        return self.open('DELETE', url, **kwargs)


@pytest.fixture
def anon_client(app):
    return ApiClient(app.test_client())


@pytest.fixture
def client(app, user):
    """Client authenticated as ``user``."""
    from utils.tokens import create_access_token
    return ApiClient(app.test_client(), create_access_token(user))


@pytest.fixture
def other_client(app, other_user):
    from utils.tokens import create_access_token
    return ApiClient(app.test_client(), create_access_token(other_user))

