"""
Tests for the PredictionService heuristics.
"""
from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from models.vehicles import Vehicle
from services.prediction_service import PredictionService


NOW = datetime(2024, 7, 10, 8, 0)


def _expense(amount, date, category='FUEL'):
    return SimpleNamespace(amount=Decimal(str(amount)), date=date, category=category)


def _completed(date, cost, type='PREVENTIVE'):
    return SimpleNamespace(status='COMPLETED', completed_date=date, scheduled_date=date,
                           cost=Decimal(str(cost)), type=type)


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------

class TestArithmetic:
    def test_linear_trend(self):
        assert PredictionService.calculate_linear_trend([100, 200, 300]) == pytest.approx(100)
        assert PredictionService.calculate_linear_trend([50, 50, 50]) == pytest.approx(0)

    def test_linear_trend_needs_two_points(self):
        assert PredictionService.calculate_linear_trend([5]) == 0.0
        assert PredictionService.calculate_linear_trend([]) == 0.0

    def test_variance(self):
        assert PredictionService.calculate_variance([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(4)
        assert PredictionService.calculate_variance([]) == 0.0

    def test_months_are_chronological(self):
        expenses = [_expense(1, datetime(2024, 3, 1)), _expense(1, datetime(2024, 1, 1)),
                    _expense(1, datetime(2024, 3, 9))]
        groups = PredictionService.group_expenses_by_month(expenses)
        assert list(groups) == ['2024-01', '2024-03']
        assert len(groups['2024-03']) == 2

    def test_category_totals(self):
        totals = PredictionService.analyze_expense_categories([
            _expense(10, NOW), _expense(5, NOW), _expense(100, NOW, category='TAX'),
        ])
        assert totals == {'FUEL': 15.0, 'TAX': 100.0}


# ---------------------------------------------------------------------------
# Expense forecast
# ---------------------------------------------------------------------------

class TestMonthlyExpenses:
    def test_forecast(self, app):
        vehicle = Vehicle(brand='Fiat', model='Uno', year=2020, mileage=30000)
        expenses = [
            _expense(100, datetime(2024, 1, 10)),
            _expense(200, datetime(2024, 2, 10)),
            _expense(150, datetime(2024, 3, 10)),
            _expense(150, datetime(2024, 3, 20), category='INSURANCE'),
        ]

        prediction = PredictionService.predict_monthly_expenses(vehicle, expenses, NOW)

        # totals 100, 200, 300: mean 200, slope 100
        assert prediction['predicted_amount'] == 300.0
        assert prediction['confidence'] == pytest.approx(1 - (20000 / 3) / 40000, abs=1e-4)
        assert prediction['category'] == 'FUEL'
        assert prediction['period'] == 'monthly'

    def test_main_category_tie_goes_to_older_category(self, app):
        vehicle = Vehicle(brand='Fiat', model='Uno', year=2020, mileage=0)
        expenses = [
            _expense(100, datetime(2024, 1, 10), category='FUEL'),
            _expense(100, datetime(2024, 2, 10), category='TAX'),
            _expense(50, datetime(2024, 3, 10), category='FUEL'),
            _expense(50, datetime(2024, 3, 20), category='TAX'),
        ]

        prediction = PredictionService.predict_monthly_expenses(vehicle, expenses, NOW)

        # newest first: TAX is seen first, FUEL last
        assert prediction['category'] == 'FUEL'

    def test_confidence_is_clamped(self, app):
        vehicle = Vehicle(brand='Fiat', model='Uno', year=2020, mileage=0)
        expenses = [_expense(1, datetime(2024, 1, 1)), _expense(1, datetime(2024, 1, 2)),
                    _expense(1000, datetime(2024, 2, 1))]

        prediction = PredictionService.predict_monthly_expenses(vehicle, expenses, NOW)

        assert prediction['confidence'] == 0.1

    def test_too_few_expenses(self, app):
        vehicle = Vehicle(brand='Fiat', model='Uno', year=2020, mileage=0)
        expenses = [_expense(10, datetime(2024, 1, 1)), _expense(10, datetime(2024, 2, 1))]
        assert PredictionService.predict_monthly_expenses(vehicle, expenses, NOW) is None

    def test_single_month(self, app):
        vehicle = Vehicle(brand='Fiat', model='Uno', year=2020, mileage=0)
        expenses = [_expense(10, datetime(2024, 1, day)) for day in (1, 2, 3)]
        assert PredictionService.predict_monthly_expenses(vehicle, expenses, NOW) is None


# ---------------------------------------------------------------------------
# Maintenance forecast
# ---------------------------------------------------------------------------

class TestNextMaintenance:
    def test_forecast(self, app):
        vehicle = Vehicle(brand='VW', model='Gol', year=2014, mileage=120000)
        maintenances = [
            _completed(datetime(2024, 1, 1), 200),
            _completed(datetime(2024, 4, 1), 200),
            _completed(datetime(2024, 7, 1), 200),
            SimpleNamespace(status='SCHEDULED', completed_date=None, cost=None, type='PREVENTIVE'),
        ]

        prediction = PredictionService.predict_next_maintenance(vehicle, maintenances, NOW)

        assert prediction['next_maintenance_date'] == datetime(2024, 7, 1) + timedelta(days=91)
        # 10 years old: 200 * 1.5
        assert prediction['predicted_cost'] == 300.0
        assert prediction['confidence'] == 0.9
        assert prediction['recommended_services'] == [
            'Brake system check', 'Filter replacement', 'Oil and filter change',
            'Clutch review', 'Engine inspection',
        ]
        assert 'Good preventive maintenance' in prediction['factors']

    def test_needs_two_completed(self, app):
        vehicle = Vehicle(brand='VW', model='Gol', year=2014, mileage=120000)
        maintenances = [_completed(datetime(2024, 1, 1), 200)]
        assert PredictionService.predict_next_maintenance(vehicle, maintenances, NOW) is None

    def test_recommendations_are_capped(self, app):
        vehicle = Vehicle(brand='VW', model='Fusca', year=1980, mileage=300000)
        assert len(PredictionService.recommend_maintenance_services(vehicle, NOW)) == 5


# ---------------------------------------------------------------------------
# Weekly report
# ---------------------------------------------------------------------------

class TestWeeklyReport:
    def test_report(self, app, user, make_vehicle, make_expense, make_maintenance):
        vehicle = make_vehicle(user, year=2010)
        make_expense(vehicle, 600, NOW - timedelta(days=2))
        make_expense(vehicle, 999, NOW - timedelta(days=30))
        make_maintenance(vehicle, NOW - timedelta(days=1), status='COMPLETED')

        report = PredictionService.generate_weekly_report(user, [vehicle], NOW)

        assert report['user_id'] == user.id
        assert report['summary'] == {
            'total_vehicles': 1,
            'total_expenses': 600.0,
            'total_maintenances': 1,
            'average_expense_per_vehicle': 600.0,
        }
        assert report['vehicles'][0]['status'] == 'Normal'
        assert '1 vehicle(s) with high expenses' in report['insights']
        assert 'Review your expenses and look for savings' in report['recommendations']
        assert 'Older vehicles may need extra attention' in report['recommendations']

    def test_user_without_vehicles(self, app, user):
        report = PredictionService.generate_weekly_report(user, [], NOW)
        assert report['summary']['total_vehicles'] == 0
        assert report['summary']['average_expense_per_vehicle'] == 0.0
        assert 'Schedule preventive maintenance' in report['recommendations']

    def test_vehicle_status(self, app, user, make_vehicle, make_expense, make_maintenance):
        pending = make_vehicle(user, license_plate='PND0001')
        make_maintenance(pending, NOW - timedelta(days=1))
        busy = make_vehicle(user, license_plate='BSY0001')
        for day in range(4):
            make_expense(busy, 10, NOW - timedelta(days=day))

        assert PredictionService.get_vehicle_status(pending, NOW) == 'Pending maintenance'
        assert PredictionService.get_vehicle_status(busy, NOW) == 'High expenses'
