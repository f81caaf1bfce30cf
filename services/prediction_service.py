"""
Prediction Service
==================
Stateless heuristics producing expense and maintenance forecasts from a
vehicle's history.  Nothing here touches the database; callers load the
records and persist the results.

Expense forecast
----------------
The newest 12 expenses are grouped into calendar months (oldest month
first).  With at least 3 expenses spread over at least 2 months:

    predicted  = mean(monthly totals) + slope
    slope      = closed-form least-squares slope over the monthly totals
    confidence = clamp(1 - variance / mean**2, 0.1, 0.95)

Maintenance forecast
--------------------
With at least 2 COMPLETED maintenances (newest first):

    next date  = last completed date + mean interval in days
    cost       = mean cost * (1 + 0.05 * vehicle age in years)
    confidence = clamp(1 - (cost variance + interval variance) / 10000, 0.1, 0.9)
"""
from collections import OrderedDict
from datetime import timedelta

from models.enums import MaintenanceStatus, MaintenanceType
from utils.dates import utcnow


MIN_EXPENSES = 3
MIN_MONTHS = 2
MIN_COMPLETED_MAINTENANCES = 2
EXPENSE_HISTORY_SIZE = 12
MAX_RECOMMENDED_SERVICES = 5


def _clamp(value, lower, upper):
    return max(lower, min(upper, value))


class PredictionService:

    # ------------------------------------------------------------------
    # Arithmetic helpers
    # ------------------------------------------------------------------

    @staticmethod
    def calculate_linear_trend(values):
        """Least-squares slope of *values* against their index 0..n-1."""
        n = len(values)
        if n < 2:
            return 0.0
        sum_x = n * (n - 1) / 2
        sum_y = sum(values)
        sum_xy = sum(index * value for index, value in enumerate(values))
        sum_x2 = sum(index * index for index in range(n))
        denominator = n * sum_x2 - sum_x * sum_x
        if denominator == 0:
            return 0.0
        return (n * sum_xy - sum_x * sum_y) / denominator

    @staticmethod
    def calculate_variance(values):
        """Population variance."""
        if not values:
            return 0.0
        mean = sum(values) / len(values)
        return sum((value - mean) ** 2 for value in values) / len(values)

    @staticmethod
    def group_expenses_by_month(expenses):
        """``{'YYYY-MM': [expense, ...]}`` in chronological month order."""
        groups = {}
        for expense in expenses:
            groups.setdefault(expense.date.strftime('%Y-%m'), []).append(expense)
        return OrderedDict(sorted(groups.items()))

    @staticmethod
    def analyze_expense_categories(expenses):
        """Total amount per category."""
        totals = {}
        for expense in expenses:
            totals[expense.category] = totals.get(expense.category, 0.0) + float(expense.amount)
        return totals

    # ------------------------------------------------------------------
    # Forecasts
    # ------------------------------------------------------------------

    @classmethod
    def predict_monthly_expenses(cls, vehicle, expenses, now=None):
        """Next month's spend, or None when the history is too thin."""
        now = now or utcnow()
        if len(expenses) < MIN_EXPENSES:
            return None

        recent = sorted(expenses, key=lambda e: e.date, reverse=True)[:EXPENSE_HISTORY_SIZE]
        by_month = cls.group_expenses_by_month(recent)
        monthly_totals = [sum(float(e.amount) for e in items) for items in by_month.values()]
        if len(monthly_totals) < MIN_MONTHS:
            return None

        trend = cls.calculate_linear_trend(monthly_totals)
        average = sum(monthly_totals) / len(monthly_totals)
        variance = cls.calculate_variance(monthly_totals)
        confidence = _clamp(1 - variance / (average * average), 0.1, 0.95) if average else 0.1

        categories = cls.analyze_expense_categories(recent)
        # ties go to the category seen last
        main_category = max(reversed(list(categories)), key=categories.get)

        return {
            'predicted_amount': round(max(0.0, average + trend), 2),
            'confidence': round(confidence, 4),
            'category': main_category,
            'period': 'monthly',
            'factors': cls.identify_expense_factors(vehicle, recent, now),
        }

    @classmethod
    def predict_next_maintenance(cls, vehicle, maintenances, now=None):
        """Date and cost of the next maintenance, or None without enough history."""
        now = now or utcnow()
        completed = sorted(
            (m for m in maintenances
             if m.status == MaintenanceStatus.COMPLETED and m.completed_date is not None),
            key=lambda m: m.completed_date,
            reverse=True,
        )
        if len(completed) < MIN_COMPLETED_MAINTENANCES:
            return None

        intervals = [
            abs((completed[i].completed_date - completed[i + 1].completed_date).total_seconds()) / 86400
            for i in range(len(completed) - 1)
        ]
        average_interval = sum(intervals) / len(intervals)
        next_date = completed[0].completed_date + timedelta(days=average_interval)

        costs = [float(m.cost) for m in completed if m.cost]
        average_cost = sum(costs) / len(costs) if costs else 0.0
        age_factor = 1 + vehicle.age_in_years(now) * 0.05

        cost_variance = cls.calculate_variance(costs) if len(costs) > 1 else 0.0
        interval_variance = cls.calculate_variance(intervals) if len(intervals) > 1 else 0.0
        confidence = _clamp(1 - (cost_variance + interval_variance) / 10000, 0.1, 0.9)

        return {
            'next_maintenance_date': next_date,
            'predicted_cost': round(average_cost * age_factor, 2),
            'confidence': round(confidence, 4),
            'recommended_services': cls.recommend_maintenance_services(vehicle, now),
            'factors': cls.identify_maintenance_factors(vehicle, completed, now),
        }

    # ------------------------------------------------------------------
    # Factors and recommendations
    # ------------------------------------------------------------------

    @staticmethod
    def identify_expense_factors(vehicle, expenses, now):
        factors = []
        age = vehicle.age_in_years(now)
        if age > 10:
            factors.append('Old vehicle (over 10 years)')
        if age > 5:
            factors.append('Mid-age vehicle')
        if vehicle.mileage > 100000:
            factors.append('High mileage')
        recent = [e for e in expenses if e.date > now - timedelta(days=30)]
        if len(recent) > 5:
            factors.append('Frequent expenses')
        return factors

    @staticmethod
    def identify_maintenance_factors(vehicle, maintenances, now):
        factors = []
        if vehicle.age_in_years(now) > 10:
            factors.append('Vehicle needs more frequent maintenance')
        if vehicle.mileage > 150000:
            factors.append('High mileage needs extra care')

        preventive = sum(1 for m in maintenances if m.type == MaintenanceType.PREVENTIVE)
        corrective = sum(1 for m in maintenances if m.type == MaintenanceType.CORRECTIVE)
        if corrective > preventive:
            factors.append('Corrective maintenance pattern')
        else:
            factors.append('Good preventive maintenance')
        return factors

    @staticmethod
    def recommend_maintenance_services(vehicle, now):
        services = []
        age = vehicle.age_in_years(now)
        if age > 5:
            services += ['Brake system check', 'Filter replacement']
        if age > 10:
            services += ['Electrical system review', 'Suspension check']
        if vehicle.mileage > 50000:
            services.append('Oil and filter change')
        if vehicle.mileage > 100000:
            services += ['Clutch review', 'Engine inspection']
        return services[:MAX_RECOMMENDED_SERVICES]

    # ------------------------------------------------------------------
    # Weekly report
    # ------------------------------------------------------------------

    @staticmethod
    def get_vehicle_status(vehicle, now):
        overdue = [m for m in vehicle.maintenances
                   if m.status == MaintenanceStatus.SCHEDULED and m.scheduled_date <= now]
        if overdue:
            return 'Pending maintenance'
        recent = [e for e in vehicle.expenses if e.date > now - timedelta(days=7)]
        if len(recent) > 3:
            return 'High expenses'
        return 'Normal'

    @classmethod
    def generate_weekly_report(cls, user, vehicles, now=None):
        """Aggregate the last seven days for every vehicle a user owns."""
        now = now or utcnow()
        week_ago = now - timedelta(days=7)

        summary = {
            'total_vehicles': len(vehicles),
            'total_expenses': 0.0,
            'total_maintenances': 0,
            'average_expense_per_vehicle': 0.0,
        }
        vehicle_rows = []
        for vehicle in vehicles:
            week_expenses = [e for e in vehicle.expenses if week_ago <= e.date <= now]
            week_maintenances = [m for m in vehicle.maintenances if week_ago <= m.scheduled_date <= now]
            expense_total = sum(float(e.amount) for e in week_expenses)

            summary['total_expenses'] += expense_total
            summary['total_maintenances'] += len(week_maintenances)
            vehicle_rows.append({
                'id': vehicle.id,
                'name': vehicle.display_name,
                'week_expenses': round(expense_total, 2),
                'maintenance_count': len(week_maintenances),
                'status': cls.get_vehicle_status(vehicle, now),
            })

        summary['total_expenses'] = round(summary['total_expenses'], 2)
        summary['average_expense_per_vehicle'] = round(
            summary['total_expenses'] / max(1, len(vehicles)), 2
        )

        report = {
            'user_id': user.id,
            'period': {'start': week_ago.isoformat(), 'end': now.isoformat()},
            'summary': summary,
            'vehicles': vehicle_rows,
        }
        report['insights'] = cls._weekly_insights(report)
        report['recommendations'] = cls._weekly_recommendations(vehicles, report, now)
        return report

    @staticmethod
    def _weekly_insights(report):
        insights = []
        if report['summary']['total_expenses'] > 1000:
            insights.append('Weekly spending above average')
        if report['summary']['total_maintenances'] == 0:
            insights.append('No maintenance scheduled this week')
        high_spenders = [v for v in report['vehicles'] if v['week_expenses'] > 500]
        if high_spenders:
            insights.append(f'{len(high_spenders)} vehicle(s) with high expenses')
        return insights

    @staticmethod
    def _weekly_recommendations(vehicles, report, now):
        recommendations = []
        if report['summary']['average_expense_per_vehicle'] > 300:
            recommendations.append('Review your expenses and look for savings')
        if report['summary']['total_maintenances'] == 0:
            recommendations.append('Schedule preventive maintenance')
        if any(v.age_in_years(now) > 10 for v in vehicles):
            recommendations.append('Older vehicles may need extra attention')
        return recommendations
