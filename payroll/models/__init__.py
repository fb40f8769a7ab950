"""
models/__init__.py: imports all ORM models so Alembic's env.py
sees them via Base.metadata when generating migrations.
"""
from payroll.models.city_tax import CityTaxORM
from payroll.models.salary_calculation import SalaryCalculationORM

__all__ = ["CityTaxORM", "SalaryCalculationORM"]
