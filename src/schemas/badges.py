from __future__ import annotations

from datetime import date
from typing import List

from src.schemas.scoreboard import EmployeeIdentity
from src.shared.base import BaseSchema


class BadgeCatalogItem(BaseSchema):
    index: int
    key: str
    name: str
    description: str
    icon: str


class BadgeView(BadgeCatalogItem):
    achieved: bool


class EmployeeBadgesResponse(BaseSchema):
    employee: EmployeeIdentity
    evaluated_on: date
    achieved_count: int
    badges: List[BadgeView]


class BadgeRunEmployeeResult(BaseSchema):
    employee_id: str
    employee_name: str
    badges_earned: List[str]


class BadgeRunResult(BaseSchema):
    run_id: str
    trigger: str
    evaluated_on: date
    evaluated_employees: int
    employees_with_new_badges: int
    total_new_badges: int
    details: List[BadgeRunEmployeeResult]
