# ------ perks/model/__init__.py ------

from .types import GUID
from .employee import Employee, Division, Brand, DiscountRule, AppSetting, employee_divisions
from .discount_code import DiscountCode, CODE_ACTIVE, CODE_USED, CODE_EXPIRED
from .transaction import Transaction

__all__ = [
    "GUID",
    "Employee",
    "Division",
    "Brand",
    "DiscountRule",
    "AppSetting",
    "employee_divisions",
    "DiscountCode",
    "CODE_ACTIVE",
    "CODE_USED",
    "CODE_EXPIRED",
    "Transaction",
]
