"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows every table before create_all() runs
  2. Other modules can import from finpay.models directly
"""

from finpay.models.user import User  # noqa: F401
from finpay.models.credit_card import CreditCard  # noqa: F401
from finpay.models.category import Category  # noqa: F401
from finpay.models.transaction import Transaction, TransactionStatus, TransactionType  # noqa: F401
from finpay.models.reward import Reward, RewardType  # noqa: F401
