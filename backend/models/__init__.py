from models.tenant import Tenant
from models.users import User
from models.account import Account
from models.category import Category
from models.transaction import Transaction
from models.entry import Entry
from models.budget import Budget
from models.goal import Goal
from models.investment import Investment
from models.dividend import Dividend
from models.bill_reminder import BillReminder
from models.audit_log import AuditLog

__all__ = ['AuditLog', 'Account', 'BillReminder', 'Budget', 'Category', 'Dividend', 'Entry', 'Goal', 'Investment', 'Tenant', 'Transaction', 'User',]
