# budgetbook/defaults.py
# Category set every new user starts with.

EXPENSE_ICON = "📋"
INCOME_ICON = "💰"

DEFAULT_CATEGORIES = [
    # expenses
    {"name": "Groceries", "type": "expense", "icon": "🛒"},
    {"name": "Rent", "type": "expense", "icon": "🏠"},
    {"name": "Utilities", "type": "expense", "icon": "💡"},
    {"name": "Transportation", "type": "expense", "icon": "🚗"},
    {"name": "Entertainment", "type": "expense", "icon": "🎬"},
    {"name": "Dining Out", "type": "expense", "icon": "🍽️"},
    {"name": "Healthcare", "type": "expense", "icon": "🏥"},
    {"name": "Shopping", "type": "expense", "icon": "🛍️"},
    {"name": "Subscriptions", "type": "expense", "icon": "📱"},
    {"name": "Insurance", "type": "expense", "icon": "🛡️"},
    {"name": "Education", "type": "expense", "icon": "📚"},
    {"name": "Personal Care", "type": "expense", "icon": "💅"},
    {"name": "Other Expense", "type": "expense", "icon": "📋"},
    # income
    {"name": "Salary", "type": "income", "icon": "💰"},
    {"name": "Freelance", "type": "income", "icon": "💻"},
    {"name": "Investments", "type": "income", "icon": "📈"},
    {"name": "Gifts", "type": "income", "icon": "🎁"},
    {"name": "Refunds", "type": "income", "icon": "💵"},
    {"name": "Other Income", "type": "income", "icon": "✨"},
]


def default_icon(type_: str) -> str:
    return EXPENSE_ICON if type_ == "expense" else INCOME_ICON
