"""
Built-in default records.

Used both for first-run seeding and for the cosmetic category list shown
while the categories collection is still empty.
"""

from household_ledger.models.records import Category, User


USER_COLORS = [
    "#60A5FA",  # Blue
    "#F87171",  # Red
    "#34D399",  # Green
    "#FBBF24",  # Yellow
    "#A78BFA",  # Purple
    "#F472B6",  # Pink
    "#22D3EE",  # Cyan
    "#FB923C",  # Orange
]

DEFAULT_USER = User(id="1", name="Me", color=USER_COLORS[0])

DEFAULT_USERS: tuple[User, ...] = (DEFAULT_USER,)

# Names are lowercase so the derived key equals the name.
DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(id="food", name="food", label="Food", color="#F87171"),
    Category(id="transport", name="transport", label="Transport", color="#FBBF24"),
    Category(id="housing", name="housing", label="Housing", color="#60A5FA"),
    Category(id="entertainment", name="entertainment", label="Entertainment", color="#A78BFA"),
    Category(id="shopping", name="shopping", label="Shopping", color="#F472B6"),
    Category(id="health", name="health", label="Health", color="#34D399"),
    Category(id="utilities", name="utilities", label="Utilities", color="#818CF8"),
    Category(id="other", name="other", label="Other", color="#9CA3AF"),
)
