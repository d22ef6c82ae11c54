"""Expense category catalog used to build chart series."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ExpenseCategory(BaseModel):
    """A category an expense can be filed under."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    icon: str
    color: str = Field(
        ...,
        pattern="^#[0-9A-Fa-f]{6}$",
        description="Chart color"
    )
    subcategories: tuple[str, ...] = ()


FALLBACK_COLOR = "#64748B"

DEFAULT_EXPENSE_CATEGORIES: tuple[ExpenseCategory, ...] = (
    ExpenseCategory(
        id="utilities",
        name="Utilities",
        icon="Zap",
        color="#F59E0B",
        subcategories=("Electricity", "Water", "Gas", "Internet", "Mobile"),
    ),
    ExpenseCategory(
        id="housing",
        name="Housing",
        icon="Home",
        color="#8B5CF6",
        subcategories=("Rent", "Home Loan EMI", "Maintenance", "Property Tax", "Insurance"),
    ),
    ExpenseCategory(
        id="food",
        name="Food & Groceries",
        icon="ShoppingCart",
        color="#10B981",
        subcategories=("Groceries", "Vegetables", "Dining Out", "Snacks"),
    ),
    ExpenseCategory(
        id="transportation",
        name="Transportation",
        icon="Car",
        color="#3B82F6",
        subcategories=("Fuel", "Public Transport", "Vehicle Maintenance", "Parking"),
    ),
    ExpenseCategory(
        id="healthcare",
        name="Healthcare",
        icon="Heart",
        color="#EF4444",
        subcategories=("Medical Bills", "Medicines", "Health Insurance", "Emergency"),
    ),
    ExpenseCategory(
        id="education",
        name="Education",
        icon="GraduationCap",
        color="#06B6D4",
        subcategories=("School Fees", "College Fees", "Books", "Tuition", "Online Courses"),
    ),
    ExpenseCategory(
        id="shopping",
        name="Shopping",
        icon="Bag",
        color="#EC4899",
        subcategories=("Clothing", "Electronics", "Personal Care", "Gifts"),
    ),
    ExpenseCategory(
        id="taxes",
        name="Taxes",
        icon="Receipt",
        color="#6B7280",
        subcategories=("Income Tax", "Property Tax", "GST", "Other Taxes"),
    ),
    ExpenseCategory(
        id="entertainment",
        name="Entertainment",
        icon="Music",
        color="#F97316",
        subcategories=("Movies", "Streaming", "Games", "Sports", "Hobbies"),
    ),
    ExpenseCategory(
        id="other",
        name="Other",
        icon="MoreHorizontal",
        color=FALLBACK_COLOR,
        subcategories=("Miscellaneous",),
    ),
)


def get_category(category_id: str) -> Optional[ExpenseCategory]:
    for category in DEFAULT_EXPENSE_CATEGORIES:
        if category.id == category_id:
            return category
    return None


def get_category_name(category_id: str) -> str:
    category = get_category(category_id)
    return category.name if category else category_id


def get_category_color(category_id: str) -> str:
    category = get_category(category_id)
    return category.color if category else FALLBACK_COLOR
