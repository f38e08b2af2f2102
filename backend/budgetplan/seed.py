"""
Seed script for default categories.

Run with ``python -m budgetplan.seed`` to create the tables and seed the
default organization.
"""

import logging

from sqlalchemy.orm import Session

from budgetplan.config import settings
from budgetplan.database import SessionLocal, init_db
from budgetplan.models import Category, CategoryType

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    {
        "name": "Income",
        "category_type": CategoryType.income,
        "color": "#10b981",
        "icon": "dollar-sign",
        "children": [
            {"name": "Salary", "icon": "briefcase"},
            {"name": "Freelance", "icon": "laptop"},
            {"name": "Investments", "icon": "trending-up"},
        ]
    },
    {
        "name": "Housing",
        "color": "#3b82f6",
        "icon": "home",
        "children": [
            {"name": "Rent/Mortgage", "icon": "key"},
            {"name": "Utilities", "icon": "zap"},
            {"name": "Insurance", "icon": "shield"},
        ]
    },
    {
        "name": "Transportation",
        "color": "#8b5cf6",
        "icon": "car",
        "children": [
            {"name": "Fuel", "icon": "fuel"},
            {"name": "Public Transport", "icon": "bus"},
            {"name": "Maintenance", "icon": "wrench"},
        ]
    },
    {
        "name": "Food",
        "color": "#f59e0b",
        "icon": "utensils",
        "children": [
            {"name": "Groceries", "icon": "shopping-cart"},
            {"name": "Restaurants", "icon": "utensils-crossed"},
        ]
    },
    {
        "name": "Health",
        "color": "#14b8a6",
        "icon": "heart-pulse",
        "children": [
            {"name": "Medical", "icon": "stethoscope"},
            {"name": "Pharmacy", "icon": "pills"},
        ]
    },
    {
        "name": "Education",
        "color": "#6366f1",
        "icon": "graduation-cap",
        "children": []
    },
    {
        "name": "Subscriptions",
        "color": "#a855f7",
        "icon": "repeat",
        "children": []
    },
    {
        "name": "Other",
        "color": "#9ca3af",
        "icon": "circle",
        "children": []
    },
]


def seed_categories(db: Session, organization_id: int) -> int:
    """
    Seed default categories for an organization.

    Returns the number of categories created; an organization that already
    has categories is left alone.
    """
    existing_count = db.query(Category).filter(Category.organization_id == organization_id).count()
    if existing_count > 0:
        logger.info(f"Categories already seeded ({existing_count} categories exist)")
        return 0

    created = 0
    for cat_data in DEFAULT_CATEGORIES:
        category_type = cat_data.get("category_type", CategoryType.expense)
        parent = Category(
            organization_id=organization_id,
            name=cat_data["name"],
            category_type=category_type,
            color=cat_data["color"],
            icon=cat_data["icon"],
            is_system=True
        )
        db.add(parent)
        db.flush()  # Get the parent ID
        created += 1

        # Subcategories inherit type and color
        for child_data in cat_data["children"]:
            db.add(Category(
                organization_id=organization_id,
                name=child_data["name"],
                category_type=category_type,
                color=cat_data["color"],
                icon=child_data["icon"],
                parent_id=parent.id,
                is_system=True
            ))
            created += 1

    db.commit()
    logger.info(f"Seeded {created} categories for organization {organization_id}")
    return created


def main() -> None:
    logging.basicConfig(level=settings.log_level.upper())
    init_db()
    db = SessionLocal()
    try:
        seed_categories(db, settings.default_organization_id)
    finally:
        db.close()


if __name__ == "__main__":
    main()
