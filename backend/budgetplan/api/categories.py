"""
Category API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from budgetplan.dependencies import get_db, get_organization_id
from budgetplan.errors import NotFoundError, ValidationError
from budgetplan.models import Category, CategoryType
from budgetplan.schemas.category import (
    CategoryCreate,
    CategoryUpdate,
    CategoryResponse,
    CategoryList,
)

router = APIRouter()


def build_category_tree(categories: List[Category]) -> List[CategoryResponse]:
    """Build a hierarchical tree structure from flat category list."""
    category_map = {}
    for cat in categories:
        response = CategoryResponse.model_validate(cat)
        response.children = []
        category_map[cat.id] = response

    # Build the tree
    root_categories = []
    for cat in category_map.values():
        if cat.parent_id is None:
            root_categories.append(cat)
        else:
            parent = category_map.get(cat.parent_id)
            if parent:
                parent.children.append(cat)

    return root_categories


def _get_category(db: Session, organization_id: int, category_id: int) -> Category:
    category = db.query(Category).filter(
        Category.id == category_id,
        Category.organization_id == organization_id
    ).first()
    if not category:
        raise NotFoundError(f"Category {category_id} not found")
    return category


@router.get("", response_model=CategoryList)
def list_categories(
    category_type: Optional[CategoryType] = None,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """List categories of the organization with tree structure."""
    query = db.query(Category).filter(Category.organization_id == organization_id)
    if category_type is not None:
        query = query.filter(Category.category_type == category_type)
    categories = query.order_by(Category.name).all()

    return CategoryList(
        items=build_category_tree(categories),
        total=len(categories)
    )


@router.post("", response_model=CategoryResponse, status_code=201)
def create_category(
    category: CategoryCreate,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Create a new category."""
    if category.parent_id:
        parent = _get_category(db, organization_id, category.parent_id)
        if parent.category_type != category.category_type:
            raise ValidationError("A subcategory must have the same type as its parent")

    db_category = Category(
        organization_id=organization_id,
        name=category.name,
        category_type=category.category_type,
        parent_id=category.parent_id,
        color=category.color,
        icon=category.icon,
        is_system=False  # User-created categories are not system categories
    )
    db.add(db_category)
    db.commit()
    db.refresh(db_category)
    return CategoryResponse.model_validate(db_category)


@router.get("/{category_id}", response_model=CategoryResponse)
def get_category(
    category_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Get a specific category."""
    return _get_category(db, organization_id, category_id)


@router.patch("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: int,
    category_update: CategoryUpdate,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Update a category."""
    category = _get_category(db, organization_id, category_id)

    if category_update.parent_id is not None:
        if category_update.parent_id == category.id:
            raise ValidationError("A category cannot be its own parent")
        _get_category(db, organization_id, category_update.parent_id)

    # Update fields if provided
    for field, value in category_update.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(category, field, value)

    db.commit()
    db.refresh(category)
    return category
