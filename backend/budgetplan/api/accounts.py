"""
Account API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from budgetplan.dependencies import get_db, get_organization_id
from budgetplan.models import Account
from budgetplan.schemas.account import (
    AccountCreate,
    AccountResponse,
    AccountList,
)

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.get("", response_model=AccountList)
def list_accounts(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """List active accounts."""
    query = db.query(Account).filter(
        Account.organization_id == organization_id,
        Account.is_active == True
    )
    total = query.count()
    accounts = query.order_by(Account.id).offset(skip).limit(limit).all()

    return AccountList(
        items=accounts,
        total=total
    )


@router.post("", response_model=AccountResponse, status_code=201)
def create_account(
    account: AccountCreate,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Create a new account."""
    db_account = Account(
        organization_id=organization_id,
        name=account.name,
        account_type=account.account_type
    )
    db.add(db_account)
    db.commit()
    db.refresh(db_account)
    return db_account
