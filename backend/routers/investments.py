from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from database import get_db
from models.users import User
from schemas.investments import Investment, InvestmentCreate, InvestmentUpdate, Dividend, DividendCreate
from crud import investments as investments_crud
from utils.auth_utils import get_current_user, get_user_identifier
from utils.tenancy import get_tenant_id

router = APIRouter(
    prefix="/investments",
    tags=["Investments"],
)


def _get_investment_or_404(db: Session, investment_id: int, tenant_id: str):
    investment = investments_crud.get_investment(db, investment_id, tenant_id)
    if not investment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Investment with id {investment_id} not found")
    return investment


def _single(db: Session, investment, tenant_id: str) -> Investment:
    return investments_crud.with_metrics(db, [investment], tenant_id)[0]


@router.get("/", response_model=List[Investment])
def get_investments(
    type: Optional[str] = None,
    sector: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    return investments_crud.get_investments(db, tenant_id, investment_type=type, sector=sector, search=search)


@router.get("/portfolio")
def get_portfolio(
    type: Optional[str] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    return investments_crud.get_portfolio(db, tenant_id, investment_type=type)


@router.get("/dividends")
def get_dividends(
    investment_id: Optional[int] = None,
    year: Optional[int] = Query(None, ge=1900, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    dividends = investments_crud.get_dividends(db, tenant_id, investment_id=investment_id, year=year, month=month)
    return {
        "data": [Dividend.model_validate(d) for d in dividends],
        "summary": investments_crud.summarize_dividends(db, dividends, tenant_id),
    }


@router.post("/", response_model=Investment, status_code=status.HTTP_201_CREATED)
def create_investment(
    investment: InvestmentCreate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    if investments_crud.get_investment_by_symbol(db, investment.symbol, tenant_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"An investment with symbol '{investment.symbol}' already exists"
        )
    db_investment = investments_crud.create_investment(db, investment, tenant_id, get_user_identifier(current_user))
    return _single(db, db_investment, tenant_id)


@router.get("/{investment_id}", response_model=Investment)
def get_investment(
    investment_id: int,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    return _single(db, _get_investment_or_404(db, investment_id, tenant_id), tenant_id)


@router.patch("/{investment_id}", response_model=Investment)
def update_investment(
    investment_id: int,
    investment_update: InvestmentUpdate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    investment = _get_investment_or_404(db, investment_id, tenant_id)
    investment = investments_crud.update_investment(db, investment, investment_update, get_user_identifier(current_user))
    return _single(db, investment, tenant_id)


@router.delete("/{investment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_investment(
    investment_id: int,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    investment = _get_investment_or_404(db, investment_id, tenant_id)
    investments_crud.delete_investment(db, investment, get_user_identifier(current_user))


@router.post("/{investment_id}/dividends", response_model=Dividend, status_code=status.HTTP_201_CREATED)
def create_dividend(
    investment_id: int,
    dividend: DividendCreate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    investment = _get_investment_or_404(db, investment_id, tenant_id)
    return investments_crud.create_dividend(db, investment, dividend, get_user_identifier(current_user))
