import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from sqlalchemy import func, extract
from sqlalchemy.orm import Session
from models.investment import Investment
from models.dividend import Dividend
from schemas.investments import InvestmentCreate, InvestmentUpdate, DividendCreate, Investment as InvestmentSchema
from crud.audit_log import record_audit
from utils import sqlalchemy_to_dict
from utils.formatting import to_money, money_float, percentage

logger = logging.getLogger(__name__)

NO_SECTOR = "Other"


def get_investment(db: Session, investment_id: int, tenant_id: str):
    return db.query(Investment).filter(Investment.id == investment_id, Investment.tenant_id == tenant_id).first()


def get_investment_by_symbol(db: Session, symbol: str, tenant_id: str):
    return db.query(Investment).filter(
        Investment.tenant_id == tenant_id,
        Investment.symbol == symbol.strip().upper()
    ).first()


def _dividend_totals(db: Session, tenant_id: str, investment_ids) -> dict:
    if not investment_ids:
        return {}
    rows = db.query(
        Dividend.investment_id,
        func.coalesce(func.sum(Dividend.amount), 0),
        func.max(Dividend.payment_date)
    ).filter(
        Dividend.tenant_id == tenant_id,
        Dividend.investment_id.in_(investment_ids)
    ).group_by(Dividend.investment_id).all()
    return {investment_id: (to_money(total), last_date) for investment_id, total, last_date in rows}


def calculate_metrics(investment: Investment, total_dividends: Decimal = Decimal("0"), last_dividend_date: date = None) -> dict:
    quantity = Decimal(str(investment.quantity))
    total_invested = quantity * Decimal(str(investment.average_price))
    current_value = quantity * Decimal(str(investment.current_price))
    gain_loss = current_value - total_invested
    return {
        "total_invested": money_float(total_invested),
        "current_value": money_float(current_value),
        "gain_loss": money_float(gain_loss),
        "gain_loss_percentage": percentage(gain_loss, total_invested),
        "total_dividends": money_float(total_dividends),
        "dividend_yield": percentage(total_dividends, total_invested),
        "last_dividend_date": last_dividend_date,
    }


def with_metrics(db: Session, investments, tenant_id: str):
    totals = _dividend_totals(db, tenant_id, [investment.id for investment in investments])
    return [
        InvestmentSchema.model_validate(investment).model_copy(
            update=calculate_metrics(investment, *totals.get(investment.id, (Decimal("0"), None)))
        )
        for investment in investments
    ]


def get_investments(db: Session, tenant_id: str, investment_type: str = None, sector: str = None, search: str = None):
    query = db.query(Investment).filter(Investment.tenant_id == tenant_id)
    if investment_type:
        query = query.filter(Investment.type == investment_type.upper())
    if sector:
        query = query.filter(Investment.sector == sector)
    if search:
        query = query.filter(
            (Investment.symbol.ilike(f"%{search}%")) | (Investment.name.ilike(f"%{search}%"))
        )
    return with_metrics(db, query.order_by(Investment.symbol).all(), tenant_id)


def create_investment(db: Session, investment: InvestmentCreate, tenant_id: str, user_id: str = None):
    data = investment.model_dump()
    if data["current_price"] is None:
        data["current_price"] = data["average_price"]

    db_investment = Investment(**data, tenant_id=tenant_id, created_by=user_id)
    db.add(db_investment)
    db.commit()
    db.refresh(db_investment)
    logger.info(f"Investment {db_investment.symbol} created for tenant '{tenant_id}'")

    record_audit(db, tenant_id, 'investments', db_investment.id, 'CREATE', user_id,
                 new_values=sqlalchemy_to_dict(db_investment))
    return db_investment


def update_investment(db: Session, db_investment: Investment, investment: InvestmentUpdate, user_id: str = None):
    old_values = sqlalchemy_to_dict(db_investment)
    for key, value in investment.model_dump(exclude_unset=True).items():
        setattr(db_investment, key, value)
    db_investment.updated_by = user_id
    db.commit()
    db.refresh(db_investment)

    record_audit(db, db_investment.tenant_id, 'investments', db_investment.id, 'UPDATE', user_id,
                 old_values=old_values, new_values=sqlalchemy_to_dict(db_investment))
    return db_investment


def delete_investment(db: Session, db_investment: Investment, user_id: str = None):
    old_values = sqlalchemy_to_dict(db_investment)
    db.delete(db_investment)  # dividends go with it (cascade)
    db.commit()
    record_audit(db, old_values["tenant_id"], 'investments', old_values["id"], 'DELETE', user_id,
                 old_values=old_values)


def create_dividend(db: Session, db_investment: Investment, dividend: DividendCreate, user_id: str = None):
    db_dividend = Dividend(
        **dividend.model_dump(),
        investment_id=db_investment.id,
        tenant_id=db_investment.tenant_id,
        created_by=user_id
    )
    db.add(db_dividend)
    db.commit()
    db.refresh(db_dividend)

    record_audit(db, db_investment.tenant_id, 'dividends', db_dividend.id, 'CREATE', user_id,
                 new_values=sqlalchemy_to_dict(db_dividend))
    return db_dividend


def get_dividends(db: Session, tenant_id: str, investment_id: int = None, year: int = None, month: int = None):
    query = db.query(Dividend).filter(Dividend.tenant_id == tenant_id)
    if investment_id:
        query = query.filter(Dividend.investment_id == investment_id)
    if year:
        query = query.filter(extract('year', Dividend.payment_date) == year)
    if month:
        query = query.filter(extract('month', Dividend.payment_date) == month)
    return query.order_by(Dividend.payment_date.desc(), Dividend.id.desc()).all()


def summarize_dividends(db: Session, dividends, tenant_id: str) -> dict:
    total = sum((to_money(dividend.amount) for dividend in dividends), Decimal("0"))
    by_month = defaultdict(Decimal)
    by_investment = defaultdict(lambda: {"count": 0, "total": Decimal("0")})
    for dividend in dividends:
        by_month[dividend.payment_date.strftime("%Y-%m")] += to_money(dividend.amount)
        by_investment[dividend.investment_id]["count"] += 1
        by_investment[dividend.investment_id]["total"] += to_money(dividend.amount)

    symbols = {}
    if by_investment:
        symbols = dict(db.query(Investment.id, Investment.symbol).filter(
            Investment.tenant_id == tenant_id,
            Investment.id.in_(list(by_investment))
        ).all())

    return {
        "count": len(dividends),
        "total": money_float(total),
        "average": money_float(total / len(dividends)) if dividends else 0.0,
        "by_month": [
            {"month": month, "total": money_float(amount)}
            for month, amount in sorted(by_month.items())
        ],
        "by_investment": sorted(
            [
                {
                    "investment_id": investment_id,
                    "symbol": symbols.get(investment_id),
                    "count": values["count"],
                    "total": money_float(values["total"]),
                }
                for investment_id, values in by_investment.items()
            ],
            key=lambda item: item["total"],
            reverse=True
        ),
    }


def _allocation(investments, key) -> list:
    total_value = sum((Decimal(str(investment.current_value)) for investment in investments), Decimal("0"))
    groups = defaultdict(lambda: {"count": 0, "value": Decimal("0"), "invested": Decimal("0")})
    for investment in investments:
        group = groups[key(investment)]
        group["count"] += 1
        group["value"] += Decimal(str(investment.current_value))
        group["invested"] += Decimal(str(investment.total_invested))
    return sorted(
        [
            {
                "name": name,
                "count": values["count"],
                "total_invested": money_float(values["invested"]),
                "current_value": money_float(values["value"]),
                "percentage": percentage(values["value"], total_value),
            }
            for name, values in groups.items()
        ],
        key=lambda item: item["current_value"],
        reverse=True
    )


def get_portfolio(db: Session, tenant_id: str, investment_type: str = None, performers: int = 5) -> dict:
    investments = get_investments(db, tenant_id, investment_type=investment_type)

    total_invested = sum((Decimal(str(i.total_invested)) for i in investments), Decimal("0"))
    current_value = sum((Decimal(str(i.current_value)) for i in investments), Decimal("0"))
    total_dividends = sum((Decimal(str(i.total_dividends)) for i in investments), Decimal("0"))
    gain_loss = current_value - total_invested
    ranked = sorted(investments, key=lambda i: i.gain_loss_percentage, reverse=True)

    return {
        "summary": {
            "total_invested": money_float(total_invested),
            "current_value": money_float(current_value),
            "gain_loss": money_float(gain_loss),
            "gain_loss_percentage": percentage(gain_loss, total_invested),
            "total_dividends": money_float(total_dividends),
            "dividend_yield": percentage(total_dividends, total_invested),
            "investment_count": len(investments),
        },
        "allocation": {
            "by_type": _allocation(investments, lambda i: i.type),
            "by_sector": _allocation(investments, lambda i: i.sector or NO_SECTOR),
        },
        "top_performers": ranked[:performers],
        "worst_performers": list(reversed(ranked))[:performers],
        "investments": investments,
    }
