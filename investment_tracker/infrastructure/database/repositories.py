"""Data access layer for the ledger and objective"""

from typing import List, Optional
from sqlalchemy.orm import Session, sessionmaker
from investment_tracker.infrastructure.database.models import InvestmentRow, ObjectiveRow
from investment_tracker.domain.models import InvestmentRecord, Objective


def _row_timestamp(row: InvestmentRow) -> int:
    """Stored timestamp, or one derived from a numeric id for older rows"""
    if row.timestamp is not None:
        return row.timestamp
    try:
        return int(row.id)
    except ValueError:
        return 0


class StateRepository:
    """Loads the full state at startup and saves it after each mutation"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def load_investments(self) -> List[InvestmentRecord]:
        """Fetch every persisted record"""
        with self.session_factory() as db:
            rows = db.query(InvestmentRow).all()
            return [
                InvestmentRecord(
                    id=row.id,
                    timestamp=_row_timestamp(row),
                    amount=row.amount,
                    currency=row.currency,
                    fund=row.fund,
                    platform=row.platform,
                    date=row.date,
                    unit_price=row.unit_price,
                    units=row.units,
                )
                for row in rows
            ]

    def load_objective(self) -> Optional[Objective]:
        """Fetch the objective, if one was ever set"""
        with self.session_factory() as db:
            row = db.get(ObjectiveRow, 1)
            if row is None:
                return None
            return Objective(target_amount=row.target_amount, currency=row.currency)

    def save_investments(self, records: List[InvestmentRecord]) -> None:
        """Replace all persisted records with the given set in one transaction"""
        with self.session_factory() as db:
            try:
                db.query(InvestmentRow).delete()
                db.add_all(
                    InvestmentRow(
                        id=record.id,
                        timestamp=record.timestamp,
                        amount=record.amount,
                        currency=record.currency,
                        fund=record.fund,
                        platform=record.platform,
                        date=record.date,
                        unit_price=record.unit_price,
                        units=record.units,
                    )
                    for record in records
                )
                db.commit()
            except Exception:
                db.rollback()
                raise

    def save_objective(self, objective: Optional[Objective]) -> None:
        """Store (or clear) the objective"""
        with self.session_factory() as db:
            try:
                self._write_objective(db, objective)
                db.commit()
            except Exception:
                db.rollback()
                raise

    @staticmethod
    def _write_objective(db: Session, objective: Optional[Objective]) -> None:
        row = db.get(ObjectiveRow, 1)
        if objective is None:
            if row is not None:
                db.delete(row)
            return
        if row is None:
            db.add(ObjectiveRow(id=1, target_amount=objective.target_amount, currency=objective.currency))
        else:
            row.target_amount = objective.target_amount
            row.currency = objective.currency
