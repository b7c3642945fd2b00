"""
Finance Aggregation Engine

Totals and category breakdowns over the transactions of the selected
month. The loaded transactions are a projection of the store, reloaded
after every mutation.
"""

from datetime import date
from typing import Optional, Union

from src.audit import AuditLogger
from src.models.audit import AuditEventType
from src.models.records import (
    CategoryTotal,
    FinanceTransaction,
    TransactionType,
    categories_for,
)
from src.services.storage import RecordStoreInterface
from src.utils.dates import first_of_month, month_bounds, to_date_str


class FinanceLedger:
    """Income and expense figures for one month."""

    def __init__(
        self,
        store: RecordStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        selected_month: Optional[date] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._selected_month = first_of_month(selected_month or date.today())
        self._transactions: list[FinanceTransaction] = []

    @property
    def transactions(self) -> list[FinanceTransaction]:
        return list(self._transactions)

    @property
    def selected_month(self) -> date:
        return self._selected_month

    async def load_transactions_for_month(
        self,
        month: Optional[date] = None,
    ) -> list[FinanceTransaction]:
        start, end = month_bounds(month or self._selected_month)
        self._transactions = await self._store.transactions.range_by_field(
            "date", start, end, inclusive=True
        )
        return self.transactions

    async def set_selected_month(self, month: date) -> None:
        self._selected_month = first_of_month(month)
        await self.load_transactions_for_month()

    async def add_transaction(
        self,
        type: TransactionType,
        category: str,
        amount: float,
        day: Union[date, str],
        description: str = "",
    ) -> FinanceTransaction:
        transaction = FinanceTransaction(
            type=type,
            category=category,
            amount=amount,
            date=to_date_str(day),
            description=description,
        )
        await self._store.transactions.add(transaction)
        await self.load_transactions_for_month()

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.TRANSACTION_CREATED,
                "transaction",
                transaction.id,
                f"{transaction.type.value.capitalize()} recorded: {transaction.category}",
                {"amount": transaction.amount, "date": transaction.date},
            )
        return transaction

    async def update_transaction(
        self,
        transaction_id: str,
        **fields,
    ) -> Optional[FinanceTransaction]:
        fields.pop("id", None)
        updated = await self._store.transactions.update(transaction_id, fields)
        if updated is None:
            return None
        await self.load_transactions_for_month()

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.TRANSACTION_UPDATED,
                "transaction",
                transaction_id,
                "Transaction updated",
                {"fields": sorted(fields)},
            )
        return updated

    async def delete_transaction(self, transaction_id: str) -> bool:
        deleted = await self._store.transactions.delete(transaction_id)
        if not deleted:
            return False
        await self.load_transactions_for_month()

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.TRANSACTION_DELETED,
                "transaction",
                transaction_id,
                "Transaction deleted",
            )
        return True

    def total_by_type(self, type: TransactionType) -> float:
        return sum(t.amount for t in self._transactions if t.type == type)

    def total_income(self) -> float:
        return self.total_by_type(TransactionType.INCOME)

    def total_expenses(self) -> float:
        return self.total_by_type(TransactionType.EXPENSE)

    def net_savings(self) -> float:
        return self.total_income() - self.total_expenses()

    def category_totals(self, type: TransactionType) -> list[CategoryTotal]:
        """
        Totals per category of the fixed list for `type`.

        Categories without transactions are left out, and the result
        follows the fixed list order rather than the totals. Transactions
        whose category is not on the list do not appear here but still
        count towards total_by_type.
        """
        matching = [t for t in self._transactions if t.type == type]
        totals = []
        for category in categories_for(type):
            total = sum(t.amount for t in matching if t.category == category)
            if total > 0:
                totals.append(CategoryTotal(category=category, total=total))
        return totals
