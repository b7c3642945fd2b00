"""
Portfolio Accounting Engine

DESIGN DECISION: Positions use average-cost accounting.
- Buying more shares (average-in) recomputes the weighted average cost
- Selling never changes the average; realized P&L is measured against it
- Selling everything leaves a zero-quantity position until it is
  deleted explicitly

This is deliberately not lot (FIFO/LIFO) accounting. Switching would
change the P&L figures users already see.

Average-in and sell are validated first. A refused trade raises
TradeRejectedError and writes nothing.
"""

from typing import Optional

from src.audit import AuditLogger
from src.models.audit import AuditEventType
from src.models.records import SaleResult, Stock, utc_now
from src.services.storage import RecordStoreInterface
from src.validation import TradeRejectedError, TradeValidator


class Portfolio:
    """
    Stock positions and their aggregate figures.

    GUARANTEES:
    - avg_buy_price * quantity after an average-in equals the old cost
      plus the cost of the added shares
    - A sell never changes avg_buy_price
    - A refused trade leaves the position untouched
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[TradeValidator] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._validator = validator or TradeValidator()
        self._stocks: list[Stock] = []

    @property
    def stocks(self) -> list[Stock]:
        return list(self._stocks)

    async def load_stocks(self) -> list[Stock]:
        self._stocks = await self._store.stocks.all()
        return self.stocks

    async def add_stock(
        self,
        symbol: str,
        quantity: float,
        avg_buy_price: float,
        current_price: float,
        name: str = "",
    ) -> Stock:
        """Open a position. No averaging happens because there is no prior position."""
        stock = Stock(
            symbol=symbol,
            name=name,
            quantity=quantity,
            avg_buy_price=avg_buy_price,
            current_price=current_price,
        )
        await self._store.stocks.add(stock)
        await self.load_stocks()

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.STOCK_BOUGHT,
                "stock",
                stock.id,
                f"Bought {stock.quantity:g} {stock.symbol} @ {stock.avg_buy_price:g}",
                {"quantity": stock.quantity, "avg_buy_price": stock.avg_buy_price},
            )
        return stock

    async def average_in(
        self,
        stock_id: str,
        quantity: float,
        buy_price: float,
    ) -> Optional[Stock]:
        """
        Add shares to a position at `buy_price`.

        Only quantity and avg_buy_price change; current_price is left
        for update_price.

        Returns:
            The updated stock, or None if the position does not exist

        Raises:
            TradeRejectedError: If quantity is not positive
        """
        stock = await self._store.stocks.get(stock_id)
        if stock is None:
            return None

        result = self._validator.validate_average_in(stock, quantity, buy_price)
        if result.has_errors:
            await self._reject(stock_id, result)

        new_quantity = stock.quantity + quantity
        new_avg = (stock.quantity * stock.avg_buy_price + quantity * buy_price) / new_quantity

        updated = await self._store.stocks.update(stock_id, {
            "quantity": new_quantity,
            "avg_buy_price": new_avg,
            "last_updated": utc_now(),
        })
        await self.load_stocks()

        if self._audit_logger:
            await self._audit_logger.log_stock_averaged(
                stock_id=stock_id,
                symbol=stock.symbol,
                added_quantity=quantity,
                buy_price=buy_price,
                new_quantity=new_quantity,
                new_avg_price=new_avg,
            )
        return updated

    async def sell(
        self,
        stock_id: str,
        quantity: float,
        sell_price: float,
    ) -> Optional[SaleResult]:
        """
        Sell shares from a position.

        Returns:
            The sale with its realized P&L, or None if the position
            does not exist

        Raises:
            TradeRejectedError: If quantity is not positive or exceeds
                the shares held
        """
        stock = await self._store.stocks.get(stock_id)
        if stock is None:
            return None

        result = self._validator.validate_sell(stock, quantity, sell_price)
        if result.has_errors:
            await self._reject(stock_id, result)

        realized_pl = (sell_price - stock.avg_buy_price) * quantity
        remaining = stock.quantity - quantity

        await self._store.stocks.update(stock_id, {
            "quantity": remaining,
            "last_updated": utc_now(),
        })
        await self.load_stocks()

        if self._audit_logger:
            await self._audit_logger.log_stock_sold(
                stock_id=stock_id,
                symbol=stock.symbol,
                quantity=quantity,
                sell_price=sell_price,
                realized_pl=realized_pl,
            )

        return SaleResult(
            stock_id=stock_id,
            symbol=stock.symbol,
            quantity_sold=quantity,
            sell_price=sell_price,
            avg_buy_price=stock.avg_buy_price,
            realized_pl=realized_pl,
            remaining_quantity=remaining,
        )

    async def update_price(self, stock_id: str, price: float) -> Optional[Stock]:
        """Record the latest market price. Nothing else changes."""
        updated = await self._store.stocks.update(stock_id, {
            "current_price": price,
            "last_updated": utc_now(),
        })
        if updated is None:
            return None
        await self.load_stocks()

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.STOCK_PRICE_UPDATED,
                "stock",
                stock_id,
                f"{updated.symbol} price set to {price:g}",
                {"current_price": price},
            )
        return updated

    async def update_stock(self, stock_id: str, **fields) -> Optional[Stock]:
        """Manual edit of a position (e.g. fixing a typo in the symbol)."""
        fields.pop("id", None)
        fields["last_updated"] = utc_now()
        updated = await self._store.stocks.update(stock_id, fields)
        if updated is None:
            return None
        await self.load_stocks()

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.STOCK_UPDATED,
                "stock",
                stock_id,
                f"{updated.symbol} edited",
                {"fields": sorted(fields)},
            )
        return updated

    async def delete_stock(self, stock_id: str) -> bool:
        deleted = await self._store.stocks.delete(stock_id)
        if not deleted:
            return False
        await self.load_stocks()

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.STOCK_DELETED,
                "stock",
                stock_id,
                "Position deleted",
            )
        return True

    async def _reject(self, stock_id: str, result) -> None:
        if self._audit_logger:
            await self._audit_logger.log_trade_rejected(
                stock_id=stock_id,
                operation=result.subject,
                issues=[issue.model_dump() for issue in result.issues],
            )
        raise TradeRejectedError(result)

    # =========================================================================
    # AGGREGATES
    # =========================================================================

    def total_invested(self) -> float:
        return sum(stock.invested for stock in self._stocks)

    def total_value(self) -> float:
        return sum(stock.market_value for stock in self._stocks)

    def total_pl(self) -> float:
        return self.total_value() - self.total_invested()

    def total_pl_percent(self) -> float:
        invested = self.total_invested()
        if invested <= 0:
            return 0.0
        return 100 * self.total_pl() / invested
