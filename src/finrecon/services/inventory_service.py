from __future__ import annotations

from typing import Iterable, Optional

from finrecon.domain.models import BatchValuation, StockBatch, StockValuation


def margin_percent(profit: float, revenue: float) -> Optional[float]:
    """Profit over revenue in percent; ``None`` when there is no revenue basis."""
    if revenue > 0:
        return profit / revenue * 100
    return None


class BatchInventoryValuator:
    def valuate(self, batch: StockBatch) -> BatchValuation:
        qty = float(batch.remaining_quantity)
        cost = batch.cost_price if batch.cost_price is not None else batch.per_price
        price = batch.retail_price if batch.retail_price is not None else batch.per_price

        stock_value = qty * float(cost)
        potential_revenue = qty * float(price)
        potential_profit = potential_revenue - stock_value
        return BatchValuation(
            batch=batch,
            stock_value=stock_value,
            potential_revenue=potential_revenue,
            potential_profit=potential_profit,
            margin_percent=margin_percent(potential_profit, potential_revenue),
        )

    def valuate_all(self, batches: Iterable[StockBatch]) -> StockValuation:
        valued = tuple(self.valuate(b) for b in batches)
        total_value = sum((v.stock_value for v in valued), 0.0)
        total_revenue = sum((v.potential_revenue for v in valued), 0.0)
        total_profit = sum((v.potential_profit for v in valued), 0.0)
        return StockValuation(
            batches=valued,
            total_stock_value=total_value,
            total_potential_revenue=total_revenue,
            total_potential_profit=total_profit,
            # recomputed from the aggregates, never an average of batch margins
            margin_percent=margin_percent(total_profit, total_revenue),
        )
