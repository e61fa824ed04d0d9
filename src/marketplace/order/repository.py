"""Repository for the Order aggregate."""

from marketplace.domain import marketplace
from marketplace.order.order import Order


@marketplace.repository(part_of=Order)
class OrderRepository:
    def page_ids(self, offset: int, limit: int) -> list[str]:
        """Ids of one page of orders, oldest first."""
        records = self.query.order_by("created_at").offset(offset).limit(limit).all().items
        return [str(record.id) for record in records]
