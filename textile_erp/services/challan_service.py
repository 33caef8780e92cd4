from datetime import date, datetime
from typing import Iterable, List, Optional, Set
from bson import ObjectId
import logging

from textile_erp.database import get_database
from textile_erp.models import DeliveryChallan, INVOICEABLE_STATUSES

logger = logging.getLogger(__name__)


def parse_challan_numbers(value: Optional[str]) -> List[str]:
    """Split a comma-joined challan number string back into tokens."""
    if not value:
        return []
    return [token.strip() for token in value.split(",") if token.strip()]


def invoiced_challan_numbers(invoices: Iterable) -> Set[str]:
    """Every challan number referenced by any item of any invoice."""
    numbers = set()
    for invoice in invoices:
        for item in invoice.items:
            numbers.update(parse_challan_numbers(item.challan_number))
    return numbers


def is_available_for_invoicing(challan: DeliveryChallan, invoiced_numbers: Set[str]) -> bool:
    return (
        challan.status in INVOICEABLE_STATUSES
        and challan.challan_number.strip() not in invoiced_numbers
    )


def filter_available_challans(challans: Iterable[DeliveryChallan], invoices: Iterable) -> List[DeliveryChallan]:
    invoiced = invoiced_challan_numbers(invoices)
    return [challan for challan in challans if is_available_for_invoicing(challan, invoiced)]


class ChallanService:
    def __init__(self):
        self.db = None
        self.challans_collection = None

    async def _ensure_db_connection(self):
        """Ensure database connection is established."""
        if self.db is None:
            self.db = get_database()
            if self.db is None:
                raise Exception(
                    "Database connection not established. Please ensure the application has started properly.")
            self.challans_collection = self.db["delivery_challans"]

            try:
                await self.challans_collection.create_index("challan_number", unique=True, name="idx_challan_number")
            except Exception as e:
                # Index might already exist, log and continue
                logger.info(f"Index creation info: {e}")

    def _to_challan(self, doc) -> DeliveryChallan:
        doc["_id"] = str(doc["_id"])
        return DeliveryChallan(**doc)

    async def get_challans_for_party(
        self,
        party_name: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[DeliveryChallan]:
        """Challans of one party, optionally restricted to a date range."""
        await self._ensure_db_connection()
        query = {"party_name": party_name}
        date_filter = {}
        if start_date:
            date_filter["$gte"] = datetime.combine(start_date, datetime.min.time())
        if end_date:
            date_filter["$lte"] = datetime.combine(end_date, datetime.min.time())
        if date_filter:
            query["date"] = date_filter

        cursor = self.challans_collection.find(query).sort("date", 1)
        return [self._to_challan(doc) async for doc in cursor]

    async def get_challans_by_ids(self, challan_ids: List[str]) -> List[DeliveryChallan]:
        await self._ensure_db_connection()
        object_ids = [ObjectId(challan_id) for challan_id in challan_ids]
        cursor = self.challans_collection.find({"_id": {"$in": object_ids}}).sort("date", 1)
        return [self._to_challan(doc) async for doc in cursor]

    async def get_all_challans(self) -> List[DeliveryChallan]:
        await self._ensure_db_connection()
        cursor = self.challans_collection.find({})
        return [self._to_challan(doc) async for doc in cursor]


challan_service = ChallanService()
