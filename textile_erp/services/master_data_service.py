from datetime import date, datetime
from typing import List, Optional
from bson import ObjectId
from bson.errors import InvalidId
import logging

from textile_erp.config import settings
from textile_erp.database import get_database
from textile_erp.models import (
    Client, Employee, EmployeeAdvance, NumberSeriesConfig, NumberSeriesMode,
    PaymentReceived, ProcessType
)

logger = logging.getLogger(__name__)


def _object_id_filter(doc_id: str) -> dict:
    try:
        return {"_id": ObjectId(doc_id)}
    except (InvalidId, TypeError):
        return {"_id": doc_id}


def _to_storage_date(day: date) -> datetime:
    return datetime.combine(day, datetime.min.time())


class MasterDataService:
    """Read access to the master data and operational records kept in MongoDB."""

    def __init__(self):
        self.db = None

    async def _ensure_db_connection(self):
        """Ensure database connection is established."""
        if self.db is None:
            self.db = get_database()
            if self.db is None:
                raise Exception(
                    "Database connection not established. Please ensure the application has started properly.")

    def _convert_objectid_to_string(self, doc):
        """Convert ObjectId to string in document."""
        if doc and "_id" in doc:
            doc["_id"] = str(doc["_id"])
        return doc

    # ---------------- clients & processes ----------------

    async def get_client(self, client_id: str) -> Optional[Client]:
        await self._ensure_db_connection()
        doc = await self.db["clients"].find_one(_object_id_filter(client_id))
        if not doc:
            return None
        return Client(**self._convert_objectid_to_string(doc))

    async def get_process_types(self) -> List[ProcessType]:
        await self._ensure_db_connection()
        cursor = self.db["process_types"].find({}).sort("name", 1)
        return [ProcessType(**self._convert_objectid_to_string(doc)) async for doc in cursor]

    # ---------------- employees & advances ----------------

    async def get_employee(self, employee_id: str) -> Optional[Employee]:
        await self._ensure_db_connection()
        doc = await self.db["employees"].find_one(_object_id_filter(employee_id))
        if not doc:
            return None
        return Employee(**self._convert_objectid_to_string(doc))

    async def get_employees(self) -> List[Employee]:
        await self._ensure_db_connection()
        cursor = self.db["employees"].find({}).sort("name", 1)
        return [Employee(**self._convert_objectid_to_string(doc)) async for doc in cursor]

    async def get_advances(self, employee_id: Optional[str] = None) -> List[EmployeeAdvance]:
        await self._ensure_db_connection()
        query = {"employee_id": employee_id} if employee_id else {}
        cursor = self.db["employee_advances"].find(query).sort("date", 1)
        return [EmployeeAdvance(**self._convert_objectid_to_string(doc)) async for doc in cursor]

    async def record_advance_repayment(self, employee_id: str, repayment_date: date, amount: float, notes: str) -> str:
        """Record a salary deduction as a repayment entry against the employee's advances."""
        await self._ensure_db_connection()
        result = await self.db["employee_advances"].insert_one({
            "employee_id": employee_id,
            "date": _to_storage_date(repayment_date),
            "amount": 0.0,
            "paid_amount": amount,
            "notes": notes,
            "created_at": datetime.utcnow(),
        })
        logger.info(f"💰 Recorded advance repayment of {amount:.2f} for employee {employee_id}")
        return str(result.inserted_id)

    # ---------------- payments ----------------

    async def get_payments(self, client_name: Optional[str] = None) -> List[PaymentReceived]:
        await self._ensure_db_connection()
        query = {"client_name": client_name} if client_name else {}
        cursor = self.db["payments_received"].find(query).sort("payment_date", 1)
        return [PaymentReceived(**self._convert_objectid_to_string(doc)) async for doc in cursor]

    # ---------------- number series ----------------

    async def get_invoice_number_config(self) -> NumberSeriesConfig:
        await self._ensure_db_connection()
        doc = await self.db["number_series"].find_one({"_id": "invoice"})
        if not doc:
            return NumberSeriesConfig(
                mode=NumberSeriesMode.AUTO,
                prefix=settings.invoice_number_prefix,
                next_number=1,
                pad_width=settings.invoice_number_pad_width,
            )
        doc.pop("_id", None)
        return NumberSeriesConfig(**doc)

    async def save_invoice_number_config(self, config: NumberSeriesConfig) -> NumberSeriesConfig:
        await self._ensure_db_connection()
        fields = config.model_dump()
        fields["mode"] = config.mode.value
        await self.db["number_series"].update_one({"_id": "invoice"}, {"$set": fields}, upsert=True)
        return config


master_data_service = MasterDataService()
