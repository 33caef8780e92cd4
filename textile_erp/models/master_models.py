from typing import List, Optional
from pydantic import BaseModel, Field, validator

# =====================================================
# MASTER DATA MODELS
# =====================================================

class ProcessType(BaseModel):
    """Master process with the global billing rate."""
    id: Optional[str] = Field(None, alias="_id")
    name: str
    rate: float = 0.0

    class Config:
        populate_by_name = True

class ClientProcess(BaseModel):
    """Client specific rate for one process."""
    process_name: str
    rate: float = 0.0

class Client(BaseModel):
    """Model for client (party) data stored in MongoDB."""
    id: Optional[str] = Field(None, alias="_id")
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    gst_no: Optional[str] = None
    pan_no: Optional[str] = None
    payment_terms: Optional[str] = None
    processes: List[ClientProcess] = Field(default_factory=list)

    @validator('name')
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError('Client name is required')
        return v.strip()

    class Config:
        populate_by_name = True

class Employee(BaseModel):
    """Model for employee wage parameters."""
    id: str = Field(..., alias="_id")
    name: str
    designation: Optional[str] = None
    phone: Optional[str] = None
    daily_wage: float = 0.0
    monthly_wage: Optional[float] = None
    rate_per_meter: float = 0.0

    class Config:
        populate_by_name = True
