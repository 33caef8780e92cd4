import os
from typing import Optional


class Settings:
    def __init__(self):
        # MongoDB Configuration (master data, challans, attendance, advances)
        self.mongodb_url = os.environ.get("MONGODB_URL", "mongodb://localhost:27017")
        self.database_name = os.environ.get("DATABASE_NAME", "textile_erp")

        # PostgreSQL Configuration (invoices and payslips)
        self.postgres_host = os.environ.get("POSTGRES_HOST", "localhost")
        self.postgres_port = int(os.environ.get("POSTGRES_PORT", "5432"))
        self.postgres_db = os.environ.get("POSTGRES_DB", "postgres")
        self.postgres_user = os.environ.get("POSTGRES_USER", "postgres")
        self.postgres_password = os.environ.get("POSTGRES_PASSWORD", "postgres")

        # Server Configuration
        self.host = os.environ.get("HOST", "0.0.0.0")
        self.port = int(os.environ.get("PORT", "8000"))
        self.log_level = os.environ.get("LOG_LEVEL", "INFO")

        # Frontend Configuration
        self.frontend_url = os.environ.get("FRONTEND_URL", "http://localhost:8080")

        # Billing Configuration
        self.cgst_rate = float(os.environ.get("CGST_RATE", "0.025"))
        self.sgst_rate = float(os.environ.get("SGST_RATE", "0.025"))
        self.default_hsn_sac = os.environ.get("DEFAULT_HSN_SAC", "998821")
        self.invoice_number_prefix = os.environ.get("INVOICE_NUMBER_PREFIX", "INV-")
        self.invoice_number_pad_width: Optional[int] = (
            int(os.environ["INVOICE_NUMBER_PAD_WIDTH"]) if os.environ.get("INVOICE_NUMBER_PAD_WIDTH") else None
        )


settings = Settings()
