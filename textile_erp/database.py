import logging

from motor.motor_asyncio import AsyncIOMotorClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from textile_erp.config import settings

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

# =====================================================
# MONGODB (clients, employees, challans, attendance, advances)
# =====================================================

MONGO_CONNECT_ATTEMPTS = 3
MONGO_TIMEOUT_MS = 30000


class MongoDatabase:
    client: AsyncIOMotorClient = None
    database = None

mongo = MongoDatabase()


async def connect_to_mongo():
    last_error = None
    for attempt in range(1, MONGO_CONNECT_ATTEMPTS + 1):
        logger.info(f"🔄 MongoDB connect {attempt}/{MONGO_CONNECT_ATTEMPTS} ({settings.database_name})")
        client = AsyncIOMotorClient(
            settings.mongodb_url,
            serverSelectionTimeoutMS=MONGO_TIMEOUT_MS,
            connectTimeoutMS=MONGO_TIMEOUT_MS,
            socketTimeoutMS=MONGO_TIMEOUT_MS,
        )
        try:
            await client.admin.command("ping")
        except Exception as e:
            last_error = e
            client.close()
            logger.error(f"❌ MongoDB attempt {attempt} failed: {e}")
            continue

        mongo.client = client
        mongo.database = client[settings.database_name]
        logger.info(f"✅ MongoDB ready, using database '{settings.database_name}'")
        return

    raise Exception(f"MongoDB unreachable after {MONGO_CONNECT_ATTEMPTS} attempts: {last_error}")


async def close_mongo_connection():
    if mongo.client is not None:
        mongo.client.close()
        mongo.client = None
        mongo.database = None
        logger.info("🔌 MongoDB client closed")


def get_database():
    """Current MongoDB database, or None before startup has connected."""
    return mongo.database

# =====================================================
# POSTGRESQL (invoices, invoice items, payslips)
# =====================================================

def get_postgres_url():
    return (
        f"postgresql+asyncpg://{settings.postgres_user}:{settings.postgres_password}"
        f"@{settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}"
    )

postgres_engine = create_async_engine(get_postgres_url(), echo=False, future=True)

Base = declarative_base()

AsyncSessionFactory = async_sessionmaker(postgres_engine, class_=AsyncSession, expire_on_commit=False)


async def connect_to_postgres():
    """Check PostgreSQL is reachable and create the invoice and payslip tables if missing."""
    from textile_erp.models import invoice_models, payroll_models  # noqa: F401  registers tables on Base

    try:
        async with postgres_engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            await conn.run_sync(Base.metadata.create_all)
    except Exception as e:
        logger.error(f"❌ PostgreSQL startup failed: {e}")
        raise Exception(f"PostgreSQL unavailable: {e}")

    logger.info(f"✅ PostgreSQL ready, tables checked in '{settings.postgres_db}'")


async def close_postgres_connection():
    try:
        await postgres_engine.dispose()
    except Exception as e:
        logger.error(f"❌ PostgreSQL engine dispose failed: {e}")
        return
    logger.info("🔌 PostgreSQL engine disposed")


async def connect_databases():
    await connect_to_mongo()
    await connect_to_postgres()


async def close_databases():
    await close_mongo_connection()
    await close_postgres_connection()
