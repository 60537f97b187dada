import os
import logging
from motor.motor_asyncio import AsyncIOMotorClient
from fastapi import FastAPI, HTTPException, Request
from contextlib import asynccontextmanager
from dotenv import load_dotenv

from constants.analytics import ERRORS

logger = logging.getLogger(__name__)

# --------------------------------
# Environment Variables
# --------------------------------
load_dotenv()

MONGODB_URI = os.getenv("MONGODB_URI")
DB_NAME = os.getenv("DB_NAME")


# --------------------------------
# MongoDB Connection (Lifespan)
# --------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    app.mongodb_client = None
    app.mongodb = None
    if not MONGODB_URI or not DB_NAME:
        # Body and provider analytics keep working; only the record store is off
        logger.warning(" MONGODB_URI or DB_NAME is not set in .env, call record store disabled")
        yield
        return

    try:
        app.mongodb_client = AsyncIOMotorClient(MONGODB_URI)
        app.mongodb = app.mongodb_client[DB_NAME]
        logger.info(f"MongoDB connected to {DB_NAME}")
        yield
    except Exception as e:
        logger.exception(f" MongoDB connection error: {e}")
        raise
    finally:
        if app.mongodb_client is not None:
            app.mongodb_client.close()
            logger.warning(" MongoDB disconnected.")


# --------------------------------
# Dependency
# --------------------------------
async def get_database(request: Request):
    db = getattr(request.app, "mongodb", None)
    if db is None:
        raise HTTPException(**ERRORS["STORE_UNAVAILABLE"])
    return db
