from log_config.logging_config import setup_logging
setup_logging()
from fastapi import FastAPI
from routers import analytics, calls, vapi_metric
from database import lifespan
from fastapi.middleware.cors import CORSMiddleware

app = FastAPI(title="Call Analytics", lifespan=lifespan)

# ✅ Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # dashboard origin, restrict in deployment
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(analytics.router, tags=["Analytics"])
app.include_router(vapi_metric.router, tags=["VAPI Metrics"])
app.include_router(calls.router, tags=["Call Records"])
