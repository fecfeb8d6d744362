from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from entity_scorer.api.routes import entities, hooks
from entity_scorer.db.sqlite_db import init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield


app = FastAPI(title="Narrative Entity Scorer", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(hooks.router)
app.include_router(entities.router)


@app.get("/api/health")
async def health():
    from entity_scorer.infra.config import CONFIDENCE_THRESHOLD, DEBUG
    return {
        "status": "ok",
        "confidence_threshold": CONFIDENCE_THRESHOLD,
        "debug": DEBUG,
    }
