"""
FastAPI backend — REST API for TradeVault.
"""
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from pydantic import BaseModel
from typing import Optional
import logging
import os
import random
import re
import shutil
import sys
import time

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from config.settings import settings
from backend.database import (
    init_db, list_trades, get_trade, create_trade, update_trade, delete_trade,
    count_trades, list_assets, create_asset, delete_asset,
)
from backend.models.trade import Trade, TradeCreate, TradeUpdate
from backend.models.asset import Asset, AssetCreate
from backend.core import analytics
from backend.seed_trades import seed_if_empty
from backend.services.theme import DatabaseStorage, ThemeProvider

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("tradevault")

_ROOT = os.path.join(os.path.dirname(__file__), "..", "..")
UPLOAD_DIR = (
    settings.UPLOAD_DIR if os.path.isabs(settings.UPLOAD_DIR)
    else os.path.join(_ROOT, settings.UPLOAD_DIR)
)
_SAFE_EXTENSION = re.compile(r"^\.[A-Za-z0-9]{1,10}$")


@asynccontextmanager
async def lifespan(app: FastAPI):
    for problem in settings.validate():
        logger.warning("Config: %s", problem)
    init_db()
    os.makedirs(UPLOAD_DIR, exist_ok=True)
    if settings.SEED_ON_STARTUP:
        seed_if_empty()
    yield


app = FastAPI(title="TradeVault API", version="1.0.0", lifespan=lifespan)

# ── CORS ──
_cors_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials="*" not in _cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Theme preference lives on the app, not in a module global
app.state.theme = ThemeProvider(DatabaseStorage())


def get_theme_provider(request: Request) -> ThemeProvider:
    return request.app.state.theme


# ── Error mapping ──

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report only the first schema violation, as {message, field}."""
    first = exc.errors()[0]
    loc = list(first.get("loc", ()))
    if loc and loc[0] in ("body", "query", "path", "header"):
        loc = loc[1:]
    # A malformed JSON body reports a character offset, not a field
    if all(isinstance(part, int) for part in loc):
        loc = []
    return JSONResponse(
        {"message": first.get("msg", "Invalid request"), "field": ".".join(str(p) for p in loc)},
        status_code=400,
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        {"message": exc.detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"message": "Internal server error"}, status_code=500)


# ── Request Models ──
class ReviewRequest(BaseModel):
    strategy: Optional[str] = None


class ThemeRequest(BaseModel):
    theme: str


# ──────────────────────────────────────
# TRADE JOURNAL (CRUD)
# ──────────────────────────────────────

@app.get("/api/trades", response_model=list[Trade])
def list_trades_endpoint():
    return list_trades()


@app.get("/api/trades/{trade_id}", response_model=Trade)
def get_trade_endpoint(trade_id: int):
    trade = get_trade(trade_id)
    if not trade:
        raise HTTPException(status_code=404, detail="Trade not found")
    return trade


@app.post("/api/trades", response_model=Trade, status_code=201)
def create_trade_endpoint(req: TradeCreate):
    trade = create_trade(req.model_dump(mode="json"))
    logger.info("Logged trade %s: %s %s %s", trade["id"], trade["asset"], trade["outcome"], trade["pl_amt"])
    return trade


@app.patch("/api/trades/{trade_id}", response_model=Trade)
def update_trade_endpoint(trade_id: int, req: TradeUpdate):
    updated = update_trade(trade_id, req.model_dump(mode="json", exclude_unset=True))
    if not updated:
        raise HTTPException(status_code=404, detail="Trade not found")
    return updated


@app.delete("/api/trades/{trade_id}", status_code=204)
def delete_trade_endpoint(trade_id: int):
    if not delete_trade(trade_id):
        logger.debug("Delete of missing trade %s ignored", trade_id)
    return Response(status_code=204)


# ──────────────────────────────────────
# SCREENSHOT UPLOAD
# ──────────────────────────────────────

@app.post("/api/upload")
def upload_endpoint(trade_image: Optional[UploadFile] = File(None, alias="tradeImage")):
    if trade_image is None:
        raise HTTPException(status_code=400, detail="No file uploaded")
    ext = os.path.splitext(os.path.basename(trade_image.filename or ""))[1]
    if not _SAFE_EXTENSION.match(ext):
        ext = ""
    filename = f"tradeImage-{int(time.time() * 1000)}-{random.randint(0, 999_999_999)}{ext}"
    os.makedirs(UPLOAD_DIR, exist_ok=True)
    with open(os.path.join(UPLOAD_DIR, filename), "wb") as out:
        shutil.copyfileobj(trade_image.file, out)
    logger.info("Stored upload %s", filename)
    return {"imageUrl": f"/uploads/{filename}"}


@app.get("/uploads/{filename}")
def serve_upload(filename: str):
    path = os.path.join(UPLOAD_DIR, os.path.basename(filename))
    if not os.path.isfile(path):
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(path)


# ──────────────────────────────────────
# ASSET LIBRARY
# ──────────────────────────────────────

@app.get("/api/assets", response_model=list[Asset])
def list_assets_endpoint():
    return list_assets()


@app.post("/api/assets", response_model=Asset, status_code=201)
def create_asset_endpoint(req: AssetCreate):
    return create_asset(req.model_dump(mode="json"))


@app.delete("/api/assets/{asset_id}", status_code=204)
def delete_asset_endpoint(asset_id: int):
    delete_asset(asset_id)
    return Response(status_code=204)


# ──────────────────────────────────────
# ANALYTICS (recomputed from the full journal on every call)
# ──────────────────────────────────────

def _journal(strategy: Optional[str] = None) -> list[dict]:
    trades = list_trades()
    if strategy and strategy != "All":
        trades = [t for t in trades if t["strategy"] == strategy]
    return trades


@app.get("/api/analytics/summary")
def analytics_summary(strategy: Optional[str] = None):
    return analytics.dashboard(_journal(strategy), settings.BASE_BALANCE)


@app.get("/api/analytics/drawdown")
def analytics_drawdown(dimension: Optional[str] = None, strategy: Optional[str] = None):
    trades = _journal(strategy)
    if dimension is None:
        return analytics.drawdown_matrix(trades, settings.BASE_BALANCE)
    try:
        return analytics.drawdown_by_dimension(trades, dimension, settings.BASE_BALANCE)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/analytics/monthly")
def analytics_monthly(strategy: Optional[str] = None):
    return analytics.monthly_breakdown(_journal(strategy), settings.BASE_BALANCE)


@app.get("/api/analytics/strategies")
def analytics_strategies():
    return analytics.strategy_health(list_trades())


@app.get("/api/analytics/audit")
def analytics_audit(strategy: Optional[str] = None):
    return analytics.audit(_journal(strategy), settings.BASE_BALANCE)


# ──────────────────────────────────────
# AI COACHING
# ──────────────────────────────────────

@app.post("/api/analytics/review")
def review_endpoint(req: Optional[ReviewRequest] = None):
    from backend.services.ai_service import AIServiceNotConfigured, review_journal
    trades = _journal(req.strategy if req else None)
    try:
        stats = analytics.dashboard(trades, settings.BASE_BALANCE)
        stats["drawdown"].pop("equity_curve")
        return {"review": review_journal(stats, trades)}
    except AIServiceNotConfigured as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error("Journal review failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to generate review")


@app.post("/api/trades/{trade_id}/analyze")
def analyze_trade_endpoint(trade_id: int):
    from backend.services.ai_service import AIServiceNotConfigured, analyze_trade
    trade = get_trade(trade_id)
    if not trade:
        raise HTTPException(status_code=404, detail="Trade not found")
    try:
        return analyze_trade(trade)
    except AIServiceNotConfigured as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error("Trade analysis failed for %s: %s", trade_id, e)
        raise HTTPException(status_code=500, detail="Failed to analyze trade")


# ──────────────────────────────────────
# PREFERENCES
# ──────────────────────────────────────

@app.get("/api/preferences/theme")
def get_theme(provider: ThemeProvider = Depends(get_theme_provider)):
    return {"theme": provider.theme}


@app.put("/api/preferences/theme")
def set_theme(req: ThemeRequest, provider: ThemeProvider = Depends(get_theme_provider)):
    try:
        return {"theme": provider.set_theme(req.theme)}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/health")
def health():
    return {
        "status": "ok",
        "trade_count": count_trades(),
        "ai_provider": settings.AI_PROVIDER,
        "ai_configured": bool(settings.ai_key()),
    }
