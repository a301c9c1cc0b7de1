"""
Sahayak Distress Verification Service
Accepts distress reports, acknowledges them immediately and classifies
their plausibility in the background (AI with heuristic fallback).
"""

from fastapi import FastAPI, HTTPException, BackgroundTasks, Query, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from typing import Optional, Dict, Any, Deque, List
from collections import deque
from datetime import datetime, timedelta, timezone
from contextlib import asynccontextmanager
import asyncio
import logging
import os
import time

from dotenv import load_dotenv

from data_loader import load_demo_reports
from sahayak.analytics import filter_reports, summarize
from sahayak.classifier import AIClassifier
from sahayak.config import get_settings
from sahayak.export import export_filename, reports_to_csv
from sahayak.heuristics import score_message
from sahayak.llm_adapter import (
    LLMAdapter,
    LLMError,
    LLMFallbackError,
    LLMQuotaExceededError,
    LLMRateLimitError,
)
from sahayak.metrics import Metrics
from sahayak.models import (
    ChatReply,
    ChatRequest,
    ClassificationResult,
    DistressReport,
    ReportStats,
    ReportSubmission,
    VerificationStatus,
    VerifyRequest,
)
from sahayak.pipeline import SubmissionPipeline
from sahayak.prompts import ASSISTANT_SYSTEM_PROMPT
from sahayak.storage import PersistenceError, ReportStore


# Logging configuration
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler('logs/sahayak.log') if os.path.exists('logs') else logging.NullHandler()
    ]
)

logger = logging.getLogger(__name__)

# Load environment variables early so settings pick them up
load_dotenv()

VERSION = "1.0.0"
TITLE = "Sahayak Distress Verification Service"
DESCRIPTION = "Distress report intake with automated plausibility classification"

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."
QUOTA_MESSAGE = "AI credits exhausted. Please add credits."
NO_REPLY_MESSAGE = "Sorry, I could not generate a response."
MAX_CHAT_HISTORY = 20
SSE_KEEPALIVE_SECONDS = 15.0

settings = get_settings()


class RateLimiter:
    """Per-IP sliding one-minute window for report submissions"""

    WINDOW_SECONDS = 60.0

    def __init__(self, max_requests_per_minute: int = 30):
        self.max_requests = max_requests_per_minute
        self.requests: Dict[str, Deque[float]] = {}  # IP -> submission timestamps, oldest first

    def _recent(self, client_ip: str, now: float) -> Optional[Deque[float]]:
        """Drop expired timestamps; an IP with none left is forgotten."""
        window = self.requests.get(client_ip)
        if window is None:
            return None
        while window and window[0] <= now - self.WINDOW_SECONDS:
            window.popleft()
        if not window:
            del self.requests[client_ip]
            return None
        return window

    def is_allowed(self, client_ip: str) -> tuple[bool, Optional[str]]:
        """Record the submission if the IP is under its limit"""
        now = time.time()
        self.prune(now)
        window = self.requests.get(client_ip)

        if window is not None and len(window) >= self.max_requests:
            wait_time = self.WINDOW_SECONDS - (now - window[0])
            return False, f"Rate limit exceeded. Try again in {int(wait_time)}s"

        self.requests.setdefault(client_ip, deque()).append(now)
        return True, None

    def get_remaining(self, client_ip: str) -> int:
        window = self._recent(client_ip, time.time())
        used = len(window) if window is not None else 0
        return max(0, self.max_requests - used)

    def prune(self, now: Optional[float] = None) -> int:
        """Forget every IP without a submission inside the window; returns how many were dropped."""
        now = now if now is not None else time.time()
        before = len(self.requests)
        for client_ip in list(self.requests):
            self._recent(client_ip, now)
        return before - len(self.requests)


# Service wiring
metrics = Metrics()
store = ReportStore(settings.redis_url)
llm_adapter = LLMAdapter()
classifier = AIClassifier(llm_adapter if settings.use_ai_classifier else None)
pipeline = SubmissionPipeline(store, classifier, metrics=metrics)
rate_limiter = RateLimiter(max_requests_per_minute=settings.rate_limit_per_minute)


async def seed_demo_reports() -> int:
    """Insert the demo reports into an empty store, classified by heuristics."""
    if await store.query(limit=1):
        logger.info("Store already holds reports, skipping demo seed")
        return 0

    now = datetime.now(timezone.utc)
    seeded = 0
    for demo in load_demo_reports(settings.data_dir):
        report = await store.insert(demo.submission, created_at=now - demo.age)
        result = score_message(report.message, report.location)
        await store.update(
            report.id,
            classification=result.status,
            confidence=result.confidence,
            rationale=result.reason,
        )
        seeded += 1
    logger.info(f"Seeded {seeded} demo reports")
    return seeded


# Application lifespan
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("=" * 60)
    logger.info(f"Starting {TITLE} v{VERSION}")
    logger.info("=" * 60)

    await store.connect()
    logger.info(f"Storage backend: {store.backend}")
    if classifier.enabled:
        logger.info(f"AI classifier enabled (model: {llm_adapter.model})")
    else:
        logger.warning("AI classifier disabled, using heuristic scorer only")

    if settings.seed_demo_reports:
        await seed_demo_reports()

    logger.info("Service ready")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down...")
    await pipeline.drain()
    await store.close()
    logger.info("Shutdown complete")


# FastAPI application
app = FastAPI(
    title=TITLE,
    version=VERSION,
    description=DESCRIPTION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Count rejected submissions, then answer with FastAPI's standard 422"""
    if request.url.path == "/reports" and request.method == "POST":
        metrics.record_submission(accepted=False)
        logger.info(f"Rejected submission: {len(exc.errors())} invalid field(s)")
    return await request_validation_exception_handler(request, exc)


@app.exception_handler(PersistenceError)
async def persistence_exception_handler(request: Request, exc: PersistenceError):
    logger.error(f"Record store error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"error": "Record store unavailable", "detail": "Please try again shortly"}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.debug else "An error occurred"
        }
    )


def _since(hours: Optional[float]) -> Optional[datetime]:
    return datetime.now(timezone.utc) - timedelta(hours=hours) if hours else None


async def _feed(
    status_filter: Optional[VerificationStatus],
    since_hours: Optional[float],
    search: Optional[str],
) -> List[DistressReport]:
    reports = await store.query(status=status_filter, since=_since(since_hours))
    return filter_reports(reports, search=search)


# API endpoints
@app.get("/")
async def root():
    """Root endpoint with service information"""
    return {
        "service": TITLE,
        "version": VERSION,
        "status": "operational",
        "endpoints": {
            "submit": "POST /reports",
            "feed": "GET /reports",
            "stream": "GET /reports/stream",
            "export": "GET /reports/export.csv",
            "report": "GET /reports/{report_id}",
            "stats": "GET /stats",
            "verify": "POST /verify",
            "chat": "POST /chat",
            "health": "GET /health",
            "metrics": "GET /metrics"
        },
        "storage": store.backend,
        "ai_classifier": "enabled" if classifier.enabled else "disabled"
    }


@app.get("/health")
async def health_check():
    """Detailed health check"""
    storage_healthy = await store.ping()

    return {
        "status": "healthy" if storage_healthy else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "components": {
            "api": "healthy",
            "storage": store.backend if storage_healthy else "unhealthy",
            "ai_classifier": "enabled" if classifier.enabled else "heuristic-only",
            "pending_classifications": pipeline.pending_tasks
        },
        "metrics": metrics.get_stats()
    }


@app.get("/metrics")
async def get_metrics():
    """Get service metrics"""
    return {
        "service": TITLE,
        "version": VERSION,
        "metrics": metrics.get_stats(),
        "storage": {
            "type": store.backend,
            "memory_items": len(store.memory_storage)
        }
    }


@app.post("/reports", response_model=DistressReport, status_code=status.HTTP_202_ACCEPTED)
async def submit_report(submission: ReportSubmission, background_tasks: BackgroundTasks, http_request: Request):
    """
    Submit a distress report.
    Returns the Pending report immediately, classification runs in background
    """
    client_ip = http_request.client.host if http_request.client else "unknown"
    allowed, error_msg = rate_limiter.is_allowed(client_ip)

    if not allowed:
        logger.warning(f"Rate limit exceeded for {client_ip}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=error_msg
        )

    report = await pipeline.submit(submission, schedule=background_tasks.add_task)
    logger.info(f"[{report.id}] Remaining submissions for this IP: {rate_limiter.get_remaining(client_ip)}")
    return report


@app.get("/reports", response_model=List[DistressReport])
async def list_reports(
    status_filter: Optional[VerificationStatus] = Query(None, alias="status"),
    since_hours: Optional[float] = Query(None, gt=0),
    search: Optional[str] = Query(None, max_length=200),
    limit: int = Query(50, ge=1, le=500),
):
    """Live feed, newest first"""
    reports = await _feed(status_filter, since_hours, search)
    return reports[:limit]


@app.get("/reports/stream")
async def stream_reports(request: Request):
    """Server-sent events for every insert and update"""

    async def event_stream():
        with store.subscribe() as subscription:
            while not await request.is_disconnected():
                try:
                    event = await subscription.get(timeout=SSE_KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield f"event: {event.event_type}\ndata: {event.report.model_dump_json()}\n\n"

    return StreamingResponse(event_stream(), media_type="text/event-stream")


@app.get("/reports/export.csv")
async def export_reports(
    status_filter: Optional[VerificationStatus] = Query(None, alias="status"),
    since_hours: Optional[float] = Query(None, gt=0),
    search: Optional[str] = Query(None, max_length=200),
):
    """CSV export of the filtered feed"""
    reports = await _feed(status_filter, since_hours, search)
    logger.info(f"Exporting {len(reports)} reports to CSV")
    return Response(
        content=reports_to_csv(reports),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'}
    )


@app.get("/reports/{report_id}", response_model=DistressReport)
async def get_report(report_id: str):
    """Get a single report by id"""
    report = await store.get(report_id)

    if not report:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Report not found"
        )

    return report


@app.get("/stats", response_model=ReportStats)
async def get_stats(since_hours: Optional[float] = Query(None, gt=0)):
    """Dashboard aggregates"""
    return summarize(await store.query(since=_since(since_hours)))


@app.post("/verify", response_model=ClassificationResult)
async def verify_message(request_body: VerifyRequest):
    """
    Classify a message synchronously without storing it.
    Rate limit and exhausted credits upstream are reported as 429 / 402
    """
    if not classifier.enabled:
        return score_message(request_body.message, request_body.location)

    try:
        return await classifier.classify_strict(request_body.message, request_body.location)
    except LLMRateLimitError:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=RATE_LIMIT_MESSAGE)
    except LLMQuotaExceededError:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=QUOTA_MESSAGE)
    except LLMError as e:
        logger.warning(f"Synchronous verification degraded to heuristics: {e}")
        return score_message(request_body.message, request_body.location)


@app.post("/chat", response_model=ChatReply)
async def chat(request_body: ChatRequest):
    """Help assistant for using the app"""
    history = request_body.conversation_history[-MAX_CHAT_HISTORY:]
    messages: List[Dict[str, Any]] = [
        {"role": "system", "content": ASSISTANT_SYSTEM_PROMPT},
        *[item.model_dump() for item in history],
        {"role": "user", "content": request_body.message},
    ]

    try:
        reply = await llm_adapter.chat(messages, model=settings.assistant_model)
    except LLMRateLimitError:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=RATE_LIMIT_MESSAGE)
    except LLMQuotaExceededError:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=QUOTA_MESSAGE)
    except LLMFallbackError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Assistant is not configured")
    except LLMError as e:
        logger.error(f"Assistant request failed: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Assistant is temporarily unavailable")

    return ChatReply(reply=reply or NO_REPLY_MESSAGE)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8001,
        reload=True,
        log_level="info"
    )
