"""
FastAPI backend for the AI product explorer: catalog browse/search, AI query
parsing and comparison, favorites and the AI interaction log.
Deployment-ready: CORS, configurable host/port via env.
"""
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from product_explorer.core.config import get_settings
from product_explorer.core.errors import ValidationError
from product_explorer.routers import ai, auth, compare, favorites, logs, products, search

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="AI Product Explorer API",
    description="Electronics catalog with natural-language search and AI-assisted comparison.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = f"{process_time:.3f}"
    logger.info(
        "%s %s | Status: %s | Time: %.3fs",
        request.method,
        request.url.path,
        response.status_code,
        process_time,
    )
    return response


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(products.router)
app.include_router(ai.router)
app.include_router(compare.router)
app.include_router(auth.router)
app.include_router(favorites.router)
app.include_router(search.router)
app.include_router(logs.router)


@app.get("/health")
def health():
    return {"status": "ok", "aiEnabled": settings.ai_enabled}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.host, port=settings.port)
