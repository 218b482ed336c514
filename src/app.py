"""Orderflow FastAPI application.

Serves the Ordering and Catalogue domains. Commands are processed
synchronously per request, each request wrapped in the domain context
that owns its URL prefix.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# Domains are initialized at module level so uvicorn workers share them.
# PROTEAN_ENV selects the config overlay from domain.toml.
import structlog
from catalogue.domain import catalogue
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from ordering.domain import ordering
from shared.logging import configure_logging
from shared.messaging import link_in_process, relay_status

configure_logging()
logger = structlog.get_logger("app")

ordering.init()
catalogue.init()

# With the in-memory broker the stock ledger runs inside this process
link_in_process(ordering, catalogue)

# ---------------------------------------------------------------------------
# Route-to-domain mapping
# ---------------------------------------------------------------------------
_ROUTE_DOMAIN_MAP = {
    "/orders": ordering,
    "/products": catalogue,
}


def _resolve_domain(path: str):
    """Return the domain for the given request path, or None."""
    for prefix, domain in _ROUTE_DOMAIN_MAP.items():
        if path.startswith(prefix):
            return domain
    return None


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Orderflow API",
    description="Order management: Ordering & Catalogue domains",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the correct Protean domain context for each request."""
    domain = _resolve_domain(request.url.path)
    if domain is not None:
        with domain.domain_context():
            response = await call_next(request)
        return response
    # No domain match, pass through (health check, docs, etc.)
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers and error mapping
# ---------------------------------------------------------------------------
from catalogue.api import product_router  # noqa: E402
from ordering.api.routes import order_router  # noqa: E402
from shared.api import register_error_handlers  # noqa: E402

app.include_router(order_router)
app.include_router(product_router)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
def _outbox_status(domain):
    """Query outbox counts for a domain."""
    try:
        with domain.domain_context():
            counts = domain._get_outbox_repo("default").count_by_status()
            return {"status": "ok", "counts": counts}
    except Exception as e:
        logger.error("outbox_status_failed", domain=domain.name, error=str(e))
        return {"status": "error", "error": str(e)}


@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "ordering": {"name": ordering.name},
                "catalogue": {"name": catalogue.name},
            },
            "event_relay": relay_status(ordering),
            "outbox": _outbox_status(ordering),
        }
    )
