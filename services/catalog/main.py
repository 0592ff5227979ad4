"""Catalog service API built with FastAPI.

This module exposes the product lookup the order service prices orders
with, plus endpoints to read and upsert single products. Validation is
performed with Pydantic models, while persistence is delegated to the
SQLAlchemy-backed repository in ``repo.CatalogRepo``.
"""

import logging
import time
import uuid
from typing import List, Optional, Union

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field, constr
from pythonjsonlogger import jsonlogger
from sqlalchemy import text

from repo import CatalogRepo, engine, init_db

app = FastAPI(title="Catalog Service")

ProductId = constr(min_length=1, max_length=64)

logger = logging.getLogger("catalog")
if not logger.handlers:
    h = logging.StreamHandler()
    h.setFormatter(jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"))
    logger.addHandler(h)
    logger.setLevel(logging.INFO)


@app.on_event("startup")
def _startup_db():
    # wait briefly until the database accepts connections
    deadline = time.time() + 30
    while True:
        try:
            with engine.connect() as conn:
                conn.execute(text("select 1"))
            break
        except Exception:
            if time.time() > deadline:
                raise
            time.sleep(1)
    init_db()


class LookupRequest(BaseModel):
    """Request body for the lookup endpoint.

    Attributes:
        ids: Product ids to fetch (1-500).
    """
    ids: List[ProductId] = Field(min_length=1, max_length=500)


class ProductOut(BaseModel):
    id: str
    name: str
    price_cents: int
    image: Optional[Union[str, List[str]]] = None


class ProductIn(BaseModel):
    name: constr(min_length=1, max_length=255)
    price_cents: int = Field(ge=0)
    image: Optional[Union[str, List[str]]] = None


class LookupResponse(BaseModel):
    """Response body for the lookup endpoint.

    Attributes:
        products: The products that exist among the requested ids. Unknown
            ids are omitted rather than reported as errors.
    """
    products: List[ProductOut]


@app.get("/health")
def health():
    return {"ok": True}


@app.post("/products/lookup", response_model=LookupResponse)
def lookup(req: LookupRequest):
    """Fetch several products in one round-trip.

    Args:
        req: The ids to fetch; duplicates are collapsed.

    Returns:
        LookupResponse: Found products, in no particular order.
    """
    ids = list(dict.fromkeys(req.ids))
    return LookupResponse(products=CatalogRepo().lookup(ids))


@app.get("/products/{product_id}", response_model=ProductOut)
def get_product(product_id: str):
    product = CatalogRepo().get(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="NOT_FOUND")
    return product


@app.put("/products/{product_id}", response_model=ProductOut)
def put_product(product_id: str, body: ProductIn):
    return CatalogRepo().upsert(product_id, body.name, body.price_cents, body.image)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = rid
    try:
        response = await call_next(request)
    finally:
        logger.info("request handled", extra={"request_id": rid, "path": request.url.path, "method": request.method})
    response.headers["X-Request-ID"] = rid
    return response
