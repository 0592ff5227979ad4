"""SQLAlchemy repository for the product catalog.

This module provides database persistence for catalog products using
SQLAlchemy. Each product has a name, a unit price in integer cents and an
``image`` column holding either a single image reference or a list of them,
exactly as merchandisers entered it; order services normalize it.

The connection URL is read from ``DATABASE_URL``, or assembled from the
``DB_*`` variables for the PostgreSQL deployment.
"""

import os
from contextlib import contextmanager

from sqlalchemy import JSON, Integer, String, create_engine, select
from sqlalchemy.orm import DeclarativeBase, Session, mapped_column

DB_HOST = os.getenv("DB_HOST", "catalog-db")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME", "catalog")
DB_USER = os.getenv("DB_USER", "catalog_user")
DB_PASSWORD = os.getenv("DB_PASSWORD", "catalog-pass")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+psycopg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
engine = create_engine(DATABASE_URL, pool_pre_ping=True)


class Base(DeclarativeBase):
    pass


class Product(Base):
    """SQLAlchemy model for a sellable product.

    Attributes:
        id: Opaque product id (string, max 64 chars), primary key.
        name: Display name.
        price_cents: Current unit price in minor units.
        image: A single image reference or a list of references.
    """

    __tablename__ = "products"
    id = mapped_column(String(64), primary_key=True)
    name = mapped_column(String(255), nullable=False)
    price_cents = mapped_column(Integer, nullable=False)
    image = mapped_column(JSON, nullable=True)


def init_db() -> None:
    Base.metadata.create_all(engine)


@contextmanager
def get_session():
    """Yield a SQLAlchemy session that is closed on exit."""
    with Session(engine) as s:
        yield s


def to_dict(p: Product) -> dict:
    return {"id": p.id, "name": p.name, "price_cents": p.price_cents, "image": p.image}


class CatalogRepo:
    """Read and upsert operations on the products table."""

    def lookup(self, ids: list[str]) -> list[dict]:
        """Return the products whose id is in ``ids``.

        Unknown ids are skipped, so callers compare the result with what
        they asked for.
        """
        if not ids:
            return []
        with get_session() as s:
            rows = s.execute(select(Product).where(Product.id.in_(ids))).scalars().all()
            return [to_dict(r) for r in rows]

    def get(self, product_id: str) -> dict | None:
        with get_session() as s:
            obj = s.get(Product, product_id)
            return to_dict(obj) if obj else None

    def upsert(self, product_id: str, name: str, price_cents: int, image) -> dict:
        """Create or replace a product."""
        with get_session() as s:
            obj = s.get(Product, product_id) or Product(id=product_id)
            obj.name = name
            obj.price_cents = price_cents
            obj.image = image
            s.merge(obj)
            s.commit()
            return {"id": product_id, "name": name, "price_cents": price_cents, "image": image}
