"""
PostgreSQL product repository for Catalog Service.
"""

import asyncio
from typing import Any, Dict, Optional

import asyncpg

from shared.logging import get_logger
from shared.errors import TransportError
from ..models import PricePoint, Product, ProductVariant, RatingSummary, WarehouseStock

# Failures that mean "the store could not be reached or did not answer".
TRANSPORT_FAILURES = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)

PRICE_HISTORY_LIMIT = 5


class PostgresProductRepository:
    """Reads products and their enrichment from PostgreSQL."""

    def __init__(self, dsn: str, min_size: int = 2, max_size: int = 10):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.logger = get_logger("catalog.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Start the connection pool and bootstrap tables."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=30
            )
            await self._create_tables()
            self.logger.info("PostgreSQL repository started")

        except TRANSPORT_FAILURES as e:
            self.logger.error("Failed to start PostgreSQL repository", error=str(e))
            raise TransportError("postgres", str(e))

    async def stop(self):
        """Stop the connection pool."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL repository stopped")

    async def _create_tables(self):
        """Create catalog tables if missing."""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS products (
                    id SERIAL PRIMARY KEY,
                    sku VARCHAR(64) UNIQUE NOT NULL,
                    name VARCHAR(200) NOT NULL,
                    price INTEGER NOT NULL,
                    discount INTEGER NOT NULL DEFAULT 0,
                    inventory INTEGER NOT NULL DEFAULT 100,
                    category VARCHAR(100),
                    brand VARCHAR(100),
                    description TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS product_variants (
                    id SERIAL PRIMARY KEY,
                    product_id INTEGER NOT NULL REFERENCES products(id) ON DELETE CASCADE,
                    variant_name VARCHAR(100) NOT NULL,
                    sku VARCHAR(64) UNIQUE NOT NULL,
                    price_modifier INTEGER NOT NULL DEFAULT 0,
                    inventory INTEGER NOT NULL DEFAULT 0
                );
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS inventory_locations (
                    id SERIAL PRIMARY KEY,
                    product_id INTEGER NOT NULL REFERENCES products(id) ON DELETE CASCADE,
                    warehouse VARCHAR(100) NOT NULL,
                    quantity INTEGER NOT NULL DEFAULT 0,
                    reserved INTEGER NOT NULL DEFAULT 0
                );
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS product_reviews (
                    id SERIAL PRIMARY KEY,
                    product_id INTEGER NOT NULL REFERENCES products(id) ON DELETE CASCADE,
                    rating INTEGER NOT NULL,
                    review_text TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS price_history (
                    id SERIAL PRIMARY KEY,
                    product_id INTEGER NOT NULL REFERENCES products(id) ON DELETE CASCADE,
                    price INTEGER NOT NULL,
                    discount INTEGER NOT NULL DEFAULT 0,
                    changed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );
            """)

    async def fetch_product(self, sku: str) -> Optional[Product]:
        """Load a product and its enrichment by SKU."""
        if self.pool is None:
            raise TransportError("postgres", "repository not started")

        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow("""
                    SELECT * FROM products WHERE sku = $1
                """, sku)

                if not row:
                    return None

                variants = await conn.fetch("""
                    SELECT variant_name, sku, price_modifier, inventory
                    FROM product_variants WHERE product_id = $1 ORDER BY id
                """, row["id"])
                stock = await conn.fetch("""
                    SELECT warehouse, quantity, reserved
                    FROM inventory_locations WHERE product_id = $1 ORDER BY warehouse
                """, row["id"])
                rating = await conn.fetchrow("""
                    SELECT COALESCE(AVG(rating), 0)::float AS average, COUNT(*) AS count
                    FROM product_reviews WHERE product_id = $1
                """, row["id"])
                history = await conn.fetch("""
                    SELECT price, discount, changed_at
                    FROM price_history WHERE product_id = $1
                    ORDER BY changed_at DESC LIMIT $2
                """, row["id"], PRICE_HISTORY_LIMIT)

        except TRANSPORT_FAILURES as e:
            self.logger.error("Error loading product", sku=sku, error=str(e))
            raise TransportError("postgres", str(e), {"sku": sku})

        return self._row_to_product(row, variants, stock, rating, history)

    def _row_to_product(self, row, variants, stock, rating, history) -> Product:
        """Convert database rows to a Product."""
        data: Dict[str, Any] = dict(row)
        data["variants"] = [ProductVariant(**dict(v)) for v in variants]
        data["warehouse_stock"] = [WarehouseStock(**dict(s)) for s in stock]
        if rating and rating["count"]:
            data["rating"] = RatingSummary(average=round(rating["average"], 2), count=rating["count"])
        data["price_history"] = [PricePoint(**dict(h)) for h in history]
        return Product(**data)

    async def health_check(self) -> bool:
        """Check PostgreSQL health."""
        if self.pool is None:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except TRANSPORT_FAILURES:
            return False
