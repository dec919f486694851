from __future__ import annotations

import sqlite3
import shutil
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Optional

from fbo.domain.models import BomLine, Material, Order, OrderItem, OrderStatus, SofaModel
from fbo.domain.pricing import from_cents

_ORDER_COLUMNS = """
    id, customer_name, customer_phone, customer_email, customer_location, customer_address,
    status, delivery_date, payment_method, shipping_cost_cents, total_amount_cents, notes, created_at
"""

_ORDER_FIELDS = (
    "customer_name",
    "customer_phone",
    "customer_email",
    "customer_location",
    "customer_address",
    "status",
    "delivery_date",
    "payment_method",
    "notes",
)


class SqliteRepository:
    def __init__(self, db_path: Path | str):
        self.db_path = str(db_path)

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def init_db(self) -> None:
        self.run_migrations()

    def _migrations(self) -> list:
        return [
            (1, self._migration_v1_base),
            (2, self._migration_v2_report_indexes),
        ]

    def run_migrations(self) -> None:
        migrations = self._migrations()
        latest = max(version for version, _ in migrations)
        # only copy the database when there is something to apply
        backup_path = self._create_pre_migration_backup() if self.schema_version() < latest else None

        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute("BEGIN")
            cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
            cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
            current_version = int(cur.fetchone()[0])

            for version, migration in migrations:
                if version <= current_version:
                    continue
                migration(cur)
                cur.execute(
                    "INSERT INTO schema_migrations (version, applied_at) VALUES (?, datetime('now'))",
                    (version,),
                )
            conn.commit()
        except Exception as exc:
            conn.rollback()
            self._restore_pre_migration_backup(backup_path)
            raise RuntimeError(
                "Database migration failed. Original database restored from automatic backup."
            ) from exc
        finally:
            conn.close()

    def schema_version(self) -> int:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT COUNT(*) FROM sqlite_master WHERE type='table' AND name='schema_migrations'")
        if not int(cur.fetchone()[0]):
            conn.close()
            return 0
        cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
        version = int(cur.fetchone()[0])
        conn.close()
        return version

    def _create_pre_migration_backup(self) -> Path | None:
        db_file = Path(self.db_path)
        if not db_file.exists() or db_file.stat().st_size == 0:
            return None
        backup_file = db_file.with_name(f"{db_file.stem}.pre_migration_{datetime.now().strftime('%Y%m%d%H%M%S')}.bak")
        shutil.copy2(db_file, backup_file)
        return backup_file

    def _restore_pre_migration_backup(self, backup_path: Path | None) -> None:
        if backup_path is None or not backup_path.exists():
            return
        shutil.copy2(backup_path, self.db_path)

    def _migration_v1_base(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS materials (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            type TEXT NOT NULL,
            cost_cents INTEGER NOT NULL CHECK(cost_cents >= 0),
            unit TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT (datetime('now'))
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS sofa_models (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            description TEXT,
            profit_percentage TEXT NOT NULL,
            base_price_cents INTEGER NOT NULL CHECK(base_price_cents >= 0),
            final_price_cents INTEGER NOT NULL CHECK(final_price_cents >= 0),
            created_at TEXT NOT NULL DEFAULT (datetime('now'))
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS sofa_materials (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            sofa_id INTEGER NOT NULL,
            material_id INTEGER NOT NULL,
            quantity TEXT NOT NULL CHECK(CAST(quantity AS REAL) > 0),
            FOREIGN KEY(sofa_id) REFERENCES sofa_models(id) ON DELETE CASCADE,
            FOREIGN KEY(material_id) REFERENCES materials(id),
            UNIQUE(sofa_id, material_id)
        )
        """
        )

        statuses = ",".join(f"'{s}'" for s in OrderStatus.ALL)
        cur.execute(
            f"""
        CREATE TABLE IF NOT EXISTS orders (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            customer_name TEXT NOT NULL,
            customer_phone TEXT,
            customer_email TEXT,
            customer_location TEXT,
            customer_address TEXT,
            status TEXT NOT NULL CHECK(status IN ({statuses})),
            delivery_date TEXT,
            payment_method TEXT NOT NULL,
            shipping_cost_cents INTEGER NOT NULL DEFAULT 0 CHECK(shipping_cost_cents >= 0),
            total_amount_cents INTEGER NOT NULL CHECK(total_amount_cents >= 0),
            notes TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS order_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            order_id INTEGER NOT NULL,
            sofa_id INTEGER NOT NULL,
            quantity INTEGER NOT NULL CHECK(quantity > 0),
            unit_price_cents INTEGER NOT NULL CHECK(unit_price_cents >= 0),
            total_price_cents INTEGER NOT NULL CHECK(total_price_cents = unit_price_cents * quantity),
            FOREIGN KEY(order_id) REFERENCES orders(id) ON DELETE CASCADE,
            FOREIGN KEY(sofa_id) REFERENCES sofa_models(id)
        )
        """
        )

    def _migration_v2_report_indexes(self, cur: sqlite3.Cursor) -> None:
        cur.execute("CREATE INDEX IF NOT EXISTS idx_orders_status_created ON orders(status, created_at)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_order_items_order ON order_items(order_id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_order_items_sofa ON order_items(sofa_id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_sofa_materials_material ON sofa_materials(material_id)")

    def integrity_check(self) -> str:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("PRAGMA integrity_check")
        row = cur.fetchone()
        conn.close()
        return str(row[0]) if row else "unknown"

    # ---------- Materials ----------
    @staticmethod
    def _material_from_row(r) -> Material:
        return Material(id=int(r[0]), name=str(r[1]), type=str(r[2]), cost=from_cents(r[3]), unit=str(r[4]))

    def add_material(self, name: str, type_: str, cost_cents: int, unit: str) -> int:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO materials (name, type, cost_cents, unit)
            VALUES (?, ?, ?, ?)
        """,
            (name, type_, int(cost_cents), unit),
        )
        mid = int(cur.lastrowid)
        conn.commit()
        conn.close()
        return mid

    def update_material(self, material_id: int, name: str, type_: str, cost_cents: int, unit: str) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            UPDATE materials
            SET name=?, type=?, cost_cents=?, unit=?
            WHERE id=?
        """,
            (name, type_, int(cost_cents), unit, int(material_id)),
        )
        changed = cur.rowcount > 0
        conn.commit()
        conn.close()
        return bool(changed)

    def delete_material(self, material_id: int) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute("DELETE FROM materials WHERE id=?", (int(material_id),))
            changed = cur.rowcount > 0
            conn.commit()
            return bool(changed)
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_material(self, material_id: int) -> Optional[Material]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT id, name, type, cost_cents, unit FROM materials WHERE id=?", (int(material_id),))
        r = cur.fetchone()
        conn.close()
        return self._material_from_row(r) if r else None

    def get_material_by_name(self, name: str) -> Optional[Material]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            "SELECT id, name, type, cost_cents, unit FROM materials WHERE lower(name)=lower(?) ORDER BY id LIMIT 1",
            (name,),
        )
        r = cur.fetchone()
        conn.close()
        return self._material_from_row(r) if r else None

    def list_materials(self) -> list[Material]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT id, name, type, cost_cents, unit FROM materials ORDER BY name, id")
        rows = cur.fetchall()
        conn.close()
        return [self._material_from_row(r) for r in rows]

    def count_models_using_material(self, material_id: int) -> int:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT COUNT(DISTINCT sofa_id) FROM sofa_materials WHERE material_id=?", (int(material_id),))
        count = int(cur.fetchone()[0])
        conn.close()
        return count

    def model_ids_using_material(self, material_id: int) -> list[int]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            "SELECT DISTINCT sofa_id FROM sofa_materials WHERE material_id=? ORDER BY sofa_id",
            (int(material_id),),
        )
        rows = cur.fetchall()
        conn.close()
        return [int(r[0]) for r in rows]

    # ---------- Sofa models ----------
    @staticmethod
    def _model_from_row(r) -> SofaModel:
        return SofaModel(
            id=int(r[0]),
            name=str(r[1]),
            description=(r[2] if r[2] is not None else None),
            profit_percentage=Decimal(str(r[3])),
            base_price=from_cents(r[4]),
            final_price=from_cents(r[5]),
        )

    def create_sofa_model_with_materials(
        self,
        name: str,
        description: Optional[str],
        profit_percentage: str,
        base_price_cents: int,
        final_price_cents: int,
        materials: Iterable[tuple[int, str]],
    ) -> int:
        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute(
                """
                INSERT INTO sofa_models (name, description, profit_percentage, base_price_cents, final_price_cents)
                VALUES (?, ?, ?, ?, ?)
            """,
                (name, description, str(profit_percentage), int(base_price_cents), int(final_price_cents)),
            )
            sofa_id = int(cur.lastrowid)
            self._insert_bom(cur, sofa_id, materials)
            conn.commit()
            return sofa_id
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def update_sofa_model_with_materials(
        self,
        sofa_id: int,
        name: str,
        description: Optional[str],
        profit_percentage: str,
        base_price_cents: int,
        final_price_cents: int,
        materials: Iterable[tuple[int, str]],
    ) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute(
                """
                UPDATE sofa_models
                SET name=?, description=?, profit_percentage=?, base_price_cents=?, final_price_cents=?
                WHERE id=?
            """,
                (name, description, str(profit_percentage), int(base_price_cents), int(final_price_cents), int(sofa_id)),
            )
            if cur.rowcount == 0:
                conn.rollback()
                return False
            cur.execute("DELETE FROM sofa_materials WHERE sofa_id=?", (int(sofa_id),))
            self._insert_bom(cur, int(sofa_id), materials)
            conn.commit()
            return True
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _insert_bom(self, cur: sqlite3.Cursor, sofa_id: int, materials: Iterable[tuple[int, str]]) -> None:
        for material_id, quantity in materials:
            cur.execute(
                """
                INSERT INTO sofa_materials (sofa_id, material_id, quantity)
                VALUES (?, ?, ?)
            """,
                (int(sofa_id), int(material_id), str(quantity)),
            )

    def update_sofa_model_prices(self, sofa_id: int, base_price_cents: int, final_price_cents: int) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            "UPDATE sofa_models SET base_price_cents=?, final_price_cents=? WHERE id=?",
            (int(base_price_cents), int(final_price_cents), int(sofa_id)),
        )
        changed = cur.rowcount > 0
        conn.commit()
        conn.close()
        return bool(changed)

    def delete_sofa_model(self, sofa_id: int) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute("DELETE FROM sofa_models WHERE id=?", (int(sofa_id),))
            changed = cur.rowcount > 0
            conn.commit()
            return bool(changed)
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_sofa_model(self, sofa_id: int) -> Optional[SofaModel]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            SELECT id, name, description, profit_percentage, base_price_cents, final_price_cents
            FROM sofa_models
            WHERE id=?
        """,
            (int(sofa_id),),
        )
        r = cur.fetchone()
        conn.close()
        return self._model_from_row(r) if r else None

    def list_sofa_models(self) -> list[SofaModel]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            SELECT id, name, description, profit_percentage, base_price_cents, final_price_cents
            FROM sofa_models
            ORDER BY name, id
        """
        )
        rows = cur.fetchall()
        conn.close()
        return [self._model_from_row(r) for r in rows]

    def bom_for_model(self, sofa_id: int) -> list[BomLine]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            SELECT m.id, m.name, m.type, m.unit, m.cost_cents, sm.quantity
            FROM sofa_materials sm
            JOIN materials m ON m.id = sm.material_id
            WHERE sm.sofa_id = ?
            ORDER BY sm.id
        """,
            (int(sofa_id),),
        )
        rows = cur.fetchall()
        conn.close()
        return [
            BomLine(
                material_id=int(r[0]),
                name=str(r[1]),
                type=str(r[2]),
                unit=str(r[3]),
                cost=from_cents(r[4]),
                quantity=Decimal(str(r[5])),
            )
            for r in rows
        ]

    def count_order_items_for_model(self, sofa_id: int) -> int:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT COUNT(*) FROM order_items WHERE sofa_id=?", (int(sofa_id),))
        count = int(cur.fetchone()[0])
        conn.close()
        return count

    # ---------- Orders ----------
    @staticmethod
    def _order_from_row(r) -> Order:
        return Order(
            id=int(r[0]),
            customer_name=str(r[1]),
            customer_phone=r[2],
            customer_email=r[3],
            customer_location=r[4],
            customer_address=r[5],
            status=str(r[6]),
            delivery_date=r[7],
            payment_method=str(r[8]),
            shipping_cost=from_cents(r[9]),
            total_amount=from_cents(r[10]),
            notes=r[11],
            created_at=str(r[12]),
        )

    def create_order_with_items(
        self,
        created_at: str,
        fields: dict,
        shipping_cost_cents: int,
        total_amount_cents: int,
        items: Iterable[dict],
    ) -> int:
        """
        items: [{sofa_id, quantity, unit_price_cents, total_price_cents}]
        """
        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute(
                """
                INSERT INTO orders (
                    customer_name, customer_phone, customer_email, customer_location, customer_address,
                    status, delivery_date, payment_method, notes,
                    shipping_cost_cents, total_amount_cents, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                tuple(fields.get(f) for f in _ORDER_FIELDS)
                + (int(shipping_cost_cents), int(total_amount_cents), created_at),
            )
            order_id = int(cur.lastrowid)

            for it in items:
                cur.execute(
                    """
                    INSERT INTO order_items (order_id, sofa_id, quantity, unit_price_cents, total_price_cents)
                    VALUES (?, ?, ?, ?, ?)
                """,
                    (
                        order_id,
                        int(it["sofa_id"]),
                        int(it["quantity"]),
                        int(it["unit_price_cents"]),
                        int(it["total_price_cents"]),
                    ),
                )

            conn.commit()
            return order_id
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def update_order(self, order_id: int, fields: dict, updated_at: str) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        assignments = ", ".join(f"{f}=?" for f in _ORDER_FIELDS)
        cur.execute(
            f"UPDATE orders SET {assignments}, updated_at=? WHERE id=?",
            tuple(fields.get(f) for f in _ORDER_FIELDS) + (updated_at, int(order_id)),
        )
        changed = cur.rowcount > 0
        conn.commit()
        conn.close()
        return bool(changed)

    def update_order_status(self, order_id: int, status: str, updated_at: str) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            "UPDATE orders SET status=?, updated_at=? WHERE id=?",
            (status, updated_at, int(order_id)),
        )
        changed = cur.rowcount > 0
        conn.commit()
        conn.close()
        return bool(changed)

    def delete_order(self, order_id: int) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("DELETE FROM orders WHERE id=?", (int(order_id),))
        changed = cur.rowcount > 0
        conn.commit()
        conn.close()
        return bool(changed)

    def get_order(self, order_id: int) -> Optional[Order]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(f"SELECT {_ORDER_COLUMNS} FROM orders WHERE id=?", (int(order_id),))
        r = cur.fetchone()
        conn.close()
        return self._order_from_row(r) if r else None

    def list_orders(self, status: Optional[str] = None, limit: Optional[int] = None) -> list[Order]:
        conn = self._conn()
        cur = conn.cursor()
        sql = f"SELECT {_ORDER_COLUMNS} FROM orders"
        params: list = []
        if status is not None:
            sql += " WHERE status=?"
            params.append(status)
        sql += " ORDER BY created_at DESC, id DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))
        cur.execute(sql, tuple(params))
        rows = cur.fetchall()
        conn.close()
        return [self._order_from_row(r) for r in rows]

    def order_items_for_order(self, order_id: int) -> list[OrderItem]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            SELECT oi.id, oi.order_id, oi.sofa_id, sm.name, oi.quantity, oi.unit_price_cents, oi.total_price_cents
            FROM order_items oi
            JOIN sofa_models sm ON sm.id = oi.sofa_id
            WHERE oi.order_id = ?
            ORDER BY oi.id
        """,
            (int(order_id),),
        )
        rows = cur.fetchall()
        conn.close()
        return [
            OrderItem(
                id=int(r[0]),
                order_id=int(r[1]),
                sofa_id=int(r[2]),
                sofa_name=str(r[3]),
                quantity=int(r[4]),
                unit_price=from_cents(r[5]),
                total_price=from_cents(r[6]),
            )
            for r in rows
        ]

    # ---------- Reports ----------
    def count_rows(self) -> tuple[int, int, int]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            SELECT (SELECT COUNT(*) FROM materials),
                   (SELECT COUNT(*) FROM sofa_models),
                   (SELECT COUNT(*) FROM orders)
            """
        )
        materials, models, orders = cur.fetchone()
        conn.close()
        return int(materials), int(models), int(orders)

    def order_status_summary(self) -> tuple[int, int, int, int]:
        """Returns (completed revenue cents, total, completed, pending)."""
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            SELECT COALESCE(SUM(CASE WHEN status='completed' THEN total_amount_cents ELSE 0 END), 0),
                   COUNT(*),
                   COALESCE(SUM(CASE WHEN status='completed' THEN 1 ELSE 0 END), 0),
                   COALESCE(SUM(CASE WHEN status='pending' THEN 1 ELSE 0 END), 0)
            FROM orders
            """
        )
        revenue, total, completed, pending = cur.fetchone()
        conn.close()
        return int(revenue), int(total), int(completed), int(pending)

    def monthly_completed_totals(self, year: Optional[str] = None) -> dict[int, int]:
        """Completed sales by calendar month; every year is folded in when year is None."""
        conn = self._conn()
        cur = conn.cursor()
        sql = """
            SELECT CAST(substr(created_at, 6, 2) AS INTEGER) AS m, COALESCE(SUM(total_amount_cents), 0)
            FROM orders
            WHERE status='completed'
            """
        params: tuple = ()
        if year is not None:
            sql += " AND substr(created_at, 1, 4) = ?"
            params = (year,)
        cur.execute(sql + " GROUP BY m", params)
        rows = cur.fetchall()
        conn.close()
        return {int(r[0]): int(r[1]) for r in rows}

    def top_sofas_completed(self, limit: int = 10) -> list[tuple[str, int, int]]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            SELECT sm.name, SUM(oi.quantity) AS units, SUM(oi.total_price_cents)
            FROM order_items oi
            JOIN orders o ON o.id = oi.order_id
            JOIN sofa_models sm ON sm.id = oi.sofa_id
            WHERE o.status = 'completed'
            GROUP BY sm.id
            ORDER BY units DESC, sm.name ASC
            LIMIT ?
            """,
            (int(limit),),
        )
        rows = cur.fetchall()
        conn.close()
        return [(str(r[0]), int(r[1]), int(r[2])) for r in rows]

    def bom_quantities_by_material(self) -> list[tuple[str, str]]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            SELECT m.name, sm.quantity
            FROM sofa_materials sm
            JOIN materials m ON m.id = sm.material_id
            ORDER BY m.name
            """
        )
        rows = cur.fetchall()
        conn.close()
        return [(str(r[0]), str(r[1])) for r in rows]
