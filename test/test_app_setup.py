import json
import logging
from pathlib import Path

import pytest

from conftest import seed_catalogue
from fbo.application.container import build_container
from fbo.config import get_app_paths
from fbo.logging_config import JsonFormatter, setup_logging
from fbo.main import render_overview
from fbo.repositories.sqlite_repo import SqliteRepository


def test_migrations_are_idempotent(tmp_path: Path):
    db = tmp_path / "factory.db"
    repo = SqliteRepository(db)
    repo.init_db()
    repo.init_db()

    assert repo.schema_version() == 2
    assert repo.integrity_check() == "ok"


def test_up_to_date_database_is_not_backed_up(tmp_path: Path):
    db = tmp_path / "factory.db"
    repo = SqliteRepository(db)
    repo.init_db()
    before = sorted(p.name for p in tmp_path.iterdir())

    repo.init_db()
    repo.init_db()

    assert sorted(p.name for p in tmp_path.iterdir()) == before


def test_failed_migration_restores_database(tmp_path: Path):
    db = tmp_path / "factory.db"
    repo = SqliteRepository(db)
    repo.init_db()
    repo.add_material("Tela", "Tapizado", 100, "m")

    class BrokenRepo(SqliteRepository):
        def _migration_v2_report_indexes(self, cur):
            raise RuntimeError("boom")

    conn = repo._conn()
    conn.execute("DELETE FROM schema_migrations WHERE version = 2")
    conn.commit()
    conn.close()

    with pytest.raises(RuntimeError, match="restored"):
        BrokenRepo(db).init_db()

    assert [m.name for m in repo.list_materials()] == ["Tela"]
    assert repo.schema_version() == 1


def test_app_paths_honour_home_override(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("FBO_HOME", str(tmp_path / "home"))
    paths = get_app_paths()
    assert paths.db_path == tmp_path / "home" / "factory.db"
    assert paths.logs_dir.is_dir()


def test_json_formatter_emits_one_object_per_record():
    record = logging.LogRecord("fbo.orders", logging.INFO, __file__, 1, "order_created order_id=%s", (7,), None)
    payload = json.loads(JsonFormatter().format(record))
    assert payload["logger"] == "fbo.orders"
    assert payload["message"] == "order_created order_id=7"


def test_setup_logging_creates_dedicated_order_log(tmp_path: Path):
    root = logging.getLogger()
    saved = root.handlers[:]
    saved_level = root.level
    root.handlers = []
    try:
        setup_logging(tmp_path / "logs")
        orders_logger = logging.getLogger("fbo.orders")
        assert any(getattr(h, "baseFilename", "").endswith("orders.log") for h in orders_logger.handlers)
        pricing_logger = logging.getLogger("fbo.pricing")
        assert any(getattr(h, "baseFilename", "").endswith("pricing.log") for h in pricing_logger.handlers)
        assert pricing_logger.level == logging.INFO
        assert (tmp_path / "logs" / "app.log").exists()
    finally:
        for name in ("fbo.orders", "fbo.pricing"):
            for h in logging.getLogger(name).handlers[:]:
                h.close()
                logging.getLogger(name).removeHandler(h)
        for h in root.handlers[:]:
            h.close()
        root.handlers = saved
        root.setLevel(saved_level)


def test_overview_lists_counts_and_recent_orders(tmp_path: Path):
    container = build_container(tmp_path / "factory.db")
    _, _, sofa_id = seed_catalogue(container)
    container.orders.create_order("Juan Perez", [{"sofa_id": sofa_id, "quantity": 1}], status="completed")

    text = render_overview(container)

    assert "Sofa models:  1" in text
    assert "Completed:    1 (100% of total)" in text
    assert "Juan Perez [completed] $ 17.056,80" in text
