import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture
def repo(tmp_path: Path):
    from fbo.repositories.sqlite_repo import SqliteRepository

    r = SqliteRepository(tmp_path / "factory.db")
    r.init_db()
    return r


@pytest.fixture
def container(tmp_path: Path):
    from fbo.application.container import build_container

    return build_container(tmp_path / "factory.db")


def seed_catalogue(container):
    """Two materials and one model using both. Returns (fabric_id, foam_id, sofa_id)."""
    fabric = container.materials.add_material("Tela chenille", "Tela", "1500.00", "metro")
    foam = container.materials.add_material("Espuma 30kg", "Relleno", "800.50", "plancha")
    sofa = container.sofa_models.create_model(
        "Chesterfield",
        "Tres cuerpos",
        30,
        [
            {"material_id": fabric, "quantity": "6.5"},
            {"material_id": foam, "quantity": 2},
        ],
    )
    return fabric, foam, sofa
