from __future__ import annotations

import logging
import sqlite3

from fbo.domain.errors import ConflictError, NotFoundError, ValidationError
from fbo.domain.models import Material
from fbo.domain.pricing import to_cents, to_money

log = logging.getLogger(__name__)


class MaterialService:
    def __init__(self, repo):
        self.repo = repo

    def list_materials(self) -> list[Material]:
        return self.repo.list_materials()

    def get_material(self, material_id: int) -> Material:
        m = self.repo.get_material(int(material_id))
        if not m:
            raise NotFoundError("Material not found.")
        return m

    def _clean(self, name: str, type_: str, cost, unit: str) -> tuple[str, str, int, str]:
        name = (name or "").strip()
        type_ = (type_ or "").strip()
        unit = (unit or "").strip()
        if len(name) < 2:
            raise ValidationError("Name must be at least 2 characters.")
        if len(type_) < 2:
            raise ValidationError("Type must be at least 2 characters.")
        if not unit:
            raise ValidationError("Unit is required.")
        cost = to_money(cost)
        if cost <= 0:
            raise ValidationError("Cost must be > 0.")
        return name, type_, to_cents(cost), unit

    def add_material(self, name: str, type_: str, cost, unit: str) -> int:
        name, type_, cost_cents, unit = self._clean(name, type_, cost, unit)
        mid = self.repo.add_material(name, type_, cost_cents, unit)
        log.info("material_added material_id=%s name=%s cost_cents=%s", mid, name, cost_cents)
        return mid

    def update_material(self, material_id: int, name: str, type_: str, cost, unit: str) -> None:
        """Saved model prices are snapshots; use SofaModelService.reprice_model to refresh them."""
        name, type_, cost_cents, unit = self._clean(name, type_, cost, unit)
        updated = self.repo.update_material(int(material_id), name, type_, cost_cents, unit)
        if not updated:
            raise NotFoundError("Material not found.")
        log.info("material_updated material_id=%s cost_cents=%s", material_id, cost_cents)

    def delete_material(self, material_id: int) -> None:
        self.get_material(material_id)
        used_by = self.repo.count_models_using_material(int(material_id))
        if used_by:
            raise ConflictError(f"Material is used by {used_by} sofa model(s).")
        try:
            removed = self.repo.delete_material(int(material_id))
        except sqlite3.IntegrityError as e:
            raise ConflictError("Material is still referenced.") from e
        if not removed:
            raise NotFoundError("Material not found.")
        log.info("material_deleted material_id=%s", material_id)
