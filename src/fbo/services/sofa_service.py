from __future__ import annotations

import logging
import sqlite3
from decimal import Decimal
from typing import Callable, Iterable, Optional

from fbo.domain.errors import ConflictError, NotFoundError, ValidationError
from fbo.domain.models import BomLine, SofaModel
from fbo.domain.pricing import compute_base_price, compute_final_price, to_cents, to_decimal
from fbo.repositories.unit_of_work import RepositoryUnitOfWork, UnitOfWork

log = logging.getLogger("fbo.pricing")


class SofaModelService:
    def __init__(self, repo, uow_factory: Callable[[], UnitOfWork] | None = None):
        self.repo = repo
        self.uow_factory = uow_factory or (lambda: RepositoryUnitOfWork(repo))

    def list_models(self) -> list[SofaModel]:
        return self.repo.list_sofa_models()

    def get_model(self, sofa_id: int) -> SofaModel:
        model = self.repo.get_sofa_model(int(sofa_id))
        if not model:
            raise NotFoundError("Sofa model not found.")
        return model

    def get_bill_of_materials(self, sofa_id: int) -> list[BomLine]:
        self.get_model(sofa_id)
        return self.repo.bom_for_model(int(sofa_id))

    def _resolve_bom(self, materials: Iterable[dict]) -> list[dict]:
        """
        materials: [{material_id, quantity}]

        Returns [{material_id, cost, quantity}] with current material costs.
        """
        resolved = []
        seen: set[int] = set()
        for it in materials:
            try:
                material_id = int(it["material_id"])
                quantity = to_decimal(it["quantity"])
            except (KeyError, TypeError, ValueError) as e:
                raise ValidationError(f"Invalid bill of materials line: {it!r}") from e
            if quantity <= 0:
                raise ValidationError("Quantity must be > 0.")
            if material_id in seen:
                raise ValidationError("A material can appear only once per model.")
            seen.add(material_id)

            material = self.repo.get_material(material_id)
            if not material:
                raise NotFoundError(f"Material not found: {material_id}")
            resolved.append({"material_id": material_id, "cost": material.cost, "quantity": quantity})
        return resolved

    @staticmethod
    def _clean_header(name: str, profit_percentage) -> tuple[str, Decimal]:
        name = (name or "").strip()
        if len(name) < 2:
            raise ValidationError("Name must be at least 2 characters.")
        profit = to_decimal(profit_percentage)
        if profit < 0:
            raise ValidationError("Profit percentage must be >= 0.")
        return name, profit

    def quote_model(self, materials: Iterable[dict], profit_percentage) -> tuple[Decimal, Decimal]:
        """Live preview of (base_price, final_price); nothing is saved."""
        profit = to_decimal(profit_percentage)
        if profit < 0:
            raise ValidationError("Profit percentage must be >= 0.")
        bom = self._resolve_bom(materials)
        base = compute_base_price(bom)
        return base, compute_final_price(base, profit)

    def create_model(
        self,
        name: str,
        description: Optional[str],
        profit_percentage,
        materials: Iterable[dict] = (),
    ) -> int:
        name, profit = self._clean_header(name, profit_percentage)
        bom = self._resolve_bom(materials)
        base = compute_base_price(bom)
        final = compute_final_price(base, profit)

        with self.uow_factory() as uow:
            sofa_id = uow.create_sofa_model(
                name,
                (description or "").strip() or None,
                str(profit),
                to_cents(base),
                to_cents(final),
                [(b["material_id"], str(b["quantity"])) for b in bom],
            )
        log.info("sofa_model_created sofa_id=%s materials=%s base=%s final=%s", sofa_id, len(bom), base, final)
        return sofa_id

    def update_model(
        self,
        sofa_id: int,
        name: str,
        description: Optional[str],
        profit_percentage,
        materials: Iterable[dict] = (),
    ) -> None:
        """Replaces header and bill of materials, then re-snapshots both prices."""
        self.get_model(sofa_id)
        name, profit = self._clean_header(name, profit_percentage)
        bom = self._resolve_bom(materials)
        base = compute_base_price(bom)
        final = compute_final_price(base, profit)

        with self.uow_factory() as uow:
            updated = uow.replace_sofa_model(
                int(sofa_id),
                name,
                (description or "").strip() or None,
                str(profit),
                to_cents(base),
                to_cents(final),
                [(b["material_id"], str(b["quantity"])) for b in bom],
            )
        if not updated:
            raise NotFoundError("Sofa model not found.")
        log.info("sofa_model_updated sofa_id=%s materials=%s base=%s final=%s", sofa_id, len(bom), base, final)

    def reprice_model(self, sofa_id: int) -> SofaModel:
        model = self.get_model(sofa_id)
        bom = self.repo.bom_for_model(int(sofa_id))
        base = compute_base_price(bom)
        final = compute_final_price(base, model.profit_percentage)
        if base == model.base_price and final == model.final_price:
            return model

        self.repo.update_sofa_model_prices(int(sofa_id), to_cents(base), to_cents(final))
        log.info(
            "sofa_model_repriced sofa_id=%s base=%s->%s final=%s->%s",
            sofa_id, model.base_price, base, model.final_price, final,
        )
        return self.get_model(sofa_id)

    def reprice_models_using_material(self, material_id: int) -> list[SofaModel]:
        return [self.reprice_model(sid) for sid in self.repo.model_ids_using_material(int(material_id))]

    def delete_model(self, sofa_id: int) -> None:
        self.get_model(sofa_id)
        in_orders = self.repo.count_order_items_for_model(int(sofa_id))
        if in_orders:
            raise ConflictError(f"Sofa model is referenced by {in_orders} order item(s).")
        try:
            removed = self.repo.delete_sofa_model(int(sofa_id))
        except sqlite3.IntegrityError as e:
            raise ConflictError("Sofa model is still referenced.") from e
        if not removed:
            raise NotFoundError("Sofa model not found.")
        log.info("sofa_model_deleted sofa_id=%s", sofa_id)
