from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Protocol


class UnitOfWork(Protocol):
    def __enter__(self) -> "UnitOfWork": ...
    def __exit__(self, exc_type, exc, tb) -> None: ...
    def create_order(self, fields: dict, shipping_cost_cents: int, total_amount_cents: int, items: Iterable[dict], created_at: Optional[str] = None) -> int: ...
    def create_sofa_model(self, name: str, description: Optional[str], profit_percentage: str, base_price_cents: int, final_price_cents: int, materials: Iterable[tuple[int, str]]) -> int: ...
    def replace_sofa_model(self, sofa_id: int, name: str, description: Optional[str], profit_percentage: str, base_price_cents: int, final_price_cents: int, materials: Iterable[tuple[int, str]]) -> bool: ...


def now_iso() -> str:
    return datetime.now().replace(microsecond=0).isoformat(sep=" ")


@dataclass
class RepositoryUnitOfWork:
    """Unit of Work adapter for multi-row writes.

    Each repository method used here runs its inserts in one SQL transaction.
    This class keeps the services unaware of how that is done.
    """

    repo: object

    def __enter__(self) -> "RepositoryUnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None

    def create_order(
        self,
        fields: dict,
        shipping_cost_cents: int,
        total_amount_cents: int,
        items: Iterable[dict],
        created_at: Optional[str] = None,
    ) -> int:
        return int(
            self.repo.create_order_with_items(
                created_at=created_at or now_iso(),
                fields=fields,
                shipping_cost_cents=shipping_cost_cents,
                total_amount_cents=total_amount_cents,
                items=list(items),
            )
        )

    def create_sofa_model(
        self,
        name: str,
        description: Optional[str],
        profit_percentage: str,
        base_price_cents: int,
        final_price_cents: int,
        materials: Iterable[tuple[int, str]],
    ) -> int:
        return int(
            self.repo.create_sofa_model_with_materials(
                name, description, profit_percentage, base_price_cents, final_price_cents, list(materials)
            )
        )

    def replace_sofa_model(
        self,
        sofa_id: int,
        name: str,
        description: Optional[str],
        profit_percentage: str,
        base_price_cents: int,
        final_price_cents: int,
        materials: Iterable[tuple[int, str]],
    ) -> bool:
        return bool(
            self.repo.update_sofa_model_with_materials(
                sofa_id, name, description, profit_percentage, base_price_cents, final_price_cents, list(materials)
            )
        )
