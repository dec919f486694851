from __future__ import annotations

import logging

from openpyxl import load_workbook

from fbo.domain.errors import ValidationError

log = logging.getLogger(__name__)


class ExcelService:
    def __init__(self, repo, material_service):
        self.repo = repo
        self.materials = material_service

    def import_materials_excel(self, path: str) -> tuple[int, int]:
        """
        Bulk load of the materials catalogue.
        Headers:
          name | type | cost | unit

        A row whose name matches an existing material (case-insensitive)
        updates it; any other row creates a material.
        """
        wb = load_workbook(path, read_only=True, data_only=True)
        try:
            ok, skipped = self._import_rows(wb.active.iter_rows(values_only=True))
        finally:
            wb.close()
        log.info("materials_imported path=%s ok=%s skipped=%s", path, ok, skipped)
        return ok, skipped

    def _import_rows(self, rows) -> tuple[int, int]:
        header_row = next(rows, None) or ()
        headers = {}
        for col, v in enumerate(header_row):
            if isinstance(v, str):
                headers[v.strip().lower()] = col

        required = ["name", "type", "cost", "unit"]
        for r in required:
            if r not in headers:
                raise ValidationError(f"Missing column header: {r}")

        ok = 0
        skipped = 0

        for row_no, row in enumerate(rows, start=2):
            values = {k: (row[c] if c < len(row) else None) for k, c in headers.items()}
            name, type_, cost, unit = (values[k] for k in required)
            if not name or cost is None:
                skipped += 1
                continue
            try:
                existing = self.repo.get_material_by_name(str(name).strip())
                if existing:
                    self.materials.update_material(existing.id, str(name), str(type_ or ""), cost, str(unit or ""))
                else:
                    self.materials.add_material(str(name), str(type_ or ""), cost, str(unit or ""))
                ok += 1
            except ValidationError as e:
                log.warning("Excel import skipped row %s: %s", row_no, e)
                skipped += 1

        return ok, skipped
