"""
CLI: ejecuta una transferencia para una fila (fuera del API).

Uso recomendado:
  - Reprocesar a mano una fila cuyo evento falló o se perdió.
  - Con TABLE_BACKEND=sql contra la misma base que usa el API.

Ejecución:
  python scripts/run_transfer.py --list
  python scripts/run_transfer.py forecast_to_upcoming --row 7
  python scripts/run_transfer.py upcoming_to_inventory --row 3 --source-table upcoming
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

load_dotenv(_ROOT / ".env", override=False)

from record_sync.application.use_cases.transfer_use_cases import EditEvent
from record_sync.core.config import get_settings
from record_sync.domain.entities.audit import TransferResult
from record_sync.infrastructure.bootstrap import build_transfer_service
from record_sync.shared.exceptions.base import AppException


def main() -> int:
    parser = argparse.ArgumentParser(description="Ejecuta una transferencia de registros")
    parser.add_argument("spec_name", nargs="?", help="Nombre de la transferencia")
    parser.add_argument("--row", type=int, help="Fila origen (>= 2)")
    parser.add_argument("--source-table", help="Tabla origen (por defecto la de la transferencia)")
    parser.add_argument("--column", type=int, default=None, help="Columna editada (filtra por triggerColumn)")
    parser.add_argument("--correlation-id", default=None)
    parser.add_argument("--list", action="store_true", help="Solo lista las transferencias configuradas")
    args = parser.parse_args()

    settings = get_settings()
    try:
        service = build_transfer_service(settings)
    except AppException as e:
        logger.error(f"No se pudo iniciar: {e.message}")
        return 2

    if args.list:
        for name, spec in sorted(service.specs.items()):
            print(f"{name}: {spec.source_table or '*'} -> {spec.destination_table}  {spec.description}")
        return 0

    if not args.spec_name or args.row is None:
        parser.error("spec_name y --row son obligatorios")
    if args.row < 2:
        parser.error("--row debe ser >= 2 (la fila 1 es el encabezado)")

    try:
        spec = service.get_spec(args.spec_name)
    except AppException as e:
        logger.error(e.message)
        return 2

    source_table = args.source_table or spec.source_table
    if not source_table:
        parser.error("La transferencia no declara sourceTable; usar --source-table")

    event = EditEvent(
        source_table=source_table,
        row=args.row,
        column=args.column,
        correlation_id=args.correlation_id,
    )
    outcome = service.handle_edit(args.spec_name, event)
    if outcome is None:
        logger.info("Evento ignorado por la transferencia (tabla o columna no disparan)")
        return 0

    print(json.dumps(outcome.audit.to_dict(), ensure_ascii=False, indent=2, default=str))
    return 1 if outcome.result is TransferResult.ERROR else 0


if __name__ == "__main__":
    raise SystemExit(main())
