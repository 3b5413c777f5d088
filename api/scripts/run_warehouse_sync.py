"""
CLI: BigQuery -> Postgres (corrida única del motor de sync).

Uso recomendado:
  - Ejecutar como job (cron/systemd timer) cuando el scheduler embebido
    del API está deshabilitado (SYNC_SCHEDULER_ENABLED=false).

Variables de entorno requeridas:
  - GOOGLE_SERVICE_ACCOUNT_JSON
  - DATABASE_URL (o DATABASE_HOST/PORT/USER/PASSWORD/NAME)

Ejecución:
  python scripts/run_warehouse_sync.py
  python scripts/run_warehouse_sync.py --tenant-id T1 --model-name orders
  python scripts/run_warehouse_sync.py --tenant-id T1 --model-name orders --full-sync
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
# La carpeta "api" contiene el paquete raíz `warehouse_sync/`.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

# Cargar variables desde .env si existe (api/.env o raíz del repo).
_REPO_ROOT = _API_ROOT.parent
load_dotenv(_API_ROOT / ".env", override=False)
load_dotenv(_REPO_ROOT / ".env", override=False)

from warehouse_sync.application.use_cases.warehouse_sync_use_cases import build_from_settings
from warehouse_sync.core.config import Settings
from warehouse_sync.shared.exceptions.sync import SyncException


def main() -> int:
    parser = argparse.ArgumentParser(description="Corrida única BigQuery -> Postgres")
    parser.add_argument("--tenant-id", default=None, help="Restringe la corrida a un tenant.")
    parser.add_argument("--model-name", default=None, help="Restringe la corrida a un modelo.")
    parser.add_argument(
        "--full-sync",
        action="store_true",
        help="Resetea el cursor antes de correr (requiere --tenant-id y --model-name).",
    )
    args = parser.parse_args()

    if args.full_sync and not (args.tenant_id and args.model_name):
        parser.error("--full-sync requiere --tenant-id y --model-name")

    try:
        use_cases = build_from_settings(Settings())
        summary = use_cases.run(
            tenant_id=args.tenant_id,
            model_name=args.model_name,
            full_sync=args.full_sync,
        )
    except SyncException as e:
        logger.error(f"Sync abortado: {e.message}")
        return 1

    for result in summary.results:
        detail = f" ({result.error})" if result.error else ""
        logger.info(
            f"{result.tenant_id}/{result.model_name}: {result.status.value}, "
            f"{result.records_synced} registro(s){detail}"
        )
    logger.info(
        f"Sync OK: synced={summary.synced_count}, failed={summary.failed_count}, "
        f"skipped={summary.skipped_count}"
    )
    return 1 if summary.failed_count else 0


if __name__ == "__main__":
    raise SystemExit(main())
