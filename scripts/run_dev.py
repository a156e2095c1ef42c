"""
Script para ejecutar el servidor en modo desarrollo.
"""
import sys
from pathlib import Path

import uvicorn

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from record_sync.core.config import get_settings


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "record_sync.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level=settings.LOG_LEVEL.lower(),
    )
