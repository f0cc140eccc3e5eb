"""
Convención de nombres de los artefactos de backup

Formato: <motor>_backup_<YYYYMMDD_HHMMSS><sufijo>
"""
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from .config import Config
from .models import EngineKind

PARTIAL_SUFFIX = ".part"

_TIMESTAMP_RE = re.compile(r"_backup_(\d{8}_\d{6})")


def new_timestamp(now: Optional[datetime] = None) -> str:
    """Genera el timestamp compartido por todos los artefactos de una ejecución"""
    return (now or datetime.now()).strftime(Config.TIMESTAMP_FORMAT)


def artifact_basename(engine: EngineKind, timestamp: str) -> str:
    """Nombre base (sin extensión) del artefacto de un motor"""
    return f"{engine.value}_backup_{timestamp}"


def artifact_filename(engine: EngineKind, timestamp: str, suffix: str) -> str:
    return f"{artifact_basename(engine, timestamp)}{suffix}"


def partial_path(final_path: Path) -> Path:
    """Ruta temporal usada mientras el artefacto se escribe"""
    return final_path.with_name(final_path.name + PARTIAL_SUFFIX)


def parse_timestamp(name: str) -> Optional[datetime]:
    """
    Extrae el timestamp embebido en el nombre de un artefacto

    Returns:
        datetime o None si el nombre no contiene un timestamp válido
    """
    match = _TIMESTAMP_RE.search(name)
    if not match:
        return None
    try:
        return datetime.strptime(match.group(1), Config.TIMESTAMP_FORMAT)
    except ValueError:
        return None


def engine_from_filename(name: str) -> Optional[EngineKind]:
    """Motor indicado por el prefijo del nombre del artefacto"""
    for engine in EngineKind:
        if name.startswith(f"{engine.value}_backup_"):
            return engine
    return None
