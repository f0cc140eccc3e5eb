"""
Servicio para limpiar backups antiguos (Single Responsibility)
"""
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional
from ..exceptions import PruneFailed
from ..logger import LoggerService
from ..naming import parse_timestamp


@dataclass
class PruneResult:
    """Resultado de una limpieza"""
    deleted: List[Path] = field(default_factory=list)
    failures: List[PruneFailed] = field(default_factory=list)
    disabled: bool = False

    @property
    def deleted_count(self) -> int:
        return len(self.deleted)


class CleanupService:
    """Servicio para limpiar backups antiguos"""

    # (patrón, tipo): True solo directorios, False solo archivos, None ambos
    PRUNE_PATTERNS = [
        ('*_backup_*.sql.gz', False),
        ('*_backup_*.rdb.gz', False),
        ('mongodb_backup_*.tar.gz', False),
        ('mongodb_backup_*', True),
        ('*_backup_*.sql', False),       # sin comprimir tras un fallo de compresión
        ('*_backup_*.rdb', False),
        ('*_backup_*.part', None),       # restos de ejecuciones interrumpidas
        ('.mongodb_work_*', True),
    ]

    STATS_PATTERNS = [
        ('*_backup_*.sql.gz', False),
        ('*_backup_*.rdb.gz', False),
        ('mongodb_backup_*.tar.gz', False),
        ('*_backup_*.sql', False),
        ('*_backup_*.rdb', False),
        ('mongodb_backup_*', True),
    ]

    def __init__(self, retention_days: int):
        """
        Inicializa el servicio de limpieza

        Args:
            retention_days: Días de retención de backups (0 desactiva la limpieza)
        """
        if retention_days < 0:
            raise ValueError("retention_days no puede ser negativo")
        self.retention_days = retention_days
        self.logger = LoggerService.get_logger("CleanupService")

    def cleanup_old_backups(self, backup_dir: Path, now: Optional[datetime] = None) -> PruneResult:
        """
        Elimina los backups con antigüedad estrictamente mayor a retention_days

        La antigüedad se calcula con el timestamp del nombre y, si no se puede
        interpretar, con la fecha de modificación. Un fallo al eliminar un
        backup no detiene la limpieza del resto.

        Args:
            backup_dir: Directorio de backups
            now: Instante de referencia (por defecto, ahora)

        Returns:
            Resultado de la limpieza
        """
        result = PruneResult()

        if self.retention_days == 0:
            self.logger.info("Limpieza desactivada (retention_days = 0)")
            result.disabled = True
            return result

        if not backup_dir.exists():
            self.logger.warning(f"Directorio de backups no existe: {backup_dir}")
            return result

        now = now or datetime.now()

        for candidate in self._candidates(backup_dir, self.PRUNE_PATTERNS):
            try:
                age_days = self.get_age_days(candidate, now)
                if age_days <= self.retention_days:
                    continue

                size_mb = self._size_bytes(candidate) / (1024 * 1024)
                if candidate.is_dir():
                    shutil.rmtree(candidate)
                else:
                    candidate.unlink()
                result.deleted.append(candidate)
                self.logger.info(
                    f"Eliminado backup antiguo: {candidate.name} "
                    f"({size_mb:.2f} MB, {age_days:.1f} días)"
                )
            except OSError as e:
                failure = PruneFailed(candidate, str(e))
                result.failures.append(failure)
                self.logger.error(f"Error al eliminar {candidate.name}: {e}")

        if result.deleted:
            self.logger.info(
                f"Limpieza completada: {result.deleted_count} backup(s) eliminado(s)"
            )
        else:
            self.logger.info("No hay backups antiguos para eliminar")

        return result

    @staticmethod
    def get_age_days(path: Path, now: datetime) -> float:
        """Antigüedad en días según el timestamp del nombre o, en su defecto, mtime"""
        created = parse_timestamp(path.name)
        if created is None:
            created = datetime.fromtimestamp(path.stat().st_mtime)
        return (now - created).total_seconds() / 86400

    def get_backup_stats(self, backup_dir: Path) -> dict:
        """
        Obtiene estadísticas de los backups

        Args:
            backup_dir: Directorio de backups

        Returns:
            Diccionario con estadísticas
        """
        empty = {
            'total_files': 0,
            'total_size_mb': 0,
            'oldest_backup': None,
            'newest_backup': None,
            'by_engine': {}
        }

        if not backup_dir.exists():
            return empty

        try:
            artifacts = list(self._candidates(backup_dir, self.STATS_PATTERNS))
            if not artifacts:
                return empty

            def created(path: Path) -> datetime:
                return parse_timestamp(path.name) or datetime.fromtimestamp(path.stat().st_mtime)

            by_engine = {}
            for path in artifacts:
                engine = path.name.split('_backup_')[0]
                by_engine[engine] = by_engine.get(engine, 0) + 1

            total_size = sum(self._size_bytes(path) for path in artifacts)
            return {
                'total_files': len(artifacts),
                'total_size_mb': total_size / (1024 * 1024),
                'oldest_backup': min(created(path) for path in artifacts),
                'newest_backup': max(created(path) for path in artifacts),
                'by_engine': by_engine
            }
        except OSError as e:
            self.logger.error(f"Error obteniendo estadísticas: {e}")
            return empty

    @staticmethod
    def _candidates(backup_dir: Path, patterns) -> Iterator[Path]:
        """Recorre los candidatos de cada patrón sin repetir rutas"""
        seen = set()
        for pattern, want_dir in patterns:
            for path in sorted(backup_dir.glob(pattern)):
                if path in seen:
                    continue
                if want_dir is True and not path.is_dir():
                    continue
                if want_dir is False and not path.is_file():
                    continue
                seen.add(path)
                yield path

    @staticmethod
    def _size_bytes(path: Path) -> int:
        if path.is_dir():
            return sum(f.stat().st_size for f in path.rglob('*') if f.is_file())
        return path.stat().st_size
