"""
Modelos de datos del sistema
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .exceptions import BackupError


class EngineKind(Enum):
    """Motores soportados; el orden de declaración es el orden de ejecución"""
    MARIADB = "mariadb"
    POSTGRES = "postgres"
    MONGODB = "mongodb"
    REDIS = "redis"

    @classmethod
    def from_string(cls, value: str) -> "EngineKind":
        """
        Obtiene el motor a partir de su nombre o de un alias

        Raises:
            ValueError: Si el motor no está soportado
        """
        aliases = {
            'mysql': cls.MARIADB,
            'mariadb': cls.MARIADB,
            'postgres': cls.POSTGRES,
            'postgresql': cls.POSTGRES,
            'mongo': cls.MONGODB,
            'mongodb': cls.MONGODB,
            'redis': cls.REDIS,
        }
        engine = aliases.get((value or "").strip().lower())
        if engine is None:
            raise ValueError(f"Motor de base de datos no soportado: {value}")
        return engine

    @property
    def order(self) -> int:
        return list(EngineKind).index(self)


class CompressionState(Enum):
    RAW = "raw"
    GZIP = "gzip"
    TAR_GZ = "tar.gz"


class OutcomeStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED_NOT_RUNNING = "skipped_not_running"
    SKIPPED_PROBE_UNAVAILABLE = "skipped_probe_unavailable"
    SKIPPED_CANCELLED = "skipped_cancelled"

    @property
    def is_skip(self) -> bool:
        return self.value.startswith("skipped")


@dataclass(frozen=True)
class ServiceDescriptor:
    """Servicio de datos a respaldar (inmutable durante la ejecución)"""
    name: str
    engine: EngineKind
    user: str = ""
    password: str = ""
    database: Optional[str] = None
    enabled: bool = True

    def __post_init__(self):
        """Validación después de inicialización"""
        if not self.name:
            raise ValueError("El nombre del servicio es obligatorio")
        if not isinstance(self.engine, EngineKind):
            raise ValueError(f"Motor inválido para {self.name}: {self.engine}")


@dataclass
class BackupSettings:
    """Configuración de backups"""
    backup_dir: Path = Path("./backups")
    retention_days: int = 7
    compress: bool = True
    redis_save_timeout: float = 5.0
    redis_poll_interval: float = 0.5
    command_timeout: float = 3600.0
    run_timeout: Optional[float] = None
    schedule: List[str] = field(default_factory=lambda: ["02:00"])
    compose_command: List[str] = field(default_factory=lambda: ["docker-compose"])
    compose_file: Optional[str] = None
    project_dir: Optional[Path] = None
    redis_dump_path: str = "/data/dump.rdb"
    container_tmp_dir: str = "/tmp"

    def __post_init__(self):
        """Validación después de inicialización"""
        self.backup_dir = Path(self.backup_dir)
        if self.retention_days < 0:
            raise ValueError("retention_days no puede ser negativo (0 desactiva la limpieza)")
        if self.redis_save_timeout <= 0:
            raise ValueError("redis_save_timeout debe ser mayor a 0")
        if self.redis_poll_interval <= 0:
            raise ValueError("redis_poll_interval debe ser mayor a 0")
        if self.command_timeout <= 0:
            raise ValueError("command_timeout debe ser mayor a 0")
        if self.run_timeout is not None and self.run_timeout <= 0:
            raise ValueError("run_timeout debe ser mayor a 0")
        if not self.compose_command:
            raise ValueError("compose_command no puede estar vacío")
        for schedule_time in self.schedule:
            if not self._validate_time_format(schedule_time):
                raise ValueError(f"El formato de schedule debe ser HH:MM: {schedule_time}")

    @staticmethod
    def _validate_time_format(time_str: str) -> bool:
        """Valida formato de hora HH:MM"""
        try:
            parts = time_str.split(":")
            if len(parts) != 2 or len(parts[0]) != 2 or len(parts[1]) != 2:
                return False
            hours, minutes = int(parts[0]), int(parts[1])
            return 0 <= hours <= 23 and 0 <= minutes <= 59
        except (ValueError, AttributeError):
            return False


@dataclass
class BackupArtifact:
    """Archivo o directorio producido por el backup de un servicio"""
    service_name: str
    engine: EngineKind
    timestamp: str
    path: Path
    size_bytes: int = 0
    compression: CompressionState = CompressionState.RAW

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)

    def __str__(self):
        return f"{self.path.name} ({self.size_mb:.2f} MB)"


@dataclass
class ServiceOutcome:
    """Resultado del backup de un servicio"""
    service_name: str
    engine: EngineKind
    status: OutcomeStatus
    artifact: Optional[BackupArtifact] = None
    error: Optional[BackupError] = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    def __str__(self):
        if self.success:
            return f"✓ {self.service_name}: {self.artifact} ({self.duration_seconds:.2f}s)"
        if self.status.is_skip:
            return f"- {self.service_name}: omitido ({self.error})"
        return f"✗ {self.service_name}: {self.error}"


@dataclass
class BackupRun:
    """Estado acumulado de una ejecución de backup"""
    timestamp: str
    retention_days: int
    started_at: datetime
    outcomes: List[ServiceOutcome] = field(default_factory=list)
    issues: List[BackupError] = field(default_factory=list)
    pruned: List[Path] = field(default_factory=list)
    finished_at: Optional[datetime] = None
    cancelled: bool = False

    def record(self, outcome: ServiceOutcome):
        self.outcomes.append(outcome)

    def record_issue(self, issue: BackupError):
        self.issues.append(issue)

    @property
    def artifacts(self) -> List[BackupArtifact]:
        return [o.artifact for o in self.outcomes if o.success and o.artifact is not None]

    @property
    def skipped(self) -> List[ServiceOutcome]:
        return [o for o in self.outcomes if o.status.is_skip]

    @property
    def failed(self) -> List[ServiceOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.FAILED]

    @property
    def failure_count(self) -> int:
        return len(self.failed) + len(self.issues)

    @property
    def is_clean(self) -> bool:
        return self.failure_count == 0 and not self.cancelled
