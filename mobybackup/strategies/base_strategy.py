"""
Estrategia base para backups (Strategy Pattern)
"""
import shutil
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from ..exceptions import DumpFailed, RunCancelled
from ..logger import LoggerService
from ..models import (BackupArtifact, BackupSettings, CompressionState, EngineKind,
                      OutcomeStatus, ServiceDescriptor, ServiceOutcome)
from ..naming import artifact_filename, partial_path
from ..runner import Cancellation, CommandRunner


class BackupStrategy(ABC):
    """Interfaz abstracta para estrategias de backup (Open/Closed Principle)"""

    engine: EngineKind
    artifact_suffix: str = ".sql"
    compression: CompressionState = CompressionState.RAW

    def __init__(self, runner: CommandRunner, settings: BackupSettings):
        """
        Inicializa la estrategia

        Args:
            runner: Ejecutor de comandos en el contexto del servicio
            settings: Configuración de backups
        """
        self.runner = runner
        self.settings = settings
        self.logger = LoggerService.get_logger(self.__class__.__name__)

    @abstractmethod
    def backup(self, service: ServiceDescriptor, output_file: Path, timestamp: str,
               cancellation: Optional[Cancellation] = None):
        """
        Ejecuta el volcado del servicio escribiendo en output_file

        Args:
            service: Servicio a respaldar
            output_file: Archivo temporal de salida
            timestamp: Timestamp de la ejecución
            cancellation: Token de cancelación

        Raises:
            DumpFailed: Si el volcado falla
        """
        pass

    def execute_backup(self, service: ServiceDescriptor, backup_dir: Path, timestamp: str,
                       cancellation: Optional[Cancellation] = None,
                       reachable: bool = True) -> ServiceOutcome:
        """
        Template method: escribe con nombre temporal y renombra solo si el volcado termina bien

        Args:
            service: Servicio a respaldar (debe estar en ejecución)
            backup_dir: Directorio de backups
            timestamp: Timestamp compartido de la ejecución
            cancellation: Token de cancelación
            reachable: Resultado de la detección; False es un error de programación

        Returns:
            Resultado del backup

        Raises:
            RunCancelled: Si la ejecución fue cancelada (tras limpiar la salida parcial)
        """
        if not reachable:
            raise ValueError(f"No se puede respaldar {service.name}: el servicio no está en ejecución")

        final_path = backup_dir / artifact_filename(self.engine, timestamp, self.artifact_suffix)
        temp_path = partial_path(final_path)

        self.logger.info(f"Iniciando backup de {service.name}...")
        start_time = time.time()

        try:
            self.backup(service, temp_path, timestamp, cancellation)

            if not temp_path.exists() or temp_path.stat().st_size == 0:
                raise DumpFailed(service.name, "el volcado no produjo salida")

            temp_path.replace(final_path)
        except RunCancelled:
            self._remove_partial(temp_path)
            self.logger.warning(f"Backup de {service.name} cancelado")
            raise
        except Exception as e:
            self._remove_partial(temp_path)
            error = e if isinstance(e, DumpFailed) else DumpFailed(service.name, str(e))
            duration = time.time() - start_time
            self.logger.error(f"Backup fallido: {error}")
            return ServiceOutcome(
                service_name=service.name,
                engine=self.engine,
                status=OutcomeStatus.FAILED,
                error=error,
                duration_seconds=duration
            )

        duration = time.time() - start_time
        artifact = BackupArtifact(
            service_name=service.name,
            engine=self.engine,
            timestamp=timestamp,
            path=final_path,
            size_bytes=final_path.stat().st_size,
            compression=self.compression
        )
        self.logger.info(f"Backup exitoso: {artifact} en {duration:.2f}s")
        return ServiceOutcome(
            service_name=service.name,
            engine=self.engine,
            status=OutcomeStatus.SUCCESS,
            artifact=artifact,
            duration_seconds=duration
        )

    def _run_dump(self, service: ServiceDescriptor, argv, output_file: Path, env=None,
                  cancellation: Optional[Cancellation] = None):
        """Ejecuta un volcado cuya salida estándar es el backup"""
        result = self.runner.exec(
            service.name,
            argv,
            env=env,
            stdout_path=output_file,
            cancellation=cancellation,
            timeout=self.settings.command_timeout
        )
        if not result.ok:
            raise DumpFailed(service.name, result.error_text())

    def _remove_partial(self, path: Path):
        """Elimina la salida parcial de un volcado fallido"""
        try:
            if path.is_dir():
                shutil.rmtree(path)
            elif path.exists():
                path.unlink()
        except OSError as e:
            self.logger.warning(f"No se pudo eliminar la salida parcial {path.name}: {e}")


def credential_env(name: str, value: str) -> dict:
    """Variable de entorno con la credencial, solo si hay valor"""
    return {name: value} if value else {}
