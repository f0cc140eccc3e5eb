"""
Servicio principal que orquesta los backups
"""
import os
from datetime import datetime
from typing import Callable, List, Optional
from ..config import Config
from ..exceptions import (CompressionFailed, DumpFailed, FatalSetupError, ProbeUnavailable,
                          RunCancelled, ServiceUnreachable)
from ..factories.strategy_factory import BackupStrategyFactory
from ..lock import RunLock
from ..logger import LoggerService
from ..models import (BackupRun, BackupSettings, CompressionState, OutcomeStatus,
                      ServiceDescriptor, ServiceOutcome)
from ..naming import new_timestamp
from ..prober import ServiceProber
from ..runner import Cancellation, CommandRunner, ComposeCommandRunner
from .cleanup_service import CleanupService
from .compression_service import CompressionService
from .summary_service import SummaryReporter


class BackupService:
    """Servicio principal que orquesta los backups"""

    def __init__(self, settings: BackupSettings, services: List[ServiceDescriptor],
                 runner: Optional[CommandRunner] = None,
                 prober: Optional[ServiceProber] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Inicializa el servicio de backup

        Args:
            settings: Configuración de backups
            services: Servicios configurados
            runner: Ejecutor de comandos (por defecto, docker-compose)
            prober: Detector de servicios en ejecución
            clock: Fuente de la hora actual
        """
        self.settings = settings
        # Orden fijo: MariaDB, PostgreSQL, MongoDB, Redis
        self.services = sorted(services, key=lambda service: service.engine.order)
        self.runner = runner or ComposeCommandRunner(
            compose_command=settings.compose_command,
            compose_file=settings.compose_file,
            project_dir=settings.project_dir,
            command_timeout=settings.command_timeout
        )
        self.prober = prober or ServiceProber(self.runner)
        self.clock = clock or datetime.now
        self.logger = LoggerService.get_logger("BackupService")

        self.compression_service = CompressionService()
        self.cleanup_service = CleanupService(settings.retention_days)

    def run(self, cancellation: Optional[Cancellation] = None) -> BackupRun:
        """
        Realiza backup de todos los servicios habilitados

        Args:
            cancellation: Token de cancelación (por defecto, uno con run_timeout)

        Returns:
            Estado de la ejecución

        Raises:
            FatalSetupError: Si el directorio de backups no es utilizable o está bloqueado
        """
        services = []
        for service in self.services:
            if not service.enabled:
                self.logger.info(f"Servicio deshabilitado: {service.name}")
                continue
            services.append(service)
        return self._execute(services, cancellation)

    def backup_specific_service(self, service_name: str,
                                cancellation: Optional[Cancellation] = None) -> BackupRun:
        """
        Realiza backup de un servicio específico

        Raises:
            FatalSetupError: Si el servicio no existe o está deshabilitado
        """
        for service in self.services:
            if service.name == service_name:
                if not service.enabled:
                    raise FatalSetupError(f"Servicio deshabilitado en configuración: {service_name}")
                return self._execute([service], cancellation)

        raise FatalSetupError(f"Servicio no encontrado en configuración: {service_name}")

    def _execute(self, services: List[ServiceDescriptor],
                 cancellation: Optional[Cancellation]) -> BackupRun:
        cancellation = cancellation or Cancellation(self.settings.run_timeout)
        backup_dir = self._prepare_backup_dir()

        with RunLock(backup_dir / Config.LOCK_FILE_NAME):
            started_at = self.clock()
            run = BackupRun(
                timestamp=new_timestamp(started_at),
                retention_days=self.settings.retention_days,
                started_at=started_at
            )

            self.logger.info("=" * 70)
            self.logger.info(f"INICIANDO PROCESO DE BACKUP {run.timestamp}")
            self.logger.info("=" * 70)

            try:
                self._dump_services(run, services, cancellation)
                if self.settings.compress:
                    self._compress_artifacts(run, cancellation)
                cancellation.raise_if_cancelled()
                self._prune(run)
            except RunCancelled:
                run.cancelled = True
                self.logger.warning("Ejecución cancelada: se omiten las etapas restantes")

            run.finished_at = self.clock()
            self._print_summary(run)

        return run

    def _prepare_backup_dir(self):
        """
        Crea el directorio de backups

        Raises:
            FatalSetupError: Si no se puede crear o escribir
        """
        backup_dir = self.settings.backup_dir
        try:
            backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FatalSetupError(f"No se pudo crear el directorio de backups {backup_dir}: {e}")
        if not backup_dir.is_dir() or not os.access(backup_dir, os.W_OK):
            raise FatalSetupError(f"El directorio de backups no es escribible: {backup_dir}")
        return backup_dir

    def _dump_services(self, run: BackupRun, services: List[ServiceDescriptor],
                       cancellation: Cancellation):
        """Detecta y respalda cada servicio; un fallo no detiene a los demás"""
        for index, service in enumerate(services):
            self.logger.info("-" * 70)
            try:
                cancellation.raise_if_cancelled()
                running = self.prober.is_running(service.name, cancellation=cancellation)
            except ProbeUnavailable as e:
                self.logger.warning(f"Estado desconocido de {service.name}, se omite: {e.cause}")
                run.record(ServiceOutcome(service.name, service.engine,
                                          OutcomeStatus.SKIPPED_PROBE_UNAVAILABLE, error=e))
                continue
            except RunCancelled:
                self._skip_cancelled(run, services[index:])
                raise

            if not running:
                self.logger.warning(f"{service.name} no está en ejecución, se omite el backup")
                run.record(ServiceOutcome(service.name, service.engine,
                                          OutcomeStatus.SKIPPED_NOT_RUNNING,
                                          error=ServiceUnreachable(service.name)))
                continue

            strategy = BackupStrategyFactory.create(service.engine, self.runner, self.settings)
            if not strategy:
                error = DumpFailed(service.name, f"motor no soportado: {service.engine.value}")
                self.logger.error(str(error))
                run.record(ServiceOutcome(service.name, service.engine,
                                          OutcomeStatus.FAILED, error=error))
                continue

            try:
                outcome = strategy.execute_backup(service, self.settings.backup_dir, run.timestamp,
                                                  cancellation=cancellation, reachable=running)
            except RunCancelled:
                run.record(ServiceOutcome(service.name, service.engine, OutcomeStatus.FAILED,
                                          error=DumpFailed(service.name, "cancelado")))
                self._skip_cancelled(run, services[index + 1:])
                raise

            run.record(outcome)

    def _skip_cancelled(self, run: BackupRun, services: List[ServiceDescriptor]):
        for service in services:
            run.record(ServiceOutcome(service.name, service.engine,
                                      OutcomeStatus.SKIPPED_CANCELLED,
                                      error=RunCancelled("Ejecución cancelada")))

    def _compress_artifacts(self, run: BackupRun, cancellation: Cancellation):
        """Comprime los artefactos sin comprimir de esta ejecución"""
        for outcome in run.outcomes:
            if not outcome.success or outcome.artifact is None:
                continue
            if outcome.artifact.compression is not CompressionState.RAW:
                continue
            cancellation.raise_if_cancelled()
            try:
                outcome.artifact = self.compression_service.compress(outcome.artifact)
            except CompressionFailed as e:
                run.record_issue(e)

    def _prune(self, run: BackupRun):
        self.logger.info("-" * 70)
        result = self.cleanup_service.cleanup_old_backups(self.settings.backup_dir, now=self.clock())
        run.pruned.extend(result.deleted)
        for failure in result.failures:
            run.record_issue(failure)

    def _print_summary(self, run: BackupRun):
        """Imprime resumen de la operación de backup"""
        for line in SummaryReporter.render(run):
            self.logger.info(line)

        if run.failure_count > 0:
            self.logger.warning(
                f"ATENCIÓN: {run.failure_count} fallo(s) durante el backup. "
                "Revisa los errores arriba."
            )
