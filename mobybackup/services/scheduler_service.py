"""
Servicio de programación de tareas de backup
"""
import schedule
import time
import signal
from typing import Optional
from ..exceptions import FatalSetupError
from ..logger import LoggerService
from ..runner import Cancellation
from .backup_service import BackupService
from .summary_service import SummaryReporter


class SchedulerService:
    """Servicio para programar y ejecutar backups automáticos"""

    CHECK_INTERVAL = 30

    def __init__(self, backup_service: BackupService, scheduler: Optional[schedule.Scheduler] = None):
        """
        Inicializa el servicio de programación

        Args:
            backup_service: Servicio de backup a ejecutar
            scheduler: Planificador (por defecto, uno propio)
        """
        self.backup_service = backup_service
        self.scheduler = scheduler or schedule.Scheduler()
        self.logger = LoggerService.get_logger("SchedulerService")
        self.running = False
        self._current_cancellation: Optional[Cancellation] = None

    def install_signal_handlers(self):
        """Registra manejadores de señales para shutdown graceful"""
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def schedule_jobs(self):
        for schedule_time in self.backup_service.settings.schedule:
            self.scheduler.every().day.at(schedule_time).do(self.run_backup_job)

    def start(self, run_immediately: bool = False):
        """
        Inicia el programador de tareas

        Args:
            run_immediately: Si es True, ejecuta un backup inmediatamente al iniciar
        """
        self.install_signal_handlers()
        self.schedule_jobs()
        settings = self.backup_service.settings

        self.logger.info("=" * 70)
        self.logger.info("SERVICIO DE BACKUP AUTOMÁTICO INICIADO")
        self.logger.info("=" * 70)
        self.logger.info(f"Backups diarios programados: {len(settings.schedule)}")
        for schedule_time in settings.schedule:
            self.logger.info(f"  - A las {schedule_time}")
        self.logger.info(f"Retención de backups: {settings.retention_days} días")
        self.logger.info(f"Servicios configurados: {len(self.backup_service.services)}")

        for service in self.backup_service.services:
            status = "✓ Habilitado" if service.enabled else "✗ Deshabilitado"
            self.logger.info(f"  - {service.name} ({service.engine.value}): {status}")

        self.logger.info("-" * 70)
        self.logger.info(f"Próxima ejecución: {self.get_next_run()}")
        self.logger.info("Presiona Ctrl+C para detener el servicio")
        self.logger.info("=" * 70)

        self.running = True

        if run_immediately:
            self.logger.info("Ejecutando backup inicial...")
            self.run_backup_job()

        # Loop principal
        while self.running:
            self.scheduler.run_pending()
            self._sleep(self.CHECK_INTERVAL)

        self.logger.info("Servicio detenido correctamente")

    def run_backup_job(self):
        """Ejecuta el trabajo de backup programado"""
        if not self.running:
            return
        self.logger.info(f"Ejecutando backup programado a las {time.strftime('%Y-%m-%d %H:%M:%S')}")
        self._current_cancellation = Cancellation(self.backup_service.settings.run_timeout)
        try:
            run = self.backup_service.run(cancellation=self._current_cancellation)
        except FatalSetupError as e:
            # Un bloqueo activo u otro error de preparación no detiene el servicio
            self.logger.error(f"No se pudo ejecutar el backup: {e}")
            return
        finally:
            self._current_cancellation = None

        status = SummaryReporter.status(run)
        if run.cancelled:
            self.logger.warning("Backup programado cancelado")
        elif run.failure_count:
            self.logger.warning(
                f"Backup completado con {run.failure_count} error(es). "
                "Revisa los logs para más detalles."
            )
        else:
            self.logger.info(f"Backup completado exitosamente ({status})")

    def stop(self):
        """Detiene el servicio de forma ordenada, cancelando el backup en curso"""
        self.logger.info("Deteniendo servicio de backup...")
        self.running = False
        if self._current_cancellation is not None:
            self._current_cancellation.cancel()
        self.scheduler.clear()

    def _signal_handler(self, signum, frame):
        """
        Manejador de señales para shutdown graceful

        Args:
            signum: Número de señal
            frame: Frame actual
        """
        try:
            signal_name = signal.Signals(signum).name
        except ValueError:
            signal_name = str(signum)

        self.logger.info(f"Señal recibida: {signal_name}")
        self.stop()

    def _sleep(self, seconds: float):
        """Espera en intervalos cortos para reaccionar rápido a stop()"""
        end = time.monotonic() + seconds
        while self.running and time.monotonic() < end:
            time.sleep(max(0.0, min(1.0, end - time.monotonic())))

    def get_next_run(self) -> str:
        """
        Obtiene la fecha de la próxima ejecución

        Returns:
            String con la próxima ejecución
        """
        next_run = self.scheduler.next_run
        if next_run:
            return next_run.strftime('%Y-%m-%d %H:%M:%S')
        return "No hay ejecuciones programadas"
