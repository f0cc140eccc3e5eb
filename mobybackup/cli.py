"""
Interfaz de línea de comandos del sistema de backup

Uso:
    mobybackup                         # Ejecutar backup una vez
    mobybackup once                    # Igual que el anterior
    mobybackup scheduler [--now]       # Modo scheduler (automático)
    mobybackup --service mariadb       # Backup de un servicio específico
    mobybackup --restore FILE --service postgres
    mobybackup --stats                 # Estadísticas de backups
"""
import argparse
import json
import signal
import sys
from pathlib import Path
from typing import List, Optional

from .config import Config
from .exceptions import FatalSetupError, RestoreError
from .logger import LoggerService
from .repositories.config_repository import ConfigRepository
from .runner import Cancellation, ComposeCommandRunner
from .services.backup_service import BackupService
from .services.cleanup_service import CleanupService
from .services.restore_service import RestoreService
from .services.scheduler_service import SchedulerService
from .services.summary_service import SummaryReporter

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CANCELLED = 130


def parse_arguments(argv: Optional[List[str]] = None):
    """
    Parsea argumentos de línea de comandos

    Returns:
        Namespace con los argumentos parseados
    """
    parser = argparse.ArgumentParser(
        prog='mobybackup',
        description='Backup de las bases de datos del entorno de desarrollo MobyDock',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Ejemplos:
  mobybackup                              # Ejecutar backup una sola vez
  mobybackup scheduler --now              # Servicio automático, con backup inicial
  mobybackup --service postgres           # Backup de un servicio específico
  mobybackup --restore backups/postgres_backup_20240101_020000.sql.gz --service postgres
  mobybackup --stats                      # Ver estadísticas de backups
  mobybackup --init                       # Crear config.json de ejemplo
        """
    )

    parser.add_argument(
        'mode',
        nargs='?',
        choices=['once', 'scheduler'],
        default='once',
        help='Modo de ejecución (default: once)'
    )

    parser.add_argument(
        '--service',
        type=str,
        metavar='NOMBRE',
        help='Servicio sobre el que operar (backup o restauración)'
    )

    parser.add_argument(
        '--restore',
        type=Path,
        metavar='ARCHIVO',
        help='Restaurar un backup en el servicio indicado con --service'
    )

    parser.add_argument(
        '--stats',
        action='store_true',
        help='Mostrar estadísticas de backups'
    )

    parser.add_argument(
        '--summary-file',
        type=str,
        metavar='ARCHIVO',
        help='Escribir el resumen en JSON ("-" para stdout)'
    )

    parser.add_argument(
        '--config',
        type=Path,
        metavar='ARCHIVO',
        help='Archivo de configuración JSON'
    )

    parser.add_argument(
        '--env-file',
        type=Path,
        metavar='ARCHIVO',
        help='Archivo .env alternativo'
    )

    parser.add_argument(
        '--init',
        action='store_true',
        help='Crear archivo de configuración de ejemplo'
    )

    parser.add_argument(
        '--now',
        action='store_true',
        help='Ejecutar backup inmediatamente al iniciar scheduler'
    )

    args = parser.parse_args(argv)
    if args.restore and not args.service:
        parser.error('--restore requiere --service')
    return args


def show_statistics(cleanup_service: CleanupService, backup_dir: Path, retention_days: int):
    """Muestra estadísticas de backups"""
    logger = LoggerService.get_logger("Stats")
    stats = cleanup_service.get_backup_stats(backup_dir)

    logger.info("=" * 70)
    logger.info("ESTADÍSTICAS DE BACKUPS")
    logger.info("=" * 70)
    logger.info(f"Directorio: {backup_dir}")
    logger.info(f"Total de backups: {stats['total_files']}")
    logger.info(f"Espacio utilizado: {stats['total_size_mb']:.2f} MB")
    for engine, count in sorted(stats['by_engine'].items()):
        logger.info(f"  - {engine}: {count}")

    if stats['oldest_backup']:
        logger.info(f"Backup más antiguo: {stats['oldest_backup']}")
    if stats['newest_backup']:
        logger.info(f"Backup más reciente: {stats['newest_backup']}")

    logger.info(f"Retención configurada: {retention_days} días")
    logger.info("=" * 70)


def write_summary(summary: dict, target: str):
    text = json.dumps(summary, indent=2, ensure_ascii=False)
    if target == '-':
        sys.stdout.write(text + "\n")
    else:
        Path(target).write_text(text + "\n", encoding='utf-8')


def install_cancel_handlers(cancellation: Cancellation) -> dict:
    """
    SIGINT/SIGTERM cancelan la ejecución en curso a través del token

    Returns:
        Manejadores anteriores, para restaurarlos al terminar
    """
    logger = LoggerService.get_logger("Main")

    def handler(signum, frame):
        try:
            signal_name = signal.Signals(signum).name
        except ValueError:
            signal_name = str(signum)
        logger.warning(f"Señal recibida: {signal_name}, cancelando la ejecución...")
        cancellation.cancel()

    return {signum: signal.signal(signum, handler) for signum in (signal.SIGINT, signal.SIGTERM)}


def restore_signal_handlers(previous: dict):
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Función principal

    Returns:
        Código de salida
    """
    args = parse_arguments(argv)

    # El .env alternativo se aplica antes de crear loggers: puede cambiar LOG_DIR y LOG_LEVEL
    if args.env_file:
        if not args.env_file.exists():
            LoggerService.get_logger("Main").error(f"No se encontró {args.env_file}")
            return EXIT_FATAL
        Config.reload(args.env_file)
        LoggerService.configure()

    logger = LoggerService.get_logger("Main")

    config_repo = ConfigRepository(config_file=args.config)

    # Modo inicialización
    if args.init:
        if config_repo.config_file.exists():
            logger.info(f"Ya existe: {config_repo.config_file}")
            return EXIT_OK
        return EXIT_OK if config_repo.create_example_config() else EXIT_FATAL

    try:
        settings = config_repo.get_backup_settings()
        services = config_repo.get_services()
    except FatalSetupError as e:
        logger.error(f"Configuración inválida: {e}")
        return EXIT_FATAL

    # Modo estadísticas
    if args.stats:
        show_statistics(CleanupService(settings.retention_days), settings.backup_dir,
                        settings.retention_days)
        return EXIT_OK

    runner = ComposeCommandRunner(
        compose_command=settings.compose_command,
        compose_file=settings.compose_file,
        project_dir=settings.project_dir,
        command_timeout=settings.command_timeout
    )

    # Modo restauración
    if args.restore:
        restore_service = RestoreService(settings, services, runner)
        try:
            restore_service.restore(args.service, args.restore)
        except RestoreError as e:
            logger.error(f"✗ Restauración fallida: {e}")
            return EXIT_FATAL
        logger.info(f"✓ Restauración exitosa: {args.restore}")
        return EXIT_OK

    backup_service = BackupService(settings, services, runner=runner)

    # Modo scheduler
    if args.mode == 'scheduler':
        scheduler = SchedulerService(backup_service)
        scheduler.start(run_immediately=args.now)
        return EXIT_OK

    # Modo once (una sola ejecución)
    cancellation = Cancellation(settings.run_timeout)
    previous_handlers = install_cancel_handlers(cancellation)
    try:
        if args.service:
            logger.info(f"Realizando backup de: {args.service}")
            run = backup_service.backup_specific_service(args.service, cancellation=cancellation)
        else:
            run = backup_service.run(cancellation=cancellation)
    except KeyboardInterrupt:
        logger.warning("Programa interrumpido por el usuario")
        return EXIT_CANCELLED
    except FatalSetupError as e:
        logger.error(f"Error fatal: {e}")
        return EXIT_FATAL
    finally:
        restore_signal_handlers(previous_handlers)

    if args.summary_file:
        write_summary(SummaryReporter.build(run), args.summary_file)

    # Exit code: los fallos parciales no invalidan una ejecución completada
    if run.cancelled:
        return EXIT_CANCELLED
    return EXIT_OK


def run():
    """Punto de entrada del script de consola"""
    sys.exit(main())
