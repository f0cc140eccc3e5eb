"""
Servicio de restauración de backups
"""
import tarfile
import tempfile
from pathlib import Path
from typing import List, Optional
from ..config import Config
from ..exceptions import BackupError, CommandError, RestoreError
from ..logger import LoggerService
from ..models import BackupSettings, EngineKind, ServiceDescriptor
from ..naming import artifact_basename, engine_from_filename, parse_timestamp
from ..prober import ServiceProber
from ..runner import Cancellation, CommandRunner
from ..strategies.base_strategy import credential_env
from ..strategies.mongodb_strategy import MongoDBBackupStrategy
from .compression_service import CompressionService


class RestoreService:
    """Restaura un artefacto de backup en su servicio"""

    def __init__(self, settings: BackupSettings, services: List[ServiceDescriptor],
                 runner: CommandRunner, prober: Optional[ServiceProber] = None):
        self.settings = settings
        self.services = services
        self.runner = runner
        self.prober = prober or ServiceProber(runner)
        self.compression_service = CompressionService()
        self.logger = LoggerService.get_logger("RestoreService")

    def restore(self, service_name: str, artifact_path: Path,
                cancellation: Optional[Cancellation] = None):
        """
        Restaura un backup en un servicio en ejecución

        Args:
            service_name: Nombre del servicio destino
            artifact_path: Archivo de backup
            cancellation: Token de cancelación

        Raises:
            RestoreError: Si la restauración no es posible o falla
        """
        service = self._find_service(service_name)
        artifact_path = Path(artifact_path)

        if not artifact_path.is_file():
            raise RestoreError(f"Archivo de backup no encontrado: {artifact_path}")

        engine = engine_from_filename(artifact_path.name)
        if engine is not service.engine:
            raise RestoreError(
                f"El backup {artifact_path.name} no corresponde al motor "
                f"{service.engine.value} de {service.name}"
            )

        try:
            if not self.prober.is_running(service.name, cancellation=cancellation):
                raise RestoreError(f"El servicio {service.name} no está en ejecución")
        except RestoreError:
            raise
        except BackupError as e:
            raise RestoreError(str(e))

        self.logger.info(f"Restaurando {artifact_path.name} en {service.name}...")

        handlers = {
            EngineKind.MARIADB: self._restore_mariadb,
            EngineKind.POSTGRES: self._restore_postgres,
            EngineKind.MONGODB: self._restore_mongodb,
        }
        handler = handlers.get(service.engine)
        if handler is None:
            raise RestoreError(
                f"La restauración de {service.engine.value} requiere reiniciar el servicio "
                "y no está soportada"
            )

        try:
            handler(service, artifact_path, cancellation)
        except RestoreError:
            raise
        except (BackupError, OSError, tarfile.TarError) as e:
            raise RestoreError(f"Falló la restauración de {service.name}: {e}")

        self.logger.info(f"Restauración completada: {service.name}")

    def _find_service(self, service_name: str) -> ServiceDescriptor:
        for service in self.services:
            if service.name == service_name:
                return service
        raise RestoreError(f"Servicio no encontrado en configuración: {service_name}")

    def _restore_mariadb(self, service, artifact_path, cancellation):
        argv = ['mysql', '-u', service.user or 'root']
        self._restore_sql(service, artifact_path, argv,
                          credential_env('MYSQL_PWD', service.password), cancellation)

    def _restore_postgres(self, service, artifact_path, cancellation):
        argv = ['psql', '-U', service.user, '-d', service.database or service.user, '--quiet']
        self._restore_sql(service, artifact_path, argv,
                          credential_env('PGPASSWORD', service.password), cancellation)

    def _restore_sql(self, service, artifact_path: Path, argv, env, cancellation):
        """Envía un volcado SQL (opcionalmente .gz) a la entrada estándar del cliente"""
        with tempfile.TemporaryDirectory(prefix="mobybackup_restore_") as work_dir:
            sql_file = artifact_path
            if artifact_path.name.endswith('.gz'):
                sql_file = Path(work_dir) / artifact_path.name[:-3]
                self.compression_service.decompress(artifact_path, sql_file)

            result = self.runner.exec(service.name, argv, env=env, stdin_path=sql_file,
                                      cancellation=cancellation,
                                      timeout=self.settings.command_timeout)
            if not result.ok:
                raise RestoreError(f"Falló la restauración de {service.name}: {result.error_text()}")

    def _restore_mongodb(self, service, artifact_path: Path, cancellation):
        """Extrae el tar.gz, lo copia al contenedor y ejecuta mongorestore --drop"""
        timestamp = parse_timestamp(artifact_path.name)
        if timestamp is None:
            raise RestoreError(f"Nombre de backup inválido: {artifact_path.name}")
        dump_name = artifact_basename(EngineKind.MONGODB, timestamp.strftime(Config.TIMESTAMP_FORMAT))
        remote_dir = f"{self.settings.container_tmp_dir.rstrip('/')}/restore_{dump_name}"

        with tempfile.TemporaryDirectory(prefix="mobybackup_restore_") as work_dir:
            with tarfile.open(artifact_path, 'r:gz') as tar:
                for member in tar.getmembers():
                    if member.name.startswith('/') or '..' in Path(member.name).parts:
                        raise RestoreError(f"Ruta no permitida en el archivo: {member.name}")
                tar.extractall(work_dir)

            local_dir = Path(work_dir) / dump_name
            if not local_dir.is_dir():
                raise RestoreError(f"El archivo no contiene el directorio {dump_name}")

            copied = self.runner.copy_to(service.name, local_dir, remote_dir,
                                         cancellation=cancellation)
            if not copied.ok:
                raise RestoreError(f"No se pudo copiar el backup al contenedor: {copied.error_text()}")

            try:
                argv = [
                    'mongorestore',
                    f'--uri={MongoDBBackupStrategy.build_uri(service)}',
                    '--drop',
                    remote_dir,
                ]
                result = self.runner.exec(service.name, argv, cancellation=cancellation,
                                          timeout=self.settings.command_timeout)
                if not result.ok:
                    raise RestoreError(f"Falló mongorestore en {service.name}: {result.error_text()}")
            finally:
                self._cleanup_remote(service, remote_dir)

    def _cleanup_remote(self, service, remote_dir: str):
        """Elimina la copia del backup dentro del contenedor (best effort)"""
        try:
            result = self.runner.exec(service.name, ['rm', '-rf', remote_dir], timeout=60)
        except CommandError as e:
            self.logger.warning(f"No se pudo limpiar {remote_dir} en {service.name}: {e}")
            return
        if not result.ok:
            self.logger.warning(f"No se pudo limpiar {remote_dir} en {service.name}: {result.error_text()}")
