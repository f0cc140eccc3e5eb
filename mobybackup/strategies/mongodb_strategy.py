"""
Estrategia de backup para MongoDB
"""
import shutil
import tarfile
import tempfile
from pathlib import Path
from urllib.parse import quote_plus
from .base_strategy import BackupStrategy
from ..exceptions import CommandError, DumpFailed
from ..models import CompressionState, EngineKind, ServiceDescriptor
from ..naming import artifact_basename


class MongoDBBackupStrategy(BackupStrategy):
    """
    Estrategia de backup para MongoDB

    mongodump escribe un directorio dentro del contenedor; el directorio se
    copia a un área de trabajo local, se archiva en un único tar.gz y después
    se eliminan tanto la copia local como la del contenedor.
    """

    engine = EngineKind.MONGODB
    artifact_suffix = ".tar.gz"
    compression = CompressionState.TAR_GZ

    CLEANUP_TIMEOUT = 60

    @staticmethod
    def build_uri(service: ServiceDescriptor) -> str:
        """URI de conexión con credenciales escapadas"""
        if service.user:
            credentials = quote_plus(service.user)
            if service.password:
                credentials += ":" + quote_plus(service.password)
            return f"mongodb://{credentials}@localhost:27017"
        return "mongodb://localhost:27017"

    def build_command(self, service: ServiceDescriptor, remote_dir: str) -> list:
        return [
            'mongodump',
            f'--uri={self.build_uri(service)}',
            f'--out={remote_dir}',
        ]

    def backup(self, service, output_file: Path, timestamp, cancellation=None):
        dump_name = artifact_basename(self.engine, timestamp)
        remote_dir = f"{self.settings.container_tmp_dir.rstrip('/')}/{dump_name}"
        work_dir = Path(tempfile.mkdtemp(prefix=".mongodb_work_", dir=str(output_file.parent)))
        local_dir = work_dir / dump_name

        try:
            result = self.runner.exec(
                service.name,
                self.build_command(service, remote_dir),
                cancellation=cancellation,
                timeout=self.settings.command_timeout
            )
            if not result.ok:
                raise DumpFailed(service.name, result.error_text())

            copied = self.runner.copy_from(service.name, remote_dir, local_dir,
                                           cancellation=cancellation)
            if not copied.ok or not local_dir.is_dir():
                raise DumpFailed(service.name,
                                 f"no se pudo copiar el volcado del contenedor: {copied.error_text()}")

            # Archivar en un único tar.gz
            with tarfile.open(output_file, 'w:gz') as tar:
                tar.add(str(local_dir), arcname=dump_name, recursive=True)
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)
            self._cleanup_remote(service, remote_dir)

    def _cleanup_remote(self, service: ServiceDescriptor, remote_dir: str):
        """Elimina el volcado del contenedor (best effort)"""
        try:
            result = self.runner.exec(service.name, ['rm', '-rf', remote_dir],
                                      timeout=self.CLEANUP_TIMEOUT)
        except CommandError as e:
            self.logger.warning(f"No se pudo limpiar {remote_dir} en {service.name}: {e}")
            return
        if not result.ok:
            self.logger.warning(
                f"No se pudo limpiar {remote_dir} en {service.name}: {result.error_text()}"
            )
