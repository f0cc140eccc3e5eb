"""
Servicio de compresión de artefactos (Single Responsibility)
"""
import gzip
import shutil
from dataclasses import replace
from pathlib import Path
from ..exceptions import CompressionFailed
from ..logger import LoggerService
from ..models import BackupArtifact, CompressionState
from ..naming import partial_path


class CompressionService:
    """Comprime artefactos .sql / .rdb con gzip"""

    CHUNK_SIZE = 1024 * 1024

    def __init__(self, compresslevel: int = 6):
        self.compresslevel = compresslevel
        self.logger = LoggerService.get_logger("CompressionService")

    def compress(self, artifact: BackupArtifact) -> BackupArtifact:
        """
        Comprime un artefacto sin comprimir

        El original solo se elimina cuando el .gz quedó escrito por completo.
        Los artefactos ya comprimidos se devuelven sin cambios.

        Args:
            artifact: Artefacto a comprimir

        Returns:
            Artefacto comprimido

        Raises:
            CompressionFailed: Si la compresión falla (el original se conserva)
        """
        if artifact.compression is not CompressionState.RAW:
            return artifact

        source = artifact.path
        target = source.with_name(source.name + ".gz")
        temp_target = partial_path(target)

        try:
            with open(source, 'rb') as src, gzip.open(temp_target, 'wb',
                                                      compresslevel=self.compresslevel) as dst:
                shutil.copyfileobj(src, dst, self.CHUNK_SIZE)
            temp_target.replace(target)
        except Exception as e:
            if temp_target.exists():
                try:
                    temp_target.unlink()
                except OSError:
                    self.logger.warning(f"No se pudo eliminar {temp_target.name}")
            self.logger.error(f"Error al comprimir {source.name}: {e}")
            raise CompressionFailed(source, str(e))

        try:
            source.unlink()
        except OSError as e:
            self.logger.warning(f"No se pudo eliminar el original {source.name}: {e}")

        compressed = replace(
            artifact,
            path=target,
            size_bytes=target.stat().st_size,
            compression=CompressionState.GZIP
        )
        ratio = (compressed.size_bytes / artifact.size_bytes * 100) if artifact.size_bytes else 0
        self.logger.info(f"Comprimido: {compressed} ({ratio:.1f}% del original)")
        return compressed

    def decompress(self, source: Path, destination: Path) -> Path:
        """
        Descomprime un archivo .gz

        Args:
            source: Archivo comprimido
            destination: Archivo de salida

        Returns:
            Ruta del archivo descomprimido
        """
        with gzip.open(source, 'rb') as src, open(destination, 'wb') as dst:
            shutil.copyfileobj(src, dst, self.CHUNK_SIZE)
        return destination
