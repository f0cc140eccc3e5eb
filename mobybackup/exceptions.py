"""
Taxonomía de errores del sistema de backup

Solo FatalSetupError aborta una ejecución. El resto se acumula en el
BackupRun y se muestra en el resumen final.
"""


class BackupError(Exception):
    """Error base del sistema de backup"""
    pass


class ServiceUnreachable(BackupError):
    """El servicio no está en ejecución (se omite, no es un error)"""

    def __init__(self, service: str):
        self.service = service
        super().__init__(f"El servicio {service} no está en ejecución")


class ProbeUnavailable(BackupError):
    """No se pudo determinar si el servicio está en ejecución"""

    def __init__(self, service: str, cause: str):
        self.service = service
        self.cause = cause
        super().__init__(f"No se pudo consultar el estado de {service}: {cause}")


class DumpFailed(BackupError):
    """El volcado de un servicio falló"""

    def __init__(self, service: str, cause: str):
        self.service = service
        self.cause = cause
        super().__init__(f"Falló el backup de {service}: {cause}")


class CompressionFailed(BackupError):
    """La compresión de un artefacto falló; el original se conserva"""

    def __init__(self, artifact, cause: str):
        self.artifact = artifact
        self.cause = cause
        super().__init__(f"Falló la compresión de {artifact}: {cause}")


class PruneFailed(BackupError):
    """No se pudo eliminar un backup antiguo"""

    def __init__(self, artifact, cause: str):
        self.artifact = artifact
        self.cause = cause
        super().__init__(f"No se pudo eliminar {artifact}: {cause}")


class FatalSetupError(BackupError):
    """Error de preparación que aborta toda la ejecución"""
    pass


class RunLockedError(FatalSetupError):
    """Otra ejecución mantiene el bloqueo del directorio de backups"""
    pass


class RestoreError(BackupError):
    """Falló la restauración de un backup"""
    pass


class RunCancelled(BackupError):
    """La ejecución fue cancelada o superó su tiempo límite"""
    pass


class CommandError(BackupError):
    """Error al invocar un comando externo"""
    pass


class CommandUnavailable(CommandError):
    """El ejecutable de orquestación no está disponible"""
    pass


class CommandTimeout(CommandError):
    """Un comando superó su tiempo límite"""
    pass
