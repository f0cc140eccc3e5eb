"""
Detección de servicios en ejecución
"""
from typing import Optional

from .exceptions import CommandError, ProbeUnavailable
from .runner import Cancellation, CommandRunner


class ServiceProber:
    """Consulta a la capa de orquestación si un servicio está en ejecución"""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def is_running(self, name: str, cancellation: Optional[Cancellation] = None) -> bool:
        """
        Indica si el servicio está en ejecución

        Un servicio desconocido devuelve False.

        Raises:
            ProbeUnavailable: Si no se pudo consultar el estado
        """
        try:
            result = self.runner.running_services(cancellation=cancellation)
        except CommandError as e:
            raise ProbeUnavailable(name, str(e))

        if not result.ok:
            raise ProbeUnavailable(name, result.error_text())

        running = {line.strip() for line in result.stdout.splitlines() if line.strip()}
        return name in running
