"""
Ejecución de comandos en el contexto de un servicio

Todos los comandos se construyen como listas de argumentos y se ejecutan
sin shell. Las credenciales viajan como variables de entorno del exec.
"""
import os
import subprocess
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .exceptions import CommandTimeout, CommandUnavailable, RunCancelled
from .logger import LoggerService


class Cancellation:
    """Token de cancelación suministrado por quien invoca la ejecución"""

    def __init__(self, timeout: Optional[float] = None):
        """
        Args:
            timeout: Segundos hasta que la ejecución se considera cancelada (opcional)
        """
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout else None

    def cancel(self):
        self._event.set()

    def is_cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def raise_if_cancelled(self):
        if self.is_cancelled():
            raise RunCancelled("Ejecución cancelada")

    def wait(self, seconds: float) -> bool:
        """
        Espera hasta `seconds` o hasta la cancelación

        Returns:
            True si la ejecución fue cancelada durante la espera
        """
        if self._deadline is not None:
            seconds = max(0.0, min(seconds, self._deadline - time.monotonic()))
        self._event.wait(seconds)
        return self.is_cancelled()


@dataclass
class CommandResult:
    """Resultado de un comando externo"""
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def error_text(self) -> str:
        text = (self.stderr or self.stdout or "").strip()
        return text or f"código de salida {self.returncode}"


class CommandRunner(ABC):
    """Interfaz para ejecutar comandos contra servicios en ejecución"""

    @abstractmethod
    def exec(self, service: str, argv: Sequence[str], env: Optional[Dict[str, str]] = None,
             stdout_path: Optional[Path] = None, stdin_path: Optional[Path] = None,
             cancellation: Optional[Cancellation] = None,
             timeout: Optional[float] = None) -> CommandResult:
        """
        Ejecuta argv dentro del servicio

        Args:
            service: Nombre del servicio
            argv: Comando y argumentos
            env: Variables de entorno para el comando (credenciales)
            stdout_path: Si se indica, la salida estándar se redirige a este archivo
            stdin_path: Si se indica, se usa como entrada estándar
            cancellation: Token de cancelación
            timeout: Tiempo límite en segundos
        """

    @abstractmethod
    def copy_from(self, service: str, source: str, destination: Path,
                  cancellation: Optional[Cancellation] = None) -> CommandResult:
        """Copia un archivo o directorio del servicio al sistema local"""

    @abstractmethod
    def copy_to(self, service: str, source: Path, destination: str,
                cancellation: Optional[Cancellation] = None) -> CommandResult:
        """Copia un archivo o directorio local dentro del servicio"""

    @abstractmethod
    def running_services(self, cancellation: Optional[Cancellation] = None) -> CommandResult:
        """Lista (una por línea) los servicios en ejecución"""


class ComposeCommandRunner(CommandRunner):
    """Ejecuta comandos a través de docker-compose (o docker compose)"""

    POLL_INTERVAL = 0.2
    TERMINATE_GRACE = 5.0

    def __init__(self, compose_command: Sequence[str] = ("docker-compose",),
                 compose_file: Optional[str] = None, project_dir: Optional[Path] = None,
                 command_timeout: Optional[float] = 3600.0):
        self.compose_command = list(compose_command)
        self.compose_file = compose_file
        self.project_dir = project_dir
        self.command_timeout = command_timeout
        self.logger = LoggerService.get_logger("CommandRunner")

    def _base_command(self) -> List[str]:
        cmd = list(self.compose_command)
        if self.compose_file:
            cmd.extend(["-f", str(self.compose_file)])
        return cmd

    def build_exec_command(self, service: str, argv: Sequence[str],
                           env: Optional[Dict[str, str]] = None) -> List[str]:
        cmd = self._base_command() + ["exec", "-T"]
        # Solo el nombre: el valor viaja en el entorno del proceso, no en la línea de comandos
        for key in (env or {}):
            cmd.extend(["-e", key])
        cmd.append(service)
        cmd.extend(argv)
        return cmd

    def exec(self, service, argv, env=None, stdout_path=None, stdin_path=None,
             cancellation=None, timeout=None) -> CommandResult:
        cmd = self.build_exec_command(service, argv, env)
        self.logger.debug(f"Ejecutando en {service}: {' '.join(argv)}")
        return self._run(cmd, stdout_path=stdout_path, stdin_path=stdin_path,
                         cancellation=cancellation, timeout=timeout, env=env)

    def copy_from(self, service, source, destination, cancellation=None) -> CommandResult:
        cmd = self._base_command() + ["cp", f"{service}:{source}", str(destination)]
        return self._run(cmd, cancellation=cancellation)

    def copy_to(self, service, source, destination, cancellation=None) -> CommandResult:
        cmd = self._base_command() + ["cp", str(source), f"{service}:{destination}"]
        return self._run(cmd, cancellation=cancellation)

    def running_services(self, cancellation=None) -> CommandResult:
        cmd = self._base_command() + ["ps", "--services", "--filter", "status=running"]
        return self._run(cmd, cancellation=cancellation, timeout=60)

    def _run(self, cmd: List[str], stdout_path: Optional[Path] = None,
             stdin_path: Optional[Path] = None, cancellation: Optional[Cancellation] = None,
             timeout: Optional[float] = None,
             env: Optional[Dict[str, str]] = None) -> CommandResult:
        """
        Ejecuta un comando vigilando cancelación y tiempo límite

        Raises:
            CommandUnavailable: Si el ejecutable no existe
            CommandTimeout: Si el comando supera el tiempo límite
            RunCancelled: Si la ejecución fue cancelada
        """
        timeout = timeout if timeout is not None else self.command_timeout
        deadline = time.monotonic() + timeout if timeout else None
        process_env = dict(os.environ, **env) if env else None

        stdout_file = open(stdout_path, 'wb') if stdout_path else None
        stdin_file = open(stdin_path, 'rb') if stdin_path else None
        try:
            try:
                process = subprocess.Popen(
                    cmd,
                    stdout=stdout_file if stdout_file else subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    stdin=stdin_file if stdin_file else subprocess.DEVNULL,
                    cwd=str(self.project_dir) if self.project_dir else None,
                    env=process_env,
                )
            except FileNotFoundError as e:
                raise CommandUnavailable(f"No se encontró el ejecutable {cmd[0]}: {e}")

            while True:
                try:
                    out, err = process.communicate(timeout=self.POLL_INTERVAL)
                    break
                except subprocess.TimeoutExpired:
                    if cancellation is not None and cancellation.is_cancelled():
                        self._terminate(process)
                        raise RunCancelled(f"Comando cancelado: {cmd[0]}")
                    if deadline is not None and time.monotonic() >= deadline:
                        self._terminate(process)
                        raise CommandTimeout(f"El comando superó {timeout:.0f}s")
        finally:
            if stdout_file:
                stdout_file.close()
            if stdin_file:
                stdin_file.close()

        return CommandResult(
            returncode=process.returncode,
            stdout=(out or b"").decode('utf-8', errors='replace'),
            stderr=(err or b"").decode('utf-8', errors='replace'),
        )

    def _terminate(self, process: subprocess.Popen):
        """Termina el proceso: SIGTERM y, si no responde, SIGKILL"""
        process.terminate()
        try:
            process.communicate(timeout=self.TERMINATE_GRACE)
        except subprocess.TimeoutExpired:
            self.logger.warning(f"El proceso {process.pid} no respondió a SIGTERM, forzando cierre")
            process.kill()
            process.communicate()
