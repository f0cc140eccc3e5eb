"""
Resumen de una ejecución de backup
"""
from typing import List
from ..exceptions import CompressionFailed
from ..models import BackupRun, OutcomeStatus

STATUS_CLEAN = "clean"
STATUS_WITH_FAILURES = "completed_with_failures"
STATUS_CANCELLED = "cancelled"

_SKIP_REASONS = {
    OutcomeStatus.SKIPPED_NOT_RUNNING: "not_running",
    OutcomeStatus.SKIPPED_PROBE_UNAVAILABLE: "probe_unavailable",
    OutcomeStatus.SKIPPED_CANCELLED: "cancelled",
}


class SummaryReporter:
    """Construye el resumen de un BackupRun sin efectos secundarios"""

    @staticmethod
    def status(run: BackupRun) -> str:
        if run.cancelled:
            return STATUS_CANCELLED
        if run.failure_count:
            return STATUS_WITH_FAILURES
        return STATUS_CLEAN

    @classmethod
    def build(cls, run: BackupRun) -> dict:
        """
        Resumen verificable por máquina

        Args:
            run: Ejecución finalizada

        Returns:
            Diccionario serializable a JSON
        """
        failures = [
            {
                'service': outcome.service_name,
                'stage': 'dump',
                'error': str(outcome.error)
            }
            for outcome in run.failed
        ]
        for issue in run.issues:
            stage = 'compression' if isinstance(issue, CompressionFailed) else 'prune'
            failures.append({
                'service': None,
                'stage': stage,
                'artifact': str(getattr(issue, 'artifact', '')),
                'error': str(issue)
            })

        return {
            'timestamp': run.timestamp,
            'started_at': run.started_at.isoformat(),
            'finished_at': run.finished_at.isoformat() if run.finished_at else None,
            'retention_days': run.retention_days,
            'status': cls.status(run),
            'artifacts': [
                {
                    'service': artifact.service_name,
                    'engine': artifact.engine.value,
                    'path': str(artifact.path),
                    'size_bytes': artifact.size_bytes,
                    'compression': artifact.compression.value
                }
                for artifact in run.artifacts
            ],
            'skipped': [
                {
                    'service': outcome.service_name,
                    'reason': _SKIP_REASONS[outcome.status],
                    'detail': str(outcome.error) if outcome.error else None
                }
                for outcome in run.skipped
            ],
            'failures': failures,
            'failure_count': run.failure_count,
            'pruned': [str(path) for path in run.pruned]
        }

    @classmethod
    def render(cls, run: BackupRun) -> List[str]:
        """Resumen legible, una línea por elemento"""
        lines = [
            "=" * 70,
            "RESUMEN DEL PROCESO DE BACKUP",
            "=" * 70,
            f"Timestamp de la ejecución: {run.timestamp}",
            f"Retención configurada: {run.retention_days} días"
            + (" (limpieza desactivada)" if run.retention_days == 0 else ""),
        ]

        for outcome in run.outcomes:
            lines.append(str(outcome))

        artifacts = run.artifacts
        lines.append("-" * 70)
        lines.append(f"Backups creados: {len(artifacts)}")
        for artifact in artifacts:
            lines.append(f"  Archivo: {artifact}")

        skipped = run.skipped
        if skipped:
            lines.append(f"Servicios omitidos: {len(skipped)}")
            for outcome in skipped:
                lines.append(f"  {outcome.service_name}: {_SKIP_REASONS[outcome.status]} ({outcome.error})")

        if run.failed or run.issues:
            lines.append(f"Fallos: {run.failure_count}")
            for outcome in run.failed:
                lines.append(f"  {outcome.service_name}: {outcome.error}")
            for issue in run.issues:
                lines.append(f"  {issue}")

        lines.append(f"Backups antiguos eliminados: {len(run.pruned)}")
        lines.append("=" * 70)

        status = cls.status(run)
        if status == STATUS_CANCELLED:
            lines.append("Ejecución cancelada antes de terminar")
        elif status == STATUS_WITH_FAILURES:
            lines.append(f"Completado con {run.failure_count} fallo(s)")
        else:
            lines.append("Completado sin errores")
        return lines
