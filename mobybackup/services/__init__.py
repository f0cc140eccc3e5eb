"""
Servicios de la aplicación
"""
from .backup_service import BackupService
from .cleanup_service import CleanupService, PruneResult
from .compression_service import CompressionService
from .restore_service import RestoreService
from .scheduler_service import SchedulerService
from .summary_service import SummaryReporter

__all__ = [
    'BackupService',
    'CleanupService',
    'CompressionService',
    'PruneResult',
    'RestoreService',
    'SchedulerService',
    'SummaryReporter'
]
