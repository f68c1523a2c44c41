from .dto import Correspondence, MigrationStatus
from .service import MigrationReconciler

__all__ = ["Correspondence", "MigrationStatus", "MigrationReconciler"]
