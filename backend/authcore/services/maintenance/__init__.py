from authcore.services.maintenance.service import PurgeReport, SessionMaintenanceService

__all__ = ["SessionMaintenanceService", "PurgeReport"]
