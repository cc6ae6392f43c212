from crm.services.dedup_service import DuplicateDetectionService

__all__ = ["DuplicateDetectionService"]
