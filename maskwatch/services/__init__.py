"""Сервисы приложения: захват с камеры, классификатор масок, политика доступа."""

from .capture_service import OpenCVDeviceHandle, OpenCVDeviceService
from .mask_classifier_service import MaskClassifierService
from .permission_service import PolicyPermissionService

__all__ = [
    "OpenCVDeviceHandle",
    "OpenCVDeviceService",
    "MaskClassifierService",
    "PolicyPermissionService",
]
