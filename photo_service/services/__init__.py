"""
Services

Storage, collaborator clients and the per-request asset services.
"""

from .storage import StorageService, get_storage_service
from .photos import PhotoService
from .voice_prompts import VoicePromptService
from .reports import ReportService

__all__ = [
    "StorageService",
    "get_storage_service",
    "PhotoService",
    "VoicePromptService",
    "ReportService",
]
