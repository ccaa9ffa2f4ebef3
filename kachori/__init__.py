"""KachoriOS: camera stock counting with human verification, plus an always-on shop assistant."""

from .app import KachoriApp
from .camera import CapturedFrame, WebcamCapture
from .config import (
    AppConfig,
    AssistantConfig,
    CameraConfig,
    KachoriConfig,
    StorageConfig,
    VisionConfig,
    load_config,
)
from .credentials import CredentialGate
from .db import CountLogEntry, KeyValueStore, LogStore
from .errors import (
    AnalysisFailed,
    CredentialRejected,
    CredentialRequired,
    KachoriError,
    StorageReadCorrupt,
    StorageWriteError,
)
from .live import LiveSessionAggregator, ShopInsight, ShopOrder
from .modes import Mode, SessionModeManager
from .pipeline import CapturePipeline, CaptureStatus, PendingVerification, VerificationStage
from .vision import AnalysisFailure, AnalysisResult, VisionBackend, create_backend

__all__ = [
    "KachoriApp",
    "CapturedFrame",
    "WebcamCapture",
    "KachoriConfig",
    "StorageConfig",
    "CameraConfig",
    "VisionConfig",
    "AssistantConfig",
    "AppConfig",
    "load_config",
    "CredentialGate",
    "CountLogEntry",
    "KeyValueStore",
    "LogStore",
    "KachoriError",
    "CredentialRejected",
    "CredentialRequired",
    "AnalysisFailed",
    "StorageReadCorrupt",
    "StorageWriteError",
    "LiveSessionAggregator",
    "ShopOrder",
    "ShopInsight",
    "Mode",
    "SessionModeManager",
    "CapturePipeline",
    "CaptureStatus",
    "PendingVerification",
    "VerificationStage",
    "VisionBackend",
    "AnalysisResult",
    "AnalysisFailure",
    "create_backend",
]
