"""
Core modules for the HikePal companion

This package contains the live tracking and annotation engine:
- simulator: user and teammate position simulation
- recorder / session: path recording and the recording state machine
- annotations: facility and hazard annotation cache
- emergency_alert: SOS escalation
- companion: wiring of all of the above
"""

from .annotations import (
    AnnotationStore,
    AnnotationSource,
    StaticAnnotationSource,
    SupabaseAnnotationSource
)

from .companion import Companion

from .emergency_alert import (
    SafetyController,
    format_sos_message
)

from .errors import (
    CompanionError,
    LoadError,
    SourceUnreachable,
    SourceRejected,
    SessionError,
    InvalidTransition,
    RecorderError,
    NotRecording,
    TelemetryUnavailable
)

from .recorder import PathRecorder
from .session import SessionController, SessionState
from .simulator import PositionSimulator, DEFAULT_ROSTER
from .telemetry import TelemetrySimulator, TelemetryReading

__all__ = [
    # Annotations
    "AnnotationStore",
    "AnnotationSource",
    "StaticAnnotationSource",
    "SupabaseAnnotationSource",
    
    # Tracking
    "Companion",
    "PathRecorder",
    "SessionController",
    "SessionState",
    "PositionSimulator",
    "DEFAULT_ROSTER",
    "TelemetrySimulator",
    "TelemetryReading",
    
    # Safety
    "SafetyController",
    "format_sos_message",
    
    # Errors
    "CompanionError",
    "LoadError",
    "SourceUnreachable",
    "SourceRejected",
    "SessionError",
    "InvalidTransition",
    "RecorderError",
    "NotRecording",
    "TelemetryUnavailable"
]
