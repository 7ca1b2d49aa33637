"""
SessionLib - Interactive editing session

This module provides preview scheduling, resource lifecycle tracking and
the editing session that ties them to the pixel engine. The Qt timer
backend lives in OC_Libs.SessionLib.qt_timer and is not imported here so
the session works without PyQt5.
"""

from OC_Libs.SessionLib.editor_config import EditorConfig
from OC_Libs.SessionLib.preview_timers import CooperativeTimer, PreviewTimer
from OC_Libs.SessionLib.preview_scheduler import PreviewScheduler, SchedulerState
from OC_Libs.SessionLib.resource_manager import (
    HandleState,
    ResourceHandle,
    ResourceLifecycleManager,
)
from OC_Libs.SessionLib.editor_session import EditParams, EditorSession, IDENTITY_PARAMS

__all__ = [
    "EditorConfig",
    "CooperativeTimer",
    "PreviewTimer",
    "PreviewScheduler",
    "SchedulerState",
    "HandleState",
    "ResourceHandle",
    "ResourceLifecycleManager",
    "EditParams",
    "EditorSession",
    "IDENTITY_PARAMS",
]
