"""
Service layer for the attendee sync feature.
"""

from .locking import AttendeeLockedError, attendee_lock
from .reconciler import AttendeeReconciler, AttendeeSyncError

__all__ = [
    "AttendeeLockedError",
    "AttendeeReconciler",
    "AttendeeSyncError",
    "attendee_lock",
]
