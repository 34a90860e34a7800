"""
Jobs for the attendee sync feature.
"""

from .process_attendee_job import process_attendee, process_webhook

__all__ = ["process_attendee", "process_webhook"]
