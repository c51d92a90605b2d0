"""
Notification system for the Lyra wellbeing app.

This module handles:
- Rendering push templates from the built-in catalog
- Deciding per user and notification type whether a send is allowed
- Delivering pushes in batches and recording one notification per send
- Running the recurring notification jobs
"""

from .templates import TemplateRegistry, interpolate
from .eligibility import EligibilityEngine, PolicyDecision
from .dispatcher import DeliveryDispatcher
from .scheduler import NotificationScheduler

__all__ = [
    'TemplateRegistry',
    'interpolate',
    'EligibilityEngine',
    'PolicyDecision',
    'DeliveryDispatcher',
    'NotificationScheduler',
]
