"""Tracker fan-out, email delivery and operator alerts."""

from .alerts import OperatorAlerter
from .email import DeliveryResult, EmailDelivery, build_post_email
from .fanout import FanoutResult, NotificationFanout, post_targets

__all__ = [
    "DeliveryResult",
    "EmailDelivery",
    "FanoutResult",
    "NotificationFanout",
    "OperatorAlerter",
    "build_post_email",
    "post_targets",
]
