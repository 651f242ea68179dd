"""
Fan-out of core events to the configured notification backends.

Delivery failure never fails the transition that produced the event: each
failing backend is logged and reported back as a warning string.
"""

import json
import logging

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


def get_backend(path):
    return import_string(path)()


def notify(event_type, recipient=None, **payload):
    """
    Send ``event_type`` with ``payload`` to every backend.

    Must be called after the state change has committed. Returns a list of
    warnings, empty when every backend delivered.
    """
    event_type = str(event_type)
    data = json.loads(json.dumps(payload, cls=DjangoJSONEncoder))
    warnings = []

    for path in settings.NOTIFICATION_BACKENDS:
        name = path.rsplit(".", 1)[-1]
        try:
            backend = get_backend(path)
            backend.send(event_type, recipient, data)
        except Exception as e:
            logger.exception(f"[Notify] {name} failed to deliver {event_type}")
            warnings.append(f"{event_type} notification via {name} failed: {e}")

    if not warnings:
        logger.info(f"[Notify] {event_type} delivered to {recipient.pk if recipient else 'operator'}")
    return warnings
