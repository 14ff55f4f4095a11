"""Overlap domain exports."""

from . import audit, hashing, service, sockets, tiers  # noqa: F401
from .models import OVERLAP_THRESHOLD, AlertStatus, Intent  # noqa: F401
from .schemas import AlertOut, DeclareRequest, DeclareResponse  # noqa: F401
