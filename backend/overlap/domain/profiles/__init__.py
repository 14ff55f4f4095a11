"""Profile domain exports."""

from . import service  # noqa: F401
from .exceptions import NicknameTooLong  # noqa: F401
from .schemas import ProfileEnvelope, ProfileUpdateRequest  # noqa: F401
