# Import all models for easier access
from .event import Event  # noqa: F401
from .registry_state import REGISTRY_STATE_ID, RegistryState  # noqa: F401
from .ticket import TicketHolder  # noqa: F401
