# =============================================================================
# Error Taxonomy
# =============================================================================
#
# Every error the simulator raises on purpose derives from SimulatorError.
# The API layer maps them to HTTP status codes in app/main.py:
#
#   ValidationError     → 400  (bad input, rejected before any state change)
#   SessionStateError   → 400  (command not valid in the current status)
#   NotFoundError       → 404  (unknown session / document id)
#   ProviderUnavailable → 503  (generation capability not configured)
#   anything else       → 500
#
# GenerationDegraded and its subclasses are caught inside the Questioner and
# Responder and turned into deterministic fallbacks. They only reach the API
# when an endpoint explicitly requires the generation capability.
# =============================================================================

from __future__ import annotations


class SimulatorError(Exception):
    """Base class for all simulator errors."""


class ValidationError(SimulatorError):
    """Invalid input: missing documents, malformed or unknown ids."""


class NotFoundError(SimulatorError):
    """Requested session or document does not exist."""


class SessionStateError(SimulatorError):
    """A session command was issued in a status that does not allow it."""


class GenerationDegraded(SimulatorError):
    """The external generation capability could not produce output."""


class ProviderUnavailable(GenerationDegraded):
    """No generation provider is configured (missing key or disabled)."""


class GenerationFailed(GenerationDegraded):
    """The provider was reachable but the call failed (transport, quota...)."""
