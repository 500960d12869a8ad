# backend/errors.py
"""Error taxonomy for the scheduler.

Routes map ``AuthResolutionError`` to 401 and ``PersistenceError`` to 500.
The gateway errors never reach the client: the orchestrators catch them,
log them and report them as degraded side effects.
"""

class SchedulerError(Exception):
    pass

class AuthResolutionError(SchedulerError):
    """No user could be resolved for the request."""

class CredentialError(SchedulerError):
    """The resolved user has no linked Google refresh token."""

class CalendarGatewayError(SchedulerError):
    pass

class AIGatewayError(SchedulerError):
    pass

class PersistenceError(SchedulerError):
    pass
