# Overview: Session and admin gates for client facade actions.

from functools import wraps

from flask import current_app

from .errors import Unauthenticated, Forbidden
from .results import ActionResult


def require_session(f):
    """
    Require an authenticated session on the client.

    Returns an "unauthenticated" ActionResult instead of calling the action;
    the presentation layer routes that to the login screen.
    """
    @wraps(f)
    def decorated_function(client, *args, **kwargs):
        if client.session is None:
            return ActionResult.failure(Unauthenticated("Authentication required"))
        return f(client, *args, **kwargs)

    return decorated_function


def require_admin(f):
    """
    Require an admin session. The admin capability set is gated solely by
    the session's is_admin flag.
    """
    @wraps(f)
    def decorated_function(client, *args, **kwargs):
        if client.session is None:
            return ActionResult.failure(Unauthenticated("Authentication required"))
        if not client.session.is_admin:
            current_app.logger.warning(
                "Admin action %s denied for %s", f.__name__, client.session.username
            )
            return ActionResult.failure(Forbidden("Admin access required"))
        return f(client, *args, **kwargs)

    return decorated_function
