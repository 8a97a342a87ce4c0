"""Adapters between awaitable results and optional error-first callbacks.

Every public player operation is a coroutine.  Callers may also pass
``callback=`` and get ``callback(err, *results)`` before the coroutine
returns or raises.
"""

from .errors import InvalidResult


async def deliver(awaitable, callback=None):
    """Await *awaitable*, report the outcome to *callback*, then return/raise it.

    Success calls ``callback(None, result)``; failure calls
    ``callback(exc, None)`` and re-raises *exc* unchanged.  A reply the
    player answered without a usable value (``InvalidResult``) reaches the
    callback as ``(None, None)`` while awaiting callers still get the raise.
    """
    try:
        result = await awaitable
    except InvalidResult:
        if callback is not None:
            callback(None, None)
        raise
    except Exception as e:
        if callback is not None:
            callback(e, None)
        raise
    if callback is not None:
        callback(None, result)
    return result
