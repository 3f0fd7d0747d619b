"""
Liveness Tokens

A purchase is requested by some UI context (a screen, a dialog) that may
be gone by the time the provider answers. The requester hands the state
machine a token and releases it when it goes away; the machine checks
the token before doing anything UI-facing.
"""


class LivenessToken:
    """
    Cancellation handle for a UI context.

    Can be used as a context manager: the token is released on exit.
    """

    def __init__(self, owner: str = "ui"):
        self.owner = owner
        self._alive = True

    @property
    def alive(self) -> bool:
        return self._alive

    def release(self) -> None:
        self._alive = False

    def __enter__(self) -> "LivenessToken":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"LivenessToken(owner={self.owner!r}, alive={self._alive})"
