from .pool_state import AbstractPoolState

__all__ = ("AbstractPoolState",)
