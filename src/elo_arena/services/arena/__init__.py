from .pairing import RandomSource, create_rng, select_pair
from .session import ComparisonSession, SessionObserver, SessionState

__all__ = [
    "ComparisonSession",
    "RandomSource",
    "SessionObserver",
    "SessionState",
    "create_rng",
    "select_pair",
]
