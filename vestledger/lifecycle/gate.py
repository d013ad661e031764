"""
Lifecycle gate: configuring → started, one-way.

Configuration may only be replaced while configuring. start() may only
succeed once.
"""

from vestledger.core.exceptions import AlreadyStartedError, LifecycleError
from vestledger.core.models import LifecycleState
from vestledger.state import VestingState


def require_configuring(state: VestingState, operation: str) -> None:
    """Raise LifecycleError if configuration is frozen."""
    if state.lifecycle is not LifecycleState.CONFIGURING:
        raise LifecycleError(
            f"{operation} is not permitted after start",
            {"lifecycle": state.lifecycle.value},
        )


def start(state: VestingState) -> VestingState:
    if state.lifecycle is LifecycleState.STARTED:
        raise AlreadyStartedError("vesting already started")
    return state.evolve(lifecycle=LifecycleState.STARTED)
