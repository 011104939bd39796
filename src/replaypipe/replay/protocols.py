# src/replaypipe/replay/protocols.py
"""Protocol definitions for the replay pipeline's external collaborators.

The pipeline talks to three collaborators it does not implement:
- a recorder that produces raw interaction events,
- a sink that receives finished envelopes,
- a host environment that describes the page and the identified user.
"""

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from replaypipe.contracts.envelope import SessionReplayEnvelope
    from replaypipe.contracts.session import Viewport

StopHandle = Callable[[], None]
RawEventCallback = Callable[[object], None]


@runtime_checkable
class RecorderProtocol(Protocol):
    """External DOM recorder.

    Lifecycle:
        1. start() is called once per session with recorder options and the
           controller's own event callback.
        2. The recorder invokes the callback with raw events of shape
           {"type"|"kind": int, "data": ..., "timestamp": ms}.
        3. The returned stop handle halts recording.

    The callback is passed explicitly; recorders must not register it
    globally. start() may raise - the controller treats that as a setup
    failure.
    """

    def start(self, options: Mapping[str, Any], emit: RawEventCallback) -> StopHandle | None:
        """Begin recording.

        Args:
            options: Recorder options from SessionConfig.recorder_start_options()
            emit: Callback receiving raw events

        Returns:
            Callable that stops recording, or None if the recorder cannot be stopped.
        """
        ...


@runtime_checkable
class EnvelopeSink(Protocol):
    """Destination for finished envelopes.

    capture() is fire-and-forget: it must not block on delivery. It should
    not raise, but the controller isolates every call so a raising sink can
    never corrupt buffer state.
    """

    def capture(self, envelope: "SessionReplayEnvelope") -> None:
        """Accept one envelope for delivery."""
        ...


@runtime_checkable
class HostEnvironment(Protocol):
    """Page and user context read each time metadata or an envelope is built."""

    @property
    def user_id(self) -> str | None:
        """Currently identified user, or None."""
        ...

    @property
    def url(self) -> str: ...

    @property
    def user_agent(self) -> str: ...

    @property
    def viewport(self) -> "Viewport": ...

    @property
    def device_pixel_ratio(self) -> float: ...
