"""Session lifecycle supervisor.

Owns the single transport session of the process, consumes its lifecycle
events one at a time from a queue, restarts it after transient disconnects
and publishes the readiness flag consulted by the request path.

    Uninitialized -> AwaitingAuthentication -> Connected -> Disconnected
          ^                                                     |
          +------------------ transient ------------------------+
                                 logged out -> (terminal)
"""

import asyncio
import logging
import threading
from enum import Enum
from typing import Awaitable, Callable, Optional, Set, Tuple

from auth.store import CredentialStore

from .base import EventSink, TransportFactory, TransportSession
from .events import (
    Connected,
    CredentialsUpdated,
    Disconnected,
    MessageReceived,
    PairingChallenge,
    SessionEvent,
)
from .exceptions import NotReadyError
from .models import Payload

logger = logging.getLogger(__name__)

MessageHandler = Callable[[MessageReceived], Awaitable[None]]


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    AWAITING_AUTHENTICATION = "awaiting_authentication"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class SessionSupervisor:
    """Keeps exactly one live transport session."""

    def __init__(
        self,
        transport_factory: TransportFactory,
        credential_store: CredentialStore,
        on_message: Optional[MessageHandler] = None,
    ):
        self._factory = transport_factory
        self._store = credential_store
        self._on_message = on_message

        self._state = SessionState.UNINITIALIZED
        self._ready = threading.Event()
        self._logged_out = False
        self._session: Optional[TransportSession] = None
        self._generation = 0
        self._pairing_challenge: Optional[str] = None

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional["asyncio.Queue[Tuple[int, SessionEvent]]"] = None
        self._worker: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._send_lock = asyncio.Lock()

    # ==================== Status ====================

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    @property
    def logged_out(self) -> bool:
        return self._logged_out

    @property
    def pairing_challenge(self) -> Optional[str]:
        """Last pairing payload, while waiting for authentication."""
        if self._state != SessionState.AWAITING_AUTHENTICATION:
            return None
        return self._pairing_challenge

    def session(self) -> TransportSession:
        """Return the live session handle.

        Raises:
            NotReadyError: If the session is not connected.
        """
        session = self._session
        if not self._ready.is_set() or session is None:
            raise NotReadyError()
        return session

    def on_message(self, handler: Optional[MessageHandler]) -> None:
        """Register the handler for inbound messages."""
        self._on_message = handler

    async def send(self, destination_id: str, payload: Payload) -> Optional[str]:
        """Send on the live session and return the backend message id.

        Sends are serialized when the transport cannot run them concurrently.

        Raises:
            NotReadyError: If the session is not connected.
            TransportError: If the backend fails the send.
        """
        session = self.session()
        if session.concurrent_sends_safe:
            return await session.send(destination_id, payload)
        async with self._send_lock:
            return await session.send(destination_id, payload)

    # ==================== Lifecycle ====================

    async def start(self) -> None:
        """Start consuming events and open the first session."""
        if self._worker is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._run(), name="session-supervisor")
        await self._spawn()

    async def stop(self) -> None:
        """Stop the event worker and close the current session."""
        self._ready.clear()
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        for task in list(self._tasks):
            task.cancel()
        session, self._session = self._session, None
        await self._retire(session)

    def _emitter(self, generation: int) -> EventSink:
        """Build a thread-safe event sink bound to one session generation."""

        def emit(event: SessionEvent) -> None:
            item = (generation, event)
            try:
                running = asyncio.get_running_loop()
            except RuntimeError:
                running = None
            if running is self._loop:
                self._queue.put_nowait(item)
            else:
                self._loop.call_soon_threadsafe(self._queue.put_nowait, item)

        return emit

    async def _spawn(self) -> None:
        """Create and start a new transport session."""
        self._generation += 1
        generation = self._generation
        self._state = SessionState.UNINITIALIZED
        self._pairing_challenge = None

        try:
            credentials = self._store.load()
            session = self._factory(credentials, self._emitter(generation))
            self._session = session
            self._state = SessionState.AWAITING_AUTHENTICATION
            logger.info(f"Starting WhatsApp session (attempt {generation})")
            await session.start()
        except Exception:
            # Construction failures are not retried; only disconnects are.
            logger.exception("Failed to create WhatsApp session")
            self._session = None
            self._state = SessionState.UNINITIALIZED

    async def _retire(self, session: Optional[TransportSession]) -> None:
        if session is None:
            return
        try:
            await session.stop()
        except Exception as e:
            logger.warning(f"Error while closing WhatsApp session: {e}")

    async def _run(self) -> None:
        while True:
            generation, event = await self._queue.get()
            try:
                await self.handle(event, generation)
            except Exception:
                logger.exception(f"Error handling session event {event!r}")
            finally:
                self._queue.task_done()

    # ==================== Event handling ====================

    async def handle(self, event: SessionEvent, generation: Optional[int] = None) -> None:
        """Apply one event to the state machine.

        Events from a superseded session are dropped, except credential
        updates and logged-out disconnects which concern the account.
        """
        if isinstance(event, CredentialsUpdated):
            await asyncio.to_thread(self._store.save, event.credentials)
            return

        stale = generation is not None and generation != self._generation
        if isinstance(event, Disconnected) and event.logged_out:
            await self._on_logged_out(event)
            return
        if stale:
            logger.debug(f"Ignoring {type(event).__name__} from a previous session")
            return

        if isinstance(event, PairingChallenge):
            self._on_pairing(event)
        elif isinstance(event, Connected):
            self._on_connected()
        elif isinstance(event, Disconnected):
            await self._on_transient_disconnect(event)
        elif isinstance(event, MessageReceived):
            self._on_inbound(event)
        else:
            logger.warning(f"Unknown session event: {event!r}")

    def _on_pairing(self, event: PairingChallenge) -> None:
        self._pairing_challenge = event.data
        logger.warning("QR code generated! Scan it with WhatsApp to pair this gateway:")
        logger.warning(event.data)

    def _on_connected(self) -> None:
        if self._logged_out:
            logger.warning("Ignoring connect after logout; restart the process to pair again")
            return
        self._state = SessionState.CONNECTED
        self._pairing_challenge = None
        self._ready.set()
        logger.info("WhatsApp connected")

    async def _on_transient_disconnect(self, event: Disconnected) -> None:
        self._ready.clear()
        self._state = SessionState.DISCONNECTED
        if self._logged_out:
            return
        logger.warning(f"WhatsApp disconnected ({event.detail or 'no detail'}), reconnecting")
        session, self._session = self._session, None
        await self._retire(session)
        await self._spawn()

    async def _on_logged_out(self, event: Disconnected) -> None:
        self._ready.clear()
        self._state = SessionState.DISCONNECTED
        if self._logged_out:
            return
        self._logged_out = True
        logger.error(
            f"WhatsApp session logged out. Remove {self._store.directory} "
            "(or run `zapgate logout`) and restart to pair again."
        )
        session, self._session = self._session, None
        await self._retire(session)

    def _on_inbound(self, event: MessageReceived) -> None:
        if self._on_message is None:
            return
        # Replies may hit the network; keep the event queue moving.
        task = asyncio.create_task(self._deliver_inbound(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver_inbound(self, event: MessageReceived) -> None:
        try:
            await self._on_message(event)
        except Exception as e:
            logger.error(f"Inbound message handler failed: {e}")
