"""
FinalizationWaiter - waits for the Relay to finalize a voting round.
"""
import logging
import threading
from typing import Any, Optional

from .contracts import RPC_ERRORS
from .exceptions import FinalizationQueryFailed, FinalizationTimeout
from .models import FinalizationStatus
from .polling import Poller, Sleeper, Clock

DEFAULT_FINALIZATION_POLL_INTERVAL = 30.0


class FinalizationWaiter:
    """
    Polls Relay.isFinalized(protocolId, roundId) at a fixed interval.

    Finalization is periodic protocol progress rather than a failure, so the
    interval does not back off.
    """

    def __init__(
        self,
        relay: Any,
        poll_interval: float = DEFAULT_FINALIZATION_POLL_INTERVAL,
        timeout: Optional[float] = None,
        sleep: Optional[Sleeper] = None,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.relay = relay
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.sleep = sleep
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)

    def is_finalized(self, protocol_id: int, round_id: int) -> bool:
        """
        Single Relay.isFinalized query.

        Raises:
            FinalizationQueryFailed: If the Relay call fails
        """
        try:
            return bool(self.relay.functions.isFinalized(protocol_id, round_id).call())
        except RPC_ERRORS as e:
            self.logger.error(f"Relay query for round {round_id} failed: {e}")
            raise FinalizationQueryFailed(
                f"Could not query finalization of voting round {round_id}: {e}", round_id=round_id
            ) from e

    def status(self, protocol_id: int, round_id: int) -> FinalizationStatus:
        if self.is_finalized(protocol_id, round_id):
            return FinalizationStatus.FINALIZED
        return FinalizationStatus.PENDING

    def await_finalization(
        self,
        protocol_id: int,
        round_id: int,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> FinalizationStatus:
        """
        Block until the round is finalized.

        Args:
            protocol_id: FDC protocol id (200 on Flare networks)
            round_id: Voting round id
            timeout: Seconds to wait before giving up, defaults to the
                waiter's timeout; None waits indefinitely
            cancel_event: Event that aborts the wait when set

        Returns:
            FinalizationStatus.FINALIZED

        Raises:
            FinalizationTimeout: If the deadline passes first
            FinalizationQueryFailed: If a Relay query fails
            OperationCancelled: If cancel_event is set
        """
        poller = Poller(sleep=self.sleep, clock=self.clock, cancel_event=cancel_event, stage="finalization")
        timeout = self.timeout if timeout is None else timeout
        deadline = poller.deadline(timeout)
        self.logger.info(f"Waiting for voting round {round_id} to finalize...")

        checks = 0
        while True:
            poller.check_cancelled()
            checks += 1
            if self.is_finalized(protocol_id, round_id):
                self.logger.info(f"Voting round {round_id} finalized after {checks} checks")
                return FinalizationStatus.FINALIZED
            if poller.expired(deadline):
                raise FinalizationTimeout(
                    f"Voting round {round_id} not finalized after {timeout}s", round_id=round_id
                )
            self.logger.debug(f"Round {round_id} not finalized yet, checking again in {self.poll_interval}s")
            poller.pause(self.poll_interval, deadline)
