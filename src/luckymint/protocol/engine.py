"""
luckymint/protocol/engine.py

Reward resolution engine.

Resolves one mint as a single transaction over one Round and one
Participant record:
- Eligibility: round exists, participant's cooldown has elapsed
- Draw: one uniform luck value from the injected random source
- Payout: combo multiplier, jackpot claim or contribution, lucky-number bonus
- Supply: payout must fit in the round's remaining supply
- Commit: both records written, badges granted, tokens minted and delivered
- Notify: the MintRecord is appended to the notification stream

A failed call leaves no trace: rejections happen before anything is
written, and a failure while writing or delivering restores both records
to their pre-call state before the error propagates.
"""

import logging
from typing import List, Optional, Tuple, TYPE_CHECKING

import trio

from ..config import EngineConfig
from ..errors import CooldownNotFinished, ExceedRoundMax, MintError
from ..blockchain.asset_ledger import AssetLedger, StoreAssetLedger
from .achievements import apply_achievements, evaluate_achievements
from .notifications import MintRecord, NotificationEmitter, NotificationSink
from .numeric import checked_add, checked_sub
from .participants import Participant, ParticipantLedger
from .payout import PayoutBreakdown, compute_payout
from .randomness import Clock, RandomSource, SecureRandomSource, SystemClock
from .rounds import Round, RoundLedger
from .storage import KeyedLock, MemoryBackend, StorageBackend

if TYPE_CHECKING:
    from ..metrics import MetricsCollector

logger = logging.getLogger("luckymint.protocol.engine")


def _round_lock_key(round_id: str) -> str:
    return f"round:{round_id}"


def _participant_lock_key(participant_id: str) -> str:
    return f"participant:{participant_id}"


class RewardEngine:
    """
    Orchestrates mints against the round and participant ledgers.

    Usage:
        engine = RewardEngine.create()
        await engine.initialize_round("season-1")

        record = await engine.resolve_mint("alice", "season-1")
        print(record.final_amount, record.is_jackpot)

        start, remaining, pool, mints, lucky = await engine.get_round_info("season-1")
    """

    def __init__(
        self,
        rounds: RoundLedger,
        participants: ParticipantLedger,
        asset_ledger: AssetLedger,
        random_source: RandomSource,
        clock: Clock,
        config: EngineConfig = None,
        emitter: NotificationEmitter = None,
        metrics: "MetricsCollector" = None,
    ):
        """
        Initialize the engine.

        Args:
            rounds: Round ledger
            participants: Participant ledger
            asset_ledger: Ledger that mints and delivers tokens
            random_source: Source of luck draws
            clock: Timestamp source
            config: Engine tunables (defaults if omitted)
            emitter: Notification emitter (a history-only one if omitted)
            metrics: Optional metrics collector; also registered as a sink
        """
        self.config = config or EngineConfig()
        self.config.validate()

        self.rounds = rounds
        self.participants = participants
        self.asset_ledger = asset_ledger
        self.random_source = random_source
        self.clock = clock
        self.emitter = emitter or NotificationEmitter()
        self.metrics = metrics
        if metrics is not None:
            self.emitter.add_sink(metrics)

        self._locks = KeyedLock()

    @classmethod
    def create(
        cls,
        backend: StorageBackend = None,
        config: EngineConfig = None,
        random_source: RandomSource = None,
        clock: Clock = None,
        sinks: List[NotificationSink] = (),
        metrics: "MetricsCollector" = None,
        asset_ledger: AssetLedger = None,
    ) -> "RewardEngine":
        """Build an engine whose ledgers all share one storage backend."""
        backend = backend or MemoryBackend()
        return cls(
            rounds=RoundLedger(backend),
            participants=ParticipantLedger(backend),
            asset_ledger=asset_ledger or StoreAssetLedger(backend),
            random_source=random_source or SecureRandomSource(),
            clock=clock or SystemClock(),
            config=config,
            emitter=NotificationEmitter(sinks),
            metrics=metrics,
        )

    # ========================================================================
    # ROUNDS
    # ========================================================================

    async def initialize_round(self, round_id: str, asset_kind: Optional[str] = None) -> Round:
        """
        Create a round with full supply, an empty pool and a fresh lucky number.

        Raises:
            RoundAlreadyExists: If round_id is taken
        """
        async with self._locks.hold(_round_lock_key(round_id)):
            lucky_number = await self.random_source.draw_uniform(
                self.config.min_probability,
                self.config.max_probability,
            )
            round_state = Round(
                round_id=round_id,
                asset_kind=asset_kind or self.config.asset_kind,
                start_time=self.clock.now(),
                max_supply=self.config.round_max_supply,
                remaining_supply=self.config.round_max_supply,
                lucky_number=lucky_number,
            )
            await self.rounds.create(round_state)

        logger.info(
            f"Initialized round {round_id} ({round_state.asset_kind}, "
            f"supply {round_state.max_supply})"
        )
        if self.metrics is not None:
            self.metrics.observe_round(round_state)
        return round_state

    async def get_round(self, round_id: str) -> Optional[Round]:
        return await self.rounds.get(round_id)

    async def get_round_info(self, round_id: str) -> Tuple[int, int, int, int, int]:
        """
        (start_time, remaining_supply, jackpot_pool, total_mints, lucky_number)

        Raises:
            RoundNotInitialized: If the round does not exist
        """
        return (await self.rounds.require(round_id)).info()

    # ========================================================================
    # PARTICIPANTS
    # ========================================================================

    async def get_participant(self, participant_id: str) -> Optional[Participant]:
        return await self.participants.get(participant_id)

    async def get_participant_info(
        self, participant_id: str
    ) -> Tuple[int, int, int, int, int, Tuple[str, ...]]:
        """
        (last_mint_time, total_mints, best_probability, current_combo,
        best_combo, achievement_badges)

        Participants that never minted report zeroed fields.
        """
        return (await self.participants.get_or_create(participant_id)).info()

    def history(self, limit: Optional[int] = None) -> List[MintRecord]:
        return self.emitter.history(limit)

    # ========================================================================
    # MINTING
    # ========================================================================

    async def resolve_mint(self, participant_id: str, round_id: str) -> MintRecord:
        """
        Resolve one mint for participant_id in round_id.

        Returns:
            The committed MintRecord

        Raises:
            RoundNotInitialized: If the round does not exist
            CooldownNotFinished: If the participant minted too recently
            ExceedRoundMax: If the payout does not fit in the remaining supply
            ArithmeticFault: If an invariant is violated (fatal)
            AssetLedgerError: If the tokens could not be minted or delivered
        """
        async with self._locks.hold(
            _round_lock_key(round_id),
            _participant_lock_key(participant_id),
        ):
            try:
                return await self._resolve_locked(participant_id, round_id)
            except MintError as e:
                logger.warning(f"Mint rejected for {participant_id} in {round_id}: {e}")
                if self.metrics is not None:
                    self.metrics.record_rejection(e.code)
                raise

    async def _resolve_locked(self, participant_id: str, round_id: str) -> MintRecord:
        round_state = await self.rounds.require(round_id)
        participant = await self.participants.get_or_create(participant_id)

        now = self.clock.now()
        ready_at = checked_add(participant.last_mint_time, self.config.mint_cooldown)
        if now < ready_at:
            raise CooldownNotFinished(participant_id, ready_at, now)

        probability = await self.random_source.draw_uniform(
            self.config.min_probability,
            self.config.max_probability,
        )
        logger.debug(f"Drew {probability} for {participant_id} in {round_id}")

        payout = compute_payout(
            probability=probability,
            current_combo=participant.current_combo,
            jackpot_pool=round_state.jackpot_pool,
            lucky_number=round_state.lucky_number,
            config=self.config,
        )

        staged_participant = self._stage_participant(participant, payout, now)

        if payout.final_amount > round_state.remaining_supply:
            raise ExceedRoundMax(payout.final_amount, round_state.remaining_supply)

        staged_round = round_state.copy()
        staged_round.remaining_supply = checked_sub(
            round_state.remaining_supply, payout.final_amount
        )
        staged_round.jackpot_pool = payout.jackpot_pool_after
        staged_round.total_mints = checked_add(round_state.total_mints, 1)

        granted = apply_achievements(
            staged_participant,
            evaluate_achievements(staged_participant, probability, self.config),
        )

        await self._commit(
            round_state, staged_round,
            participant, staged_participant,
            payout.final_amount,
        )

        record = MintRecord(
            participant_id=participant_id,
            probability=probability,
            final_amount=payout.final_amount,
            is_jackpot=payout.is_jackpot,
            combo=staged_participant.current_combo,
            timestamp=now,
            round_id=round_id,
            sequence=self.emitter.next_sequence(),
            base_amount=payout.base_amount,
            multiplier=payout.multiplier,
            lucky_hit=payout.lucky_hit,
            badges_granted=tuple(granted),
        )

        logger.info(
            f"Mint resolved: {participant_id} drew {probability} in {round_id}, "
            f"paid {payout.final_amount} (combo {record.combo}, "
            f"remaining {staged_round.remaining_supply})"
        )

        if self.metrics is not None:
            self.metrics.observe_round(staged_round)
        self.emitter.emit(record)
        return record

    def _stage_participant(
        self, participant: Participant, payout: PayoutBreakdown, now: int
    ) -> Participant:
        staged = participant.copy()
        staged.current_combo = payout.combo
        staged.last_mint_time = now
        staged.total_mints = checked_add(participant.total_mints, 1)
        staged.best_probability = max(participant.best_probability, payout.probability)
        staged.best_combo = max(participant.best_combo, payout.combo)
        return staged

    async def _commit(
        self,
        round_before: Round,
        round_after: Round,
        participant_before: Participant,
        participant_after: Participant,
        amount: int,
    ) -> None:
        """Write both records and deliver tokens, undoing the writes on failure."""
        # Once writing starts the mint either completes or rolls back; an
        # outer cancellation must not stop it halfway.
        with trio.CancelScope(shield=True):
            participant_existed = await self.participants.exists(
                participant_before.participant_id
            )
            try:
                await self.rounds.put(round_after)
                await self.participants.put(participant_after)
                await self._deliver(
                    participant_after.participant_id, round_after.asset_kind, amount
                )
            except Exception as e:
                logger.error(
                    f"Mint for {participant_after.participant_id} in {round_after.round_id} "
                    f"failed during commit, rolling back: {e!r}"
                )
                await self.rounds.put(round_before)
                if participant_existed:
                    await self.participants.put(participant_before)
                else:
                    await self.participants.delete(participant_before.participant_id)
                raise

    async def _deliver(self, participant_id: str, asset_kind: str, amount: int) -> None:
        """
        Mint amount of asset_kind and deposit it with the participant.

        A zero payout has nothing to deliver. On failure, minted but
        undelivered units are burned and a store opened here is removed;
        the original error is what propagates.
        """
        if amount == 0:
            logger.debug(f"Nothing to deliver to {participant_id}")
            return

        opened_store = False
        if not await self.asset_ledger.store_exists(participant_id, asset_kind):
            await self.asset_ledger.create_store(participant_id, asset_kind)
            opened_store = True

        try:
            asset = await self.asset_ledger.mint(asset_kind, amount)
            try:
                await self.asset_ledger.deposit(participant_id, asset)
            except Exception:
                try:
                    await self.asset_ledger.burn(asset)
                except Exception as burn_error:
                    logger.error(
                        f"Could not burn undelivered {asset.amount} {asset.kind}: {burn_error!r}"
                    )
                raise
        except Exception:
            if opened_store:
                try:
                    await self.asset_ledger.remove_store(participant_id, asset_kind)
                except Exception as remove_error:
                    logger.error(
                        f"Could not remove {asset_kind} store of {participant_id}: "
                        f"{remove_error!r}"
                    )
            raise
