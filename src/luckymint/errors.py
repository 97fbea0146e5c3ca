"""
luckymint/errors.py

Exceptions raised by the minting engine and its collaborators.

MintError subclasses are ordinary rejections: the call failed and nothing
was changed. ArithmeticFault is an invariant violation and is kept outside
the MintError hierarchy so a broad `except MintError` never hides it.
"""


class MintError(Exception):
    """Base class for rejected mint operations."""
    code = "MINT_ERROR"


class RoundNotInitialized(MintError):
    """The requested round record does not exist."""
    code = "ROUND_NOT_INITIALIZED"

    def __init__(self, round_id: str):
        self.round_id = round_id
        super().__init__(f"Round {round_id!r} is not initialized")


class RoundAlreadyExists(MintError):
    """A round with this id was already initialized."""
    code = "ROUND_ALREADY_EXISTS"

    def __init__(self, round_id: str):
        self.round_id = round_id
        super().__init__(f"Round {round_id!r} already exists")


class CooldownNotFinished(MintError):
    """The participant minted too recently."""
    code = "COOLDOWN_NOT_FINISHED"

    def __init__(self, participant_id: str, ready_at: int, now: int):
        self.participant_id = participant_id
        self.ready_at = ready_at
        self.now = now
        super().__init__(
            f"Participant {participant_id!r} can mint again at {ready_at} "
            f"({ready_at - now}s remaining)"
        )

    @property
    def retry_after(self) -> int:
        return max(0, self.ready_at - self.now)


class InsufficientMintFee(MintError):
    """The caller paid less than the required mint fee."""
    code = "INSUFFICIENT_MINT_FEE"

    def __init__(self, fee_paid: int, required: int):
        self.fee_paid = fee_paid
        self.required = required
        super().__init__(f"Mint fee {fee_paid} is below required {required}")


class ExceedRoundMax(MintError):
    """The computed payout is larger than the round's remaining supply."""
    code = "EXCEED_ROUND_MAX"

    def __init__(self, requested: int, remaining: int):
        self.requested = requested
        self.remaining = remaining
        super().__init__(
            f"Payout {requested} exceeds remaining round supply {remaining}"
        )


class ArithmeticFault(ArithmeticError):
    """Unsigned arithmetic left the u64 range. Never recoverable."""
    code = "ARITHMETIC_FAULT"


class AssetLedgerError(Exception):
    """The asset ledger refused a mint, deposit or store operation."""
    code = "ASSET_LEDGER_ERROR"
