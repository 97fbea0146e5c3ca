"""
luckymint/cli.py

Command-line interface for luckymint.

State lives under the data directory (--data-dir, LUCKYMINT_DATA_DIR or
~/.luckymint): ledger records in store/ and the mint log in mints.jsonl.

Usage:
    luckymint init-round season-1
    luckymint mint season-1 alice
    luckymint round season-1
    luckymint participant alice
    luckymint history --limit 10
    luckymint serve --port 8480
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import click
import trio

from .blockchain.asset_ledger import StoreAssetLedger
from .config import DEFAULT_API_HOST, DEFAULT_API_PORT, EngineConfig, get_data_dir
from .errors import ArithmeticFault, AssetLedgerError, MintError
from .metrics import MetricsCollector
from .protocol.engine import RewardEngine
from .protocol.gateway import MintGateway
from .protocol.notifications import (
    JsonLinesNotificationSink,
    LoggingNotificationSink,
    MintRecord,
    NotificationEmitter,
)
from .protocol.participants import ParticipantLedger
from .protocol.randomness import SecureRandomSource, SystemClock
from .protocol.rounds import RoundLedger
from .protocol.storage import FileBackend

logger = logging.getLogger("luckymint.cli")


STORE_DIRNAME = "store"
MINT_LOG_FILENAME = "mints.jsonl"


@dataclass
class CliState:
    """Paths and config shared by all commands."""
    data_dir: Path
    config: EngineConfig

    @property
    def mint_log(self) -> JsonLinesNotificationSink:
        return JsonLinesNotificationSink(self.data_dir / MINT_LOG_FILENAME)

    def build_engine(self, metrics: MetricsCollector = None) -> RewardEngine:
        backend = FileBackend(self.data_dir / STORE_DIRNAME)
        mint_log = self.mint_log
        emitter = NotificationEmitter([mint_log, LoggingNotificationSink()])
        emitter.restore(mint_log.read_all())
        return RewardEngine(
            rounds=RoundLedger(backend),
            participants=ParticipantLedger(backend),
            asset_ledger=StoreAssetLedger(backend),
            random_source=SecureRandomSource(),
            clock=SystemClock(),
            config=self.config,
            emitter=emitter,
            metrics=metrics,
        )


def _run(async_fn, *args):
    """Run an engine coroutine, turning engine errors into CLI errors."""
    try:
        return trio.run(async_fn, *args)
    except MintError as e:
        raise click.ClickException(f"{e.code}: {e}")
    except (ArithmeticFault, AssetLedgerError) as e:
        logger.error(f"Mint failed: {e}")
        raise click.ClickException(f"{e.code}: {e}")


def _echo_json(data: Dict[str, Any]) -> None:
    click.echo(json.dumps(data, indent=2, sort_keys=True))


def _format_record(record: MintRecord) -> str:
    flags = []
    if record.is_jackpot:
        flags.append("JACKPOT")
    if record.lucky_hit:
        flags.append("LUCKY")
    line = (
        f"#{record.sequence} {record.round_id} {record.participant_id}: "
        f"drew {record.probability}, minted {record.final_amount} "
        f"(combo {record.combo})"
    )
    if flags:
        line += " " + " ".join(flags)
    if record.badges_granted:
        line += f" badges: {', '.join(record.badges_granted)}"
    return line


@click.group()
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory holding ledger state (default: $LUCKYMINT_DATA_DIR or ~/.luckymint)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, data_dir: Optional[str], verbose: bool) -> None:
    """luckymint - probability-driven reward minting."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    try:
        config = EngineConfig.from_env()
    except ValueError as e:
        raise click.UsageError(str(e))
    ctx.obj = CliState(data_dir=get_data_dir(data_dir), config=config)


@main.command("init-round")
@click.argument("round_id")
@click.option("--asset-kind", default=None, help="Asset minted in this round")
@click.pass_obj
def init_round(state: CliState, round_id: str, asset_kind: Optional[str]) -> None:
    """Initialize a new round with full supply."""
    engine = state.build_engine()
    round_state = _run(engine.initialize_round, round_id, asset_kind)
    click.echo(
        f"Round {round_state.round_id} initialized: "
        f"{round_state.max_supply} {round_state.asset_kind}"
    )


@main.command()
@click.argument("round_id")
@click.argument("participant_id")
@click.option("--fee", type=click.IntRange(min=0), default=None,
              help="Fee paid for this mint (default: the configured mint fee)")
@click.option("--json", "as_json", is_flag=True, help="Print the mint record as JSON")
@click.pass_obj
def mint(state: CliState, round_id: str, participant_id: str,
         fee: Optional[int], as_json: bool) -> None:
    """Request one mint for PARTICIPANT_ID in ROUND_ID."""
    engine = state.build_engine()
    gateway = MintGateway(engine, state.config)
    fee_paid = state.config.mint_fee if fee is None else fee

    record = _run(gateway.request_mint, participant_id, round_id, fee_paid)
    if as_json:
        _echo_json(record.to_dict())
    else:
        click.echo(_format_record(record))


@main.command("round")
@click.argument("round_id")
@click.pass_obj
def round_info(state: CliState, round_id: str) -> None:
    """Show a round's state."""
    engine = state.build_engine()
    _echo_json(_run(engine.rounds.require, round_id).to_dict())


@main.command()
@click.argument("participant_id")
@click.pass_obj
def participant(state: CliState, participant_id: str) -> None:
    """Show a participant's minting statistics."""
    engine = state.build_engine()
    (last_mint_time, total_mints, best_probability,
     current_combo, best_combo, badges) = _run(engine.get_participant_info, participant_id)
    _echo_json({
        "participant_id": participant_id,
        "last_mint_time": last_mint_time,
        "total_mints": total_mints,
        "best_probability": best_probability,
        "current_combo": current_combo,
        "best_combo": best_combo,
        "achievement_badges": list(badges),
    })


@main.command()
@click.argument("participant_id")
@click.option("--asset-kind", default=None, help="Asset to report (default: configured kind)")
@click.pass_obj
def balance(state: CliState, participant_id: str, asset_kind: Optional[str]) -> None:
    """Show a participant's delivered token balance."""
    engine = state.build_engine()
    kind = asset_kind or state.config.asset_kind
    amount = _run(engine.asset_ledger.balance_of, participant_id, kind)
    click.echo(f"{participant_id}: {amount} {kind}")


@main.command()
@click.option("--limit", type=int, default=None, help="Show only the most recent N mints")
@click.option("--json", "as_json", is_flag=True, help="Print records as JSON lines")
@click.pass_obj
def history(state: CliState, limit: Optional[int], as_json: bool) -> None:
    """Show the mint log in commit order."""
    records = state.mint_log.read_all()
    if limit is not None:
        records = records[-limit:] if limit > 0 else []

    if not records:
        click.echo("No mints recorded")
        return
    for record in records:
        if as_json:
            click.echo(json.dumps(record.to_dict(), sort_keys=True))
        else:
            click.echo(_format_record(record))


@main.command()
@click.option("--host", default=DEFAULT_API_HOST, show_default=True, help="Host to bind to")
@click.option("--port", type=int, default=DEFAULT_API_PORT, show_default=True,
              help="Port to listen on")
@click.pass_obj
def serve(state: CliState, host: str, port: int) -> None:
    """Run the REST API server."""
    from .api import MintAPI

    metrics = MetricsCollector()
    engine = state.build_engine(metrics=metrics)
    api = MintAPI(engine, MintGateway(engine, state.config), host=host, port=port, metrics=metrics)

    click.echo(f"Serving luckymint API on http://{host}:{port}")
    try:
        trio.run(api.start)
    except KeyboardInterrupt:
        logger.info("Shutting down API server...")


if __name__ == "__main__":
    main()
