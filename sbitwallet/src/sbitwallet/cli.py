"""
Command-line interface for building SBit transactions offline.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger
from sbitcore.crypto import CryptoError, KeyPair
from sbitcore.encoding import MalformedInputError, decode_hex, from_base_units
from sbitcore.models import NetworkParams, NetworkType, get_network_params
from sbitcore.script import decompile_script

from sbitwallet.config import CliSettings, get_settings
from sbitwallet.tx_builder import (
    AssembledTransaction,
    ContractCallRequest,
    ContractCreateRequest,
    PaymentRequest,
    SBitTxBuilder,
    TransactionRequest,
)
from sbitwallet.wallet.models import SpendableOutput
from sbitwallet.wallet.selection import InsufficientFundsError, select_utxos
from sbitwallet.wallet.signing import TransactionSigningError, deserialize_transaction

app = typer.Typer(
    name="sbit-wallet",
    help="SBit offline transaction builder",
    add_completion=False,
)

UtxoFileOption = Annotated[
    Path, typer.Option("--utxos", "-u", help="JSON file with the wallet's unspent outputs")
]
WifOption = Annotated[
    str | None, typer.Option("--wif", envvar="SBIT_WIF", help="Signing key in WIF format")
]
NetworkOption = Annotated[
    str | None, typer.Option("--network", "-n", help="Network: sbit | sbit_testnet")
]
FeeOption = Annotated[str, typer.Option("--fee", help="Fee in SBIT")]
LogLevelOption = Annotated[str | None, typer.Option("--log-level", "-l", help="Log level")]


def setup_logging(level: str) -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def load_utxos(path: Path) -> list[SpendableOutput]:
    """
    Load spendable outputs from a JSON list.

    Each entry needs txid/hash, vout/pos, value (smallest units) and
    optionally confirmations and is_stake/isStake.
    """
    if not path.exists():
        raise ValueError(f"UTXO file not found: {path}")

    data = json.loads(path.read_text())
    if not isinstance(data, list):
        raise ValueError("UTXO file must contain a JSON list")

    try:
        return [SpendableOutput.from_dict(entry) for entry in data]
    except (KeyError, TypeError) as e:
        raise ValueError(f"Invalid UTXO entry: {e}") from e


def resolve_network(network: str | None, settings: CliSettings) -> NetworkParams:
    try:
        return get_network_params(network or settings.network)
    except ValueError as e:
        valid = ", ".join(n.value for n in NetworkType)
        raise ValueError(f"Invalid network: {network} (expected one of {valid})") from e


def _run_build(
    make_request: Callable[[], TransactionRequest],
    utxo_file: Path,
    wif: str | None,
    network: str | None,
    log_level: str | None,
) -> None:
    settings = get_settings()
    setup_logging(log_level or settings.log_level)

    if not wif:
        logger.error("Signing key required. Use --wif or the SBIT_WIF env var")
        raise typer.Exit(1)

    try:
        params = resolve_network(network, settings)
        request = make_request()
        identity = KeyPair.from_wif(wif, params)
        utxos = load_utxos(utxo_file)

        builder = SBitTxBuilder(params, config=settings.builder_config())
        assembled: AssembledTransaction = builder.build(request, identity, utxos)
    except (InsufficientFundsError, TransactionSigningError, CryptoError, ValueError) as e:
        logger.error(str(e))
        raise typer.Exit(1)

    logger.info(f"From: {identity.address(params)}")
    logger.info(f"Fee: {from_base_units(assembled.fee + assembled.forfeited)} SBIT")
    typer.echo(assembled.hex())


@app.command()
def select(
    utxo_file: UtxoFileOption,
    amount: Annotated[str, typer.Option("--amount", "-a", help="Amount in SBIT")] = "0",
    fee: FeeOption = "0",
    network: NetworkOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Show which outputs would fund amount + fee."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level)

    try:
        params = resolve_network(network, settings)
        selection = select_utxos(load_utxos(utxo_file), amount, fee, params)
    except (InsufficientFundsError, ValueError) as e:
        logger.error(str(e))
        raise typer.Exit(1)

    for utxo in selection:
        typer.echo(f"{utxo.txid}:{utxo.vout}\t{utxo.value}")
    logger.info(f"Selected {len(selection)} outputs, total {selection.total_value} units")


@app.command()
def send(
    to: Annotated[str, typer.Option("--to", "-t", help="Destination address")],
    amount: Annotated[str, typer.Option("--amount", "-a", help="Amount in SBIT")],
    utxo_file: UtxoFileOption,
    fee: FeeOption = "0.001",
    wif: WifOption = None,
    network: NetworkOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Build a signed payment and print its raw hex."""
    _run_build(
        lambda: PaymentRequest(to=to, amount=amount, fee=fee),
        utxo_file,
        wif,
        network,
        log_level,
    )


@app.command("create-contract")
def create_contract(
    bytecode: Annotated[str, typer.Option("--bytecode", "-c", help="Contract bytecode (hex)")],
    utxo_file: UtxoFileOption,
    gas_limit: Annotated[int, typer.Option("--gas-limit", help="Gas limit")] = 2_500_000,
    gas_price: Annotated[int, typer.Option("--gas-price", help="Gas price (units/gas)")] = 40,
    fee: FeeOption = "0.01",
    wif: WifOption = None,
    network: NetworkOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Build a signed contract deployment and print its raw hex."""
    _run_build(
        lambda: ContractCreateRequest(
            bytecode=bytecode, gas_limit=gas_limit, gas_price=gas_price, fee=fee
        ),
        utxo_file,
        wif,
        network,
        log_level,
    )


@app.command("call-contract")
def call_contract(
    contract: Annotated[str, typer.Option("--contract", help="Contract address (hex)")],
    data: Annotated[str, typer.Option("--data", "-d", help="ABI-encoded call data (hex)")],
    utxo_file: UtxoFileOption,
    amount: Annotated[str, typer.Option("--amount", "-a", help="SBIT sent to contract")] = "0",
    gas_limit: Annotated[int, typer.Option("--gas-limit", help="Gas limit")] = 250_000,
    gas_price: Annotated[int, typer.Option("--gas-price", help="Gas price (units/gas)")] = 40,
    fee: FeeOption = "0.01",
    wif: WifOption = None,
    network: NetworkOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Build a signed contract call and print its raw hex."""
    _run_build(
        lambda: ContractCallRequest(
            contract_address=contract,
            encoded_data=data,
            gas_limit=gas_limit,
            gas_price=gas_price,
            fee=fee,
            amount=amount,
        ),
        utxo_file,
        wif,
        network,
        log_level,
    )


def format_script(script: bytes) -> str:
    parts = []
    for chunk in decompile_script(script):
        parts.append(chunk.hex() if isinstance(chunk, bytes) else f"0x{chunk:02x}")
    return " ".join(parts)


@app.command()
def decode(
    tx_hex: Annotated[str, typer.Argument(help="Raw transaction hex")],
) -> None:
    """Decode a raw transaction into JSON."""
    try:
        tx = deserialize_transaction(decode_hex(tx_hex))
        outputs = [
            {"value": out.value, "script": format_script(out.script)} for out in tx.outputs
        ]
    except (MalformedInputError, TransactionSigningError) as e:
        logger.error(str(e))
        raise typer.Exit(1)

    result = {
        "txid": tx.txid,
        "version": tx.version,
        "locktime": tx.locktime,
        "vin": [
            {"txid": inp.txid, "vout": inp.vout, "script_sig": inp.script_sig.hex()}
            for inp in tx.inputs
        ],
        "vout": outputs,
    }
    typer.echo(json.dumps(result, indent=2))


def main() -> None:
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
