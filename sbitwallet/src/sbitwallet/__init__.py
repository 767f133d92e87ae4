"""
sbitwallet - Coin selection and transaction assembly for SBit wallets

Public API:
- select_utxos: smallest-first selection over mature outputs
- build_payment / build_contract_create / build_contract_call: signed transactions
- build_transaction: dispatch on a TransactionRequest
"""

__version__ = "0.3.0"

from sbitwallet.config import BuilderConfig
from sbitwallet.tx_builder import (
    AssembledTransaction,
    ContractCallRequest,
    ContractCreateRequest,
    PaymentRequest,
    SBitTxBuilder,
    build_contract_call,
    build_contract_create,
    build_payment,
    build_transaction,
    parse_request,
)
from sbitwallet.wallet.models import CoinSelection, SpendableOutput
from sbitwallet.wallet.selection import InsufficientFundsError, select_utxos
from sbitwallet.wallet.signing import P2PKHSigner, Signer, TransactionSigningError

__all__ = [
    "AssembledTransaction",
    "BuilderConfig",
    "CoinSelection",
    "ContractCallRequest",
    "ContractCreateRequest",
    "InsufficientFundsError",
    "P2PKHSigner",
    "PaymentRequest",
    "SBitTxBuilder",
    "Signer",
    "SpendableOutput",
    "TransactionSigningError",
    "build_contract_call",
    "build_contract_create",
    "build_payment",
    "build_transaction",
    "parse_request",
    "select_utxos",
]
