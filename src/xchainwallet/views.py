"""
Chain transaction views.

Each chain family reports transactions in its own shape. Backends parse
native responses into one of the view variants below; an explicit adapter
per variant maps the view into the common ``Tx`` model.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from xchainwallet.models import Asset, Tx, TxFrom, TxTo


class UtxoInput(BaseModel):
    address: str | None = None
    value: int = 0


class UtxoOutput(BaseModel):
    address: str | None = None
    value: int = 0
    script_type: str = "unknown"


class UtxoTransactionView(BaseModel):
    """UTXO-model transaction (Esplora / Bitcoin Core)."""

    kind: Literal["utxo"] = "utxo"
    txid: str
    block_time: int | None = None
    confirmed: bool = True
    inputs: list[UtxoInput] = Field(default_factory=list)
    outputs: list[UtxoOutput] = Field(default_factory=list)

    @classmethod
    def from_esplora(cls, data: dict[str, Any]) -> UtxoTransactionView:
        status = data.get("status") or {}
        inputs = []
        for vin in data.get("vin", []):
            prevout = vin.get("prevout") or {}
            inputs.append(
                UtxoInput(
                    address=prevout.get("scriptpubkey_address"), value=prevout.get("value", 0)
                )
            )
        outputs = [
            UtxoOutput(
                address=vout.get("scriptpubkey_address"),
                value=vout.get("value", 0),
                script_type=vout.get("scriptpubkey_type", "unknown"),
            )
            for vout in data.get("vout", [])
        ]
        return cls(
            txid=data["txid"],
            block_time=status.get("block_time"),
            confirmed=bool(status.get("confirmed", False)),
            inputs=inputs,
            outputs=outputs,
        )


class CosmosCoin(BaseModel):
    denom: str
    amount: int = 0


class CosmosMultiSendEntry(BaseModel):
    address: str | None = None
    coins: list[CosmosCoin] = Field(default_factory=list)


class CosmosMessage(BaseModel):
    """MsgSend or MsgMultiSend; any other message type carries neither shape."""

    type_url: str = Field(default="", alias="@type")
    from_address: str | None = None
    to_address: str | None = None
    amount: list[CosmosCoin] | None = None
    inputs: list[CosmosMultiSendEntry] | None = None
    outputs: list[CosmosMultiSendEntry] | None = None

    model_config = ConfigDict(populate_by_name=True)

    @property
    def is_send(self) -> bool:
        return (
            self.amount is not None
            and self.from_address is not None
            and self.to_address is not None
        )

    @property
    def is_multi_send(self) -> bool:
        return self.inputs is not None and self.outputs is not None


class AccountTransactionView(BaseModel):
    """Account-model transaction (Cosmos SDK bank messages)."""

    kind: Literal["account"] = "account"
    txhash: str = ""
    timestamp: datetime
    height: int | None = None
    messages: list[CosmosMessage] = Field(default_factory=list)

    @classmethod
    def from_tx_response(cls, data: dict[str, Any]) -> AccountTransactionView:
        body = ((data.get("tx") or {}).get("body")) or {}
        return cls(
            txhash=data.get("txhash", ""),
            timestamp=data["timestamp"],
            height=int(data["height"]) if data.get("height") else None,
            messages=[CosmosMessage.model_validate(m) for m in body.get("messages", [])],
        )


class RosettaOperation(BaseModel):
    type: str
    address: str = ""
    value: int = 0
    symbol: str | None = None

    @classmethod
    def from_rosetta(cls, op: dict[str, Any]) -> RosettaOperation:
        amount = op.get("amount") or {}
        return cls(
            type=op.get("type", ""),
            address=(op.get("account") or {}).get("address", ""),
            value=int(amount.get("value", 0)),
            symbol=(amount.get("currency") or {}).get("symbol"),
        )


class RosettaTransactionView(BaseModel):
    """Rosetta-operation transaction (Data API search/transactions)."""

    kind: Literal["rosetta"] = "rosetta"
    hash: str
    block_hash: str | None = None
    block_timestamp: int | None = None  # milliseconds
    operations: list[RosettaOperation] = Field(default_factory=list)

    @classmethod
    def from_search_result(
        cls, item: dict[str, Any], blocks: list[dict[str, Any]] | None = None
    ) -> RosettaTransactionView:
        block_hash = (item.get("block_identifier") or {}).get("hash")
        timestamp = None
        for block in blocks or []:
            block_data = block.get("block") or {}
            if (block_data.get("block_identifier") or {}).get("hash") == block_hash:
                timestamp = block_data.get("timestamp")
                break

        transaction = item.get("transaction") or {}
        return cls(
            hash=(transaction.get("transaction_identifier") or {}).get("hash", ""),
            block_hash=block_hash,
            block_timestamp=timestamp,
            operations=[
                RosettaOperation.from_rosetta(op) for op in transaction.get("operations", [])
            ],
        )


ChainTransactionView = Annotated[
    UtxoTransactionView | AccountTransactionView | RosettaTransactionView,
    Field(discriminator="kind"),
]


def _add_from(entries: list[TxFrom], address: str, amount: int) -> None:
    for entry in entries:
        if entry.from_address == address:
            entry.amount += amount
            return
    entries.append(TxFrom(from_address=address, amount=amount))


def _add_to(entries: list[TxTo], address: str, amount: int) -> None:
    for entry in entries:
        if entry.to_address == address:
            entry.amount += amount
            return
    entries.append(TxTo(to_address=address, amount=amount))


def utxo_view_to_tx(view: UtxoTransactionView, asset: Asset) -> Tx:
    """Data-carrier (OP_RETURN) outputs are left out of ``to``."""
    date = (
        datetime.fromtimestamp(view.block_time, tz=UTC)
        if view.block_time
        else datetime.now(tz=UTC)
    )
    return Tx(
        asset=asset,
        from_=[TxFrom(from_address=i.address or "", amount=i.value) for i in view.inputs],
        to=[
            TxTo(to_address=o.address or "", amount=o.value)
            for o in view.outputs
            if o.script_type not in ("nulldata", "op_return")
        ],
        date=date,
        type="transfer",
        hash=view.txid,
    )


def account_view_to_tx(view: AccountTransactionView, asset: Asset) -> Tx:
    """Amounts are summed per address across messages and coins."""
    senders: list[TxFrom] = []
    recipients: list[TxTo] = []

    for msg in view.messages:
        if msg.is_send:
            amount = sum(coin.amount for coin in msg.amount or [])
            _add_from(senders, msg.from_address or "", amount)
            _add_to(recipients, msg.to_address or "", amount)
        elif msg.is_multi_send:
            for entry in msg.inputs or []:
                if entry.address:
                    _add_from(senders, entry.address, sum(c.amount for c in entry.coins))
            for entry in msg.outputs or []:
                if entry.address:
                    _add_to(recipients, entry.address, sum(c.amount for c in entry.coins))

    return Tx(
        asset=asset,
        from_=senders,
        to=recipients,
        date=view.timestamp,
        type="transfer" if senders or recipients else "unknown",
        hash=view.txhash,
    )


def rosetta_view_to_tx(view: RosettaTransactionView, asset: Asset) -> Tx:
    """``input`` operations become senders, ``output`` operations recipients."""
    date = (
        datetime.fromtimestamp(view.block_timestamp / 1000, tz=UTC)
        if view.block_timestamp
        else datetime.now(tz=UTC)
    )
    return Tx(
        asset=asset,
        from_=[
            TxFrom(from_address=op.address, amount=abs(op.value))
            for op in view.operations
            if op.type == "input"
        ],
        to=[
            TxTo(to_address=op.address, amount=abs(op.value))
            for op in view.operations
            if op.type == "output"
        ],
        date=date,
        type="transfer",
        hash=view.hash,
    )


def to_tx(view: ChainTransactionView, asset: Asset) -> Tx:
    if isinstance(view, UtxoTransactionView):
        return utxo_view_to_tx(view, asset)
    if isinstance(view, AccountTransactionView):
        return account_view_to_tx(view, asset)
    if isinstance(view, RosettaTransactionView):
        return rosetta_view_to_tx(view, asset)
    raise TypeError(f"Unknown transaction view: {type(view).__name__}")
