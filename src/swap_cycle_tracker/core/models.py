"""Data models for token deltas, trade legs, and ownership cycles."""

from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class Direction(StrEnum):
    """Direction of a trade leg from the wallet's point of view."""

    BUY = "buy"
    SELL = "sell"


class TransactionType(StrEnum):
    """
    Label attached to a leg.

    ``SELL_ALL`` is part of the vocabulary shared with the journal but is never
    computed by the engine.
    """

    FIRST_BUY = "first buy"
    BUY_MORE = "buy more"
    SELL = "sell"
    SELL_ALL = "sell all"


class ValuationSource(StrEnum):
    """How the USD value of a swap was resolved."""

    STABLECOIN_SOLD = "stablecoin_sold"
    STABLECOIN_BOUGHT = "stablecoin_bought"
    ORACLE_SOLD = "oracle_sold"
    ORACLE_BOUGHT = "oracle_bought"
    UNKNOWN = "unknown"


class AnomalyKind(StrEnum):
    """Kind of data anomaly detected while folding legs."""

    NEGATIVE_BALANCE = "negative_balance"
    OUT_OF_ORDER = "out_of_order"


class TokenDelta(BaseModel):
    """
    Balance change of one token for the tracked wallet within one transaction.

    Attributes
    ----------
    mint : str
        Token mint address
    change : Decimal
        Signed change in UI units (already divided by 10^decimals)
    symbol : str
        Token symbol
    decimals : int
        Number of decimal places of the mint

    """

    mint: str
    change: Decimal
    symbol: str = ""
    decimals: int = 9


class TokenBalance(BaseModel):
    """
    Token account balance snapshot as reported before or after a transaction.

    Attributes
    ----------
    account_index : int
        Index of the token account within the transaction
    mint : str
        Token mint address
    owner : str
        Wallet owning the token account
    raw_amount : int
        Balance in the mint's smallest unit
    decimals : int
        Number of decimal places of the mint
    symbol : str | None
        Token symbol, if the data source provides one

    """

    account_index: int
    mint: str
    owner: str
    raw_amount: int
    decimals: int
    symbol: str | None = None

    @property
    def ui_amount(self) -> Decimal:
        """Balance scaled by the mint decimals."""
        return Decimal(self.raw_amount).scaleb(-self.decimals)


class RawTransaction(BaseModel):
    """
    Transaction record as delivered by a chain-data collaborator.

    Either ``token_deltas`` is supplied directly, or the deltas are derived from
    the pre/post token balances of the tracked wallet.
    """

    signature: str
    timestamp: int
    slot: int = 0
    transaction_index: int = 0
    fee_lamports: int = 0
    venue: str | None = None
    program_ids: list[str] = Field(default_factory=list)
    token_deltas: list[TokenDelta] | None = None
    pre_token_balances: list[TokenBalance] = Field(default_factory=list)
    post_token_balances: list[TokenBalance] = Field(default_factory=list)


class SwapTransaction(BaseModel):
    """
    One signed transaction with its dust-filtered wallet deltas.

    Attributes
    ----------
    signature : str
        Transaction signature
    timestamp : int
        Block time (unix seconds)
    slot : int
        Slot the transaction landed in
    transaction_index : int
        Position of the transaction within its slot
    fee_lamports : int
        Network fee paid
    venue : str | None
        DEX that executed the swap
    token_deltas : list[TokenDelta]
        Normalized balance changes for the tracked wallet

    """

    signature: str
    timestamp: int
    slot: int = 0
    transaction_index: int = 0
    fee_lamports: int = 0
    venue: str | None = None
    token_deltas: list[TokenDelta] = Field(default_factory=list)


class Leg(BaseModel):
    """
    Normalized, directional trade record derived from a swap.

    A signature may produce zero, one, or two legs. Legs are immutable; labeling
    returns a copy.

    Attributes
    ----------
    signature : str
        Transaction signature the leg came from
    timestamp : int
        Block time (unix seconds)
    slot : int
        Slot of the transaction
    transaction_index : int
        Position of the transaction within its slot
    direction : Direction
        Buy or sell
    token_mint : str
        Mint of the traded (position) token
    token_symbol : str
        Symbol of the traded token
    counter_mint : str
        Mint of the other side of the swap
    counter_symbol : str
        Symbol of the other side of the swap
    amount : Decimal
        Amount of the traded token, always >= 0
    usd_value : Decimal
        USD value of the swap, 0 when the valuation is unknown
    valuation : ValuationSource
        How ``usd_value`` was obtained
    venue : str | None
        DEX that executed the swap
    fee_lamports : int
        Fee attributed to this leg
    transaction_type : TransactionType | None
        Label; None for buy legs that have not been labeled yet

    """

    model_config = ConfigDict(frozen=True)

    signature: str
    timestamp: int
    slot: int = 0
    transaction_index: int = 0
    direction: Direction
    token_mint: str
    token_symbol: str
    counter_mint: str
    counter_symbol: str = ""
    amount: Decimal = Field(ge=0)
    usd_value: Decimal = Field(default=Decimal("0"), ge=0)
    valuation: ValuationSource = ValuationSource.UNKNOWN
    venue: str | None = None
    fee_lamports: int = 0
    transaction_type: TransactionType | None = None

    @property
    def usd_value_known(self) -> bool:
        """False when no price could be resolved for the swap."""
        return self.valuation != ValuationSource.UNKNOWN

    @property
    def chain_position(self) -> tuple[int, int, int]:
        """(timestamp, slot, transaction_index) of the originating transaction."""
        return (self.timestamp, self.slot, self.transaction_index)

    @property
    def is_buy(self) -> bool:
        return self.direction == Direction.BUY

    @property
    def is_sell(self) -> bool:
        return self.direction == Direction.SELL


class Anomaly(BaseModel):
    """
    Data anomaly surfaced for operators.

    Attributes
    ----------
    kind : AnomalyKind
        What went wrong
    token_mint : str
        Token series the anomaly belongs to
    signature : str
        Leg signature that triggered it
    timestamp : int
        Leg timestamp
    detail : str
        Human-readable description

    """

    kind: AnomalyKind
    token_mint: str
    signature: str
    timestamp: int
    detail: str = ""


class TradeCycle(BaseModel):
    """
    Lifespan of a position in one token, from acquisition back to zero balance.

    Attributes
    ----------
    sequence_number : int
        1-based index of the cycle within its token series
    token_mint : str
        Token mint address
    token_symbol : str
        Token symbol
    legs : list[Leg]
        Legs applied to this cycle, in fold order
    total_buy_amount : Decimal
        Sum of buy amounts
    total_buy_value_usd : Decimal
        Sum of buy USD values
    total_sell_amount : Decimal
        Sum of sell amounts
    total_sell_value_usd : Decimal
        Sum of sell USD values
    start_balance : Decimal
        Running balance when the cycle opened
    end_balance : Decimal
        Running balance after the last applied leg
    realized_pnl : Decimal
        Sell value minus cost basis of the sold amount
    complete : bool
        True once the balance returned to zero; never reset
    start_timestamp : int
        Timestamp of the opening leg
    end_timestamp : int | None
        Timestamp of the closing leg
    duration_seconds : int | None
        Seconds between opening and closing legs
    unknown_value_legs : int
        Number of legs whose USD value could not be resolved

    """

    sequence_number: int
    token_mint: str
    token_symbol: str
    legs: list[Leg] = Field(default_factory=list)
    total_buy_amount: Decimal = Decimal("0")
    total_buy_value_usd: Decimal = Decimal("0")
    total_sell_amount: Decimal = Decimal("0")
    total_sell_value_usd: Decimal = Decimal("0")
    start_balance: Decimal = Decimal("0")
    end_balance: Decimal = Decimal("0")
    realized_pnl: Decimal = Decimal("0")
    complete: bool = False
    start_timestamp: int
    end_timestamp: int | None = None
    duration_seconds: int | None = None
    unknown_value_legs: int = 0

    @property
    def buys(self) -> list[Leg]:
        return [leg for leg in self.legs if leg.is_buy]

    @property
    def sells(self) -> list[Leg]:
        return [leg for leg in self.legs if leg.is_sell]

    @property
    def avg_buy_price(self) -> Decimal:
        """Average USD cost per unit, 0 when nothing was bought."""
        if self.total_buy_amount == 0:
            return Decimal("0")
        return self.total_buy_value_usd / self.total_buy_amount

    @property
    def last_activity(self) -> int:
        return max(self.start_timestamp, self.end_timestamp or 0)


class TokenCycleSeries(BaseModel):
    """
    All cycles of one token for one wallet.

    Attributes
    ----------
    wallet : str
        Wallet address
    token_mint : str
        Token mint address
    token_symbol : str
        Token symbol
    running_balance : Decimal
        Balance after the last folded leg, forced to 0 when a cycle closes
    cycles : list[TradeCycle]
        Cycles in sequence order
    total_trades : int
        Number of cycles, including an open one
    anomalies : list[Anomaly]
        Anomalies detected while folding

    """

    wallet: str = ""
    token_mint: str
    token_symbol: str = ""
    running_balance: Decimal = Decimal("0")
    cycles: list[TradeCycle] = Field(default_factory=list)
    total_trades: int = 0
    anomalies: list[Anomaly] = Field(default_factory=list)

    @property
    def current_cycle(self) -> TradeCycle | None:
        return self.cycles[-1] if self.cycles else None

    @property
    def last_activity(self) -> int:
        """Most recent start or end timestamp across all cycles."""
        return max((cycle.last_activity for cycle in self.cycles), default=0)


class RankedCycle(BaseModel):
    """Cycle with its wallet-wide sequence number for presentation."""

    global_sequence_number: int
    cycle: TradeCycle


class WalletReport(BaseModel):
    """
    Everything the engine derives for one wallet in one run.

    Attributes
    ----------
    wallet : str
        Wallet address
    legs : list[Leg]
        Labeled legs, most recent first
    series : list[TokenCycleSeries]
        Per-token series, most recently active first
    cycles : list[RankedCycle]
        All cycles, most recently started first

    """

    wallet: str
    legs: list[Leg] = Field(default_factory=list)
    series: list[TokenCycleSeries] = Field(default_factory=list)
    cycles: list[RankedCycle] = Field(default_factory=list)

    @property
    def anomalies(self) -> list[Anomaly]:
        return [anomaly for s in self.series for anomaly in s.anomalies]

    @property
    def total_realized_pnl(self) -> Decimal:
        return sum((ranked.cycle.realized_pnl for ranked in self.cycles), Decimal("0"))
