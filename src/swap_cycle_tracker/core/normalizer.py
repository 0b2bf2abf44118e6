"""Delta normalizer turning wallet balance changes into clean token deltas."""

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal

from swap_cycle_tracker.core.config import EngineConfig
from swap_cycle_tracker.core.models import RawTransaction, SwapTransaction, TokenBalance, TokenDelta

logger = logging.getLogger(__name__)


class DeltaNormalizer:
    """
    Filters dust and nets per-mint balance changes for one wallet.

    Parameters
    ----------
    config : EngineConfig
        Engine configuration (dust epsilon, DEX program table)
    symbols : Mapping[str, str] | None
        Known mint to symbol mapping used when a delta has no symbol

    """

    def __init__(self, config: EngineConfig, symbols: Mapping[str, str] | None = None) -> None:
        self.config = config
        self.symbols = dict(symbols or {})

    def normalize(self, deltas: Iterable[TokenDelta]) -> list[TokenDelta]:
        """
        Net deltas per mint and drop dust.

        Parameters
        ----------
        deltas : Iterable[TokenDelta]
            Raw deltas, possibly several per mint (one per token account)

        Returns
        -------
        list[TokenDelta]
            One delta per mint with ``|change| > dust_epsilon``, in first-seen order

        """
        merged: dict[str, TokenDelta] = {}
        for delta in deltas:
            existing = merged.get(delta.mint)
            if existing is None:
                merged[delta.mint] = delta.model_copy()
            else:
                existing.change += delta.change
                if not existing.symbol and delta.symbol:
                    existing.symbol = delta.symbol

        result = []
        for delta in merged.values():
            if abs(delta.change) <= self.config.dust_epsilon:
                logger.debug("Dropping dust delta %s on %s", delta.change, delta.mint)
                continue
            if not delta.symbol:
                delta.symbol = self.symbol_for(delta.mint)
            result.append(delta)
        return result

    def from_token_balances(
        self,
        owner: str,
        pre_balances: Iterable[TokenBalance],
        post_balances: Iterable[TokenBalance],
    ) -> list[TokenDelta]:
        """
        Derive wallet deltas from pre/post token account balances.

        Accounts opened by the transaction count their whole post balance;
        accounts closed by it count as going to zero.

        Parameters
        ----------
        owner : str
            Wallet whose token accounts are considered
        pre_balances : Iterable[TokenBalance]
            Balances before the transaction
        post_balances : Iterable[TokenBalance]
            Balances after the transaction

        Returns
        -------
        list[TokenDelta]
            Normalized deltas

        """
        pre = {b.account_index: b for b in pre_balances if b.owner == owner}
        post = {b.account_index: b for b in post_balances if b.owner == owner}

        deltas = []
        for index in [*pre, *(i for i in post if i not in pre)]:
            before = pre.get(index)
            after = post.get(index)
            reference = after or before
            change = (after.ui_amount if after else Decimal("0")) - (before.ui_amount if before else Decimal("0"))
            deltas.append(
                TokenDelta(
                    mint=reference.mint,
                    change=change,
                    symbol=reference.symbol or self.symbols.get(reference.mint, ""),
                    decimals=reference.decimals,
                )
            )

        return self.normalize(deltas)

    def resolve_venue(self, program_ids: Iterable[str]) -> str | None:
        """
        Name the DEX that executed a transaction.

        Parameters
        ----------
        program_ids : Iterable[str]
            Program ids invoked by the transaction, in account-key order

        Returns
        -------
        str | None
            Venue name of the first known DEX program, None if none matched

        """
        for program_id in program_ids:
            venue = self.config.dex_programs.get(program_id)
            if venue:
                return venue
        return None

    def to_swap_transaction(self, raw: RawTransaction, owner: str) -> SwapTransaction:
        """
        Build the classifier input from a raw transaction record.

        Parameters
        ----------
        raw : RawTransaction
            Transaction as delivered by the chain-data collaborator
        owner : str
            Tracked wallet address

        Returns
        -------
        SwapTransaction
            Transaction with normalized deltas and resolved venue

        """
        if raw.token_deltas is not None:
            deltas = self.normalize(raw.token_deltas)
        else:
            deltas = self.from_token_balances(owner, raw.pre_token_balances, raw.post_token_balances)

        return SwapTransaction(
            signature=raw.signature,
            timestamp=raw.timestamp,
            slot=raw.slot,
            transaction_index=raw.transaction_index,
            fee_lamports=raw.fee_lamports,
            venue=raw.venue or self.resolve_venue(raw.program_ids),
            token_deltas=deltas,
        )

    def symbol_for(self, mint: str) -> str:
        """Known symbol for a mint, or a short upper-case mint prefix."""
        symbol = self.symbols.get(mint)
        if symbol:
            return symbol
        for asset in self.config.base_assets:
            if asset.mint == mint:
                return asset.symbol
        return mint[:8].upper()
