"""First-buy / repeat-buy labeling of trade legs."""

from collections.abc import Sequence

from swap_cycle_tracker.core.models import Leg, TransactionType


def label_legs(legs: Sequence[Leg]) -> list[Leg]:
    """
    Attach a transaction type to each leg.

    A buy is a ``first buy`` when no older buy of the same mint follows it in
    the given ordering, otherwise ``buy more``. Sells are always ``sell``;
    ``sell all`` is never produced.

    The ordering is a precondition and is not checked: any order other than
    most-recent-first yields wrong labels.

    Parameters
    ----------
    legs : Sequence[Leg]
        Legs of any number of tokens, most recent first

    Returns
    -------
    list[Leg]
        Labeled copies of the legs, in the same order

    Examples
    --------
    >>> labeled = label_legs(sorted(legs, key=lambda leg: leg.timestamp, reverse=True))

    """
    labels: list[TransactionType] = []
    bought_mints: set[str] = set()

    # Walk oldest-first so the first buy of each mint is seen before its repeats
    for leg in reversed(legs):
        if leg.is_sell:
            labels.append(TransactionType.SELL)
        elif leg.token_mint in bought_mints:
            labels.append(TransactionType.BUY_MORE)
        else:
            bought_mints.add(leg.token_mint)
            labels.append(TransactionType.FIRST_BUY)

    labels.reverse()
    return [leg.model_copy(update={"transaction_type": label}) for leg, label in zip(legs, labels, strict=True)]
