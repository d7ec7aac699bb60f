"""
Stand-ins for the executor's collaborators: a flash-lending pool, a
Uniswap V2 shaped router quoting from fixed rates, and a Chainlink shaped
price feed.  They follow the call contracts in ``interfaces.py``.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence, Tuple

from chain import Chain
from config import BPS, FLASH_LOAN


class LoanNotRepaid(RuntimeError):
    pass


class MockLendingPool:
    def __init__(self, chain: Chain, address: str = "0xPOOL",
                 fee_bps: int = FLASH_LOAN["fee_bps"], fixed_fee: Optional[int] = None) -> None:
        self.chain = chain
        self.address = address
        self.fee_bps = fee_bps
        self.fixed_fee = fixed_fee

    def flash_fee(self, asset: str, amount: int) -> int:
        if self.fixed_fee is not None:
            return self.fixed_fee
        return amount * self.fee_bps // BPS

    def flash_loan(self, receiver, asset: str, amount: int, params: bytes, *, sender: str) -> None:
        fee = self.flash_fee(asset, amount)
        with self.chain.atomic():
            before = self.chain.balance_of(asset, self.address)
            self.chain.transfer(asset, self.address, receiver.address, amount)
            ok = receiver.execute_operation(asset, amount, fee, sender, params, sender=self.address)
            if not ok or self.chain.balance_of(asset, self.address) < before + fee:
                raise LoanNotRepaid(f"{asset}: expected {amount + fee} back")


class MockRouter:
    """
    Quotes every hop at a fixed ``num/den`` rate.  Reserves default to
    ``(depth, depth * rate)`` so the pool spot price matches the quote.
    """

    def __init__(self, chain: Chain, address: str = "0xROUTER", depth: int = 1_000_000) -> None:
        self.chain = chain
        self.address = address
        self.depth = depth
        self.shortfall = 0
        self.on_swap: Optional[Callable[[], None]] = None
        self.swap_calls = 0
        self._rates: Dict[Tuple[str, str], Tuple[int, int]] = {}
        self._reserves: Dict[Tuple[str, str], Tuple[int, int]] = {}

    def set_rate(self, token_in: str, token_out: str, num: int, den: int = 1) -> None:
        self._rates[(token_in, token_out)] = (num, den)

    def set_reserves(self, token_in: str, token_out: str, reserve_in: int, reserve_out: int) -> None:
        self._reserves[(token_in, token_out)] = (reserve_in, reserve_out)

    def get_amounts_out(self, amount_in: int, path: Sequence[str]) -> List[int]:
        amounts = [amount_in]
        for token_in, token_out in zip(path, path[1:]):
            num, den = self._rates[(token_in, token_out)]
            amounts.append(amounts[-1] * num // den)
        return amounts

    def get_reserves(self, token_in: str, token_out: str) -> Tuple[int, int]:
        if (token_in, token_out) in self._reserves:
            return self._reserves[(token_in, token_out)]
        num, den = self._rates[(token_in, token_out)]
        return self.depth, self.depth * num // den

    def swap_exact_tokens_for_tokens(self, amount_in: int, amount_out_min: int,
                                     path: Sequence[str], to: str, *, sender: str) -> List[int]:
        self.swap_calls += 1
        amounts = self.get_amounts_out(amount_in, path)
        if self.on_swap is not None:
            self.on_swap()
        self.chain.transfer(path[0], sender, self.address, amount_in)
        amounts[-1] = max(0, amounts[-1] - self.shortfall)
        self.chain.transfer(path[-1], self.address, to, amounts[-1])
        return amounts


class MockPriceFeed:
    def __init__(self, answer: int, updated_at: int, round_id: int = 1,
                 answered_in_round: Optional[int] = None) -> None:
        self.answer = answer
        self.updated_at = updated_at
        self.round_id = round_id
        self.answered_in_round = round_id if answered_in_round is None else answered_in_round

    def update(self, answer: int, updated_at: int) -> None:
        self.round_id += 1
        self.answered_in_round = self.round_id
        self.answer = answer
        self.updated_at = updated_at

    def latest_round_data(self) -> Tuple[int, int, int, int, int]:
        return self.round_id, self.answer, self.updated_at, self.updated_at, self.answered_in_round
