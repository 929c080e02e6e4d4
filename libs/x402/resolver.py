"""
Payment Resolver - capabilities the claim agent uses to answer a 402.

The agent never signs or moves funds itself. It is handed a PaymentResolver
holding up to two capabilities:

    signer(challenge)  -> payment credential string  (sync or async, may raise)
    transfer()         -> TransferResult              (sync or async, may raise)

Real signing and settlement backends plug in here without touching the
state machine. ShieldedTransfer adapts a wallet ``send`` function into a
transfer capability.
"""

import inspect
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from libs.core.config import RewardTokenSettings
from libs.core.exceptions import ResolutionError
from libs.core.models import TransferResult

logger = logging.getLogger(__name__)

Signer = Callable[[str], Union[str, Awaitable[str]]]
Transfer = Callable[[], Any]
WalletSend = Callable[[list], Any]

DEFAULT_REWARD_AMOUNT = "1.0"


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def parse_amount(value: str, decimals: int) -> int:
    """
    Convert a decimal amount string into integer base units.

    parse_amount("1.0", 18) == 10**18

    Raises:
        ValueError: if the amount is not a number, is negative, or has more
            fractional digits than the token supports
    """
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}")
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"Invalid amount: {value!r}")
    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {value} has more than {decimals} decimal places")
    return int(scaled)


class ShieldedTransfer:
    """
    Transfer capability backed by a wallet ``send`` function.

    ``send`` receives a list of transfer instructions
    ``[{"token", "recipient", "amount"}]`` with the amount in base units.
    Failures are reported in the TransferResult, never raised.
    """

    def __init__(
        self,
        send: Optional[WalletSend],
        recipient: Optional[str],
        token_address: Optional[str] = None,
        amount: str = DEFAULT_REWARD_AMOUNT,
        decimals: Optional[int] = None,
    ):
        token = RewardTokenSettings()
        self.send = send
        self.recipient = recipient
        self.token_address = token_address or token.token_address
        self.amount = amount
        self.decimals = token.decimals if decimals is None else decimals

    async def __call__(self) -> TransferResult:
        if not callable(self.send):
            return TransferResult(success=False, error="Unlink send not available.")
        if not self.recipient:
            return TransferResult(success=False, error="No wallet connected.")
        try:
            await _maybe_await(
                self.send(
                    [
                        {
                            "token": self.token_address,
                            "recipient": self.recipient,
                            "amount": parse_amount(self.amount, self.decimals),
                        }
                    ]
                )
            )
        except Exception as e:
            logger.error(f"[ShieldedTransfer] Send failed: {e}")
            return TransferResult(success=False, error=str(e) or type(e).__name__)
        logger.info(f"[ShieldedTransfer] Sent {self.amount} to {self.recipient}")
        return TransferResult(success=True)


@dataclass
class PaymentResolver:
    """Signing and transfer capabilities handed to the claim agent."""

    signer: Optional[Signer] = None
    transfer: Optional[Transfer] = None
    has_transfer_target: bool = False

    @classmethod
    def from_wallet(
        cls,
        signer: Optional[Signer] = None,
        send: Optional[WalletSend] = None,
        account: Optional[Mapping[str, Any]] = None,
        token_address: Optional[str] = None,
    ) -> "PaymentResolver":
        """Build a resolver from a wallet session (signer, send, active account)."""
        recipient = (account or {}).get("address")
        transfer = ShieldedTransfer(send, recipient, token_address) if send else None
        return cls(signer=signer, transfer=transfer, has_transfer_target=bool(recipient))

    def can_sign(self, challenge: Optional[str]) -> bool:
        return callable(self.signer) and bool(challenge)

    def can_transfer(self) -> bool:
        return callable(self.transfer) and self.has_transfer_target

    async def sign(self, challenge: str) -> str:
        """
        Turn a challenge token into a payment credential.

        Raises:
            ResolutionError: if the signer raises or returns nothing usable
        """
        try:
            credential = await _maybe_await(self.signer(challenge))
        except Exception as e:
            raise ResolutionError(str(e) or type(e).__name__, {"challenge": challenge}) from e
        if not isinstance(credential, str) or not credential.strip():
            raise ResolutionError("Signer returned an empty payment credential", {"challenge": challenge})
        return credential

    async def run_transfer(self) -> TransferResult:
        """
        Move funds out of band.

        Raises:
            ResolutionError: if the transfer raises or reports failure
        """
        try:
            raw = await _maybe_await(self.transfer())
        except Exception as e:
            raise ResolutionError(str(e) or type(e).__name__) from e
        if isinstance(raw, TransferResult):
            result = raw
        else:
            try:
                result = TransferResult.model_validate(raw)
            except PydanticValidationError as e:
                raise ResolutionError(f"Transfer returned an invalid result: {raw!r}") from e
        if not result.success:
            raise ResolutionError(result.error or "Transfer failed")
        return result
