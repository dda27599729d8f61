import asyncio
import logging
import time

from eth_utils import to_checksum_address

from userop_builder.presets.etherspot_wallet import EtherspotWallet
from userop_builder.rpc.provider import BundlerJsonRpcProvider
from userop_builder.typing import Address, UserOperationHash
from userop_builder.user_operation.models import UserOperationReceiptInfo
from userop_builder.user_operation.user_operation import UserOperation


class Client:
    """Submits built UserOperations to a bundler and follows their receipts."""
    provider: BundlerJsonRpcProvider
    entry_point_address: Address

    def __init__(
        self, provider: BundlerJsonRpcProvider, entry_point_address: Address
    ):
        self.provider = provider
        self.entry_point_address = Address(
            to_checksum_address(entry_point_address))

    @classmethod
    async def init(
        cls,
        rpc_url: str,
        entry_point_address: Address,
        override_bundler_rpc: str | None = None,
    ) -> "Client":
        provider = BundlerJsonRpcProvider(rpc_url, override_bundler_rpc)
        supported_entry_points = await provider.request(
            "eth_supportedEntryPoints", [])
        if entry_point_address.lower() not in [
            entry_point.lower() for entry_point in supported_entry_points
        ]:
            logging.warning(
                f"Bundler doesn't list entrypoint {entry_point_address} " +
                f"as supported: {supported_entry_points}"
            )
        return cls(provider, entry_point_address)

    async def send_user_operation(
        self, wallet: EtherspotWallet, user_operation: UserOperation
    ) -> UserOperationHash:
        built_user_operation = await wallet.build(user_operation)
        user_operation_hash = await self.provider.request(
            "eth_sendUserOperation",
            [
                built_user_operation.get_user_operation_json(),
                self.entry_point_address,
            ],
        )
        logging.info(f"UserOperation sent {user_operation_hash}")
        return UserOperationHash(user_operation_hash)

    async def get_user_operation_receipt(
        self, user_operation_hash: UserOperationHash
    ) -> UserOperationReceiptInfo | None:
        receipt = await self.provider.request(
            "eth_getUserOperationReceipt", [user_operation_hash])
        if receipt is None:
            return None
        transaction_receipt = receipt.get("receipt") or {}
        return UserOperationReceiptInfo(
            userOpHash=receipt["userOpHash"],
            sender=receipt["sender"],
            nonce=int(receipt["nonce"], 16),
            success=receipt["success"],
            actualGasCost=int(receipt["actualGasCost"], 16),
            actualGasUsed=int(receipt["actualGasUsed"], 16),
            transactionHash=transaction_receipt.get("transactionHash"),
            reason=receipt.get("reason"),
        )

    async def wait(
        self,
        user_operation_hash: UserOperationHash,
        timeout: float = 60,
        interval: float = 2,
    ) -> UserOperationReceiptInfo | None:
        deadline = time.monotonic() + timeout
        while True:
            receipt = await self.get_user_operation_receipt(
                user_operation_hash)
            if receipt is not None:
                return receipt
            if time.monotonic() + interval > deadline:
                logging.warning(
                    f"No receipt for {user_operation_hash} after {timeout}s")
                return None
            await asyncio.sleep(interval)
