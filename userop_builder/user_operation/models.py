from dataclasses import dataclass

from userop_builder.typing import Address, UserOperationHash


@dataclass(frozen=True)
class Call:
    to: Address
    value: int = 0
    data: bytes | str = b""


@dataclass(frozen=True)
class AccountDescriptor:
    address: Address
    entry_point_address: Address
    factory_address: Address
    nonce_key: int
    owner_address: Address
    init_code: bytes
    chain_id: int


@dataclass
class SenderAddressSimulation:
    # getSenderAddress always reverts, so reverted=True is the expected case
    reverted: bool
    revert_data: str | None = None
    result: str | None = None
    error_message: str | None = None


@dataclass
class UserOperationReceiptInfo:
    userOpHash: UserOperationHash
    sender: Address
    nonce: int
    success: bool
    actualGasCost: int
    actualGasUsed: int
    transactionHash: str | None
    reason: str | None = None
