import logging
import re

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector

from userop_builder.exceptions import MalformedRevertPayload
from userop_builder.rpc.provider import BundlerJsonRpcProvider
from userop_builder.typing import Address
from userop_builder.user_operation.models import SenderAddressSimulation

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

GET_NONCE_SELECTOR = function_signature_to_4byte_selector(
    "getNonce(address,uint192)")
GET_SENDER_ADDRESS_SELECTOR = function_signature_to_4byte_selector(
    "getSenderAddress(bytes)")

# revert selectors
SENDER_ADDRESS_RESULT_SELECTOR = "0x" + function_signature_to_4byte_selector(
    "SenderAddressResult(address)").hex()
FAILED_OP_SELECTOR = "0x220266b6"  # FailedOp(uint256,string)
ERROR_SELECTOR = "0x08c379a0"  # Error(string)


class EntryPoint:
    address: Address
    provider: BundlerJsonRpcProvider

    def __init__(self, address: Address, provider: BundlerJsonRpcProvider):
        self.address = address
        self.provider = provider

    def encode_get_nonce(self, sender: Address, key: int) -> str:
        params = encode(["address", "uint192"], [sender, key])
        return "0x" + (GET_NONCE_SELECTOR + params).hex()

    async def get_nonce(self, sender: Address, key: int) -> int:
        result = await self.provider.request(
            "eth_call",
            [
                {"to": self.address, "data": self.encode_get_nonce(sender, key)},
                "latest",
            ],
        )
        nonce = decode(["uint256"], bytes.fromhex(result[2:]))[0]
        logging.debug(f"nonce for {sender} key {key}: {nonce}")
        return nonce

    def encode_get_sender_address(self, init_code: bytes) -> str:
        params = encode(["bytes"], [init_code])
        return "0x" + (GET_SENDER_ADDRESS_SELECTOR + params).hex()

    async def simulate_get_sender_address(
        self, init_code: bytes
    ) -> SenderAddressSimulation:
        # getSenderAddress(entrypoint solidity function) will always revert
        response = await self.provider.send(
            "eth_call",
            [
                {
                    "from": ZERO_ADDRESS,
                    "to": self.address,
                    "data": self.encode_get_sender_address(init_code),
                },
                "latest",
            ],
        )
        if "error" not in response:
            return SenderAddressSimulation(
                reverted=False, result=response.get("result"))

        error = response["error"]
        if not isinstance(error, dict):
            return SenderAddressSimulation(
                reverted=True, error_message=str(error))
        return SenderAddressSimulation(
            reverted=True,
            revert_data=normalize_revert_data(error.get("data")),
            error_message=error.get("message"),
        )


def normalize_revert_data(data) -> str | None:
    """
    Nodes report revert data either as a hex string, nested in a dict or
    behind a "Reverted " prefix.
    """
    if isinstance(data, dict):
        data = data.get("data")
    if data is None:
        return None
    if not isinstance(data, str):
        return str(data)
    hex_match = re.search(r"0x[0-9a-fA-F]*$", data.strip())
    if hex_match is not None:
        return hex_match.group(0)
    return data


def decode_revert_data(revert_data: str) -> bytes:
    if (
        not isinstance(revert_data, str) or
        re.fullmatch(r"0x([0-9a-fA-F]{2})*", revert_data) is None
    ):
        raise MalformedRevertPayload(
            f"Revert data is not hexadecimal: {revert_data}", revert_data)
    return bytes.fromhex(revert_data[2:])


def decode_failure_reason(revert_data: str) -> str | None:
    """Reason string of a FailedOp or Error(string) revert, None otherwise."""
    selector = revert_data[:10].lower()
    params = bytes.fromhex(revert_data[10:])
    try:
        if selector == FAILED_OP_SELECTOR:
            _, reason = decode(["uint256", "string"], params)
            return reason
        if selector == ERROR_SELECTOR:
            return decode(["string"], params)[0]
    except Exception as excp:
        logging.debug(f"Failed to decode revert reason: {str(excp)}")
        return revert_data
    return None
