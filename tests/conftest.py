import pytest
import pytest_asyncio
from eth_abi import decode, encode
from eth_account import Account
from eth_utils import keccak, to_checksum_address

from userop_builder.contracts.entrypoint import \
    GET_NONCE_SELECTOR, GET_SENDER_ADDRESS_SELECTOR, \
    SENDER_ADDRESS_RESULT_SELECTOR
from userop_builder.presets.etherspot_wallet import \
    EtherspotWallet, PresetBuilderOptions
from userop_builder.rpc.provider import BundlerJsonRpcProvider
from userop_builder.user_operation.user_operation import UserOperation

OWNER_PRIVATE_KEY = \
    "0x897368deaa9f3797c02570ef7d3fa4df179b0fc7ad8d8fc2547d04701604eb72"
ENTRY_POINT_ADDRESS = "0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789"
FACTORY_ADDRESS = to_checksum_address(
    "0x27f11918740060bd9be146086f6836e18eedbb8c")
WALLET_ADDRESS = to_checksum_address(
    "0xeed01c4ffa9f88096b77d2f16c2e143a94d71298")
RECIPIENT_ADDRESS = to_checksum_address(
    "0xe7bc9b3a936f122f08aac3b1fac3c3ec29a78874")
CHAIN_ID = 1337
NODE_URL = "http://node.test"
BUNDLER_URL = "http://bundler.test"


def counterfactual_address(init_code: bytes) -> str:
    return to_checksum_address(keccak(init_code)[-20:])


def sender_address_revert(address: str) -> str:
    return SENDER_ADDRESS_RESULT_SELECTOR + \
        encode(["address"], [address]).hex()


def rpc_result(result) -> dict:
    return {"jsonrpc": "2.0", "id": 1, "result": result}


def rpc_error(code: int, message: str, data=None) -> dict:
    error = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": 1, "error": error}


class FakeNode:
    """In-memory node and bundler answering the calls the builder makes."""

    def __init__(self):
        self.nonce = 0
        self.code = "0x"
        self.max_priority_fee_per_gas = hex(1_000_000_000)
        self.base_fee_per_gas = hex(10_000_000_000)
        self.gas_price = hex(20_000_000_000)
        self.gas_estimation = {
            "preVerificationGas": hex(45_000),
            "verificationGasLimit": hex(150_000),
            "callGasLimit": hex(35_000),
        }
        self.overrides = {}
        self.calls = []

    def methods(self) -> list[str]:
        return [method for method, _, _ in self.calls]

    def handle(self, method: str, params: list) -> dict:
        if method in self.overrides:
            override = self.overrides[method]
            return override(params) if callable(override) else override
        if method == "eth_chainId":
            return rpc_result(hex(CHAIN_ID))
        if method == "eth_call":
            return self.handle_eth_call(params[0])
        if method == "eth_getCode":
            return rpc_result(self.code)
        if method == "eth_maxPriorityFeePerGas":
            return rpc_result(self.max_priority_fee_per_gas)
        if method == "eth_getBlockByNumber":
            return rpc_result(
                {"number": "0x10", "baseFeePerGas": self.base_fee_per_gas})
        if method == "eth_gasPrice":
            return rpc_result(self.gas_price)
        if method == "eth_estimateUserOperationGas":
            return rpc_result(self.gas_estimation)
        return rpc_error(-32601, "Method not found")

    def handle_eth_call(self, call: dict) -> dict:
        data = call["data"]
        if data.startswith("0x" + GET_SENDER_ADDRESS_SELECTOR.hex()):
            init_code = decode(["bytes"], bytes.fromhex(data[10:]))[0]
            return rpc_error(
                3,
                "execution reverted",
                sender_address_revert(counterfactual_address(init_code)),
            )
        if data.startswith("0x" + GET_NONCE_SELECTOR.hex()):
            return rpc_result("0x" + encode(["uint256"], [self.nonce]).hex())
        return rpc_error(3, "execution reverted", "0x")


class FakeProvider(BundlerJsonRpcProvider):
    node: FakeNode

    def __init__(self, node: FakeNode, bundler_rpc_url: str | None = None):
        super().__init__(NODE_URL, bundler_rpc_url)
        self.node = node

    async def send(self, method: str, params: list | None = None) -> dict:
        params = params if params is not None else []
        self.node.calls.append((method, params, self.url_for(method)))
        return self.node.handle(method, params)


def complete_user_operation(**fields) -> UserOperation:
    user_operation = UserOperation(
        sender_address=WALLET_ADDRESS,
        nonce=0,
        init_code=b"",
        call_data=b"\x01\x02",
        call_gas_limit=35_000,
        verification_gas_limit=150_000,
        pre_verification_gas=45_000,
        max_fee_per_gas=21_130_000_000,
        max_priority_fee_per_gas=1_130_000_000,
        paymaster_and_data=b"",
        signature=b"",
    )
    for field_name, value in fields.items():
        setattr(user_operation, field_name, value)
    return user_operation


@pytest.fixture
def node() -> FakeNode:
    return FakeNode()


@pytest.fixture
def provider(node) -> FakeProvider:
    return FakeProvider(node)


@pytest.fixture
def owner():
    return Account.from_key(OWNER_PRIVATE_KEY)


@pytest_asyncio.fixture
async def wallet(owner, provider) -> EtherspotWallet:
    return await EtherspotWallet.init(
        owner,
        NODE_URL,
        PresetBuilderOptions(ENTRY_POINT_ADDRESS, FACTORY_ADDRESS),
        provider=provider,
    )
