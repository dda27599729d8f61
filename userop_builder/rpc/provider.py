import logging
from typing import Any

from userop_builder.rpc.jsonrpc import RPCFault
from userop_builder.utils.eth_client_utils import \
    send_rpc_request_to_eth_client

BUNDLER_METHODS = frozenset(
    (
        "eth_sendUserOperation",
        "eth_estimateUserOperationGas",
        "eth_getUserOperationByHash",
        "eth_getUserOperationReceipt",
        "eth_supportedEntryPoints",
    )
)


class BundlerJsonRpcProvider:
    """
    JSON-RPC provider that talks to an Ethereum node and, optionally, to a
    separate bundler. Bundler methods go to the bundler url when one is set,
    every other method goes to the node url.
    """
    rpc_url: str
    bundler_rpc_url: str | None
    number_of_retry_attempts: int

    def __init__(
        self,
        rpc_url: str,
        bundler_rpc_url: str | None = None,
        number_of_retry_attempts: int = 3,
    ):
        self.rpc_url = rpc_url
        self.bundler_rpc_url = bundler_rpc_url
        self.number_of_retry_attempts = number_of_retry_attempts

    def set_bundler_rpc(
            self, bundler_rpc_url: str | None) -> "BundlerJsonRpcProvider":
        self.bundler_rpc_url = bundler_rpc_url
        return self

    def url_for(self, method: str) -> str:
        if self.bundler_rpc_url is not None and method in BUNDLER_METHODS:
            return self.bundler_rpc_url
        return self.rpc_url

    async def send(self, method: str, params: list | None = None) -> dict:
        """Raw JSON-RPC envelope; an "error" member is left to the caller."""
        url = self.url_for(method)
        logging.debug(f"rpc {method} -> {url}")
        return await send_rpc_request_to_eth_client(
            url,
            method,
            params,
            number_of_retry_attempts=self.number_of_retry_attempts,
        )

    async def request(self, method: str, params: list | None = None) -> Any:
        response = await self.send(method, params)
        if "error" in response:
            raise RPCFault.from_response(response["error"])
        if "result" not in response:
            raise RPCFault(None, f"{method} returned no result", response)
        return response["result"]

    async def get_chain_id(self) -> int:
        chain_id_hex = await self.request("eth_chainId", [])
        return int(chain_id_hex, 16)

    async def get_code(self, address: str, block: str = "latest") -> str:
        return await self.request("eth_getCode", [address, block])
