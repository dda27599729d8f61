import asyncio
import logging
from typing import Any

from userop_builder.middleware.pipeline import Middleware, MiddlewareContext
from userop_builder.rpc.provider import BundlerJsonRpcProvider

MAX_PRIORITY_FEE_PER_GAS_PERCENTAGE_MULTIPLIER = 113


def get_gas_price(provider: BundlerJsonRpcProvider) -> Middleware:
    """Stage that fills unset fee fields from the node's current prices."""
    async def _get_gas_price(ctx: MiddlewareContext) -> MiddlewareContext:
        if (
            ctx.op.max_fee_per_gas is not None and
            ctx.op.max_priority_fee_per_gas is not None
        ):
            return ctx

        max_fee_per_gas, max_priority_fee_per_gas = await fetch_gas_price(
            provider)
        if ctx.op.max_fee_per_gas is None:
            ctx.op.max_fee_per_gas = max_fee_per_gas
        if ctx.op.max_priority_fee_per_gas is None:
            ctx.op.max_priority_fee_per_gas = max_priority_fee_per_gas
        return ctx

    return _get_gas_price


async def fetch_gas_price(
    provider: BundlerJsonRpcProvider
) -> tuple[int, int]:
    """
    (maxFeePerGas, maxPriorityFeePerGas). The node's tip gets a 13% buffer
    and maxFeePerGas covers two base fee doublings. Nodes without EIP-1559
    support get eth_gasPrice for both.
    """
    tasks: Any = await asyncio.gather(
        provider.send("eth_maxPriorityFeePerGas", []),
        provider.send("eth_getBlockByNumber", ["latest", False]),
    )
    priority_fee_response, block_response = tasks

    block = block_response.get("result")
    base_fee_per_gas = None
    if isinstance(block, dict):
        base_fee_per_gas = block.get("baseFeePerGas")

    if (
        "error" in priority_fee_response or
        priority_fee_response.get("result") is None or
        base_fee_per_gas is None
    ):
        gas_price = int(await provider.request("eth_gasPrice", []), 16)
        logging.debug(f"legacy gas price {gas_price}")
        return gas_price, gas_price

    max_priority_fee_per_gas = ceil_percentage(
        int(priority_fee_response["result"], 16),
        MAX_PRIORITY_FEE_PER_GAS_PERCENTAGE_MULTIPLIER,
    )
    max_fee_per_gas = 2 * int(base_fee_per_gas, 16) + max_priority_fee_per_gas
    logging.debug(
        f"gas price maxFeePerGas {max_fee_per_gas} " +
        f"maxPriorityFeePerGas {max_priority_fee_per_gas}"
    )
    return max_fee_per_gas, max_priority_fee_per_gas


def ceil_percentage(value: int, percentage: int) -> int:
    return -(-value * percentage // 100)
