import logging
from typing import Any

from userop_builder.middleware.gas_limit import to_gas_value
from userop_builder.middleware.pipeline import Middleware, MiddlewareContext
from userop_builder.rpc.provider import BundlerJsonRpcProvider
from userop_builder.user_operation.user_operation import \
    GAS_LIMIT_FIELDS, FIELD_TO_JSON_KEY


def verifying_paymaster(
    paymaster_rpc: str, context: dict[str, Any] | None = None
) -> Middleware:
    """
    Stage that asks a verifying paymaster to sponsor the operation.

    The paymaster signs over the gas limits it returns, so those overwrite
    whatever the operation carried.
    """
    provider = BundlerJsonRpcProvider(paymaster_rpc)

    async def _verifying_paymaster(
        ctx: MiddlewareContext
    ) -> MiddlewareContext:
        params: list[Any] = [
            ctx.op.get_user_operation_json(allow_missing=True),
            ctx.entry_point,
        ]
        if context is not None:
            params.append(context)
        sponsorship = await provider.request("pm_sponsorUserOperation", params)
        logging.debug(f"pm_sponsorUserOperation result {sponsorship}")

        ctx.op.paymaster_and_data = sponsorship["paymasterAndData"]
        for field_name in GAS_LIMIT_FIELDS:
            json_key = FIELD_TO_JSON_KEY[field_name]
            if sponsorship.get(json_key) is not None:
                setattr(ctx.op, field_name, to_gas_value(sponsorship[json_key]))
        return ctx

    return _verifying_paymaster
