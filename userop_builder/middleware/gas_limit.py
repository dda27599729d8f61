import logging

from userop_builder.middleware.pipeline import Middleware, MiddlewareContext
from userop_builder.rpc.provider import BundlerJsonRpcProvider
from userop_builder.user_operation.user_operation import verify_and_get_uint

# bundlers predating v0.6 report verificationGas
VERIFICATION_GAS_LIMIT_KEYS = ("verificationGasLimit", "verificationGas")


def estimate_user_operation_gas(provider: BundlerJsonRpcProvider) -> Middleware:
    """
    Stage that asks the bundler for gas limits. Limits the caller already
    set are kept.
    """
    async def _estimate_user_operation_gas(
        ctx: MiddlewareContext
    ) -> MiddlewareContext:
        estimation = await provider.request(
            "eth_estimateUserOperationGas",
            [
                ctx.op.get_user_operation_json(allow_missing=True),
                ctx.entry_point,
            ],
        )
        logging.debug(f"eth_estimateUserOperationGas result {estimation}")

        if ctx.op.pre_verification_gas is None:
            ctx.op.pre_verification_gas = to_gas_value(
                estimation["preVerificationGas"])

        if ctx.op.verification_gas_limit is None:
            for key in VERIFICATION_GAS_LIMIT_KEYS:
                if key in estimation:
                    ctx.op.verification_gas_limit = to_gas_value(
                        estimation[key])
                    break

        if ctx.op.call_gas_limit is None:
            ctx.op.call_gas_limit = to_gas_value(estimation["callGasLimit"])
        return ctx

    return _estimate_user_operation_gas


def to_gas_value(value: str | int) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return verify_and_get_uint("gas", value)
