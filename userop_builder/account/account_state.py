import logging

from userop_builder.contracts.entrypoint import EntryPoint
from userop_builder.middleware.pipeline import Middleware, MiddlewareContext
from userop_builder.user_operation.models import AccountDescriptor

NONCE_SEQUENCE_BITS = 64


def resolve_account(
    entry_point: EntryPoint, descriptor: AccountDescriptor
) -> Middleware:
    """
    Stage that sets the nonce and the init code from on-chain state.

    For the default nonce key the wallet is undeployed iff its nonce is 0.
    For any other key a zero sequence only says the key is unused, so
    deployment is checked with eth_getCode instead.
    """
    async def _resolve_account(ctx: MiddlewareContext) -> MiddlewareContext:
        nonce = await entry_point.get_nonce(
            descriptor.address, descriptor.nonce_key)
        ctx.op.nonce = nonce

        if descriptor.nonce_key == 0:
            is_deployed = nonce != 0
        elif nonce & ((1 << NONCE_SEQUENCE_BITS) - 1) == 0:
            code = await entry_point.provider.get_code(descriptor.address)
            is_deployed = code not in (None, "", "0x")
        else:
            is_deployed = True

        ctx.op.init_code = b"" if is_deployed else descriptor.init_code
        logging.debug(
            f"account {descriptor.address} nonce {nonce} " +
            f"deployed {is_deployed}"
        )
        return ctx

    return _resolve_account
