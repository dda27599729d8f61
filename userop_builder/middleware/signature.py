from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount

from userop_builder.middleware.pipeline import Middleware, MiddlewareContext


def sign_user_op_hash(credentials: LocalAccount) -> Middleware:
    """Stage that replaces the signature with the owner's EIP-191 one."""
    async def _sign_user_op_hash(ctx: MiddlewareContext) -> MiddlewareContext:
        if ctx.op.signature is None:
            # the signature is not part of the hashed fields
            ctx.op.signature = b""
        user_op_hash = ctx.user_op_hash()
        signed_message = credentials.sign_message(
            encode_defunct(hexstr=user_op_hash))
        ctx.op.signature = signed_message.signature
        return ctx

    return _sign_user_op_hash


def get_placeholder_signature(credentials: LocalAccount) -> bytes:
    """Well formed owner signature over "0xdead", used until signing."""
    return credentials.sign_message(encode_defunct(text="0xdead")).signature
