from typing import Any, Mapping

from userop_builder.middleware.pipeline import Middleware, MiddlewareContext
from userop_builder.user_operation.user_operation import UserOperation


def use_defaults(defaults: Mapping[str, Any] | UserOperation) -> Middleware:
    """Stage that fills unset fields from defaults, never overwriting."""
    async def _use_defaults(ctx: MiddlewareContext) -> MiddlewareContext:
        ctx.op = ctx.op.with_defaults(defaults)
        return ctx

    return _use_defaults
