import logging
from typing import Any, Mapping

from userop_builder.middleware.defaults import \
    use_defaults as defaults_middleware
from userop_builder.middleware.pipeline import \
    Middleware, MiddlewareContext, MiddlewarePipeline
from userop_builder.typing import Address
from userop_builder.user_operation.user_operation import \
    UserOperation, to_field_name

DEFAULTS_STAGE = "defaults"


class UserOperationBuilder:
    """
    Holds the default field values and the middleware stages of an account.
    Building never changes the builder, each build works on a copy of the
    pending operation.
    """
    defaults: dict[str, Any]
    pipeline: MiddlewarePipeline

    def __init__(self):
        self.defaults = {}
        self.pipeline = MiddlewarePipeline()

    def use_defaults(
        self, defaults: Mapping[str, Any]
    ) -> "UserOperationBuilder":
        """
        Merge defaults into the builder's defaults. The first call registers
        the stage that applies them.
        """
        for key, value in defaults.items():
            self.defaults[to_field_name(key)] = value
        if DEFAULTS_STAGE not in self.pipeline.names:
            self.pipeline.use(DEFAULTS_STAGE, defaults_middleware(self.defaults))
        return self

    def use_middleware(
        self, name: str, middleware: Middleware
    ) -> "UserOperationBuilder":
        self.pipeline.use(name, middleware)
        return self

    def new_op(self, **fields: Any) -> UserOperation:
        user_operation = UserOperation()
        for key, value in fields.items():
            setattr(user_operation, to_field_name(key), value)
        return user_operation

    async def build_op(
        self,
        user_operation: UserOperation,
        entry_point: Address,
        chain_id: int,
    ) -> UserOperation:
        ctx = MiddlewareContext(user_operation.copy(), entry_point, chain_id)
        ctx = await self.pipeline.run(ctx)
        logging.debug(f"built UserOperation {ctx.op.get_user_operation_json()}")
        return ctx.op
