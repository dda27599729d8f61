import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from userop_builder.exceptions import StageError
from userop_builder.metrics.metrics import \
    MIDDLEWARE_STAGE_FAILURES, MIDDLEWARE_STAGE_SECONDS
from userop_builder.typing import Address, UserOperationHash
from userop_builder.user_operation.user_operation import \
    UserOperation, get_user_operation_hash


@dataclass
class MiddlewareContext:
    op: UserOperation
    entry_point: Address
    chain_id: int

    def user_op_hash(self) -> UserOperationHash:
        return get_user_operation_hash(
            self.op.to_list(), self.entry_point, self.chain_id)


Middleware = Callable[[MiddlewareContext], Awaitable[MiddlewareContext]]


class MiddlewarePipeline:
    """
    Ordered middleware stages. Each stage receives the context returned by
    the previous one and is awaited before the next starts; the first
    failure aborts the run.
    """
    stages: list[tuple[str, Middleware]]

    def __init__(self):
        self.stages = []

    def use(self, name: str, stage: Middleware) -> "MiddlewarePipeline":
        self.stages.append((name, stage))
        return self

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.stages]

    async def run(self, ctx: MiddlewareContext) -> MiddlewareContext:
        for stage_name, stage in self.stages:
            logging.debug(f"running middleware stage {stage_name}")
            try:
                with MIDDLEWARE_STAGE_SECONDS.labels(stage_name).time():
                    ctx = await stage(ctx)
            except StageError:
                MIDDLEWARE_STAGE_FAILURES.labels(stage_name).inc()
                raise
            except Exception as excp:
                MIDDLEWARE_STAGE_FAILURES.labels(stage_name).inc()
                logging.error(
                    f"middleware stage {stage_name} failed. error: {str(excp)}"
                )
                raise StageError(stage_name, str(excp)) from excp

            if not isinstance(ctx, MiddlewareContext):
                MIDDLEWARE_STAGE_FAILURES.labels(stage_name).inc()
                raise StageError(
                    stage_name, "middleware didn't return a context")

        missing_fields = ctx.op.missing_fields()
        if len(missing_fields) > 0:
            raise StageError(
                "completion",
                f"UserOperation missing fields: {', '.join(missing_fields)}",
            )
        return ctx
