"""
Decorators for the Draft Assistant services

Keeps service methods free of start/complete/failed logging boilerplate.
"""
import asyncio
import inspect
from functools import wraps
from typing import List, Optional

from utils.logging import set_draft_context, get_contextual_logger


def logged_operation(
    operation_name: Optional[str] = None,
    log_params: bool = True,
    exclude_params: Optional[List[str]] = None
):
    """
    Decorator for async service methods that adds operation logging.

    This decorator automatically handles:
    - Setting draft context (draft_id, user_id, team_number) from arguments
    - Starting/ending operation timing with a trace id
    - Logging start, completion, failure and cancellation
    - Re-raising every exception unchanged

    Args:
        operation_name: Override operation name (defaults to function name)
        log_params: Whether to log call parameters (default: True)
        exclude_params: Parameter names to keep out of the log

    Example:
        @logged_operation("make_pick", exclude_params=["session"])
        async def make_pick(self, draft_id: str, player_id: str, ...):
            ...
    """
    def decorator(func):
        signature = inspect.signature(func)

        @wraps(func)
        async def wrapper(self, *args, **kwargs):
            op_name = operation_name or func.__name__

            bound = signature.bind_partial(self, *args, **kwargs)
            arguments = dict(bound.arguments)
            arguments.pop('self', None)

            context = {}
            if log_params:
                exclude_set = set(exclude_params or [])
                for name, value in arguments.items():
                    if name in exclude_set:
                        continue
                    if name in ('draft_id', 'user_id', 'team_number'):
                        continue
                    context[f"param_{name}"] = value

            set_draft_context(
                user_id=arguments.get('user_id'),
                draft_id=arguments.get('draft_id'),
                team_number=arguments.get('team_number'),
                **context
            )

            # One logger per call: operation timing lives on the instance
            logger = get_contextual_logger(f'{self.__class__.__module__}.{self.__class__.__name__}')
            trace_id = logger.start_operation(op_name)

            try:
                logger.debug(f"{op_name} started")
                result = await func(self, *args, **kwargs)
                logger.end_operation(trace_id, "completed")
                return result

            except asyncio.CancelledError:
                logger.end_operation(trace_id, "cancelled")
                raise
            except Exception as e:
                logger.warning(f"{op_name} failed: {type(e).__name__}: {e}")
                logger.end_operation(trace_id, "failed")
                raise

        return wrapper
    return decorator
