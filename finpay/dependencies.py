"""
FastAPI dependencies.

Every route that touches the database declares a FinPayContext parameter:

    @router.get("/categories")
    async def list_categories(ctx: FinPayContext = Depends(get_context)):
        return await ctx.categories.page()

FastAPI calls get_context once per request, so each request gets its own
session: committed when the handler returns, rolled back if it raises.
"""

from collections.abc import AsyncIterator

from fastapi import Request

from finpay.context import FinPayContext, open_context


async def get_context(request: Request) -> AsyncIterator[FinPayContext]:
    """
    Yield a request-scoped FinPayContext.

    The session factory is created once by the application lifespan and
    stored on app.state; tests override this dependency instead.
    """
    async with open_context(request.app.state.session_factory) as context:
        yield context
