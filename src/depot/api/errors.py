"""Exception-to-response mapping for the depot API."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from depot.errors import InvalidRevertError


def register_error_handlers(app: FastAPI) -> None:
    """Protean's standard mappings plus 409 for refused reverts."""
    register_exception_handlers(app)

    @app.exception_handler(InvalidRevertError)
    async def invalid_revert_handler(request: Request, exc: InvalidRevertError):
        return JSONResponse(status_code=409, content={"error": str(exc)})
