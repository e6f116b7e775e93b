import asyncio
import os
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from ...exceptions import MalformedRequest, ParseError, TasmotaManagerError, TransportFailure, Unconfigured
from ...models.provider_data import ProviderDataStore
from ...provider.tasmota_provider import PLUGIN_NAME, PLUGIN_VERSION, TasmotaProvider
from ...provider.worker import ProviderWorker
from ...utils.config import build_settings, load_config_file, provider_data_from_config
from ...utils.logging import get_logger

# Get logger for this module
logger = get_logger(__name__)


# Pydantic models for request/response
class OptionSchema(BaseModel):
    value: str
    label: str

class CommandSchema(BaseModel):
    rank: int
    title: str
    options: List[OptionSchema]

class SendCommandRequest(BaseModel):
    channel: int = 0
    action: str

class OperationResponse(BaseModel):
    success: bool
    message: str
    details: Optional[Dict[str, Any]] = None

class ConnectionTestRequest(BaseModel):
    provider_host: str
    optional_user: Optional[str] = None
    optional_password: Optional[str] = None

class StatusSchema(BaseModel):
    name: str
    plugin: str
    version: str
    initialized: bool
    field_count: int
    command_count: int
    last_poll: Optional[str] = None
    last_poll_success: Optional[bool] = None
    last_error: Optional[str] = None

class VariablesResponse(BaseModel):
    timestamp: str
    variables: Dict[str, Any]


def to_http_exception(error: Exception) -> HTTPException:
    """Map an error of the provider to an HTTP status"""
    if isinstance(error, Unconfigured):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, (MalformedRequest, ValueError)):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, (TransportFailure, ParseError)):
        return HTTPException(status_code=502, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


def create_app(
    provider: TasmotaProvider,
    store: Optional[ProviderDataStore] = None,
    poll_in_background: bool = False
) -> FastAPI:
    """
    Create the API for one provider.

    Args:
        provider: Provider served by this API
        store: Where provider data is saved after discovery
        poll_in_background: Start the polling loop on startup
    """
    app = FastAPI(
        title="Tasmota Manager",
        description="Polling and relay control for a Tasmota device",
        version=PLUGIN_VERSION
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    worker = ProviderWorker(provider, store)
    stop_event = asyncio.Event()
    background_tasks = []

    @app.on_event("startup")
    async def startup_event():
        if poll_in_background:
            background_tasks.append(asyncio.create_task(worker.run_forever(stop_event)))
            logger.info("API server: Started background polling task")
        logger.info("API server startup complete")

    @app.on_event("shutdown")
    async def shutdown_event():
        stop_event.set()
        for task in background_tasks:
            await task
        logger.info("API server stopped")

    @app.get("/status", response_model=StatusSchema)
    async def get_status():
        """Get the discovery and polling state of the provider"""
        last = worker.last_result
        return StatusSchema(
            name=provider.provider_data.name,
            plugin=PLUGIN_NAME,
            version=PLUGIN_VERSION,
            initialized=provider.is_initialized,
            field_count=len(provider.provider_data.fields),
            command_count=len(provider.get_available_commands()),
            last_poll=last.timestamp.isoformat() if last else None,
            last_poll_success=last.success if last else None,
            last_error=last.error if last else None
        )

    @app.get("/commands", response_model=List[CommandSchema])
    async def list_commands():
        """List the relay commands of the device"""
        if not provider.is_initialized:
            raise to_http_exception(Unconfigured("The device has not been discovered yet"))
        return provider.describe_commands()

    @app.post("/commands/send", response_model=OperationResponse)
    async def send_command(request: SendCommandRequest):
        """Switch a relay"""
        if not provider.is_initialized:
            raise to_http_exception(Unconfigured("The device has not been discovered yet"))
        try:
            selected = provider.select(request.channel, request.action)
            await provider.send_command(selected)
        except (TasmotaManagerError, ValueError) as e:
            logger.error(f"Failed to send command: {str(e)}")
            raise to_http_exception(e) from e
        return OperationResponse(
            success=True,
            message=f"Sent {selected.send}",
            details={"channel": request.channel, "action": request.action}
        )

    @app.post("/poll", response_model=VariablesResponse)
    async def poll():
        """Run one polling cycle now"""
        result = await worker.run_cycle()
        if not result.success:
            raise HTTPException(status_code=502, detail=result.error)
        return VariablesResponse(timestamp=result.timestamp.isoformat(), variables=result.variables)

    @app.get("/variables", response_model=VariablesResponse)
    async def get_variables():
        """Get the values of the last successful polling cycle"""
        last = worker.last_result
        if last is None or not last.success:
            raise HTTPException(status_code=404, detail="No values polled yet")
        return VariablesResponse(timestamp=last.timestamp.isoformat(), variables=last.variables)

    @app.post("/test-connection", response_model=OperationResponse)
    async def test_connection(request: ConnectionTestRequest):
        """Check connection settings against a device"""
        try:
            settings = build_settings(base=request.model_dump(exclude_none=True))
            message = await provider.test_provider_connection(settings)
        except (TasmotaManagerError, ValueError) as e:
            logger.error(f"Connection test failed: {str(e)}")
            raise to_http_exception(e) from e
        return OperationResponse(success=True, message=message)

    return app


def create_app_from_environment() -> FastAPI:
    """
    Build the app from ``TASMOTA_CONFIG`` (YAML config file path) and stored data.
    """
    config_file = os.environ.get("TASMOTA_CONFIG")
    config = load_config_file(config_file) if config_file else {}
    store = ProviderDataStore()
    provider_data = store.load(config.get("name") or "tasmota")
    if provider_data is None:
        provider_data = provider_data_from_config(config)
    provider = TasmotaProvider(provider_data, locale=os.environ.get("TASMOTA_LOCALE", "en"))
    return create_app(provider, store, poll_in_background=True)
