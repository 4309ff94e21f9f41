"""Provider configuration endpoints."""

from fastapi import APIRouter, Query

from termrelay.server.api.schemas import OperationResult, ProviderConfigModel
from termrelay.server.state import get_config_cell
from termrelay.util.provider_config import ProviderConfig

router = APIRouter()


def _config_to_model(config: ProviderConfig, reveal: bool = False) -> ProviderConfigModel:
    return ProviderConfigModel(
        provider=config.provider.value,
        api_key=config.api_key if reveal else config.masked_key(),
        base_url=config.base_url,
        model=config.model,
    )


@router.get("", response_model=OperationResult)
async def get_config(reveal: bool = Query(default=False)) -> OperationResult:
    """Return the active provider configuration (API key masked by default)."""
    config = get_config_cell().get()
    return OperationResult.ok(_config_to_model(config, reveal=reveal).model_dump())


@router.put("", response_model=OperationResult)
async def set_config(request: ProviderConfigModel) -> OperationResult:
    """Replace the provider configuration for subsequent chat calls.

    Sending back the masked key from GET keeps the current key.
    """
    cell = get_config_cell()
    current = cell.get()
    api_key = request.api_key
    if current.api_key and api_key == current.masked_key():
        api_key = current.api_key

    updated = current.with_updates(
        provider=request.provider,
        api_key=api_key,
        base_url=request.base_url,
        model=request.model,
    )
    cell.set(updated)
    return OperationResult.ok(_config_to_model(updated).model_dump())
