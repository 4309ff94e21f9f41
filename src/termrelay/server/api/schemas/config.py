"""Provider configuration Pydantic schemas."""

from pydantic import BaseModel, Field


class ProviderConfigModel(BaseModel):
    """Provider configuration as seen by the UI."""

    provider: str = Field(default="openai", description="Provider family label")
    api_key: str = Field(default="", description="API key (masked unless revealed)")
    base_url: str = Field(default="", description="Base URL override; empty uses the provider default")
    model: str = Field(default="", description="Model name")
