"""
Admin-editable settings documents (collection `settings`).
"""
from typing import Optional

from pydantic import Field, field_validator

from app.models.base import DocumentModel


class TokenSettings(DocumentModel):
    """settings/tokens"""
    initial_tokens: int = Field(100, ge=0)
    token_cost_per_generate: int = Field(10, ge=0)
    max_anonymous_generations: int = Field(1, ge=0)


class AiSettings(DocumentModel):
    """settings/ai"""
    api_key: str = ""


class MidtransConfig(DocumentModel):
    """settings/midtrans"""
    server_key: str
    client_key: str
    is_production: bool = False

    @field_validator("server_key", "client_key")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Server key and client key are required")
        return value


class GeneralSettings(DocumentModel):
    """settings/general"""
    website_name: str = "edit Aja"
    logo_path: Optional[str] = None
    favicon_path: Optional[str] = None
    watermark_enabled: bool = True

    @field_validator("website_name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Website name is required")
        return value


class BetaTesterSettings(DocumentModel):
    """settings/betaTester"""
    free_tokens: int = Field(1000, ge=0)
    registration_enabled: bool = True
